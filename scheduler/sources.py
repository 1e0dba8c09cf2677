"""
Monitored sources.
Each source bundles a page URL with the rules used to compare and summarize it.
"""

from typing import Callable, List

from pydantic import BaseModel, ConfigDict, Field

from scheduler.change_detector import (
    articles_unchanged, count_new_articles, count_new_paragraphs,
    new_articles_markup, new_paragraphs_markup, paragraphs_unchanged
)
from utilities.config import WatcherConfig
from watcher.document import Document

ANNOUNCEMENTS_URL = "https://fmi.unibuc.ro/category/anunturi-secretariat/"
STUDIES_COMPLETION_URL = "https://fmi.unibuc.ro/finalizare-studii/"


class SourceConfig(BaseModel):
    """One monitored page. Immutable once built."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    subject_en: str = Field(..., description="English subject, used in logs")
    subject_ro: str = Field(..., description="Romanian subject, used in e-mails")
    url: str = Field(..., description="Page URL")
    source_id: str = Field(..., description="Snapshot key in the store")
    is_unchanged: Callable[[Document, Document], bool]
    extract_delta: Callable[[Document, Document, str], str]
    count_new_items: Callable[[Document, Document], int]
    interval_minutes: int = Field(default=30, ge=1, description="Check interval in daemon mode")

    def delta(self, old: Document, new: Document) -> str:
        return self.extract_delta(old, new, self.url)


def secretary_announcements(interval_minutes: int = 30) -> SourceConfig:
    return SourceConfig(
        subject_en="Secretary Announcements",
        subject_ro="Anunturi Secretariat",
        url=ANNOUNCEMENTS_URL,
        source_id="secretaryAnnouncements",
        is_unchanged=articles_unchanged,
        extract_delta=new_articles_markup,
        count_new_items=count_new_articles,
        interval_minutes=interval_minutes,
    )


def studies_completion(interval_minutes: int = 720) -> SourceConfig:
    return SourceConfig(
        subject_en="Studies Completion",
        subject_ro="Finalizare Studii",
        url=STUDIES_COMPLETION_URL,
        source_id="studiesCompletion",
        is_unchanged=paragraphs_unchanged,
        extract_delta=new_paragraphs_markup,
        count_new_items=count_new_paragraphs,
        interval_minutes=interval_minutes,
    )


def default_sources(settings: WatcherConfig) -> List[SourceConfig]:
    """Both monitored sources, with intervals taken from the configuration."""
    return [
        secretary_announcements(settings.announcements_interval_minutes),
        studies_completion(settings.studies_completion_interval_minutes),
    ]
