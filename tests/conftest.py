"""
Pytest configuration and shared fixtures.
"""

import pytest
from unittest.mock import AsyncMock

from watcher.database import MemorySnapshotStore, SnapshotStore
from watcher.document import Document
from watcher.fetcher import PageFetcher
from watcher.notifier import EmailNotifier


@pytest.fixture
def announcements_html():
    """Build an announcement category page from a list of article ids."""
    def build(ids):
        articles = "\n".join(
            f'<article id="{article_id}" class="post type-post">'
            f'<h2 class="entry-title"><a href="https://fmi.unibuc.ro/{article_id}/">Anunt {article_id}</a></h2>'
            f'</article>'
            for article_id in ids
        )
        return f"""
        <html>
            <head><title>Anunturi Secretariat</title></head>
            <body>
                <main id="main">
                    {articles}
                </main>
            </body>
        </html>
        """
    return build


@pytest.fixture
def studies_html():
    """Build a studies-completion page from a list of paragraph texts."""
    def build(paragraphs, heading="Finalizare studii 2026"):
        heading_markup = f"<h2>{heading}</h2>" if heading is not None else ""
        body = "\n".join(f"<p>{text}</p>" for text in paragraphs)
        return f"""
        <html>
            <body>
                <p>Outside the content region</p>
                <div class="entry-content">
                    {heading_markup}
                    {body}
                </div>
            </body>
        </html>
        """
    return build


@pytest.fixture
def announcements_doc(announcements_html):
    def build(ids):
        return Document.from_html(announcements_html(ids))
    return build


@pytest.fixture
def studies_doc(studies_html):
    def build(paragraphs, heading="Finalizare studii 2026"):
        return Document.from_html(studies_html(paragraphs, heading))
    return build


@pytest.fixture
def mock_fetcher():
    """Create a mock page fetcher."""
    return AsyncMock(spec=PageFetcher)


@pytest.fixture
def mock_notifier():
    """Create a mock notifier that accepts every mail."""
    notifier = AsyncMock(spec=EmailNotifier)
    notifier.send.return_value = True
    return notifier


@pytest.fixture
def mock_store():
    """Create a mock snapshot store."""
    store = AsyncMock(spec=SnapshotStore)
    store.durable = True
    return store


@pytest.fixture
def memory_store():
    return MemorySnapshotStore()


@pytest.fixture
def no_sleep():
    """Replacement for asyncio.sleep that returns immediately."""
    return AsyncMock()
