"""
Models for the check cycle.

This module defines Pydantic models for:
- Check states and outcomes
- Retry policy
- Per-source check results
- Batch run summaries
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CheckState(str, Enum):
    """States a source goes through during one check cycle."""
    IDLE = "idle"
    FETCHING = "fetching"
    RESOLVING_SNAPSHOT = "resolving_snapshot"
    COMPARING = "comparing"
    UNCHANGED = "unchanged"
    NOTIFYING = "notifying"


class CheckOutcome(str, Enum):
    """How a check cycle ended."""
    UNCHANGED = "unchanged"
    NOTIFIED = "notified"
    NO_NEW_ITEMS = "no_new_items"
    GAVE_UP = "gave_up"


class RetryPolicy(BaseModel):
    """Bounded linear retry for fetch and snapshot reads."""
    retry_attempts: int = Field(default=5, ge=0, le=10, description="Re-attempts after the first one")
    retry_delay: float = Field(default=10.0, ge=0.0, description="Fixed delay between attempts in seconds")
    store_read_attempts: int = Field(default=5, ge=1, le=10, description="Back-to-back store reads per attempt")

    @property
    def max_attempts(self) -> int:
        return self.retry_attempts + 1

    @classmethod
    def next_tick(cls, store_read_attempts: int = 5) -> "RetryPolicy":
        """No in-cycle retries; the next scheduled run is the retry."""
        return cls(retry_attempts=0, retry_delay=0.0, store_read_attempts=store_read_attempts)


class CheckResult(BaseModel):
    """Result of one check cycle for one source."""
    source_id: str
    outcome: Optional[CheckOutcome] = None
    attempts: int = Field(default=0)
    states: List[CheckState] = Field(default_factory=lambda: [CheckState.IDLE])
    new_items: int = Field(default=0)
    notification_sent: bool = Field(default=False)
    snapshot_saved: bool = Field(default=False)
    errors: List[str] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=utcnow)
    finished_at: Optional[datetime] = None

    def enter(self, state: CheckState) -> None:
        self.states.append(state)

    def finish(self, outcome: CheckOutcome) -> "CheckResult":
        self.outcome = outcome
        self.finished_at = utcnow()
        if self.states[-1] != CheckState.IDLE:
            self.states.append(CheckState.IDLE)
        return self

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()


class BatchRunResult(BaseModel):
    """Summary of one batch run over every source."""
    results: List[CheckResult] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=utcnow)
    finished_at: Optional[datetime] = None

    @property
    def notifications_sent(self) -> int:
        return sum(1 for result in self.results if result.notification_sent)

    @property
    def gave_up(self) -> List[str]:
        return [result.source_id for result in self.results if result.outcome == CheckOutcome.GAVE_UP]
