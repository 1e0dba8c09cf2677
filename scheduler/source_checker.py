"""
Check cycle for a single monitored source.

A cycle walks idle -> fetching -> resolving_snapshot -> comparing and ends in
either unchanged or notifying. Fetch and snapshot-read failures are retried
with a fixed delay up to the session's retry policy, then the cycle gives up
without notifying or touching the store.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional, Tuple

import structlog

from scheduler.models import CheckOutcome, CheckResult, CheckState, RetryPolicy
from scheduler.sources import SourceConfig
from utilities.logger import CheckLogger
from watcher.database import SnapshotStore
from watcher.document import Document
from watcher.exceptions import FetchFailure, StoreFailure
from watcher.fetcher import PageFetcher
from watcher.notifier import EmailNotifier

logger = structlog.get_logger(__name__)


class CompletionTracker:
    """
    Counts finished sources and fires a callback once all of them are done.
    Used in batch mode to release the store after the last source.
    """

    def __init__(self, total: int, on_complete: Optional[Callable[[], Awaitable[None]]] = None):
        self.total = total
        self.on_complete = on_complete
        self.completed: List[str] = []
        self._fired = False

    @property
    def done(self) -> bool:
        return len(self.completed) >= self.total

    async def mark_done(self, source_id: str) -> None:
        self.completed.append(source_id)
        logger.debug("Source finished its cycle",
                     source_id=source_id,
                     completed=len(self.completed),
                     total=self.total)

        if self.done and not self._fired:
            self._fired = True
            if self.on_complete is not None:
                await self.on_complete()


class CheckSession:
    """Everything a check cycle needs, passed explicitly instead of module globals."""

    def __init__(
        self,
        store: SnapshotStore,
        fetcher: PageFetcher,
        notifier: EmailNotifier,
        retry_policy: Optional[RetryPolicy] = None,
        tracker: Optional[CompletionTracker] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.store = store
        self.fetcher = fetcher
        self.notifier = notifier
        self.retry_policy = retry_policy or RetryPolicy()
        self.tracker = tracker
        self.sleep = sleep


class SourceChecker:
    """Runs check cycles for sources within one session."""

    def __init__(self, session: CheckSession):
        self.session = session

    async def check(self, source: SourceConfig) -> CheckResult:
        """
        Run one full cycle for a source.

        Args:
            source: Source to check

        Returns:
            CheckResult describing the visited states and the outcome
        """
        result = CheckResult(source_id=source.source_id)
        check_logger = CheckLogger("source_checker").bind_context(
            source_id=source.source_id,
            subject=source.subject_en
        )

        try:
            documents = await self._fetch_with_snapshot(source, result, check_logger)
            if documents is None:
                return result.finish(CheckOutcome.GAVE_UP)

            old, new = documents
            result.enter(CheckState.COMPARING)
            if source.is_unchanged(old, new):
                result.enter(CheckState.UNCHANGED)
                check_logger.log_unchanged()
                return result.finish(CheckOutcome.UNCHANGED)

            result.enter(CheckState.NOTIFYING)
            return await self._notify_and_save(source, old, new, result, check_logger)
        finally:
            if self.session.tracker is not None:
                await self.session.tracker.mark_done(source.source_id)

    async def _fetch_with_snapshot(
        self,
        source: SourceConfig,
        result: CheckResult,
        check_logger: CheckLogger
    ) -> Optional[Tuple[Document, Document]]:
        """Fetch the page and its previous snapshot, retrying within the policy."""
        policy = self.session.retry_policy
        reason = ""

        for attempt in range(1, policy.max_attempts + 1):
            result.attempts = attempt
            check_logger.log_check_start(source.subject_en, attempt)

            result.enter(CheckState.FETCHING)
            try:
                new = await self.session.fetcher.fetch(source.url)
            except FetchFailure as e:
                reason = f"Could not fetch page: {e}"
            else:
                result.enter(CheckState.RESOLVING_SNAPSHOT)
                old, reason = await self._read_snapshot(source.source_id)
                if old is not None:
                    return old, new

            result.errors.append(reason)
            if attempt < policy.max_attempts:
                check_logger.log_retry(reason, attempt, policy.max_attempts, policy.retry_delay)
                await self.session.sleep(policy.retry_delay)

        check_logger.log_give_up(reason, result.attempts)
        return None

    async def _read_snapshot(self, source_id: str) -> Tuple[Optional[Document], str]:
        """Read the stored snapshot, asking the store again on absence or failure."""
        reason = ""
        for _ in range(self.session.retry_policy.store_read_attempts):
            try:
                old = await self.session.store.get(source_id)
            except StoreFailure as e:
                reason = f"Could not read old snapshot: {e}"
                continue
            if old is not None:
                return old, ""
            reason = f"No snapshot stored for {source_id}"
        return None, reason

    async def _notify_and_save(
        self,
        source: SourceConfig,
        old: Document,
        new: Document,
        result: CheckResult,
        check_logger: CheckLogger
    ) -> CheckResult:
        """Mail the delta, then persist the new snapshot whatever the mail outcome."""
        delta = source.delta(old, new)
        result.new_items = source.count_new_items(old, new)

        if delta:
            check_logger.log_changed(result.new_items)
            sent = await self.session.notifier.send(source.subject_ro, delta)
            result.notification_sent = sent
            check_logger.log_notification(sent)
            if not sent:
                result.errors.append("Notification could not be sent")
        else:
            check_logger.log_no_new_items()

        try:
            await self.session.store.put(source.source_id, new)
        except StoreFailure as e:
            result.errors.append(str(e))
            check_logger.log_snapshot_saved(False, str(e))
        else:
            result.snapshot_saved = True
            check_logger.log_snapshot_saved(True)

        return result.finish(CheckOutcome.NOTIFIED if delta else CheckOutcome.NO_NEW_ITEMS)
