"""
Scheduler service for the watcher.

This module provides:
- Batch mode: one sequential cycle per source, then release the store
- Daemon mode: one APScheduler interval job per source, store kept open
- Snapshot seeding for sources without a stored snapshot
"""

import asyncio
import signal
from typing import Dict, List, Optional

import structlog
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from scheduler.models import BatchRunResult, CheckResult, RetryPolicy, utcnow
from scheduler.source_checker import CheckSession, CompletionTracker, SourceChecker
from scheduler.sources import SourceConfig, default_sources
from utilities.config import WatcherConfig
from watcher.database import MemorySnapshotStore, MongoSnapshotStore, SnapshotStore
from watcher.exceptions import FetchFailure, StartupError, StoreFailure
from watcher.fetcher import PageFetcher
from watcher.notifier import EmailNotifier

logger = structlog.get_logger(__name__)


def build_store(settings: WatcherConfig) -> SnapshotStore:
    """Create the snapshot store selected by the configuration."""
    if settings.store_backend == "memory":
        return MemorySnapshotStore()
    return MongoSnapshotStore(
        connection_url=settings.get_mongodb_url(),
        database_name=settings.mongodb_database,
        collection_name=settings.mongodb_collection,
        timeout_ms=settings.mongodb_timeout_ms
    )


class SchedulerService:
    """Drives check cycles for every monitored source."""

    def __init__(
        self,
        settings: WatcherConfig,
        store: Optional[SnapshotStore] = None,
        fetcher: Optional[PageFetcher] = None,
        notifier: Optional[EmailNotifier] = None,
        sources: Optional[List[SourceConfig]] = None,
    ):
        """
        Initialize scheduler service.

        Args:
            settings: Watcher configuration
            store: Snapshot store, built from the configuration when omitted
            fetcher: Page fetcher
            notifier: E-mail notifier
            sources: Monitored sources, both defaults when omitted
        """
        self.settings = settings
        self.store = store or build_store(settings)
        self.fetcher = fetcher or PageFetcher(timeout=settings.request_timeout)
        self.notifier = notifier or EmailNotifier()
        self.sources = sources if sources is not None else default_sources(settings)
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.logger = logger.bind(component="scheduler_service")
        self._stop_event: Optional[asyncio.Event] = None

        self._setup_scheduler_listeners()

    def _setup_scheduler_listeners(self) -> None:
        """Setup scheduler event listeners."""
        def job_executed_listener(event):
            self.logger.info(
                "Job executed",
                job_id=event.job_id,
                outcome=event.retval.get('outcome') if event.retval else None
            )

        def job_error_listener(event):
            self.logger.error(
                "Job execution failed",
                job_id=event.job_id,
                error=str(event.exception)
            )

        self.scheduler.add_listener(job_executed_listener, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(job_error_listener, EVENT_JOB_ERROR)

    def batch_retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            retry_attempts=self.settings.retry_attempts,
            retry_delay=self.settings.retry_delay,
            store_read_attempts=self.settings.store_read_attempts
        )

    async def seed_snapshots(self, only_missing: bool = True) -> Dict[str, bool]:
        """
        Store the current page of each source as its snapshot.

        Args:
            only_missing: Skip sources that already have a snapshot

        Returns:
            Mapping of source id to whether a snapshot is now available
        """
        seeded = {}
        for source in self.sources:
            try:
                if only_missing and await self.store.get(source.source_id) is not None:
                    seeded[source.source_id] = True
                    continue
                document = await self.fetcher.fetch(source.url)
                await self.store.put(source.source_id, document)
                seeded[source.source_id] = True
                self.logger.info("Seeded snapshot", source_id=source.source_id)
            except (FetchFailure, StoreFailure) as e:
                seeded[source.source_id] = False
                self.logger.error("Failed to seed snapshot", source_id=source.source_id, error=str(e))
        return seeded

    async def run_batch(self) -> BatchRunResult:
        """
        Check every source once, one after another, then release the store.

        Returns:
            BatchRunResult with one CheckResult per source
        """
        run = BatchRunResult()
        self.logger.info("Starting batch run", sources=len(self.sources))

        await self.store.connect()

        tracker = CompletionTracker(total=len(self.sources), on_complete=self.store.disconnect)
        session = CheckSession(
            store=self.store,
            fetcher=self.fetcher,
            notifier=self.notifier,
            retry_policy=self.batch_retry_policy(),
            tracker=tracker
        )
        checker = SourceChecker(session)

        if self.settings.seed_missing_snapshots:
            await self.seed_snapshots(only_missing=True)

        for source in self.sources:
            try:
                run.results.append(await checker.check(source))
            except Exception as e:
                self.logger.exception("Check failed unexpectedly", source_id=source.source_id, error=str(e))

        if not self.sources:
            await self.store.disconnect()

        run.finished_at = utcnow()
        self.logger.info(
            "Batch run completed",
            notifications_sent=run.notifications_sent,
            gave_up=run.gave_up,
            duration_seconds=(run.finished_at - run.started_at).total_seconds()
        )
        return run

    async def _check_job(self, source: SourceConfig, checker: SourceChecker) -> Dict:
        """Interval job body for one source."""
        result: CheckResult = await checker.check(source)
        return {
            'source_id': result.source_id,
            'outcome': result.outcome.value if result.outcome else None,
            'notification_sent': result.notification_sent,
            'duration': result.duration_seconds
        }

    async def start_daemon(self) -> None:
        """
        Seed the store and keep one interval job per source running until stopped.

        Raises:
            StartupError: If the store is unreachable or a source cannot be seeded
        """
        self.logger.info("Starting scheduler service in daemon mode")
        await self.store.connect()

        seeded = await self.seed_snapshots(only_missing=self.store.durable)
        missing = [source_id for source_id, ok in seeded.items() if not ok]
        if missing:
            await self.store.disconnect()
            raise StartupError(f"Could not seed initial snapshots for: {', '.join(missing)}")

        session = CheckSession(
            store=self.store,
            fetcher=self.fetcher,
            notifier=self.notifier,
            retry_policy=RetryPolicy.next_tick(self.settings.store_read_attempts)
        )
        checker = SourceChecker(session)

        for source in self.sources:
            self.scheduler.add_job(
                func=self._check_job,
                trigger=IntervalTrigger(minutes=source.interval_minutes),
                args=[source, checker],
                id=f"check_{source.source_id}",
                name=f"Check {source.subject_en}",
                max_instances=1,
                coalesce=True,
                replace_existing=True
            )
            self.logger.info(
                "Added check job",
                source_id=source.source_id,
                interval_minutes=source.interval_minutes
            )

        self._stop_event = asyncio.Event()
        self._install_signal_handlers()
        self.scheduler.start()
        self.logger.info("Scheduler service started", jobs=len(self.sources))

        try:
            await self._stop_event.wait()
        finally:
            self._remove_signal_handlers()
            self.stop()
            await self.store.disconnect()

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self.request_stop)
            except (NotImplementedError, RuntimeError):
                # add_signal_handler is unavailable off the main thread and on Windows
                pass

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(signum)
            except (NotImplementedError, RuntimeError):
                pass

    def request_stop(self) -> None:
        self.logger.info("Stop requested")
        if self._stop_event is not None:
            self._stop_event.set()

    def stop(self) -> None:
        """Stop the scheduler service."""
        self.logger.info("Stopping scheduler service")
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        self.logger.info("Scheduler service stopped")
