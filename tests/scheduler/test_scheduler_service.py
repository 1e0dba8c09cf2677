"""
Test cases for the scheduler service: batch runs, seeding and daemon jobs.
"""

import asyncio

import pytest

from scheduler.models import CheckOutcome
from scheduler.scheduler_service import SchedulerService, build_store
from scheduler.source_checker import CheckSession, SourceChecker
from scheduler.sources import secretary_announcements, studies_completion
from utilities.config import WatcherConfig
from watcher.database import MemorySnapshotStore, MongoSnapshotStore
from watcher.exceptions import FetchFailure, StartupError


@pytest.fixture
def settings():
    return WatcherConfig(
        _env_file=None,
        retry_attempts=2,
        retry_delay=0.0,
        store_read_attempts=1,
        announcements_interval_minutes=30,
        studies_completion_interval_minutes=720,
    )


@pytest.fixture
def sources():
    return [secretary_announcements(), studies_completion()]


@pytest.fixture
def service(settings, mock_store, mock_fetcher, mock_notifier, sources):
    return SchedulerService(
        settings,
        store=mock_store,
        fetcher=mock_fetcher,
        notifier=mock_notifier,
        sources=sources
    )


class TestBuildStore:
    """Test cases for store selection."""

    def test_memory_backend(self):
        store = build_store(WatcherConfig(_env_file=None, store_backend="memory"))
        assert isinstance(store, MemorySnapshotStore)

    def test_mongo_backend(self):
        store = build_store(WatcherConfig(
            _env_file=None,
            store_backend="mongo",
            mongodb_url="mongodb://localhost:27017"
        ))
        assert isinstance(store, MongoSnapshotStore)
        assert store.database_name == "fmi-news"
        assert store.collection_name == "doms"


class TestBatchRun:
    """Test cases for batch mode."""

    @pytest.mark.asyncio
    async def test_checks_sources_in_order_and_disconnects_once(
        self, service, mock_store, mock_fetcher, announcements_doc, studies_doc
    ):
        announcements = announcements_doc(["post-1"])
        studies = studies_doc(["a"])
        mock_fetcher.fetch.side_effect = [announcements, studies]
        mock_store.get.side_effect = [announcements, studies]

        run = await service.run_batch()

        assert [result.source_id for result in run.results] == ["secretaryAnnouncements", "studiesCompletion"]
        assert all(result.outcome == CheckOutcome.UNCHANGED for result in run.results)
        assert [call.args[0] for call in mock_fetcher.fetch.await_args_list] == [
            "https://fmi.unibuc.ro/category/anunturi-secretariat/",
            "https://fmi.unibuc.ro/finalizare-studii/",
        ]
        mock_store.connect.assert_awaited_once()
        mock_store.disconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_store_released_after_give_up(self, service, mock_store, mock_fetcher, mock_notifier):
        mock_fetcher.fetch.side_effect = FetchFailure("https://fmi.unibuc.ro", status_code=502)

        run = await service.run_batch()

        assert run.gave_up == ["secretaryAnnouncements", "studiesCompletion"]
        assert mock_fetcher.fetch.await_count == 2 * 3
        mock_notifier.send.assert_not_called()
        mock_store.disconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unexpected_error_does_not_stop_other_sources(
        self, service, mock_store, mock_fetcher, studies_doc
    ):
        studies = studies_doc(["a"])
        mock_fetcher.fetch.side_effect = [RuntimeError("boom"), studies]
        mock_store.get.return_value = studies

        run = await service.run_batch()

        assert len(run.results) == 1
        assert run.results[0].source_id == "studiesCompletion"
        mock_store.disconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_seeding_missing_snapshots(
        self, settings, mock_fetcher, mock_notifier, announcements_doc
    ):
        settings.seed_missing_snapshots = True
        store = MemorySnapshotStore()
        page = announcements_doc(["post-1"])
        mock_fetcher.fetch.return_value = page
        service = SchedulerService(
            settings,
            store=store,
            fetcher=mock_fetcher,
            notifier=mock_notifier,
            sources=[secretary_announcements()]
        )

        run = await service.run_batch()

        assert run.results[0].outcome == CheckOutcome.UNCHANGED
        assert "secretaryAnnouncements" in store
        mock_notifier.send.assert_not_called()


class TestSeedSnapshots:
    """Test cases for snapshot seeding."""

    @pytest.mark.asyncio
    async def test_only_missing_skips_existing(self, service, mock_store, mock_fetcher, announcements_doc):
        page = announcements_doc(["post-1"])
        mock_store.get.side_effect = [page, None]
        mock_fetcher.fetch.return_value = page

        seeded = await service.seed_snapshots(only_missing=True)

        assert seeded == {"secretaryAnnouncements": True, "studiesCompletion": True}
        mock_fetcher.fetch.assert_awaited_once_with("https://fmi.unibuc.ro/finalizare-studii/")
        mock_store.put.assert_awaited_once_with("studiesCompletion", page)

    @pytest.mark.asyncio
    async def test_fetch_failure_is_reported(self, service, mock_store, mock_fetcher):
        mock_store.get.return_value = None
        mock_fetcher.fetch.side_effect = FetchFailure("https://fmi.unibuc.ro")

        seeded = await service.seed_snapshots()

        assert seeded == {"secretaryAnnouncements": False, "studiesCompletion": False}
        mock_store.put.assert_not_called()


class TestDaemon:
    """Test cases for daemon mode."""

    @pytest.mark.asyncio
    async def test_seeding_failure_is_fatal(self, service, mock_store, mock_fetcher):
        mock_store.get.return_value = None
        mock_fetcher.fetch.side_effect = FetchFailure("https://fmi.unibuc.ro")

        with pytest.raises(StartupError):
            await service.start_daemon()

        mock_store.disconnect.assert_awaited_once()
        assert not service.scheduler.running

    @pytest.mark.asyncio
    async def test_adds_one_interval_job_per_source(
        self, settings, mock_fetcher, mock_notifier, announcements_doc
    ):
        mock_fetcher.fetch.return_value = announcements_doc(["post-1"])
        service = SchedulerService(
            settings,
            store=MemorySnapshotStore(),
            fetcher=mock_fetcher,
            notifier=mock_notifier,
            sources=[secretary_announcements(30), studies_completion(720)]
        )

        daemon = asyncio.create_task(service.start_daemon())
        for _ in range(50):
            await asyncio.sleep(0)
            if service.scheduler.running:
                break

        jobs = {job.id: job for job in service.scheduler.get_jobs()}
        service.request_stop()
        await daemon

        assert set(jobs) == {"check_secretaryAnnouncements", "check_studiesCompletion"}
        assert jobs["check_secretaryAnnouncements"].trigger.interval.total_seconds() == 30 * 60
        assert jobs["check_studiesCompletion"].trigger.interval.total_seconds() == 720 * 60
        assert mock_fetcher.fetch.await_count == 2
        assert not service.scheduler.running

    @pytest.mark.asyncio
    async def test_check_job_returns_summary(self, service, mock_store, mock_fetcher, announcements_doc):
        page = announcements_doc(["post-1"])
        mock_fetcher.fetch.return_value = page
        mock_store.get.return_value = page
        checker = SourceChecker(CheckSession(mock_store, mock_fetcher, service.notifier))

        summary = await service._check_job(secretary_announcements(), checker)

        assert summary["source_id"] == "secretaryAnnouncements"
        assert summary["outcome"] == "unchanged"
        assert summary["notification_sent"] is False

