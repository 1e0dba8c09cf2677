"""
Main entry point for the FMI news watcher.

Starts the liveness server, waits for the start delay, then runs the checks
in the configured mode (batch: one cycle per source and exit; daemon: interval
jobs until stopped).
"""

import asyncio
import random
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from api.config import APIConfig, config as api_config
from api.main import create_server
from scheduler.scheduler_service import SchedulerService
from utilities.config import WatcherConfig, config
from utilities.logger import get_logger, setup_logging


async def run(settings: WatcherConfig = config, api_settings: APIConfig = api_config) -> None:
    """Run the watcher until the batch completes or the daemon is stopped."""
    setup_logging(
        log_level=settings.log_level,
        log_format=settings.log_format,
        log_file=settings.get_log_file_path(),
        debug=settings.debug
    )

    logger = get_logger(__name__)
    logger.info("Starting FMI news watcher", mode=settings.run_mode, store=settings.store_backend)

    server = None
    server_task = None
    if api_settings.liveness_enabled:
        server = create_server(api_settings.host, api_settings.port, api_settings.log_level)
        server_task = asyncio.create_task(server.serve())

    try:
        delay = settings.start_delay_seconds + random.uniform(0, settings.start_delay_jitter_seconds)
        logger.info("Waiting before first check", delay_seconds=round(delay, 2))
        await asyncio.sleep(delay)

        service = SchedulerService(settings)

        if settings.is_daemon():
            if server_task is not None:
                server_task.add_done_callback(lambda _task: service.request_stop())
            await service.start_daemon()
        else:
            await service.run_batch()

    except Exception as e:
        # Errors end the run but not with a failing exit status
        logger.exception("Unhandled error, stopping watcher", error=str(e))

    finally:
        if server is not None:
            server.should_exit = True
            await server_task
        logger.info("FMI news watcher stopped")


def main() -> int:
    asyncio.run(run())
    return 0


if __name__ == "__main__":
    sys.exit(main())
