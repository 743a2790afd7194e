"""
Standalone migration worker.

Runs the polling dispatch loop (and the scheduled import, when enabled)
without the HTTP API. SIGINT/SIGTERM stop new dispatch; the job being
processed runs to completion before the process exits.

Dependencies: asyncio, csv_migrator.application.runtime
System role: Worker process entry point
"""

import asyncio
import logging
import signal

from csv_migrator.application.runtime import MigrationRuntime
from csv_migrator.configs import Settings, get_settings
from csv_migrator.observability.logger import configure_logging

logger = logging.getLogger(__name__)


async def run_worker(settings: Settings, stop_event: asyncio.Event | None = None) -> None:
    """
    Run the worker until ``stop_event`` is set or a shutdown signal arrives.

    Args:
        settings: Application settings
        stop_event: External stop trigger (signal handlers set it too)
    """
    stop_event = stop_event or asyncio.Event()
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # Windows event loops, or not running in the main thread
            continue
        installed.append(sig)

    runtime = MigrationRuntime(settings)
    try:
        await runtime.start(run_worker=True)
        logger.info(f"{__name__}:run_worker - Worker started on lane {settings.queue.lane}")
        await stop_event.wait()
        logger.info(f"{__name__}:run_worker - Shutdown requested, finishing in-flight job")
    finally:
        await runtime.stop()
        for sig in installed:
            loop.remove_signal_handler(sig)
    logger.info(f"{__name__}:run_worker - Worker stopped")


def main() -> None:
    """Console entry point."""
    settings = get_settings()
    configure_logging(settings.log_level)
    asyncio.run(run_worker(settings))


if __name__ == "__main__":
    main()
