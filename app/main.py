"""
Finance Tracker service entry point.

Builds the application components from the environment and keeps the
recurring scheduler running until the process receives SIGINT or SIGTERM.

Run with:
    python -m app.main
"""

import asyncio
import logging
import signal

import structlog

from finance_tracker.config import get_settings, validate_all_settings
from finance_tracker.orchestrator import create_app_components

logger = structlog.get_logger("finance_tracker.app")


def configure_logging(debug: bool = False) -> None:
    """Route structlog output through the root logger at INFO, or DEBUG in debug mode."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format="%(message)s")
    root.setLevel(logging.DEBUG if debug else logging.INFO)


async def serve() -> None:
    settings = get_settings()

    checks = validate_all_settings()
    configure_logging(settings.app.debug_mode if checks.get("app") else False)
    failed = [name for name, ok in checks.items() if ok is False]
    if failed:
        logger.error("settings_invalid", sections=failed, details=checks)
        raise SystemExit(1)

    components = create_app_components()
    scheduler_settings = settings.scheduler

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops have no signal handlers; Ctrl+C still raises
            pass

    if scheduler_settings.enabled:
        components.scheduler.start()
        logger.info(
            "scheduler_started",
            interval_hours=scheduler_settings.interval_hours,
            run_on_startup=scheduler_settings.run_on_startup,
        )
    else:
        logger.info("scheduler_disabled")

    try:
        await stop_event.wait()
    finally:
        await components.scheduler.stop()
        logger.info("shutdown_complete")


def main() -> None:
    try:
        asyncio.run(serve())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
