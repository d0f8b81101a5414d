"""Scheduled leaderboard recalculation (cron / one-off)."""
import logging
import signal
import threading

from skillboard.core.config import settings
from skillboard.core.logging import configure_logging
from skillboard.features.leaderboard.recalculate_job import recalculate_all
from skillboard.features.leaderboard.service import shutdown_background_dispatch

logger = logging.getLogger("skillboard.jobs.recalculate")


def run_recalculation(stop_event: threading.Event | None = None) -> dict:
    stop = stop_event or threading.Event()
    result = recalculate_all(should_stop=stop.is_set)
    logger.info(
        "[recalculate] worker finished",
        extra={"users_updated": result.users_updated, "cancelled": result.cancelled},
    )
    return result.to_dict()


def _install_stop_handlers(stop_event: threading.Event) -> None:
    def _handler(signum, frame):
        logger.warning("[recalculate] stop requested", extra={"signal": signum})
        stop_event.set()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


if __name__ == "__main__":
    configure_logging(settings.ENV)
    stop_event = threading.Event()
    _install_stop_handlers(stop_event)
    try:
        print(run_recalculation(stop_event))
    finally:
        shutdown_background_dispatch(wait=True)
