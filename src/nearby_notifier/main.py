"""Main daemon application."""

import sys
import signal
import logging

from .config import (
    LATITUDE,
    LONGITUDE,
    STEP_COUNT,
    RADIUS,
    STEPS,
    STEP_INTERVAL_MS,
    LOOP_INTERVAL_MS,
    NOTIFY_ON_REPEAT,
    INIT_MAX_ATTEMPTS,
    SWEEP_EVERY_STEPS,
    MAX_CONSECUTIVE_FAILURES,
    MAP_API_URL,
    MAP_API_TOKEN,
    MAP_API_TIMEOUT,
    MAP_API_RATE_LIMIT_SECONDS,
    WEBHOOK_URL,
    WEBHOOK_ONLY_NEW,
    WEBHOOK_TIMEOUT,
    WEBHOOK_RATE_LIMIT_SECONDS,
    LOG_LEVEL,
    LOG_ENCOUNTERS,
    PROJECT_NAME,
)
from .handlers import LogHandler, WebhookHandler
from .notifier import Notifier
from .retry import RetryPolicy
from .sighting_source import HttpSightingSource

logger = logging.getLogger(__name__)


def configure_logging():
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # urllib3 logs every connection at DEBUG; keep it quieter than the app
    urllib3_level = getattr(logging, LOG_LEVEL.upper(), logging.INFO)
    if urllib3_level <= logging.INFO:
        urllib3_level = logging.WARNING
    logging.getLogger("urllib3").setLevel(urllib3_level)


def build_notifier() -> Notifier:
    """
    Wire a Notifier from the environment configuration.

    Raises:
        ValueError: If neither a center point nor an explicit plan is configured
    """
    center = (LATITUDE, LONGITUDE) if LATITUDE is not None and LONGITUDE is not None else None
    if center is None and not STEPS:
        raise ValueError("Set NEARBY_LATITUDE and NEARBY_LONGITUDE, or STEPS")

    start = center or STEPS[0]
    source = HttpSightingSource(
        MAP_API_URL,
        latitude=start[0],
        longitude=start[1],
        token=MAP_API_TOKEN,
        timeout=MAP_API_TIMEOUT,
        rate_limit_seconds=MAP_API_RATE_LIMIT_SECONDS,
    )

    notifier = Notifier(
        source,
        latitude=LATITUDE,
        longitude=LONGITUDE,
        step_count=STEP_COUNT,
        radius=RADIUS,
        steps=STEPS or None,
        step_interval_ms=STEP_INTERVAL_MS,
        loop_interval_ms=LOOP_INTERVAL_MS,
        logger=logging.getLogger("nearby_notifier.notifier"),
        notify_on_repeat=NOTIFY_ON_REPEAT,
        init_retry=RetryPolicy(max_attempts=INIT_MAX_ATTEMPTS),
        sweep_every_steps=SWEEP_EVERY_STEPS,
        max_consecutive_failures=MAX_CONSECUTIVE_FAILURES,
    )
    if LOG_ENCOUNTERS:
        notifier.attach(LogHandler())
    if WEBHOOK_URL:
        notifier.attach(WebhookHandler(
            WEBHOOK_URL,
            only_new=WEBHOOK_ONLY_NEW,
            timeout=WEBHOOK_TIMEOUT,
            rate_limit_seconds=WEBHOOK_RATE_LIMIT_SECONDS,
        ))
    return notifier


def main():
    """Main entry point."""
    configure_logging()
    try:
        notifier = build_notifier()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)

    def _signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        notifier.stop()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    logger.info(f"Starting {PROJECT_NAME}")
    logger.info(f"Walking {len(notifier.steps)} waypoints every {LOOP_INTERVAL_MS // 1000}s")
    try:
        notifier.run()
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    logger.info(f"{PROJECT_NAME} stopped")


if __name__ == "__main__":
    main()
