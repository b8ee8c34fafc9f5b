"""Configuration management."""

import os
from pathlib import Path
from typing import List, Optional
from dotenv import load_dotenv

from .models import Waypoint

# Load environment variables
# Try to load from standard locations
env_paths = [
    Path("/etc/nearby-notifier/.env"),  # Production location
    Path(".env"),  # Current directory
    Path(__file__).parent.parent.parent / ".env",  # Project root
]
for env_path in env_paths:
    if env_path.exists():
        load_dotenv(env_path)
        break
else:
    # Fallback: try default load_dotenv() behavior
    load_dotenv()


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name, "").strip()
    return int(value) if value else None


def _optional_float(name: str) -> Optional[float]:
    value = os.getenv(name, "").strip()
    return float(value) if value else None


def parse_steps(value: str) -> List[Waypoint]:
    """
    Parse a waypoint override of the form ``lat,lon;lat,lon``.

    Raises:
        ValueError: If a pair is not two numbers

    Examples:
        >>> parse_steps("52.37,4.89; 52.38,4.90")
        [Waypoint(latitude=52.37, longitude=4.89), Waypoint(latitude=52.38, longitude=4.9)]
    """
    steps = []
    for pair in value.split(";"):
        pair = pair.strip()
        if not pair:
            continue
        parts = [p.strip() for p in pair.split(",")]
        if len(parts) != 2:
            raise ValueError(f"Invalid waypoint '{pair}', expected 'lat,lon'")
        steps.append(Waypoint(float(parts[0]), float(parts[1])))
    return steps


# Walk area center
LATITUDE = _optional_float("NEARBY_LATITUDE")
LONGITUDE = _optional_float("NEARBY_LONGITUDE")

# Waypoint plan generation: rings around the center, km between waypoints
STEP_COUNT = int(os.getenv("STEP_COUNT", "5"))
RADIUS = float(os.getenv("RADIUS", "0.07"))

# Explicit waypoint plan, overrides generation when set
STEPS = parse_steps(os.getenv("STEPS", ""))

# Walk pacing (milliseconds)
STEP_INTERVAL_MS = int(os.getenv("STEP_INTERVAL_MS", "1000"))
LOOP_INTERVAL_MS = int(os.getenv("LOOP_INTERVAL_MS", "60000"))

# Notify handlers about repeat sightings too (countdown refresh)
NOTIFY_ON_REPEAT = os.getenv("NOTIFY_ON_REPEAT", "true").lower() == "true"

# Startup handshake retries; unset retries forever
INIT_MAX_ATTEMPTS = _optional_int("INIT_MAX_ATTEMPTS")

# Extra cache sweep every N waypoints; unset sweeps once per cycle
SWEEP_EVERY_STEPS = _optional_int("SWEEP_EVERY_STEPS")

# Stop after this many consecutive polling failures; unset never stops
MAX_CONSECUTIVE_FAILURES = _optional_int("MAX_CONSECUTIVE_FAILURES")

# Map API
MAP_API_URL = os.getenv("MAP_API_URL", "http://localhost:8080/api")
MAP_API_TOKEN = os.getenv("MAP_API_TOKEN") or None
MAP_API_TIMEOUT = float(os.getenv("MAP_API_TIMEOUT", "10"))
MAP_API_RATE_LIMIT_SECONDS = float(os.getenv("MAP_API_RATE_LIMIT_SECONDS", "0.5"))

# Webhook notifications (disabled when WEBHOOK_URL is empty)
WEBHOOK_URL = os.getenv("WEBHOOK_URL") or None
WEBHOOK_ONLY_NEW = os.getenv("WEBHOOK_ONLY_NEW", "false").lower() == "true"
WEBHOOK_TIMEOUT = float(os.getenv("WEBHOOK_TIMEOUT", "10"))
WEBHOOK_RATE_LIMIT_SECONDS = float(os.getenv("WEBHOOK_RATE_LIMIT_SECONDS", "1"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Extra per-encounter log line with the remaining visible time
LOG_ENCOUNTERS = os.getenv("LOG_ENCOUNTERS", "false").lower() == "true"

# Project information
PROJECT_NAME = "Nearby Notifier"
