from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r (not a number); using %s", name, raw, default)
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r (not an integer); using %s", name, raw, default)
        return default


HOST: str = os.getenv("ROUTINE_HOST", "0.0.0.0")
PORT: int = _env_int("ROUTINE_PORT", 5000)

# Field geometry and motion limits used by pose estimation (inches, in/s, deg/s)
FIELD_SIZE_IN: float = _env_float("ROUTINE_FIELD_SIZE_IN", 144.0)
ROBOT_HALF_SIZE_IN: float = 9.0
MAX_VELOCITY: float = _env_float("ROUTINE_MAX_VELOCITY", 50.0)
TURN_RATE_DPS: float = _env_float("ROUTINE_TURN_RATE_DPS", 180.0)

HANDOFF_PAUSE: float = _env_float("ROUTINE_HANDOFF_PAUSE", 0.6)
MAX_PREVIEW_SAMPLES: int = _env_int("ROUTINE_MAX_PREVIEW_SAMPLES", 2000)

LOG_LEVEL: str = os.getenv("ROUTINE_LOG_LEVEL", "INFO").strip().upper() or "INFO"


def configure_logging(level: str | None = None) -> None:
    name = (level or LOG_LEVEL).upper()
    log_level = getattr(logging, name, None)
    if not isinstance(log_level, int):
        log_level = logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
