"""
Engine configuration for the ICHRA quote engine
Settings are read from environment variables (optionally via a .env file).

Recognised variables:
- ICHRA_AFFORDABILITY_THRESHOLD: fraction of monthly income (e.g. 0.095)
- ICHRA_REFERENCE_DATE: plan effective date used for ages (YYYY-MM-DD)
- ICHRA_DEBOUNCE_SECONDS: coalescing window for bursts of changes
- ICHRA_PARALLEL_MIN_WORK: members x plans at which evaluation goes parallel
- ICHRA_MAX_WORKERS: thread pool size (blank = executor default)
- ICHRA_RECOMPUTE_BUDGET_SECONDS: pass duration that triggers a slow-pass warning
- ICHRA_LOG_LEVEL: logging level name
"""

import os
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from dotenv import load_dotenv

from ichra_quote.constants import (
    AFFORDABILITY_THRESHOLD_DEFAULT,
    DEFAULT_REFERENCE_DATE,
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_PARALLEL_MIN_WORK,
    DEFAULT_RECOMPUTE_BUDGET_SECONDS,
)
from ichra_quote.exceptions import ConfigurationError

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineSettings:
    """Tunable settings shared by a recomputation pass and its controller."""
    affordability_threshold: Decimal = AFFORDABILITY_THRESHOLD_DEFAULT
    reference_date: date = DEFAULT_REFERENCE_DATE
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    parallel_min_work: int = DEFAULT_PARALLEL_MIN_WORK
    max_workers: Optional[int] = None
    recompute_budget_seconds: float = DEFAULT_RECOMPUTE_BUDGET_SECONDS
    log_level: str = "INFO"

    def __post_init__(self):
        if not (Decimal("0") <= self.affordability_threshold <= Decimal("1")):
            raise ConfigurationError(
                f"Affordability threshold must be between 0 and 1, got {self.affordability_threshold}"
            )
        if self.debounce_seconds < 0:
            raise ConfigurationError(f"Debounce window cannot be negative: {self.debounce_seconds}")
        if self.max_workers is not None and self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be at least 1, got {self.max_workers}")

    @classmethod
    def from_environment(cls) -> "EngineSettings":
        """Load settings from ICHRA_* environment variables."""
        return cls(
            affordability_threshold=_env_decimal(
                "ICHRA_AFFORDABILITY_THRESHOLD", AFFORDABILITY_THRESHOLD_DEFAULT
            ),
            reference_date=_env_date("ICHRA_REFERENCE_DATE", DEFAULT_REFERENCE_DATE),
            debounce_seconds=_env_float("ICHRA_DEBOUNCE_SECONDS", DEFAULT_DEBOUNCE_SECONDS),
            parallel_min_work=_env_int("ICHRA_PARALLEL_MIN_WORK", DEFAULT_PARALLEL_MIN_WORK),
            max_workers=_env_int("ICHRA_MAX_WORKERS", None),
            recompute_budget_seconds=_env_float(
                "ICHRA_RECOMPUTE_BUDGET_SECONDS", DEFAULT_RECOMPUTE_BUDGET_SECONDS
            ),
            log_level=os.getenv("ICHRA_LOG_LEVEL", "INFO").upper(),
        )


def load_settings() -> EngineSettings:
    """Read settings from the environment."""
    return EngineSettings.from_environment()


def configure_logging(level: Optional[str] = None):
    """
    Configure root logging for scripts and services embedding the engine.

    Args:
        level: Level name; defaults to ICHRA_LOG_LEVEL or INFO
    """
    level_name = (level or os.getenv("ICHRA_LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
        datefmt='%H:%M:%S',
        force=True  # Override any existing config
    )
    logger.info(f"ENGINE STARTUP: Logging initialized at {level_name}")


def _env_raw(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return value.strip()


def _env_decimal(name: str, default: Decimal) -> Decimal:
    raw = _env_raw(name)
    if raw is None:
        return default
    try:
        return Decimal(raw)
    except InvalidOperation:
        raise ConfigurationError(f"{name} must be a decimal number, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = _env_raw(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = _env_raw(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _env_date(name: str, default: date) -> date:
    raw = _env_raw(name)
    if raw is None:
        return default
    try:
        return datetime.strptime(raw, '%Y-%m-%d').date()
    except ValueError:
        raise ConfigurationError(f"{name} must be YYYY-MM-DD, got {raw!r}")
