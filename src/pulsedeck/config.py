"""Environment-driven settings for the PulseDeck API."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got '{raw}'") from exc


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got '{raw}'") from exc


@dataclass(frozen=True)
class Settings:
    """Runtime configuration resolved once at application start."""

    db_path: Path = Path("data/pulsedeck.db")
    db_pool_size: int = 5
    db_pool_timeout: float = 10.0
    rate_limit_max_requests: int = 100
    rate_limit_window_seconds: float = 60.0
    rate_limit_max_clients: int = 10_000
    rate_limit_sweep_seconds: float = 30.0
    redis_url: Optional[str] = None
    api_key: Optional[str] = field(default=None, repr=False)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from PULSEDECK_* environment variables.

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        return cls(
            db_path=Path(os.getenv("PULSEDECK_DB_PATH", "data/pulsedeck.db")),
            db_pool_size=_int_env("PULSEDECK_DB_POOL_SIZE", 5),
            db_pool_timeout=_float_env("PULSEDECK_DB_POOL_TIMEOUT", 10.0),
            rate_limit_max_requests=_int_env("PULSEDECK_RATE_LIMIT_MAX_REQUESTS", 100),
            rate_limit_window_seconds=_float_env(
                "PULSEDECK_RATE_LIMIT_WINDOW_SECONDS", 60.0
            ),
            rate_limit_max_clients=_int_env("PULSEDECK_RATE_LIMIT_MAX_CLIENTS", 10_000),
            rate_limit_sweep_seconds=_float_env(
                "PULSEDECK_RATE_LIMIT_SWEEP_SECONDS", 30.0
            ),
            redis_url=os.getenv("REDIS_URL") or None,
            api_key=os.getenv("PULSEDECK_API_KEY") or None,
            log_level=os.getenv("PULSEDECK_LOG_LEVEL", "INFO").upper(),
        )
