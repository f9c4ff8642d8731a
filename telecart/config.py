"""Service configuration loaded from environment variables."""
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping, Optional

DEFAULT_CART_EXPIRY_MS = 300000  # 5 minutes
DEFAULT_PORT = 3000
DEFAULT_SWEEP_INTERVAL_MS = 60000  # 1 minute


@dataclass(frozen=True)
class Settings:
    """Process settings. TTL is shared by the cart factory and the context mirror."""
    cart_expiry_ms: int = DEFAULT_CART_EXPIRY_MS
    port: int = DEFAULT_PORT
    app_env: str = "development"
    log_level: str = "INFO"
    sweep_interval_ms: int = DEFAULT_SWEEP_INTERVAL_MS

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


def _read_int(env: Mapping[str, str], name: str, default: int, minimum: int) -> int:
    raw = env.get(name, str(default))
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from the given mapping (defaults to os.environ).

    Variables:
        CART_EXPIRY_MS: cart and context time-to-live in milliseconds
        PORT: HTTP port for the development server
        APP_ENV: development | production | test
        LOG_LEVEL: standard logging level name
        SWEEP_INTERVAL_MS: background expiry sweep period, 0 disables it
    """
    if env is None:
        env = os.environ
    return Settings(
        cart_expiry_ms=_read_int(env, "CART_EXPIRY_MS", DEFAULT_CART_EXPIRY_MS, minimum=1),
        port=_read_int(env, "PORT", DEFAULT_PORT, minimum=1),
        app_env=env.get("APP_ENV", "development"),
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
        sweep_interval_ms=_read_int(env, "SWEEP_INTERVAL_MS", DEFAULT_SWEEP_INTERVAL_MS, minimum=0),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get process settings (cached after first read)."""
    return load_settings()
