"""Runtime settings read from the environment.

Protean's own configuration (databases, brokers, processing modes) lives in
``domain.toml`` next to ``domain.py``; this module only carries the values the
commerce code itself needs.
"""

import os
from dataclasses import dataclass


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


@dataclass(frozen=True)
class Settings:
    payment_gateway: str = "fake"
    myfatoorah_api_url: str = "https://apitest.myfatoorah.com"
    myfatoorah_api_token: str = ""
    gateway_timeout_seconds: float = 10.0
    payment_methods_cache_ttl: float = 300.0
    abandoned_cart_minutes: int = 60
    abandoned_order_minutes: int = 30
    scan_interval_seconds: int = 300
    app_base_url: str = "http://localhost:8000"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            payment_gateway=os.environ.get("PAYMENT_GATEWAY", "fake").lower(),
            myfatoorah_api_url=os.environ.get("MYFATOORAH_API_URL", "https://apitest.myfatoorah.com"),
            myfatoorah_api_token=os.environ.get("MYFATOORAH_API_TOKEN", ""),
            gateway_timeout_seconds=_float_env("GATEWAY_TIMEOUT_SECONDS", 10.0),
            payment_methods_cache_ttl=_float_env("PAYMENT_METHODS_CACHE_TTL", 300.0),
            abandoned_cart_minutes=_int_env("ABANDONED_CART_MINUTES", 60),
            abandoned_order_minutes=_int_env("ABANDONED_ORDER_MINUTES", 30),
            scan_interval_seconds=_int_env("SCAN_INTERVAL_SECONDS", 300),
            app_base_url=os.environ.get("APP_BASE_URL", "http://localhost:8000"),
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
