from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Backends
    user_service_url: str = os.getenv("USER_SERVICE_URL", "http://localhost:3001").rstrip("/")
    product_service_url: str = os.getenv("PRODUCT_SERVICE_URL", "http://localhost:3002").rstrip("/")

    # Gateway
    port: int = _env_int("APIGW_PORT", 3000)
    request_timeout_s: float = _env_float("APIGW_REQUEST_TIMEOUT_S", 10.0)
    health_timeout_s: float = _env_float("APIGW_HEALTH_TIMEOUT_S", 3.0)

    # Diagnostics
    log_level: str = os.getenv("APIGW_LOG_LEVEL", "INFO").upper()
    # Expose exception text in 500 bodies; keep off outside development.
    debug: bool = _env_bool("APIGW_DEBUG", False)


settings = Settings()
