from __future__ import annotations

import importlib
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..core.constants import (
    DEFAULT_MAX_UPLOAD_MB,
    DEFAULT_RESET_TOKEN_TTL_MINUTES,
    DEFAULT_TOKEN_TTL_MINUTES,
)


def get_settings_module() -> str:
    # APP_ENV picks the settings module, development by default.
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "rooster.config.production"

    if env in {"test", "testing"}:
        return "rooster.config.testing"

    return "rooster.config.development"


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, read once at startup and passed explicitly."""

    jwt_secret: str
    db_config: dict = field(default_factory=dict)
    debug: bool = False
    testing: bool = False
    log_level: str = "INFO"
    token_ttl_minutes: int = DEFAULT_TOKEN_TTL_MINUTES
    reset_token_ttl_minutes: int = DEFAULT_RESET_TOKEN_TTL_MINUTES
    expose_reset_token: bool = False
    upload_dir: Path = Path("uploads")
    max_upload_mb: int = DEFAULT_MAX_UPLOAD_MB
    half_day_threshold_minutes: int = 0
    auto_init_db: bool = False
    auto_seed_db: bool = False


def load_settings(module_name: Optional[str] = None) -> Settings:
    settings_module = module_name or get_settings_module()
    mod = importlib.import_module(settings_module)

    jwt_secret = str(getattr(mod, "JWT_SECRET", "") or "")
    if not jwt_secret:
        raise RuntimeError(f"JWT_SECRET is not configured ({settings_module})")

    return Settings(
        jwt_secret=jwt_secret,
        db_config=dict(getattr(mod, "DB_CONFIG", {})),
        debug=bool(getattr(mod, "DEBUG", False)),
        testing=bool(getattr(mod, "TESTING", False)),
        log_level=str(getattr(mod, "LOG_LEVEL", "INFO")).upper(),
        token_ttl_minutes=int(getattr(mod, "TOKEN_TTL_MINUTES", DEFAULT_TOKEN_TTL_MINUTES)),
        reset_token_ttl_minutes=int(getattr(mod, "RESET_TOKEN_TTL_MINUTES", DEFAULT_RESET_TOKEN_TTL_MINUTES)),
        expose_reset_token=bool(getattr(mod, "EXPOSE_RESET_TOKEN", False)),
        upload_dir=Path(getattr(mod, "UPLOAD_DIR", "uploads")),
        max_upload_mb=int(getattr(mod, "MAX_UPLOAD_MB", DEFAULT_MAX_UPLOAD_MB)),
        half_day_threshold_minutes=int(getattr(mod, "HALF_DAY_THRESHOLD_MINUTES", 0)),
        auto_init_db=bool(getattr(mod, "AUTO_INIT_DB", False)),
        auto_seed_db=bool(getattr(mod, "AUTO_SEED_DB", False)),
    )
