from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

from .models import Category

DEFAULT_MAX_ATTACHMENT_BYTES = 3 * 1024 * 1024
DEFAULT_RECIPE_API_URL = "https://www.themealdb.com/api/json/v1/1"


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/chores.db'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - QUOTA_CAP: max 'make your own' days per Monday-Sunday week (default 2)
    - QUOTA_CATEGORY: category subject to the weekly cap (default 'NoDinner')
    - QUOTA_TITLE: title given to capped entries when none is supplied
    - QUOTA_ASSIGNEE: assignee forced onto capped entries (default empty)
    - HOUSEHOLD_MEMBERS: comma-separated member names (default 'Adam,Mike')
    - MAX_ATTACHMENT_BYTES: upper bound for comment photos (default 3 MiB)
    - CLOUDINARY_CLOUD_NAME / CLOUDINARY_UPLOAD_PRESET: image host; uploads
      are rejected when either is missing
    - UPLOAD_TIMEOUT_SECONDS: timeout for the image host call (default 15)
    - RECIPE_API_URL: TheMealDB-compatible API root for recipe suggestions
    - RECIPE_TIMEOUT_SECONDS: timeout for the recipe lookup (default 10)
    - LOG_LEVEL: root logging level (default INFO)
    """

    persistence_backend: str = "memory"
    sqlite_db_path: str = "./data/chores.db"
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])
    quota_cap: int = 2
    quota_category: str = "NoDinner"
    quota_title: str = "Make your own"
    quota_assignee: str = ""
    household_members: List[str] = field(default_factory=lambda: ["Adam", "Mike"])
    max_attachment_bytes: int = DEFAULT_MAX_ATTACHMENT_BYTES
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_upload_preset: Optional[str] = None
    upload_timeout_seconds: float = 15.0
    recipe_api_url: str = DEFAULT_RECIPE_API_URL
    recipe_timeout_seconds: float = 10.0
    log_level: str = "INFO"

    @property
    def uploads_configured(self) -> bool:
        return bool(self.cloudinary_cloud_name and self.cloudinary_upload_preset)


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_int(value: str, default: int, minimum: int = 0) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _parse_float(value: str, default: float) -> float:
    try:
        parsed = float(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_list(value: str) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        # Star will be handled in main via allow_origins=["*"]
        return ["*"]
    return _parse_list(value)


def _optional_env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "sqlite"}:
        # Fallback to memory if unsupported
        backend = "memory"

    sqlite_path = _get_env("SQLITE_DB_PATH", "./data/chores.db").strip()
    origins = _parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*"))

    members = _parse_list(_get_env("HOUSEHOLD_MEMBERS", "Adam,Mike")) or ["Adam", "Mike"]

    quota_category = _get_env("QUOTA_CATEGORY", "NoDinner").strip()
    if quota_category not in {c.value for c in Category}:
        quota_category = Category.NO_DINNER.value

    log_level = _get_env("LOG_LEVEL", "INFO").strip().upper()
    if log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        log_level = "INFO"

    return Settings(
        persistence_backend=backend,
        sqlite_db_path=sqlite_path,
        cors_allow_origins=origins,
        quota_cap=_parse_int(_get_env("QUOTA_CAP", "2"), 2),
        quota_category=quota_category,
        quota_title=_get_env("QUOTA_TITLE", "Make your own").strip(),
        quota_assignee=os.getenv("QUOTA_ASSIGNEE", "").strip(),
        household_members=members,
        max_attachment_bytes=_parse_int(
            _get_env("MAX_ATTACHMENT_BYTES", str(DEFAULT_MAX_ATTACHMENT_BYTES)),
            DEFAULT_MAX_ATTACHMENT_BYTES,
            minimum=1,
        ),
        cloudinary_cloud_name=_optional_env("CLOUDINARY_CLOUD_NAME"),
        cloudinary_upload_preset=_optional_env("CLOUDINARY_UPLOAD_PRESET"),
        upload_timeout_seconds=_parse_float(_get_env("UPLOAD_TIMEOUT_SECONDS", "15"), 15.0),
        recipe_api_url=_get_env("RECIPE_API_URL", DEFAULT_RECIPE_API_URL).strip(),
        recipe_timeout_seconds=_parse_float(_get_env("RECIPE_TIMEOUT_SECONDS", "10"), 10.0),
        log_level=log_level,
    )
