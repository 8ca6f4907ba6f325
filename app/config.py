"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from app.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

_IMAGE_SIZES = {"1024x1024", "1792x1024", "1024x1792"}
_IMAGE_QUALITIES = {"standard", "hd"}


@dataclass(frozen=True)
class Settings:
  """Typed settings for the illustration service."""

  allowed_origins: tuple[str, ...]
  debug: bool
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  auto_create_tables: bool
  pg_dsn: str | None
  pg_connect_timeout: int
  gcp_project_id: str | None
  gcs_storage_host: str | None
  illustration_bucket: str
  openai_api_key: str | None
  image_model: str
  image_size: str
  image_quality: str
  image_cost_usd: float
  section_excerpt_chars: int
  section_delay_seconds: float
  download_timeout_seconds: float
  completion_grace_seconds: float
  job_retention_seconds: float


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    return ("http://localhost:5173",)

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("ILLUSTRATOR_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("ILLUSTRATOR_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""
  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


def _non_negative_float(name: str, default: str) -> float:
  value = float(os.getenv(name, default))
  if value < 0:
    raise ValueError(f"{name} must be zero or a positive number.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""
  # Toggle verbose SQL echo and diagnostics in non-production environments.
  debug = _parse_bool(os.getenv("ILLUSTRATOR_DEBUG"))

  log_max_bytes = int(os.getenv("ILLUSTRATOR_LOG_MAX_BYTES", "5242880"))  # 5MB default
  if log_max_bytes <= 0:
    raise ValueError("ILLUSTRATOR_LOG_MAX_BYTES must be a positive integer.")

  log_backup_count = int(os.getenv("ILLUSTRATOR_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("ILLUSTRATOR_LOG_BACKUP_COUNT must be zero or a positive integer.")

  pg_connect_timeout = int(os.getenv("ILLUSTRATOR_PG_CONNECT_TIMEOUT", "5"))
  if pg_connect_timeout <= 0:
    raise ValueError("ILLUSTRATOR_PG_CONNECT_TIMEOUT must be a positive integer.")

  image_size = os.getenv("ILLUSTRATOR_IMAGE_SIZE", "1792x1024").strip()
  if image_size not in _IMAGE_SIZES:
    raise ValueError(f"ILLUSTRATOR_IMAGE_SIZE must be one of {sorted(_IMAGE_SIZES)}.")

  image_quality = os.getenv("ILLUSTRATOR_IMAGE_QUALITY", "standard").strip().lower()
  if image_quality not in _IMAGE_QUALITIES:
    raise ValueError(f"ILLUSTRATOR_IMAGE_QUALITY must be one of {sorted(_IMAGE_QUALITIES)}.")

  section_excerpt_chars = int(os.getenv("ILLUSTRATOR_SECTION_EXCERPT_CHARS", "500"))
  if section_excerpt_chars <= 0:
    raise ValueError("ILLUSTRATOR_SECTION_EXCERPT_CHARS must be a positive integer.")

  download_timeout_seconds = float(os.getenv("ILLUSTRATOR_DOWNLOAD_TIMEOUT_SECONDS", "30"))
  if download_timeout_seconds <= 0:
    raise ValueError("ILLUSTRATOR_DOWNLOAD_TIMEOUT_SECONDS must be a positive number.")

  return Settings(
    allowed_origins=_parse_origins(os.getenv("ILLUSTRATOR_ALLOWED_ORIGINS")),
    debug=debug,
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("ILLUSTRATOR_LOG_HTTP_4XX")),
    auto_create_tables=_parse_bool(os.getenv("ILLUSTRATOR_AUTO_CREATE_TABLES")),
    pg_dsn=os.getenv("ILLUSTRATOR_PG_DSN") or os.getenv("DATABASE_URL"),
    pg_connect_timeout=pg_connect_timeout,
    gcp_project_id=_optional_str(os.getenv("GCP_PROJECT_ID")),
    gcs_storage_host=_optional_str(os.getenv("GCS_STORAGE_HOST")),
    illustration_bucket=os.getenv("ILLUSTRATOR_BUCKET", "section-images"),
    openai_api_key=_optional_str(os.getenv("OPENAI_API_KEY")),
    image_model=os.getenv("ILLUSTRATOR_IMAGE_MODEL", "dall-e-3"),
    image_size=image_size,
    image_quality=image_quality,
    image_cost_usd=_non_negative_float("ILLUSTRATOR_IMAGE_COST_USD", "0.04"),
    section_excerpt_chars=section_excerpt_chars,
    section_delay_seconds=_non_negative_float("ILLUSTRATOR_SECTION_DELAY_SECONDS", "2.0"),
    download_timeout_seconds=download_timeout_seconds,
    completion_grace_seconds=_non_negative_float("ILLUSTRATOR_COMPLETION_GRACE_SECONDS", "2.0"),
    job_retention_seconds=_non_negative_float("ILLUSTRATOR_JOB_RETENTION_SECONDS", "300"),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring web-runtime configuration."""
  # Keep database configuration isolated so offline scripts don't require unrelated env vars.
  debug = _parse_bool(os.getenv("ILLUSTRATOR_DEBUG"))
  pg_connect_timeout = int(os.getenv("ILLUSTRATOR_PG_CONNECT_TIMEOUT", "5"))
  if pg_connect_timeout <= 0:
    raise ValueError("ILLUSTRATOR_PG_CONNECT_TIMEOUT must be a positive integer.")

  pg_dsn = os.getenv("ILLUSTRATOR_PG_DSN") or os.getenv("DATABASE_URL")

  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)
