"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from lessonroom.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

_STORE_BACKENDS = {"postgres", "memory"}


@dataclass(frozen=True)
class Settings:
  """Typed settings for the lessonroom service."""

  environment: str
  allowed_origins: tuple[str, ...]
  debug: bool
  log_max_bytes: int
  log_backup_count: int
  log_to_file: bool
  log_http_4xx: bool
  log_http_bodies: bool
  log_http_body_bytes: int
  pg_dsn: str | None
  pg_connect_timeout: int
  store_backend: str
  master_teacher: str
  sample_teacher: str | None


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    raise ValueError("LESSONROOM_ALLOWED_ORIGINS must be set to one or more origins.")

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("LESSONROOM_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("LESSONROOM_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _parse_positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("LESSONROOM_ENV", "development").lower()
  debug = _parse_bool(os.getenv("LESSONROOM_DEBUG"))

  log_max_bytes = _parse_positive_int("LESSONROOM_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = int(os.getenv("LESSONROOM_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("LESSONROOM_LOG_BACKUP_COUNT must be zero or a positive integer.")

  # Allow opt-in logging of 4xx responses and request/response bodies for diagnostics.
  log_http_4xx = _parse_bool(os.getenv("LESSONROOM_LOG_HTTP_4XX"))
  log_http_bodies = _parse_bool(os.getenv("LESSONROOM_LOG_HTTP_BODIES"))
  log_http_body_bytes = _parse_positive_int("LESSONROOM_LOG_HTTP_BODY_BYTES", "2048")

  pg_dsn = _optional_str(os.getenv("LESSONROOM_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))
  pg_connect_timeout = _parse_positive_int("LESSONROOM_PG_CONNECT_TIMEOUT", "5")

  # Default to Postgres when a DSN is configured so production never silently runs in memory.
  store_backend = (os.getenv("LESSONROOM_STORE_BACKEND") or ("postgres" if pg_dsn else "memory")).strip().lower()
  if store_backend not in _STORE_BACKENDS:
    raise ValueError(f"LESSONROOM_STORE_BACKEND must be one of {sorted(_STORE_BACKENDS)}.")
  if store_backend == "postgres" and not pg_dsn:
    raise ValueError("LESSONROOM_PG_DSN must be set when LESSONROOM_STORE_BACKEND is 'postgres'.")

  master_teacher = (os.getenv("LESSONROOM_MASTER_TEACHER") or "admin@trinity-capital.net").strip()
  if not master_teacher:
    raise ValueError("LESSONROOM_MASTER_TEACHER must not be empty.")

  return Settings(
    environment=environment,
    allowed_origins=_parse_origins(os.getenv("LESSONROOM_ALLOWED_ORIGINS")),
    debug=debug,
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_to_file=_parse_bool(os.getenv("LESSONROOM_LOG_TO_FILE")),
    log_http_4xx=log_http_4xx,
    log_http_bodies=log_http_bodies,
    log_http_body_bytes=log_http_body_bytes,
    pg_dsn=pg_dsn,
    pg_connect_timeout=pg_connect_timeout,
    store_backend=store_backend,
    master_teacher=master_teacher,
    sample_teacher=_optional_str(os.getenv("LESSONROOM_SAMPLE_TEACHER")),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring web-runtime configuration like CORS."""
  # Keep database configuration isolated so migrations and offline scripts don't require unrelated env vars.
  debug = _parse_bool(os.getenv("LESSONROOM_DEBUG"))
  pg_connect_timeout = _parse_positive_int("LESSONROOM_PG_CONNECT_TIMEOUT", "5")
  pg_dsn = _optional_str(os.getenv("LESSONROOM_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))

  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value
