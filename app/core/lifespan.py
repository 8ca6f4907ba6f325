import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from fastapi import FastAPI

from app.core.database import create_tables
from app.core.logging import initialize_logging
from app.services.storage_client import build_storage_client


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging, storage and tables after uvicorn starts; drain jobs on shutdown."""
  from app.api.deps import get_job_registry
  from app.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("app.core.lifespan")

  initialize_logging(settings)
  logger.info("Startup complete - logging verified.")

  # Ensure the image bucket exists before generation jobs begin.
  try:
    storage_client = build_storage_client(settings)
    await storage_client.ensure_bucket()
    logger.info("Section image bucket ensured: %s", storage_client.bucket_name)
  except Exception as exc:  # noqa: BLE001
    logger.warning("Failed to ensure section image bucket at startup: %s", exc)

  if settings.auto_create_tables:
    logger.info("Auto-create tables enabled; ILLUSTRATOR_PG_DSN=%s", _redact_dsn(settings.pg_dsn))
    await create_tables()

  yield

  # Canceled jobs still emit their terminal snapshot before the process exits.
  await get_job_registry().shutdown()
  logger.info("Shutdown complete - active jobs drained.")


def _redact_dsn(raw: str | None) -> str:
  """Redact credentials from a DSN while keeping host/db visible."""
  if not raw:
    return "<unset>"

  parsed = urlparse(raw)
  if not parsed.scheme:
    return "<invalid>"

  user = parsed.username or ""
  host = parsed.hostname or ""
  port = f":{parsed.port}" if parsed.port else ""
  netloc = f"{user}@{host}{port}" if user else f"{host}{port}"
  database = parsed.path.lstrip("/")
  path = f"/{database}" if database else ""
  return f"{parsed.scheme}://{netloc}{path}"
