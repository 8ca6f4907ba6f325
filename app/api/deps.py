"""Shared FastAPI dependencies for the section image pipeline."""

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import Depends

from app.ai.pipeline.contracts import ImageProvider, ObjectStore
from app.ai.providers.openai_images import build_image_provider
from app.config import Settings, get_settings
from app.jobs.orchestrator import SectionImageOrchestrator
from app.jobs.registry import JobRegistry
from app.services.storage_client import build_storage_client
from app.storage.postgres_section_images_repo import PostgresSectionImagesRepository
from app.storage.section_images_repo import InMemorySectionImagesRepository, SectionImagesRepository

logger = logging.getLogger(__name__)


@lru_cache
def get_job_registry() -> JobRegistry:
  """Return the process-wide job registry."""
  return JobRegistry(retention_seconds=get_settings().job_retention_seconds)


@lru_cache
def get_image_provider() -> ImageProvider:
  return build_image_provider(get_settings())


@lru_cache
def get_object_store() -> ObjectStore:
  return build_storage_client(get_settings())


@lru_cache
def get_section_images_repository() -> SectionImagesRepository:
  """Use Postgres when a DSN is configured, otherwise keep records in process memory."""
  settings = get_settings()
  if settings.pg_dsn:
    return PostgresSectionImagesRepository()
  logger.warning("ILLUSTRATOR_PG_DSN is not set; section images are kept in memory only.")
  return InMemorySectionImagesRepository()


def get_orchestrator(
  settings: Settings = Depends(get_settings),  # noqa: B008
  provider: ImageProvider = Depends(get_image_provider),  # noqa: B008
  store: ObjectStore = Depends(get_object_store),  # noqa: B008
  repository: SectionImagesRepository = Depends(get_section_images_repository),  # noqa: B008
) -> SectionImageOrchestrator:
  """Build an orchestrator wired to the shared adapters."""
  return SectionImageOrchestrator.from_settings(settings, provider=provider, store=store, repository=repository)
