"""Service helpers behind the artifact image routes."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

import msgspec
from fastapi import HTTPException, status

from app.ai.pipeline.contracts import Section, SectionSource
from app.ai.utils.cost import estimate_generation_cost, summarize_generation_cost
from app.api.models import CancelJobResponse, GenerateImagesRequest, GenerationJobResponse, RegenerateSectionRequest, SectionImageListResponse, SectionImageResponse
from app.jobs.orchestrator import SectionImageOrchestrator
from app.jobs.progress import ProgressSubscription
from app.jobs.registry import JobConflictError, JobRegistry
from app.storage.section_images_repo import SectionImagesRepository

logger = logging.getLogger(__name__)

_NO_JOB_MSG = "No image generation job for this artifact."


class PayloadSectionSource(SectionSource):
  """Serve the sections supplied inline with a trigger request."""

  def __init__(self, request: GenerateImagesRequest) -> None:
    self._sections = [payload.to_section() for payload in request.sections]

  async def sections_for(self, artifact_id: str) -> list[Section]:
    return list(self._sections)


async def start_generation(artifact_id: str, request: GenerateImagesRequest, source: SectionSource, registry: JobRegistry, orchestrator: SectionImageOrchestrator, cost_per_image: float) -> GenerationJobResponse:
  """Register a job for the artifact and return immediately."""
  sections = await source.sections_for(artifact_id)
  try:
    job = registry.start(artifact_id, sections, request.patent_title, orchestrator, artifact_type=request.artifact_type)
  except JobConflictError as exc:
    logger.info("Rejected trigger for artifact=%s; job %s still running", artifact_id, exc.job.job_id)
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Image generation already running as job {exc.job.job_id}.") from exc

  return GenerationJobResponse(job_id=job.job_id, artifact_id=artifact_id, status=job.status, total_sections=job.total_sections, estimated_cost=estimate_generation_cost(job.total_sections, cost_per_image))


def cancel_generation(artifact_id: str, registry: JobRegistry) -> CancelJobResponse:
  """Request cancellation of the artifact's running job."""
  job = registry.cancel(artifact_id)
  if job is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No running image generation job for this artifact.")
  return CancelJobResponse(job_id=job.job_id, status=job.status, canceled=True)


def open_progress(artifact_id: str, registry: JobRegistry) -> ProgressSubscription:
  """Attach to the artifact's most recent job channel."""
  job = registry.get(artifact_id)
  if job is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NO_JOB_MSG)
  return job.channel.subscribe()


async def progress_events(subscription: ProgressSubscription) -> AsyncIterator[bytes]:
  """Encode snapshots as server-sent events until the terminal snapshot."""
  async with subscription:
    async for snapshot in subscription:
      yield b"data: " + msgspec.json.encode(snapshot) + b"\n\n"


async def regenerate_section(artifact_id: str, section_order: int, request: RegenerateSectionRequest, registry: JobRegistry, orchestrator: SectionImageOrchestrator) -> SectionImageResponse:
  """Replace one section's image by appending a newer record."""
  active = registry.get_active(artifact_id)
  if active is not None:
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Image generation already running as job {active.job_id}.")

  record = await orchestrator.regenerate_section(artifact_id, request.to_section(section_order), request.patent_title, artifact_type=request.artifact_type)
  if record is None:
    raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Image regeneration failed; the previous image is unchanged.")
  return SectionImageResponse.model_validate(msgspec.to_builtins(record))


async def list_images(artifact_id: str, repository: SectionImagesRepository, *, current_only: bool) -> SectionImageListResponse:
  """Return persisted section images ordered by section order."""
  records = await repository.list_for_artifact(artifact_id, current_only=current_only)
  images = [SectionImageResponse.model_validate(msgspec.to_builtins(record)) for record in records]
  return SectionImageListResponse(artifact_id=artifact_id, images=images, total_cost=summarize_generation_cost(records))
