import logging

from fastapi import APIRouter, Depends, Path, Query, status
from fastapi.responses import StreamingResponse

from app.api.deps import get_job_registry, get_orchestrator, get_section_images_repository
from app.api.models import CancelJobResponse, GenerateImagesRequest, GenerationJobResponse, RegenerateSectionRequest, SectionImageListResponse, SectionImageResponse
from app.config import Settings, get_settings
from app.jobs.orchestrator import SectionImageOrchestrator
from app.jobs.registry import JobRegistry
from app.services import section_images as image_service
from app.storage.section_images_repo import SectionImagesRepository

router = APIRouter()
logger = logging.getLogger("app.api.routes.artifacts")

_SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"}


@router.post("/{artifact_id}/images", response_model=GenerationJobResponse, status_code=status.HTTP_202_ACCEPTED)
async def generate_section_images(  # noqa: B008
  artifact_id: str,
  request: GenerateImagesRequest,
  settings: Settings = Depends(get_settings),  # noqa: B008
  registry: JobRegistry = Depends(get_job_registry),  # noqa: B008
  orchestrator: SectionImageOrchestrator = Depends(get_orchestrator),  # noqa: B008
) -> GenerationJobResponse:
  """Start generating one image per section without waiting for completion."""
  source = image_service.PayloadSectionSource(request)
  return await image_service.start_generation(artifact_id, request, source, registry, orchestrator, settings.image_cost_usd)


@router.get("/{artifact_id}/progress")
async def stream_progress(  # noqa: B008
  artifact_id: str,
  registry: JobRegistry = Depends(get_job_registry),  # noqa: B008
) -> StreamingResponse:
  """Stream progress snapshots as server-sent events until the terminal snapshot."""
  subscription = image_service.open_progress(artifact_id, registry)
  return StreamingResponse(image_service.progress_events(subscription), media_type="text/event-stream", headers=_SSE_HEADERS)


@router.get("/{artifact_id}/images", response_model=SectionImageListResponse)
async def list_section_images(  # noqa: B008
  artifact_id: str,
  current_only: bool = Query(default=False, description="Keep only the latest image per section."),  # noqa: B008
  repository: SectionImagesRepository = Depends(get_section_images_repository),  # noqa: B008
) -> SectionImageListResponse:
  """List persisted section images for an artifact."""
  return await image_service.list_images(artifact_id, repository, current_only=current_only)


@router.post("/{artifact_id}/images/cancel", response_model=CancelJobResponse)
async def cancel_section_images(  # noqa: B008
  artifact_id: str,
  registry: JobRegistry = Depends(get_job_registry),  # noqa: B008
) -> CancelJobResponse:
  """Request cancellation of the artifact's running job."""
  return image_service.cancel_generation(artifact_id, registry)


@router.post("/{artifact_id}/images/{section_order}/regenerate", response_model=SectionImageResponse, status_code=status.HTTP_201_CREATED)
async def regenerate_section_image(
  artifact_id: str,
  request: RegenerateSectionRequest,
  section_order: int = Path(ge=0),  # noqa: B008
  registry: JobRegistry = Depends(get_job_registry),  # noqa: B008
  orchestrator: SectionImageOrchestrator = Depends(get_orchestrator),  # noqa: B008
) -> SectionImageResponse:
  """Generate a replacement image for one section; the new record becomes current."""
  return await image_service.regenerate_section(artifact_id, section_order, request, registry, orchestrator)
