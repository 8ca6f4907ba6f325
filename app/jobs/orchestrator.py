"""Sequential section image generation for one artifact."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass

from app.ai.pipeline.contracts import ImageProvider, ObjectStore, ProviderError, Section, StorageError
from app.ai.prompts import DEFAULT_EXCERPT_CHARS, build_section_prompt
from app.config import Settings
from app.jobs.models import CancelToken, SectionImageRecord
from app.jobs.progress import ProgressChannel
from app.storage.section_images_repo import NewSectionImage, SectionImagesRepository
from app.utils.ids import generate_nanoid

logger = logging.getLogger(__name__)

COMPLETE_MESSAGE = "Image generation complete"
CANCELED_MESSAGE = "Generation canceled"


@dataclass(frozen=True)
class GenerationSummary:
  """Per-job tally used for logging; persisted records remain the source of truth."""

  attempted: int
  succeeded: int
  failed: int
  canceled: bool = False


def section_object_name(artifact_id: str, order: int) -> str:
  """Return a collision-free object name for one section image."""
  return f"{artifact_id}/section-{order}-{generate_nanoid()}.png"


class SectionImageOrchestrator:
  """Generate, re-host and record one image per section, best effort."""

  def __init__(
    self,
    provider: ImageProvider,
    store: ObjectStore,
    repository: SectionImagesRepository,
    *,
    image_size: str = "1792x1024",
    image_quality: str = "standard",
    cost_per_image: float = 0.04,
    excerpt_chars: int = DEFAULT_EXCERPT_CHARS,
    section_delay_seconds: float = 2.0,
  ) -> None:
    self._provider = provider
    self._store = store
    self._repository = repository
    self._image_size = image_size
    self._image_quality = image_quality
    self._cost_per_image = cost_per_image
    self._excerpt_chars = excerpt_chars
    self._section_delay_seconds = section_delay_seconds

  @classmethod
  def from_settings(cls, settings: Settings, *, provider: ImageProvider, store: ObjectStore, repository: SectionImagesRepository) -> SectionImageOrchestrator:
    return cls(
      provider,
      store,
      repository,
      image_size=settings.image_size,
      image_quality=settings.image_quality,
      cost_per_image=settings.image_cost_usd,
      excerpt_chars=settings.section_excerpt_chars,
      section_delay_seconds=settings.section_delay_seconds,
    )

  async def generate_all(
    self,
    artifact_id: str,
    sections: Sequence[Section],
    patent_title: str,
    *,
    channel: ProgressChannel,
    cancel_token: CancelToken | None = None,
    artifact_type: str | None = None,
  ) -> GenerationSummary:
    """Process sections in ascending order and close the channel with one terminal snapshot.

    Provider and storage failures are logged per section and never abort the batch. The
    rate-limit delay separates consecutive sections and is skipped after the last one.
    """
    token = cancel_token or CancelToken()
    ordered = sorted(sections, key=lambda section: section.order)
    total = len(ordered)
    if channel.total != total:
      raise ValueError(f"Channel total {channel.total} does not match section count {total}.")

    started = time.monotonic()
    logger.info("Starting section image generation artifact=%s sections=%d", artifact_id, total)
    attempted = 0
    succeeded = 0
    canceled = False

    for index, section in enumerate(ordered):
      if token.cancelled:
        canceled = True
        break

      channel.emit(current=index, message=f"Generating image for '{section.heading}'")
      attempted += 1
      if await self._generate_section(artifact_id, section, patent_title, artifact_type) is not None:
        succeeded += 1

      if index < total - 1 and await token.sleep(self._section_delay_seconds):
        canceled = True
        break

    channel.emit(current=total, message=CANCELED_MESSAGE if canceled else COMPLETE_MESSAGE, complete=True)
    summary = GenerationSummary(attempted=attempted, succeeded=succeeded, failed=attempted - succeeded, canceled=canceled)
    logger.info(
      "Finished section image generation artifact=%s attempted=%d succeeded=%d failed=%d canceled=%s duration_ms=%d",
      artifact_id,
      summary.attempted,
      summary.succeeded,
      summary.failed,
      summary.canceled,
      int((time.monotonic() - started) * 1000),
    )
    return summary

  async def regenerate_section(self, artifact_id: str, section: Section, patent_title: str, *, artifact_type: str | None = None) -> SectionImageRecord | None:
    """Generate one replacement image; the appended record supersedes earlier ones for that section."""
    logger.info("Regenerating section image artifact=%s section=%d", artifact_id, section.order)
    return await self._generate_section(artifact_id, section, patent_title, artifact_type)

  async def _generate_section(self, artifact_id: str, section: Section, patent_title: str, artifact_type: str | None) -> SectionImageRecord | None:
    prompt = build_section_prompt(section, patent_title, artifact_type=artifact_type, excerpt_chars=self._excerpt_chars)
    try:
      image = await self._provider.generate(prompt, self._image_size, self._image_quality)
      durable_url = await self._store.persist(image.image_url, section_object_name(artifact_id, section.order))
    except ProviderError as exc:
      logger.warning("Image provider failed artifact=%s section=%d: %s", artifact_id, section.order, exc)
      return None
    except StorageError as exc:
      logger.warning("Image storage failed artifact=%s section=%d: %s", artifact_id, section.order, exc)
      return None

    record = NewSectionImage(
      artifact_id=artifact_id,
      section_heading=section.heading,
      section_order=section.order,
      image_url=durable_url,
      prompt_used=prompt,
      image_size=image.size,
      generation_cost=self._cost_per_image,
      revised_prompt=image.revised_prompt,
    )
    try:
      return await self._repository.add_record(record)
    except Exception as exc:  # noqa: BLE001
      logger.error("Failed to record section image artifact=%s section=%d: %s", artifact_id, section.order, exc, exc_info=True)
      return None
