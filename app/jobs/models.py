"""Domain models for section illustration jobs."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Literal

import msgspec

if TYPE_CHECKING:
  from app.jobs.progress import ProgressChannel

JobStatus = Literal["queued", "running", "terminal"]

SECTION_IMAGES_STAGE = "section_images"


class ProgressSnapshot(msgspec.Struct, frozen=True):
  """Point-in-time progress report for one job."""

  stage: str
  current: int
  total: int
  message: str
  complete: bool = False

  @property
  def percentage(self) -> int:
    """Return completion as a whole percentage, 0 when there is nothing to do."""
    return progress_percentage(self.current, self.total)


class SectionImageRecord(msgspec.Struct):
  """Durable record of one successful section image generation."""

  id: int
  artifact_id: str
  section_heading: str
  section_order: int
  image_url: str
  prompt_used: str
  image_size: str
  generation_cost: float
  created_at: str
  revised_prompt: str | None = None


def progress_percentage(current: int, total: int) -> int:
  """Compute current/total*100 rounded half up, clamped to 0..100."""
  if total <= 0:
    return 0
  percent = int((Decimal(current * 100) / Decimal(total)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
  return max(0, min(percent, 100))


class CancelToken:
  """Cooperative cancellation flag checked at every orchestrator suspension point."""

  def __init__(self) -> None:
    self._event = asyncio.Event()

  @property
  def cancelled(self) -> bool:
    return self._event.is_set()

  def cancel(self) -> None:
    self._event.set()

  async def sleep(self, seconds: float) -> bool:
    """Sleep up to ``seconds``; return True when woken early by cancellation."""
    if seconds <= 0:
      return self.cancelled
    try:
      await asyncio.wait_for(self._event.wait(), timeout=seconds)
    except TimeoutError:
      return False
    return True


@dataclass
class GenerationJob:
  """Addressable in-process record for one orchestrator run over one artifact."""

  job_id: str
  artifact_id: str
  total_sections: int
  channel: ProgressChannel
  created_at: str
  status: JobStatus = "queued"
  canceled: bool = False
  finished_at: str | None = None
  cancel_token: CancelToken = field(default_factory=CancelToken)
  task: asyncio.Task[None] | None = field(default=None, repr=False)
