"""In-process registry of section image jobs keyed by artifact."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

from app.ai.pipeline.contracts import Section
from app.jobs.models import GenerationJob
from app.jobs.orchestrator import SectionImageOrchestrator
from app.jobs.progress import ProgressChannel
from app.utils.ids import generate_job_id

logger = logging.getLogger(__name__)


class JobConflictError(Exception):
  """Exception raised when an artifact already has a job that has not reached terminal."""

  def __init__(self, job: GenerationJob) -> None:
    super().__init__(f"Artifact {job.artifact_id} already has an active job {job.job_id}.")
    self.job = job


def _now_iso() -> str:
  return datetime.now(UTC).isoformat()


class JobRegistry:
  """Track the most recent job per artifact and run each one as its own task.

  Terminal jobs stay addressable for ``retention_seconds`` so late subscribers still receive the
  terminal snapshot, then they are evicted.
  """

  def __init__(self, *, retention_seconds: float = 300.0, clock: Callable[[], float] = time.monotonic) -> None:
    if retention_seconds < 0:
      raise ValueError("Job retention must be zero or positive.")
    self._jobs: dict[str, GenerationJob] = {}
    self._finished_at: dict[str, float] = {}
    self._retention_seconds = retention_seconds
    self._clock = clock

  def __len__(self) -> int:
    return len(self._jobs)

  def get(self, artifact_id: str) -> GenerationJob | None:
    """Return the most recent job for an artifact, terminal or not."""
    self.prune()
    return self._jobs.get(artifact_id)

  def get_active(self, artifact_id: str) -> GenerationJob | None:
    """Return the artifact's job when it has not reached terminal."""
    job = self.get(artifact_id)
    if job is None or job.status == "terminal":
      return None
    return job

  def start(
    self,
    artifact_id: str,
    sections: Sequence[Section],
    patent_title: str,
    orchestrator: SectionImageOrchestrator,
    *,
    artifact_type: str | None = None,
  ) -> GenerationJob:
    """Register a job and schedule it; returns before any section is processed."""
    active = self.get_active(artifact_id)
    if active is not None:
      raise JobConflictError(active)

    job = GenerationJob(job_id=generate_job_id(), artifact_id=artifact_id, total_sections=len(sections), channel=ProgressChannel(total=len(sections)), created_at=_now_iso())
    self._jobs[artifact_id] = job
    self._finished_at.pop(artifact_id, None)
    job.task = asyncio.create_task(self._run(job, sections, patent_title, orchestrator, artifact_type))
    logger.info("Queued section image job job_id=%s artifact=%s sections=%d", job.job_id, artifact_id, job.total_sections)
    return job

  def prune(self) -> int:
    """Evict terminal jobs whose retention window has passed; return how many were dropped."""
    cutoff = self._clock() - self._retention_seconds
    expired = [artifact_id for artifact_id, finished in self._finished_at.items() if finished <= cutoff]
    for artifact_id in expired:
      del self._finished_at[artifact_id]
      self._jobs.pop(artifact_id, None)
    if expired:
      logger.debug("Evicted %d terminal jobs", len(expired))
    return len(expired)

  def cancel(self, artifact_id: str) -> GenerationJob | None:
    """Request cancellation of the artifact's active job; None when nothing is running."""
    job = self.get_active(artifact_id)
    if job is None:
      return None
    job.cancel_token.cancel()
    logger.info("Cancellation requested job_id=%s artifact=%s", job.job_id, artifact_id)
    return job

  async def shutdown(self) -> None:
    """Cancel every active job and wait for their terminal snapshots."""
    tasks = []
    for job in self._jobs.values():
      if job.status != "terminal":
        job.cancel_token.cancel()
      if job.task is not None:
        tasks.append(job.task)
    if tasks:
      await asyncio.gather(*tasks, return_exceptions=True)

  async def _run(self, job: GenerationJob, sections: Sequence[Section], patent_title: str, orchestrator: SectionImageOrchestrator, artifact_type: str | None) -> None:
    job.status = "running"
    try:
      summary = await orchestrator.generate_all(job.artifact_id, sections, patent_title, channel=job.channel, cancel_token=job.cancel_token, artifact_type=artifact_type)
      job.canceled = summary.canceled
    except Exception:
      logger.exception("Section image job crashed job_id=%s artifact=%s", job.job_id, job.artifact_id)
      # Subscribers still need a terminal snapshot when the orchestrator itself fails.
      if not job.channel.closed:
        job.channel.emit(current=job.total_sections, message="Generation failed", complete=True)
    finally:
      job.status = "terminal"
      job.finished_at = _now_iso()
      # Only the job still registered for the artifact is scheduled for eviction.
      if self._jobs.get(job.artifact_id) is job:
        self._finished_at[job.artifact_id] = self._clock()
