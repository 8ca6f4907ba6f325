from __future__ import annotations

import asyncio

import pytest

from app.ai.pipeline.contracts import Section
from app.jobs.models import CancelToken
from app.jobs.orchestrator import SectionImageOrchestrator
from app.jobs.registry import JobConflictError, JobRegistry


def _sections(count: int) -> list[Section]:
  return [Section(heading=f"Section {index}", content="body", order=index) for index in range(count)]


@pytest.mark.anyio
async def test_job_moves_from_queued_to_terminal(image_provider, object_store, repository) -> None:
  registry = JobRegistry()
  orchestrator = SectionImageOrchestrator(image_provider, object_store, repository, section_delay_seconds=0)
  job = registry.start("artifact-1", _sections(2), "Title", orchestrator)

  assert job.status == "queued"
  assert registry.get_active("artifact-1") is job
  await job.task

  assert job.status == "terminal"
  assert job.finished_at is not None
  assert job.canceled is False
  assert registry.get_active("artifact-1") is None
  assert registry.get("artifact-1") is job
  assert job.channel.closed


@pytest.mark.anyio
async def test_second_trigger_while_running_conflicts(image_provider, object_store, repository) -> None:
  registry = JobRegistry()
  orchestrator = SectionImageOrchestrator(image_provider, object_store, repository, section_delay_seconds=30)
  job = registry.start("artifact-1", _sections(2), "Title", orchestrator)

  with pytest.raises(JobConflictError) as exc_info:
    registry.start("artifact-1", _sections(2), "Title", orchestrator)
  assert exc_info.value.job is job

  registry.cancel("artifact-1")
  await asyncio.wait_for(job.task, timeout=5)
  assert job.canceled is True

  # A finished artifact accepts a new job and reprocesses every section.
  rerun = registry.start("artifact-1", _sections(2), "Title", SectionImageOrchestrator(image_provider, object_store, repository, section_delay_seconds=0))
  await rerun.task
  assert rerun.job_id != job.job_id


@pytest.mark.anyio
async def test_cancel_without_active_job_returns_none() -> None:
  assert JobRegistry().cancel("missing") is None


@pytest.mark.anyio
async def test_crashing_orchestrator_still_closes_channel(object_store, repository) -> None:
  class _Exploding:
    async def generate(self, prompt, size, quality_tier):
      raise RuntimeError("unexpected")

  registry = JobRegistry()
  job = registry.start("artifact-x", _sections(1), "Title", SectionImageOrchestrator(_Exploding(), object_store, repository, section_delay_seconds=0))
  await job.task

  assert job.status == "terminal"
  assert job.channel.latest is not None
  assert job.channel.latest.complete and job.channel.latest.message == "Generation failed"


@pytest.mark.anyio
async def test_shutdown_cancels_active_jobs(image_provider, object_store, repository) -> None:
  registry = JobRegistry()
  job = registry.start("artifact-1", _sections(3), "Title", SectionImageOrchestrator(image_provider, object_store, repository, section_delay_seconds=30))
  await asyncio.sleep(0)

  await asyncio.wait_for(registry.shutdown(), timeout=5)
  assert job.status == "terminal"
  assert job.canceled is True


@pytest.mark.anyio
async def test_cancel_token_sleep() -> None:
  token = CancelToken()
  assert await token.sleep(0.01) is False
  token.cancel()
  assert token.cancelled
  assert await token.sleep(10) is True
  assert await token.sleep(0) is True


class _FakeClock:
  def __init__(self) -> None:
    self.now = 1000.0

  def __call__(self) -> float:
    return self.now


@pytest.mark.anyio
async def test_terminal_job_served_within_retention_then_evicted(image_provider, object_store, repository) -> None:
  clock = _FakeClock()
  registry = JobRegistry(retention_seconds=60, clock=clock)
  job = registry.start("artifact-1", _sections(1), "Title", SectionImageOrchestrator(image_provider, object_store, repository, section_delay_seconds=0))
  await job.task

  clock.now += 59
  assert registry.get("artifact-1") is job
  late = [s async for s in job.channel.subscribe()]
  assert [(s.current, s.total, s.complete) for s in late] == [(1, 1, True)]

  clock.now += 2
  assert registry.get("artifact-1") is None
  assert len(registry) == 0


@pytest.mark.anyio
async def test_many_finished_jobs_do_not_accumulate(image_provider, object_store, repository) -> None:
  clock = _FakeClock()
  registry = JobRegistry(retention_seconds=5, clock=clock)
  orchestrator = SectionImageOrchestrator(image_provider, object_store, repository, section_delay_seconds=0)
  for index in range(50):
    await registry.start(f"artifact-{index}", [], "Title", orchestrator).task
  assert len(registry) == 50

  clock.now += 5
  assert registry.prune() == 50
  assert len(registry) == 0


@pytest.mark.anyio
async def test_running_job_is_never_evicted(image_provider, object_store, repository) -> None:
  clock = _FakeClock()
  registry = JobRegistry(retention_seconds=0, clock=clock)
  job = registry.start("artifact-1", _sections(2), "Title", SectionImageOrchestrator(image_provider, object_store, repository, section_delay_seconds=30))
  await asyncio.sleep(0)

  clock.now += 3600
  assert registry.get_active("artifact-1") is job
  registry.cancel("artifact-1")
  await asyncio.wait_for(job.task, timeout=5)
  assert registry.get("artifact-1") is None


def test_negative_retention_rejected() -> None:
  with pytest.raises(ValueError):
    JobRegistry(retention_seconds=-1)
