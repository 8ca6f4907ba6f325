"""Storage interfaces for section image records."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from app.jobs.models import SectionImageRecord


@dataclass(frozen=True)
class NewSectionImage:
  """Fields supplied by the orchestrator; the repository assigns id and created_at."""

  artifact_id: str
  section_heading: str
  section_order: int
  image_url: str
  prompt_used: str
  image_size: str
  generation_cost: float
  revised_prompt: str | None = None


class SectionImagesRepository(Protocol):
  """Repository contract for section image persistence. Writes are append-only."""

  async def add_record(self, record: NewSectionImage) -> SectionImageRecord:
    """Append a record and return it with its assigned id and timestamp."""

  async def list_for_artifact(self, artifact_id: str, *, current_only: bool = False) -> list[SectionImageRecord]:
    """Return records ordered by section order; with current_only keep the latest per section."""


def select_current(records: list[SectionImageRecord]) -> list[SectionImageRecord]:
  """Keep the latest record per section order, latest by created_at with id as the tiebreaker."""
  latest: dict[int, SectionImageRecord] = {}
  for record in records:
    existing = latest.get(record.section_order)
    if existing is None or (record.created_at, record.id) > (existing.created_at, existing.id):
      latest[record.section_order] = record
  return [latest[order] for order in sorted(latest)]


class InMemorySectionImagesRepository:
  """Process-local repository used when no database DSN is configured."""

  def __init__(self) -> None:
    self._records: list[SectionImageRecord] = []
    self._next_id = 1
    self._lock = asyncio.Lock()

  async def add_record(self, record: NewSectionImage) -> SectionImageRecord:
    async with self._lock:
      stored = SectionImageRecord(
        id=self._next_id,
        artifact_id=record.artifact_id,
        section_heading=record.section_heading,
        section_order=record.section_order,
        image_url=record.image_url,
        prompt_used=record.prompt_used,
        image_size=record.image_size,
        generation_cost=record.generation_cost,
        created_at=datetime.now(UTC).isoformat(),
        revised_prompt=record.revised_prompt,
      )
      self._next_id += 1
      self._records.append(stored)
      return stored

  async def list_for_artifact(self, artifact_id: str, *, current_only: bool = False) -> list[SectionImageRecord]:
    matching = [record for record in self._records if record.artifact_id == artifact_id]
    if current_only:
      return select_current(matching)
    return sorted(matching, key=lambda record: (record.section_order, record.created_at, record.id))
