from __future__ import annotations

import pytest

from app.ai.utils.cost import estimate_generation_cost, summarize_generation_cost
from app.jobs.models import SectionImageRecord
from app.storage.section_images_repo import NewSectionImage, select_current


def _new(order: int, url: str, artifact_id: str = "artifact-1") -> NewSectionImage:
  return NewSectionImage(artifact_id=artifact_id, section_heading=f"Section {order}", section_order=order, image_url=url, prompt_used="prompt", image_size="1792x1024", generation_cost=0.04)


@pytest.mark.anyio
async def test_regeneration_appends_and_latest_wins(repository) -> None:
  await repository.add_record(_new(1, "https://img/1-old.png"))
  await repository.add_record(_new(0, "https://img/0.png"))
  await repository.add_record(_new(1, "https://img/1-new.png"))
  await repository.add_record(_new(0, "https://img/other.png", artifact_id="artifact-2"))

  everything = await repository.list_for_artifact("artifact-1")
  assert [(r.section_order, r.image_url) for r in everything] == [(0, "https://img/0.png"), (1, "https://img/1-old.png"), (1, "https://img/1-new.png")]

  current = await repository.list_for_artifact("artifact-1", current_only=True)
  assert [(r.section_order, r.image_url) for r in current] == [(0, "https://img/0.png"), (1, "https://img/1-new.png")]


def test_select_current_breaks_timestamp_ties_by_id() -> None:
  common = {"artifact_id": "a", "section_heading": "h", "section_order": 0, "prompt_used": "p", "image_size": "1024x1024", "generation_cost": 0.04, "created_at": "2024-01-01T00:00:00+00:00"}
  records = [SectionImageRecord(id=7, image_url="https://img/7.png", **common), SectionImageRecord(id=3, image_url="https://img/3.png", **common)]
  assert [r.id for r in select_current(records)] == [7]


def test_cost_summary_and_estimate() -> None:
  common = {"artifact_id": "a", "section_heading": "h", "prompt_used": "p", "image_size": "1024x1024", "image_url": "u", "created_at": "t"}
  records = [SectionImageRecord(id=i, section_order=i, generation_cost=0.04, **common) for i in range(3)]
  assert summarize_generation_cost(records) == 0.12
  assert summarize_generation_cost([]) == 0.0
  assert estimate_generation_cost(5, 0.04) == 0.2
  with pytest.raises(ValueError):
    estimate_generation_cost(-1, 0.04)
