from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from app.jobs.models import SectionImageRecord


def summarize_generation_cost(records: Iterable[SectionImageRecord]) -> float:
  """Sum the per-image cost recorded on persisted section images."""
  total = Decimal("0")
  for record in records:
    # Sum as Decimal so repeated cents do not drift.
    total += Decimal(str(record.generation_cost))
  return float(round(total, 4))


def estimate_generation_cost(image_count: int, cost_per_image: float) -> float:
  """Estimate the cost of generating ``image_count`` images at a fixed price."""
  if image_count < 0:
    raise ValueError("Image count must be zero or a positive integer.")
  return float(round(Decimal(str(cost_per_image)) * image_count, 4))
