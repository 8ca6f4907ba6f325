"""Repository for section image records using PostgreSQL."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select

from app.core.database import get_session_factory
from app.jobs.models import SectionImageRecord
from app.schema.section_images import SectionImage
from app.storage.section_images_repo import NewSectionImage, select_current


class PostgresSectionImagesRepository:
  """Persist and retrieve section image records from Postgres using SQLAlchemy."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def add_record(self, record: NewSectionImage) -> SectionImageRecord:
    """Insert a new row; earlier rows for the same section are left untouched."""
    async with self._session_factory() as session:
      row = SectionImage(
        artifact_id=record.artifact_id,
        section_heading=record.section_heading,
        section_order=record.section_order,
        image_url=record.image_url,
        prompt_used=record.prompt_used,
        revised_prompt=record.revised_prompt,
        image_size=record.image_size,
        generation_cost=Decimal(str(record.generation_cost)),
      )
      session.add(row)
      await session.commit()
      await session.refresh(row)
      return _to_record(row)

  async def list_for_artifact(self, artifact_id: str, *, current_only: bool = False) -> list[SectionImageRecord]:
    """Return records for an artifact ordered by section order then insertion."""
    async with self._session_factory() as session:
      stmt = select(SectionImage).where(SectionImage.artifact_id == artifact_id).order_by(SectionImage.section_order.asc(), SectionImage.created_at.asc(), SectionImage.id.asc())
      result = await session.execute(stmt)
      records = [_to_record(row) for row in result.scalars().all()]

    if current_only:
      return select_current(records)
    return records


def _to_record(row: SectionImage) -> SectionImageRecord:
  return SectionImageRecord(
    id=row.id,
    artifact_id=row.artifact_id,
    section_heading=row.section_heading,
    section_order=row.section_order,
    image_url=row.image_url,
    prompt_used=row.prompt_used,
    image_size=row.image_size,
    generation_cost=float(row.generation_cost),
    created_at=row.created_at.isoformat(),
    revised_prompt=row.revised_prompt,
  )
