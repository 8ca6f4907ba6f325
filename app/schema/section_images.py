from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import BigInteger, DateTime, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.core.database import Base


class SectionImage(Base):
  """Persist one generated image per section attempt; regenerations append new rows."""

  __tablename__ = "section_images"
  __table_args__ = (Index("ix_section_images_artifact_order", "artifact_id", "section_order"),)

  id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
  artifact_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
  section_heading: Mapped[str] = mapped_column(Text, nullable=False)
  section_order: Mapped[int] = mapped_column(Integer, nullable=False)
  image_url: Mapped[str] = mapped_column(Text, nullable=False)
  prompt_used: Mapped[str] = mapped_column(Text, nullable=False)
  revised_prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
  image_size: Mapped[str] = mapped_column(String, nullable=False)
  generation_cost: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
