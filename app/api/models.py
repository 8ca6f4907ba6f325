from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator

from app.ai.pipeline.contracts import Section
from app.jobs.models import JobStatus


def _reject_blank_heading(heading: str) -> str:
  if not heading.strip():
    raise ValueError("Section heading must not be blank.")
  return heading


class SectionPayload(BaseModel):
  """One section of the artifact to illustrate."""

  heading: StrictStr = Field(min_length=1, description="Section heading shown in the prompt.", examples=["Technical Overview"])
  content: StrictStr = Field(default="", description="Section body; only a bounded prefix reaches the prompt.")
  order: StrictInt = Field(ge=0, description="Zero-based position of the section within the artifact.")
  model_config = ConfigDict(extra="forbid")

  @field_validator("heading")
  @classmethod
  def _heading_not_blank(cls, heading: str) -> str:
    return _reject_blank_heading(heading)

  def to_section(self) -> Section:
    return Section(heading=self.heading, content=self.content, order=self.order)


class GenerateImagesRequest(BaseModel):
  """Request payload for generating one image per artifact section."""

  patent_title: StrictStr = Field(min_length=1, description="Title of the parent patent document.", examples=["Self-cleaning solar panel"])
  artifact_type: Literal["elia15", "business_narrative", "golden_circle"] | None = Field(default=None, description="Optional artifact type selecting the color scheme.")
  sections: list[SectionPayload] = Field(default_factory=list, description="Sections to illustrate; may be empty.")
  model_config = ConfigDict(extra="forbid")

  @field_validator("sections")
  @classmethod
  def _unique_orders(cls, sections: list[SectionPayload]) -> list[SectionPayload]:
    orders = [section.order for section in sections]
    if len(orders) != len(set(orders)):
      raise ValueError("Section order values must be unique per artifact.")
    return sections


class RegenerateSectionRequest(BaseModel):
  """Request payload for replacing the image of one section."""

  patent_title: StrictStr = Field(min_length=1, description="Title of the parent patent document.")
  artifact_type: Literal["elia15", "business_narrative", "golden_circle"] | None = Field(default=None, description="Optional artifact type selecting the color scheme.")
  heading: StrictStr = Field(min_length=1, description="Current heading of the section.")
  content: StrictStr = Field(default="", description="Current section body.")
  model_config = ConfigDict(extra="forbid")

  @field_validator("heading")
  @classmethod
  def _heading_not_blank(cls, heading: str) -> str:
    return _reject_blank_heading(heading)

  def to_section(self, order: int) -> Section:
    return Section(heading=self.heading, content=self.content, order=order)


class GenerationJobResponse(BaseModel):
  """Response returned when a generation job is accepted."""

  job_id: str
  artifact_id: str
  status: JobStatus
  total_sections: int
  estimated_cost: float


class CancelJobResponse(BaseModel):
  """Response returned when cancellation has been requested."""

  job_id: str
  status: JobStatus
  canceled: bool


class SectionImageResponse(BaseModel):
  """Persisted section image as exposed over HTTP."""

  id: int
  artifact_id: str
  section_heading: str
  section_order: int
  image_url: str
  prompt_used: str
  revised_prompt: str | None = None
  image_size: str
  generation_cost: float
  created_at: str


class SectionImageListResponse(BaseModel):
  """Section images for one artifact plus their summed cost."""

  artifact_id: str
  images: list[SectionImageResponse]
  total_cost: float
