"""Shared data contracts for the illustration pipeline."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class Section:
  """A named, ordered chunk of an artifact's content."""

  heading: str
  content: str
  order: int

  def __post_init__(self) -> None:
    if self.order < 0:
      raise ValueError("Section order must be zero or a positive integer.")
    if not self.heading.strip():
      raise ValueError("Section heading must not be empty.")


@dataclass(frozen=True)
class GeneratedImage:
  """Provider output: a short-lived remote URL plus provider metadata."""

  image_url: str
  size: str
  revised_prompt: str | None = None


class IllustrationPipelineError(Exception):
  """Base class for all illustration pipeline failures."""


class ProviderError(IllustrationPipelineError):
  """Exception raised when the image provider rejects or fails a generation (quota, timeout, content policy)."""


class StorageError(IllustrationPipelineError):
  """Exception raised when fetching or re-hosting a generated image fails."""


class TransportError(IllustrationPipelineError):
  """Exception raised when a progress stream breaks before its terminal snapshot."""


class ImageProvider(Protocol):
  """Capability contract for generating one image from a text prompt."""

  async def generate(self, prompt: str, size: str, quality_tier: str) -> GeneratedImage:
    """Generate an image and return its temporary URL."""


class ObjectStore(Protocol):
  """Capability contract for re-hosting a temporary image URL durably."""

  async def persist(self, remote_url: str, destination_name: str) -> str:
    """Fetch the remote image, store it, and return its durable public URL."""


class SectionSource(Protocol):
  """Supplies the ordered sections of an artifact."""

  async def sections_for(self, artifact_id: str) -> Sequence[Section]:
    """Return the artifact's sections."""
