"""Shared fixtures and fakes for the section image pipeline tests."""

from __future__ import annotations

import os

# Keep tests independent of a developer's .env and avoid real rate-limit waits.
os.environ.setdefault("ILLUSTRATOR_ALLOWED_ORIGINS", "http://localhost")
os.environ["ILLUSTRATOR_SECTION_DELAY_SECONDS"] = "0"
os.environ["ILLUSTRATOR_COMPLETION_GRACE_SECONDS"] = "0"
os.environ.pop("ILLUSTRATOR_PG_DSN", None)
os.environ.pop("DATABASE_URL", None)
os.environ.pop("GCS_STORAGE_HOST", None)
os.environ.pop("ILLUSTRATOR_BUCKET", None)

import pytest  # noqa: E402

from app.ai.pipeline.contracts import GeneratedImage, ProviderError, StorageError  # noqa: E402
from app.storage.section_images_repo import InMemorySectionImagesRepository  # noqa: E402


class FakeImageProvider:
  """Return deterministic temporary URLs, failing for headings listed in ``fail_on``."""

  def __init__(self, fail_on: set[str] | None = None) -> None:
    self.fail_on = fail_on or set()
    self.prompts: list[str] = []

  async def generate(self, prompt: str, size: str, quality_tier: str) -> GeneratedImage:
    self.prompts.append(prompt)
    for heading in self.fail_on:
      if f"'{heading}'" in prompt:
        raise ProviderError(f"content policy rejected {heading}")
    return GeneratedImage(image_url=f"https://provider.test/tmp/{len(self.prompts)}.png", size=size, revised_prompt="revised")


class FakeObjectStore:
  """Record persisted objects, failing for object names containing any ``fail_on`` marker."""

  def __init__(self, fail_on: set[str] | None = None) -> None:
    self.fail_on = fail_on or set()
    self.objects: dict[str, str] = {}

  async def persist(self, remote_url: str, destination_name: str) -> str:
    if any(marker in destination_name for marker in self.fail_on):
      raise StorageError(f"upload failed for {destination_name}")
    self.objects[destination_name] = remote_url
    return f"https://storage.googleapis.com/section-images/{destination_name}"


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
def image_provider() -> FakeImageProvider:
  return FakeImageProvider()


@pytest.fixture
def object_store() -> FakeObjectStore:
  return FakeObjectStore()


@pytest.fixture
def repository() -> InMemorySectionImagesRepository:
  return InMemorySectionImagesRepository()
