"""OpenAI image provider implementation using the openai SDK."""

from __future__ import annotations

import logging
import os
from typing import Final

import openai
from openai import AsyncOpenAI

from app.ai.pipeline.contracts import GeneratedImage, ImageProvider, ProviderError
from app.config import Settings

logger = logging.getLogger(__name__)


class OpenAIImageProvider(ImageProvider):
  """Generate one image per call; no implicit retry."""

  _AVAILABLE_MODELS: Final[set[str]] = {"dall-e-3", "dall-e-2"}

  def __init__(self, model: str = "dall-e-3", api_key: str | None = None, client: AsyncOpenAI | None = None) -> None:
    if model not in self._AVAILABLE_MODELS:
      raise ValueError(f"Unsupported image model '{model}'.")
    self.model = model
    if client is None:
      api_key = api_key or os.getenv("OPENAI_API_KEY")
      if not api_key:
        raise ValueError("OPENAI_API_KEY environment variable is required")
      client = AsyncOpenAI(api_key=api_key)
    # The SDK client pools connections and is safe to share across concurrent jobs.
    self._client = client

  async def generate(self, prompt: str, size: str, quality_tier: str) -> GeneratedImage:
    """Generate an image and return its temporary provider URL."""
    logger.info("Requesting image model=%s size=%s quality=%s prompt_chars=%d", self.model, size, quality_tier, len(prompt))
    try:
      response = await self._client.images.generate(model=self.model, prompt=prompt, size=size, quality=quality_tier, n=1)
    except openai.OpenAIError as exc:
      raise ProviderError(f"Image generation failed: {exc}") from exc

    if not response.data or not response.data[0].url:
      raise ProviderError("Image provider returned no image URL.")

    image = response.data[0]
    return GeneratedImage(image_url=image.url, size=size, revised_prompt=image.revised_prompt)


def build_image_provider(settings: Settings) -> OpenAIImageProvider:
  """Create the image provider from settings."""
  return OpenAIImageProvider(model=settings.image_model, api_key=settings.openai_api_key)
