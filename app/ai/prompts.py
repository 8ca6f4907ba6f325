"""Prompt construction for section illustrations."""

from __future__ import annotations

import re
from typing import Final, Literal

from app.ai.pipeline.contracts import Section

ArtifactType = Literal["elia15", "business_narrative", "golden_circle"]

DEFAULT_EXCERPT_CHARS: Final[int] = 500

STYLE_REQUIREMENTS: Final[str] = (
  "Simple hand-drawn sketch in a four-color pen style (green, red, blue, black), "
  "quick working-notes aesthetic, loose sketchy linework, minimal detail, "
  "graph paper background faintly visible, no text, labels, or words, 16:9 aspect ratio."
)

_COLOR_SCHEMES: Final[dict[str, str]] = {
  "elia15": "Warm amber and gold accents (#F59E0B, #D97706) with touches of cream and soft orange.",
  "business_narrative": "Professional blue accents (#3B82F6, #1E40AF) with touches of navy and light blue.",
  "golden_circle": "Rich purple accents (#8B5CF6, #6D28D9) with touches of violet and lavender.",
}
_NEUTRAL_SCHEME: Final[str] = "Neutral professional tones."

_MARKDOWN_NOISE = re.compile(r"[#*_`>\[\]]+")
_WHITESPACE = re.compile(r"\s+")


def color_scheme_for(artifact_type: str | None) -> str:
  """Return the palette line for an artifact type, neutral when unknown."""
  if not artifact_type:
    return _NEUTRAL_SCHEME
  return _COLOR_SCHEMES.get(artifact_type.strip().lower(), _NEUTRAL_SCHEME)


def excerpt_content(content: str, limit: int = DEFAULT_EXCERPT_CHARS) -> str:
  """Flatten markdown and keep a fixed-length prefix so prompt size stays predictable."""
  if limit <= 0:
    raise ValueError("Excerpt limit must be a positive integer.")
  flattened = _WHITESPACE.sub(" ", _MARKDOWN_NOISE.sub(" ", content)).strip()
  return flattened[:limit]


def build_section_prompt(section: Section, patent_title: str, *, artifact_type: str | None = None, excerpt_chars: int = DEFAULT_EXCERPT_CHARS) -> str:
  """Build the provider prompt for one section."""
  heading = section.heading.strip()
  title = patent_title.strip() or "Untitled patent"
  excerpt = excerpt_content(section.content, excerpt_chars)
  # Fall back to the heading alone when a section has no body text.
  focus_line = excerpt if excerpt else f"Illustrate the key concept of {heading}."
  return (
    f"Create an illustration for the section '{heading}' of the patent '{title}'.\n"
    f"Section summary: {focus_line}\n\n"
    f"Style requirements: {STYLE_REQUIREMENTS}\n"
    f"Color scheme: {color_scheme_for(artifact_type)}"
  )
