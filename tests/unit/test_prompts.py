from __future__ import annotations

import pytest

from app.ai.pipeline.contracts import Section
from app.ai.prompts import STYLE_REQUIREMENTS, build_section_prompt, color_scheme_for, excerpt_content


def test_prompt_contains_heading_title_style_and_palette() -> None:
  section = Section(heading="Technical Overview", content="The panel vibrates to shed dust.", order=0)
  prompt = build_section_prompt(section, "Self-cleaning solar panel", artifact_type="golden_circle")

  assert "'Technical Overview'" in prompt
  assert "'Self-cleaning solar panel'" in prompt
  assert "Section summary: The panel vibrates to shed dust." in prompt
  assert STYLE_REQUIREMENTS in prompt
  assert "purple" in prompt


def test_excerpt_is_bounded() -> None:
  section = Section(heading="Claims", content="x" * 2000, order=1)
  prompt = build_section_prompt(section, "Title", excerpt_chars=500)
  assert "x" * 500 in prompt
  assert "x" * 501 not in prompt


def test_excerpt_flattens_markdown() -> None:
  assert excerpt_content("## Heading\n\n**Bold**   text", 100) == "Heading Bold text"


def test_empty_content_falls_back_to_heading() -> None:
  prompt = build_section_prompt(Section(heading="Abstract", content="", order=0), "")
  assert "Illustrate the key concept of Abstract." in prompt
  assert "Untitled patent" in prompt


def test_unknown_artifact_type_uses_neutral_palette() -> None:
  assert color_scheme_for("unknown") == color_scheme_for(None) == "Neutral professional tones."
  assert "amber" in color_scheme_for("ELIA15")


def test_excerpt_limit_must_be_positive() -> None:
  with pytest.raises(ValueError):
    excerpt_content("text", 0)


def test_section_validation() -> None:
  with pytest.raises(ValueError):
    Section(heading="Abstract", content="", order=-1)
  with pytest.raises(ValueError):
    Section(heading="  ", content="", order=0)
