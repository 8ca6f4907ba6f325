from __future__ import annotations

import os
from pathlib import Path

import pytest

from app.config import get_settings
from app.core.logging import _build_handlers, _rotated_name
from app.utils.env import load_env_file


def _fresh_settings():
  return get_settings.__wrapped__()


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
  for name in ("ILLUSTRATOR_IMAGE_SIZE", "ILLUSTRATOR_IMAGE_QUALITY", "ILLUSTRATOR_IMAGE_COST_USD", "ILLUSTRATOR_SECTION_EXCERPT_CHARS", "ILLUSTRATOR_IMAGE_MODEL", "ILLUSTRATOR_JOB_RETENTION_SECONDS"):
    monkeypatch.delenv(name, raising=False)
  monkeypatch.setenv("ILLUSTRATOR_SECTION_DELAY_SECONDS", "2.0")
  settings = _fresh_settings()
  assert settings.image_model == "dall-e-3"
  assert settings.image_size == "1792x1024"
  assert settings.image_quality == "standard"
  assert settings.image_cost_usd == 0.04
  assert settings.section_excerpt_chars == 500
  assert settings.section_delay_seconds == 2.0
  assert settings.job_retention_seconds == 300.0


@pytest.mark.parametrize(
  ("name", "value"),
  [
    ("ILLUSTRATOR_IMAGE_SIZE", "640x480"),
    ("ILLUSTRATOR_IMAGE_QUALITY", "ultra"),
    ("ILLUSTRATOR_SECTION_DELAY_SECONDS", "-1"),
    ("ILLUSTRATOR_SECTION_EXCERPT_CHARS", "0"),
    ("ILLUSTRATOR_JOB_RETENTION_SECONDS", "-5"),
    ("ILLUSTRATOR_ALLOWED_ORIGINS", "*"),
  ],
)
def test_invalid_values_rejected(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
  monkeypatch.setenv(name, value)
  with pytest.raises(ValueError):
    _fresh_settings()


def test_env_file_does_not_override_existing(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
  env_file = tmp_path / ".env"
  env_file.write_text("# comment\nexport ILLUSTRATOR_TEST_NEW='from-file'\nILLUSTRATOR_TEST_KEEP=from-file\nILLUSTRATOR_TEST_COMMENTED=value # trailing\n", encoding="utf-8")
  monkeypatch.setenv("ILLUSTRATOR_TEST_KEEP", "from-env")
  monkeypatch.delenv("ILLUSTRATOR_TEST_NEW", raising=False)
  monkeypatch.delenv("ILLUSTRATOR_TEST_COMMENTED", raising=False)

  applied = load_env_file(env_file)

  assert os.environ["ILLUSTRATOR_TEST_NEW"] == "from-file"
  assert os.environ["ILLUSTRATOR_TEST_KEEP"] == "from-env"
  assert applied == {"ILLUSTRATOR_TEST_NEW": "from-file", "ILLUSTRATOR_TEST_COMMENTED": "value"}
  monkeypatch.delenv("ILLUSTRATOR_TEST_NEW")
  monkeypatch.delenv("ILLUSTRATOR_TEST_COMMENTED")


def test_log_handlers_write_to_rotating_file(tmp_path: Path) -> None:
  stream, file_handler, log_path = _build_handlers(_fresh_settings(), tmp_path)
  try:
    assert log_path.exists()
    assert log_path.name.startswith("illustrator_")
    assert _rotated_name("illustrator.log.1") == "illustrator.log-1"
  finally:
    file_handler.close()
