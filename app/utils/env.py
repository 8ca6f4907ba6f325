"""Minimal .env support so local runs pick up ILLUSTRATOR_* settings."""

from __future__ import annotations

import os
import re
from pathlib import Path

_ASSIGNMENT = re.compile(r"^(?:export\s+)?(?P<key>[A-Za-z_][A-Za-z0-9_]*)\s*=\s*(?P<value>.*)$")


def default_env_path() -> Path:
  """Return ILLUSTRATOR_ENV_FILE when set, else the .env next to the app package."""
  override = os.getenv("ILLUSTRATOR_ENV_FILE")
  if override:
    return Path(override).expanduser()
  return Path(__file__).resolve().parents[2] / ".env"


def _parse_value(raw: str) -> str:
  value = raw.strip()
  if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
    return value[1:-1]
  # Unquoted values may carry a trailing " # comment".
  return value.split(" #", 1)[0].rstrip()


def load_env_file(path: Path, *, override: bool = False) -> dict[str, str]:
  """Apply KEY=value lines from ``path``; return the variables that were actually set."""
  if not path.is_file():
    return {}

  applied: dict[str, str] = {}
  for line in path.read_text(encoding="utf-8").splitlines():
    match = _ASSIGNMENT.match(line.strip())
    if match is None:
      continue
    key = match.group("key")
    if not override and key in os.environ:
      continue
    value = _parse_value(match.group("value"))
    os.environ[key] = value
    applied[key] = value
  return applied
