"""JSON rendering for API responses that carry numeric cost columns and msgspec records."""

from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import msgspec
from fastapi.responses import JSONResponse


def _encode_value(obj: Any) -> Any:
  if isinstance(obj, Decimal):
    # Costs are stored as Numeric(10, 4); keep cents exact when they round-trip through float.
    return int(obj) if obj == obj.to_integral_value() else float(round(obj, 4))
  if isinstance(obj, datetime | date):
    return obj.isoformat()
  if isinstance(obj, msgspec.Struct):
    return msgspec.to_builtins(obj)
  raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


class DecimalJSONEncoder(json.JSONEncoder):
  """Encoder for Decimal cost values, timestamps and msgspec structs."""

  def default(self, obj: Any) -> Any:
    try:
      return _encode_value(obj)
    except TypeError:
      return super().default(obj)


class DecimalJSONResponse(JSONResponse):
  def render(self, content: Any) -> bytes:
    return json.dumps(content, ensure_ascii=False, allow_nan=False, separators=(",", ":"), cls=DecimalJSONEncoder).encode("utf-8")
