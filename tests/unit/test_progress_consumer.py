from __future__ import annotations

import httpx
import msgspec
import pytest

from app.ai.pipeline.contracts import TransportError
from app.client.progress_consumer import ProgressConsumer
from app.config import get_settings
from app.jobs.models import ProgressSnapshot


def _event(current: int, total: int, *, complete: bool = False, message: str = "working") -> bytes:
  snapshot = ProgressSnapshot(stage="section_images", current=current, total=total, message=message, complete=complete)
  return b"data: " + msgspec.json.encode(snapshot) + b"\n\n"


def _transport(body: bytes, status_code: int = 200) -> httpx.MockTransport:
  def handler(request: httpx.Request) -> httpx.Response:
    assert request.url.path == "/v1/artifacts/artifact-1/progress"
    return httpx.Response(status_code, content=body, headers={"content-type": "text/event-stream"})

  return httpx.MockTransport(handler)


@pytest.mark.anyio
async def test_terminal_snapshot_fires_callback_once() -> None:
  calls: list[str] = []
  body = _event(0, 3) + _event(1, 3) + _event(2, 3) + _event(3, 3, complete=True, message="Image generation complete")
  consumer = ProgressConsumer("http://test", "artifact-1", lambda: calls.append("done"), grace_seconds=0, transport=_transport(body))

  outcome = await consumer.run()

  assert outcome == "completed"
  assert consumer.done is True
  assert consumer.percentage == 100
  assert consumer.stage == "section_images"
  assert consumer.message == "Image generation complete"
  assert calls == ["done"]


@pytest.mark.anyio
async def test_async_callback_is_awaited() -> None:
  calls: list[str] = []

  async def _on_complete() -> None:
    calls.append("async")

  consumer = ProgressConsumer("http://test/", "artifact-1", _on_complete, grace_seconds=0, transport=_transport(_event(0, 0, complete=True)))
  assert await consumer.run() == "completed"
  assert consumer.percentage == 0
  assert calls == ["async"]


@pytest.mark.anyio
async def test_stream_ending_early_reports_unknown() -> None:
  calls: list[str] = []
  consumer = ProgressConsumer("http://test", "artifact-1", lambda: calls.append("done"), grace_seconds=0, transport=_transport(_event(0, 3) + _event(1, 3)))

  assert await consumer.run() == "unknown"
  assert isinstance(consumer.error, TransportError)
  assert consumer.done is False
  assert consumer.percentage == 33
  assert calls == []


@pytest.mark.anyio
async def test_http_error_reports_unknown() -> None:
  calls: list[str] = []
  consumer = ProgressConsumer("http://test", "artifact-1", lambda: calls.append("done"), grace_seconds=0, transport=_transport(b"", status_code=404))

  assert await consumer.run() == "unknown"
  assert isinstance(consumer.error, TransportError)
  assert calls == []


@pytest.mark.anyio
async def test_malformed_event_reports_unknown() -> None:
  consumer = ProgressConsumer("http://test", "artifact-1", lambda: None, grace_seconds=0, transport=_transport(b"data: {not json}\n\n"))
  assert await consumer.run() == "unknown"
  assert "Malformed" in str(consumer.error)


def test_from_settings_uses_configured_grace() -> None:
  consumer = ProgressConsumer.from_settings(get_settings(), "http://test", "artifact-1", lambda: None)
  assert consumer.url == "http://test/v1/artifacts/artifact-1/progress"


def test_negative_grace_rejected() -> None:
  with pytest.raises(ValueError):
    ProgressConsumer("http://test", "artifact-1", lambda: None, grace_seconds=-1)
