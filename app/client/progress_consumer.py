"""Client-side subscriber for the artifact progress stream."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Literal

import httpx
import msgspec

from app.ai.pipeline.contracts import TransportError
from app.config import Settings
from app.jobs.models import ProgressSnapshot, progress_percentage

logger = logging.getLogger(__name__)

ConsumerOutcome = Literal["pending", "completed", "unknown"]
CompletionCallback = Callable[[], Awaitable[None] | None]

DEFAULT_GRACE_SECONDS = 2.0


class ProgressConsumer:
  """Follow one artifact's progress stream and fire ``on_complete`` once after the terminal snapshot.

  A broken stream leaves the outcome ``"unknown"``: the job may still be running or may have
  finished, so callers should query persisted images instead of assuming failure.
  """

  def __init__(
    self,
    base_url: str,
    artifact_id: str,
    on_complete: CompletionCallback,
    *,
    grace_seconds: float = DEFAULT_GRACE_SECONDS,
    transport: httpx.AsyncBaseTransport | None = None,
    timeout: float | None = None,
  ) -> None:
    if grace_seconds < 0:
      raise ValueError("Grace period must be zero or positive.")
    self._base_url = base_url.rstrip("/")
    self._artifact_id = artifact_id
    self._on_complete = on_complete
    self._grace_seconds = grace_seconds
    self._transport = transport
    self._timeout = timeout
    self._callback_fired = False
    self.stage: str | None = None
    self.message: str | None = None
    self.percentage = 0
    self.done = False
    self.outcome: ConsumerOutcome = "pending"
    self.error: TransportError | None = None
    self.last_snapshot: ProgressSnapshot | None = None

  @classmethod
  def from_settings(cls, settings: Settings, base_url: str, artifact_id: str, on_complete: CompletionCallback, *, transport: httpx.AsyncBaseTransport | None = None) -> ProgressConsumer:
    return cls(base_url, artifact_id, on_complete, grace_seconds=settings.completion_grace_seconds, transport=transport)

  @property
  def url(self) -> str:
    return f"{self._base_url}/v1/artifacts/{self._artifact_id}/progress"

  async def run(self) -> ConsumerOutcome:
    """Consume the stream until the terminal snapshot or a transport failure."""
    try:
      terminal = await self._consume()
    except TransportError as exc:
      return self._fail(exc)
    except httpx.HTTPError as exc:
      return self._fail(TransportError(f"Progress stream failed: {exc}"))

    if terminal is None:
      return self._fail(TransportError("Progress stream ended before the terminal snapshot."))

    self.done = True
    self.outcome = "completed"
    # Hold the final state on screen briefly before handing control back.
    await asyncio.sleep(self._grace_seconds)
    await self._fire_callback()
    return self.outcome

  async def _consume(self) -> ProgressSnapshot | None:
    headers = {"accept": "text/event-stream", "cache-control": "no-cache"}
    async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
      async with client.stream("GET", self.url, headers=headers) as response:
        response.raise_for_status()
        data_lines: list[str] = []
        async for line in response.aiter_lines():
          if line.startswith("data:"):
            data_lines.append(line[5:].lstrip())
            continue
          if line or not data_lines:
            continue
          snapshot = self._decode("\n".join(data_lines))
          data_lines = []
          self._apply(snapshot)
          if snapshot.complete:
            # Leaving the context managers closes the stream before the grace period starts.
            return snapshot
    return None

  def _decode(self, payload: str) -> ProgressSnapshot:
    try:
      return msgspec.json.decode(payload, type=ProgressSnapshot)
    except msgspec.DecodeError as exc:
      raise TransportError(f"Malformed progress event: {exc}") from exc

  def _apply(self, snapshot: ProgressSnapshot) -> None:
    self.last_snapshot = snapshot
    self.stage = snapshot.stage
    self.message = snapshot.message
    self.percentage = progress_percentage(snapshot.current, snapshot.total)

  def _fail(self, error: TransportError) -> ConsumerOutcome:
    logger.warning("Progress stream for artifact=%s ended without completion: %s", self._artifact_id, error)
    self.error = error
    self.outcome = "unknown"
    return self.outcome

  async def _fire_callback(self) -> None:
    if self._callback_fired:
      return
    self._callback_fired = True
    result = self._on_complete()
    if inspect.isawaitable(result):
      await result
