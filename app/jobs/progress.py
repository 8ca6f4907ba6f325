"""Per-job progress broadcast: one producer, many subscribers, close on terminal."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Literal

from app.jobs.models import SECTION_IMAGES_STAGE, ProgressSnapshot

logger = logging.getLogger(__name__)

ChannelState = Literal["idle", "running", "terminal"]


class ChannelClosedError(Exception):
  """Exception raised when publishing to a channel that already emitted its terminal snapshot."""


class ProgressOrderError(ValueError):
  """Exception raised when a snapshot would break the channel's ordering invariants."""


class ProgressSubscription:
  """Async iterator over the snapshots a channel emits after attachment."""

  def __init__(self, channel: ProgressChannel, queue: asyncio.Queue[ProgressSnapshot]) -> None:
    self._channel = channel
    self._queue = queue
    self._finished = False

  def __aiter__(self) -> AsyncIterator[ProgressSnapshot]:
    return self

  async def __anext__(self) -> ProgressSnapshot:
    if self._finished:
      raise StopAsyncIteration
    snapshot = await self._queue.get()
    # The terminal snapshot is always the last one a subscriber sees.
    if snapshot.complete:
      self.close()
    return snapshot

  async def __aenter__(self) -> ProgressSubscription:
    return self

  async def __aexit__(self, *exc_info: object) -> None:
    self.close()

  @property
  def finished(self) -> bool:
    return self._finished

  def close(self) -> None:
    """Detach from the channel; the producer and other subscribers are unaffected."""
    if self._finished:
      return
    self._finished = True
    self._channel._detach(self._queue)


class ProgressChannel:
  """Broadcast progress snapshots for one job in production order.

  Holds exactly the latest snapshot. Subscribers attached while the job runs only see what is
  published after they attach; a subscriber attaching after completion sees the terminal snapshot.
  """

  def __init__(self, *, total: int, stage: str = SECTION_IMAGES_STAGE) -> None:
    if total < 0:
      raise ValueError("Progress total must be zero or a positive integer.")
    self._total = total
    self._stage = stage
    self._latest: ProgressSnapshot | None = None
    self._subscribers: list[asyncio.Queue[ProgressSnapshot]] = []
    self._terminal = asyncio.Event()

  @property
  def total(self) -> int:
    return self._total

  @property
  def stage(self) -> str:
    return self._stage

  @property
  def latest(self) -> ProgressSnapshot | None:
    return self._latest

  @property
  def state(self) -> ChannelState:
    if self._latest is None:
      return "idle"
    if self._latest.complete:
      return "terminal"
    return "running"

  @property
  def closed(self) -> bool:
    return self.state == "terminal"

  @property
  def subscriber_count(self) -> int:
    return len(self._subscribers)

  def subscribe(self) -> ProgressSubscription:
    """Attach a new subscriber."""
    queue: asyncio.Queue[ProgressSnapshot] = asyncio.Queue()
    if self.closed and self._latest is not None:
      queue.put_nowait(self._latest)
      return ProgressSubscription(self, queue)
    self._subscribers.append(queue)
    return ProgressSubscription(self, queue)

  def publish(self, snapshot: ProgressSnapshot) -> None:
    """Record ``snapshot`` as latest and fan it out to every attached subscriber."""
    if self.closed:
      raise ChannelClosedError("Progress channel already emitted its terminal snapshot.")
    if snapshot.total != self._total:
      raise ProgressOrderError(f"Snapshot total {snapshot.total} does not match job total {self._total}.")
    if self._latest is not None and snapshot.current < self._latest.current:
      raise ProgressOrderError(f"Snapshot current {snapshot.current} regresses below {self._latest.current}.")
    if snapshot.complete and snapshot.current != self._total:
      raise ProgressOrderError("Terminal snapshot must report current equal to total.")

    self._latest = snapshot
    for queue in list(self._subscribers):
      queue.put_nowait(snapshot)

    if snapshot.complete:
      # Subscribers drain their queues and detach themselves after the terminal snapshot.
      self._subscribers.clear()
      self._terminal.set()
      logger.debug("Progress channel closed stage=%s total=%s", self._stage, self._total)

  def emit(self, *, current: int, message: str, complete: bool = False) -> ProgressSnapshot:
    """Build and publish a snapshot using the channel's stage and total."""
    snapshot = ProgressSnapshot(stage=self._stage, current=current, total=self._total, message=message, complete=complete)
    self.publish(snapshot)
    return snapshot

  async def wait_closed(self) -> ProgressSnapshot:
    """Wait until the terminal snapshot has been published and return it."""
    await self._terminal.wait()
    assert self._latest is not None
    return self._latest

  def _detach(self, queue: asyncio.Queue[ProgressSnapshot]) -> None:
    if queue in self._subscribers:
      self._subscribers.remove(queue)
