"""Shared server state: message channels and the store of running pipelines."""

from __future__ import annotations

import logging
import queue
import threading
import weakref
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)

BROADCAST_CAPACITY = 5
NUM_CHANNELS = 8

_STATUS_STATES = ("Running", "Stopped", "Error")


class BroadcastReceiver(Generic[T]):
    """Receives every value sent on a broadcast channel after subscribing."""

    def __init__(self, sender: BroadcastSender[T]) -> None:
        self._sender = sender
        self._queue: deque[T] = deque(maxlen=sender.capacity)

    def recv(self, timeout: float | None = None) -> T:
        """Wait for the next value; raise TimeoutError if none arrives in time."""
        with self._sender._cond:
            if not self._sender._cond.wait_for(lambda: self._queue, timeout):
                raise TimeoutError("no value received on broadcast channel")
            return self._queue.popleft()


class BroadcastSender(Generic[T]):
    """A bounded channel that delivers each value to every current subscriber.

    Slow subscribers lose their oldest values once ``capacity`` are pending.
    """

    def __init__(self, capacity: int = BROADCAST_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._cond = threading.Condition()
        self._receivers: weakref.WeakSet[BroadcastReceiver[T]] = weakref.WeakSet()

    def send(self, value: T) -> int:
        """Deliver ``value`` to all subscribers and return how many there were."""
        with self._cond:
            receivers = list(self._receivers)
            for receiver in receivers:
                receiver._queue.append(value)
            self._cond.notify_all()
        return len(receivers)

    def subscribe(self) -> BroadcastReceiver[T]:
        receiver = BroadcastReceiver(self)
        with self._cond:
            self._receivers.add(receiver)
        return receiver


class SenderReceiver(Generic[T]):
    """An unbounded first-in first-out channel."""

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[T] = queue.SimpleQueue()

    def send(self, value: T) -> None:
        self._queue.put(value)

    def try_recv(self) -> T:
        """Return the oldest value; raise queue.Empty if there is none."""
        return self._queue.get_nowait()


def _broadcast_channels() -> tuple[BroadcastSender[Any], ...]:
    return tuple(BroadcastSender() for _ in range(NUM_CHANNELS))


@dataclass
class ResultStore:
    """Channels carrying results from pipelines to the API."""

    inference: tuple[BroadcastSender[Any], ...] = field(default_factory=_broadcast_channels)
    inference_settings: SenderReceiver[str] = field(default_factory=SenderReceiver)
    images: tuple[BroadcastSender[Any], ...] = field(default_factory=_broadcast_channels)
    recording: SenderReceiver[Any] = field(default_factory=SenderReceiver)


@dataclass(frozen=True)
class PipelineStatus:
    """The state of a pipeline: Running, Stopped or Error with a message."""

    state: str = "Running"
    message: str = ""

    def __post_init__(self) -> None:
        if self.state not in _STATUS_STATES:
            raise ValueError(f"unknown pipeline state {self.state!r}")


@dataclass
class PipelineHandle:
    """A running pipeline thread and the event that stops it."""

    id: str
    handle: threading.Thread
    status: PipelineStatus
    stop_signal: threading.Event


@dataclass(frozen=True)
class PipelineInfo:
    """The public description of a pipeline."""

    id: str
    status: PipelineStatus

    def to_dict(self) -> dict[str, Any]:
        if self.status.state == "Error":
            status: Any = {"Error": self.status.message}
        else:
            status = self.status.state
        return {"id": self.id, "status": status}


class _PipelineThread(threading.Thread):
    """A thread that records the exception its target raised, if any."""

    exception: BaseException | None = None

    def run(self) -> None:
        try:
            super().run()
        except BaseException as exc:
            self.exception = exc
            logger.exception("Pipeline %s failed", self.name)


class PipelineStore:
    """All pipelines managed by the server, keyed by name."""

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.pipelines: dict[str, PipelineHandle] = {}

    def __contains__(self, name: object) -> bool:
        with self.lock:
            return name in self.pipelines

    def __len__(self) -> int:
        with self.lock:
            return len(self.pipelines)

    def register_pipeline(
        self, name: str, handle: threading.Thread, stop_signal: threading.Event
    ) -> None:
        """Record a running pipeline under ``name``."""
        with self.lock:
            self.pipelines[name] = PipelineHandle(
                id=name,
                handle=handle,
                status=PipelineStatus("Running"),
                stop_signal=stop_signal,
            )

    def unregister_pipeline(self, name: str) -> bool:
        """Stop the pipeline, wait for it and forget it.

        Returns False if there is no such pipeline or its thread failed.
        """
        with self.lock:
            pipeline = self.pipelines.pop(name, None)
        if pipeline is None:
            return False
        pipeline.stop_signal.set()
        pipeline.handle.join()
        if isinstance(pipeline.handle, _PipelineThread) and pipeline.handle.exception:
            logger.error("Failed to join pipeline %s", name)
            return False
        return True

    def list_pipelines(self) -> list[PipelineInfo]:
        with self.lock:
            return [PipelineInfo(p.id, p.status) for p in self.pipelines.values()]


@dataclass
class ServerGlobalState:
    """Everything the server shares between the API and the pipelines."""

    pipeline_store: PipelineStore = field(default_factory=PipelineStore)
    result_store: ResultStore = field(default_factory=ResultStore)


SERVER_GLOBAL_STATE = ServerGlobalState()

_SIGNS = ("|", "/", "-", "\\", "|", "/", "-", "\\")
_EMOJIS = ("😊", "🚀", "🦀", "🎉", "✨", "🎸", "🌟", "🍕", "🎮", "🌈")


def spawn_bubbaloop_thread(stop_signal: threading.Event) -> threading.Thread:
    """Start a demo pipeline that logs a greeting every second until stopped."""

    def run() -> None:
        counter = 0
        while not stop_signal.is_set():
            logger.debug(
                "%s Hello !! This is a Bubbaloop !!! %s",
                _SIGNS[counter % len(_SIGNS)],
                _EMOJIS[counter % len(_EMOJIS)],
            )
            stop_signal.wait(1.0)
            counter += 1
        logger.debug("Bubbaloop pipeline stopped after %d iterations", counter)

    thread = _PipelineThread(target=run, name="bubbaloop", daemon=True)
    thread.start()
    return thread