"""Typed progress events and the channel the orchestrator publishes them on."""

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum


class ProgressStatus(str, Enum):
    """Coarse run status shown to users."""

    LOADING = "loading"
    TRANSCRIBING = "transcribing"
    STRUCTURING = "structuring"
    COMPLETED = "completed"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ProgressEvent:
    """One progress update. progress_percent is in [0, 100]."""

    status: ProgressStatus
    progress_percent: float
    message: str

    def __post_init__(self) -> None:
        clamped = min(max(float(self.progress_percent), 0.0), 100.0)
        object.__setattr__(self, "progress_percent", clamped)


class ProgressChannel:
    """Ordered, closable stream of ProgressEvents.

    The orchestrator publishes; any number of readers can drain the stream
    with `async for`, although events are delivered to exactly one reader.
    Publishing never blocks. A closed channel drops further events.
    """

    _CLOSED = object()

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self.history: list[ProgressEvent] = []

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, event: ProgressEvent) -> None:
        if self._closed:
            return
        self.history.append(event)
        self._queue.put_nowait(event)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(self._CLOSED)

    async def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        while True:
            item = await self._queue.get()
            if item is self._CLOSED:
                return
            yield item
