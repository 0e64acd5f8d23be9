"""
Single-flight holder for one async operation.

The first caller starts the operation; every later or concurrent caller
awaits the same task and sees the same result or exception. The outcome is
kept for the lifetime of the holder.
"""

from __future__ import annotations

import asyncio
from enum import StrEnum
from typing import Awaitable, Callable, Generic, TypeVar

T = TypeVar("T")


class FlightState(StrEnum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class SingleFlight(Generic[T]):
    """Runs ``factory`` at most once and shares its outcome."""

    def __init__(self, factory: Callable[[], Awaitable[T]]):
        self._factory = factory
        self._task: asyncio.Future[T] | None = None

    @property
    def state(self) -> FlightState:
        if self._task is None:
            return FlightState.NOT_STARTED
        if not self._task.done():
            return FlightState.IN_PROGRESS
        return FlightState.COMPLETED

    async def run(self) -> T:
        if self._task is None:
            self._task = asyncio.ensure_future(self._factory())
        # shield: a cancelled caller must not cancel the shared operation
        return await asyncio.shield(self._task)
