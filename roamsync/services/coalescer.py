"""Request coalescing for idempotent calls.

At most one pending call exists per key. Late callers join the shared
future instead of starting another network round-trip.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict


@dataclass
class RequestCoalescer:
    """Deduplicates concurrent identical requests.

    The producer runs as its own task. The pending slot is removed from the
    task's done callback, i.e. only after the producer returned. Whatever the
    producer wrote before returning (the gateway writes the response cache)
    is therefore visible before the slot disappears, and a caller arriving
    in between joins the already finished task.

    Cancelling one caller never cancels the shared call.
    """

    _pending: Dict[str, asyncio.Future[Any]] = field(default_factory=dict, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    async def dedupe(self, key: str, producer: Callable[[], Awaitable[Any]]) -> Any:
        """Run ``producer`` once per key among concurrent callers.

        Args:
            key: Canonical request key.
            producer: Zero-argument coroutine function doing the real call.

        Returns:
            The shared result.
        """
        slot = self._pending.get(key)
        if slot is not None:
            self._logger.debug("Joining in-flight request", extra={"key": key})
            return await asyncio.shield(slot)

        task = asyncio.ensure_future(producer())
        self._pending[key] = task
        task.add_done_callback(lambda done: self._release(key, done))
        return await asyncio.shield(task)

    def _release(self, key: str, task: asyncio.Future[Any]) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]
        if not task.cancelled() and task.exception() is not None:
            self._logger.debug(
                "Coalesced request failed",
                extra={"key": key, "error": str(task.exception())},
            )

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    def pending_keys(self) -> list[str]:
        return list(self._pending.keys())
