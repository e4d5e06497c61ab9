from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional, Tuple, TypeVar

T = TypeVar("T")

RequestKey = Tuple[str, str, str]


def request_key(method: str, url: str, body: Any = None) -> RequestKey:
    """Identity of a request: method, URL and a canonical form of the body."""
    if body is None:
        encoded = ""
    elif isinstance(body, bytes):
        encoded = body.decode("utf-8", errors="replace")
    elif isinstance(body, str):
        encoded = body
    else:
        encoded = json.dumps(body, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)
    return method.upper(), url, encoded


class RequestDeduplicator:
    """
    Collapse concurrent identical requests into one.

    The first caller for a key starts the work; callers arriving while it is
    in flight await the same task and share its result or exception. The
    entry is dropped as soon as the task finishes, so the next call starts
    a fresh request.
    """

    def __init__(self) -> None:
        self._pending: Dict[Hashable, "asyncio.Future[Any]"] = {}

    @property
    def in_flight(self) -> int:
        return len(self._pending)

    def is_pending(self, key: Hashable) -> bool:
        return key in self._pending

    async def run(self, key: Optional[Hashable], factory: Callable[[], Awaitable[T]]) -> T:
        # No key means "not deduplicable" (e.g. multipart uploads).
        if key is None:
            return await factory()

        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._pending[key] = task
            task.add_done_callback(lambda done, k=key: self._forget(k, done))
        # A waiter being cancelled must not cancel the shared request.
        return await asyncio.shield(task)

    def _forget(self, key: Hashable, task: "asyncio.Future[Any]") -> None:
        if self._pending.get(key) is task:
            del self._pending[key]
        if not task.cancelled():
            # Mark the exception as retrieved even if every waiter went away.
            task.exception()

    def clear(self) -> None:
        self._pending.clear()


__all__ = ["RequestDeduplicator", "RequestKey", "request_key"]
