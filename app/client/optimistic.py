from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

S = TypeVar("S")


@dataclass
class MutationOutcome(Generic[S]):
    ok: bool
    state: S
    error: Optional[BaseException] = None
    # True when the rollback state came from the server rather than the local snapshot.
    recovered: bool = False


class OptimisticMutation(Generic[S]):
    """
    Apply locally, confirm remotely, reconcile or roll back.

    ``recover`` fetches authoritative state after a failed confirmation; if it
    fails too, the pre-mutation snapshot is restored instead.
    """

    def __init__(
        self,
        get_state: Callable[[], S],
        set_state: Callable[[S], None],
        recover: Optional[Callable[[], Awaitable[S]]] = None,
    ):
        self._get_state = get_state
        self._set_state = set_state
        self._recover = recover

    async def run(self, new_state: S, confirm: Callable[[], Awaitable[object]]) -> MutationOutcome[S]:
        snapshot = self._get_state()
        self._set_state(new_state)
        try:
            await confirm()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Optimistic change rejected, rolling back: %s", exc)
            return await self._rollback(snapshot, exc)
        return MutationOutcome(ok=True, state=new_state)

    async def _rollback(self, snapshot: S, error: BaseException) -> MutationOutcome[S]:
        if self._recover is not None:
            try:
                truth = await self._recover()
            except Exception:  # noqa: BLE001
                logger.exception("Failed to re-fetch state after rejected change; restoring snapshot")
            else:
                self._set_state(truth)
                return MutationOutcome(ok=False, state=truth, error=error, recovered=True)
        self._set_state(snapshot)
        return MutationOutcome(ok=False, state=snapshot, error=error)


__all__ = ["MutationOutcome", "OptimisticMutation"]
