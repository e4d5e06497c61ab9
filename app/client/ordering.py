from __future__ import annotations

import copy
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Generic, List, Mapping, Optional, Sequence, TypeVar

from app.client.optimistic import MutationOutcome, OptimisticMutation

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Items without an order sort after every ordered item.
ORDER_SENTINEL = 999999

_CAMEL = {"created_at": "createdAt"}


def field_value(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        if name in item:
            return item[name]
        return item.get(_CAMEL.get(name, name))
    return getattr(item, name, None)


def _timestamp(value: Any) -> float:
    if value is None or value == "":
        return float("-inf")
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return float("-inf")
    if isinstance(value, datetime):
        if value.tzinfo is None:
            # Naive values are UTC on the wire; only their relative order matters.
            return (value - datetime(1970, 1, 1)).total_seconds()
        return value.timestamp()
    return float(value)


def display_key(item: Any) -> tuple:
    order = field_value(item, "order")
    return (ORDER_SENTINEL if order is None else order, -_timestamp(field_value(item, "created_at")))


def compute_display_order(items: Sequence[T]) -> List[T]:
    """Order ascending (missing order last), newest first on ties. Stable."""
    return sorted(items, key=display_key)


def move_item(items: Sequence[T], from_index: int, to_index: int) -> List[T]:
    """Take the item at ``from_index`` and reinsert it at ``to_index``; out of range is a no-op."""
    result = list(items)
    if not (0 <= from_index < len(result)) or not (0 <= to_index < len(result)):
        return result
    moved = result.pop(from_index)
    result.insert(to_index, moved)
    return result


def move_up(items: Sequence[T], index: int) -> List[T]:
    return move_item(items, index, index - 1)


def move_down(items: Sequence[T], index: int) -> List[T]:
    return move_item(items, index, index + 1)


def _with_order(item: T, order: int) -> T:
    if hasattr(item, "model_copy"):
        return item.model_copy(update={"order": order})
    if isinstance(item, Mapping):
        return {**item, "order": order}  # type: ignore[return-value]
    clone = copy.copy(item)
    setattr(clone, "order", order)
    return clone


def assign_order(items: Sequence[T]) -> List[T]:
    """Copies of ``items`` whose order equals their zero-based position."""
    return [_with_order(item, index) for index, item in enumerate(items)]


def order_updates(items: Sequence[Any]) -> List[Dict[str, Any]]:
    return [{"id": field_value(item, "id"), "order": index} for index, item in enumerate(items)]


def same_sequence(left: Sequence[Any], right: Sequence[Any]) -> bool:
    return [field_value(i, "id") for i in left] == [field_value(i, "id") for i in right]


class DragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    COMMITTED = "committed"
    CANCELLED = "cancelled"


class DragSession(Generic[T]):
    """
    One continuous drag gesture over a vertical list.

    A hover only swaps once the pointer crosses the target's vertical
    midpoint in the direction of travel, so hovering near a boundary does not
    flicker back and forth.
    """

    def __init__(self, items: Sequence[T]):
        self.original: List[T] = list(items)
        self.current: List[T] = list(items)
        self.state = DragState.IDLE
        self.drag_index: Optional[int] = None

    def start(self, index: int) -> None:
        if self.state is not DragState.IDLE:
            raise RuntimeError(f"Cannot start a drag from state {self.state.value}")
        if not 0 <= index < len(self.current):
            raise IndexError(index)
        self.state = DragState.DRAGGING
        self.drag_index = index

    def hover(self, target_index: int, pointer_y: float, top: float, bottom: float) -> bool:
        """Pointer is over ``target_index`` whose box spans [top, bottom]. Returns True if it moved."""
        if self.state is not DragState.DRAGGING or self.drag_index is None:
            return False
        if target_index == self.drag_index or not 0 <= target_index < len(self.current):
            return False

        middle = (bottom - top) / 2
        offset = pointer_y - top
        # Dragging down: wait until the pointer is below the middle.
        if self.drag_index < target_index and offset < middle:
            return False
        # Dragging up: wait until the pointer is above the middle.
        if self.drag_index > target_index and offset > middle:
            return False

        self.current = move_item(self.current, self.drag_index, target_index)
        self.drag_index = target_index
        return True

    def drop(self, over_target: bool = True) -> List[T]:
        """Finish the gesture. Dropping outside any valid target cancels it."""
        if self.state is not DragState.DRAGGING:
            raise RuntimeError(f"Cannot drop from state {self.state.value}")
        if not over_target:
            return self.cancel()
        self.state = DragState.COMMITTED
        return list(self.current)

    def cancel(self) -> List[T]:
        self.state = DragState.CANCELLED
        self.current = list(self.original)
        return list(self.original)

    @property
    def changed(self) -> bool:
        return not same_sequence(self.original, self.current)


class OrderReconciler(Generic[T]):
    """
    Keeps a local, displayed ordering of a collection in step with the server.

    ``load`` returns the authoritative collection, ``persist`` receives the
    batched ``[{"id", "order"}]`` updates. Persistence failures are never
    raised: the view is reset to server truth and ``notify`` is called with a
    user-facing message.
    """

    def __init__(
        self,
        load: Callable[[], Awaitable[Sequence[T]]],
        persist: Callable[[List[Dict[str, Any]]], Awaitable[Any]],
        notify: Optional[Callable[[str], None]] = None,
        failure_message: str = "Failed to save the new order, please retry",
    ):
        self._load = load
        self._persist = persist
        self._notify = notify or (lambda message: logger.warning("%s", message))
        self.failure_message = failure_message
        self.items: List[T] = []
        self._mutation: OptimisticMutation[List[T]] = OptimisticMutation(
            get_state=lambda: list(self.items),
            set_state=self._set_items,
            recover=self.refresh,
        )

    def _set_items(self, items: Sequence[T]) -> None:
        self.items = list(items)

    async def refresh(self) -> List[T]:
        items = compute_display_order(await self._load())
        self.items = items
        return list(items)

    async def reorder(self, new_ordered: Sequence[T]) -> MutationOutcome[List[T]]:
        reordered = assign_order(new_ordered)
        updates = order_updates(reordered)
        outcome = await self._mutation.run(reordered, lambda: self._persist(updates))
        if not outcome.ok:
            self._notify(self.failure_message)
        return outcome

    async def move(self, from_index: int, to_index: int) -> MutationOutcome[List[T]]:
        moved = move_item(self.items, from_index, to_index)
        if same_sequence(moved, self.items):
            return MutationOutcome(ok=True, state=list(self.items))
        return await self.reorder(moved)

    async def move_up(self, index: int) -> MutationOutcome[List[T]]:
        return await self.move(index, index - 1)

    async def move_down(self, index: int) -> MutationOutcome[List[T]]:
        return await self.move(index, index + 1)

    def start_drag(self, index: int) -> DragSession[T]:
        session: DragSession[T] = DragSession(self.items)
        session.start(index)
        return session

    async def finish_drag(self, session: DragSession[T], over_target: bool = True) -> MutationOutcome[List[T]]:
        """Commit triggers one reorder; cancel or an unchanged order makes no call."""
        final = session.drop(over_target)
        if session.state is DragState.CANCELLED or not session.changed:
            return MutationOutcome(ok=True, state=list(self.items))
        return await self.reorder(final)


__all__ = [
    "ORDER_SENTINEL",
    "DragSession",
    "DragState",
    "OrderReconciler",
    "assign_order",
    "compute_display_order",
    "display_key",
    "field_value",
    "move_down",
    "move_item",
    "move_up",
    "order_updates",
]
