from app.client.api import ResearchApiClient
from app.client.cache import MISS, FetchCache, make_cache_key
from app.client.dedup import RequestDeduplicator, request_key
from app.client.errors import ApiError, ClientValidationError, NotFoundError, ResearchClientError, TransportError
from app.client.optimistic import MutationOutcome, OptimisticMutation
from app.client.ordering import (
    DragSession,
    DragState,
    OrderReconciler,
    assign_order,
    compute_display_order,
    move_item,
)
from app.client.validation import FilePayload

__all__ = [
    "MISS",
    "ApiError",
    "ClientValidationError",
    "DragSession",
    "DragState",
    "FetchCache",
    "FilePayload",
    "MutationOutcome",
    "NotFoundError",
    "OptimisticMutation",
    "OrderReconciler",
    "RequestDeduplicator",
    "ResearchApiClient",
    "ResearchClientError",
    "TransportError",
    "assign_order",
    "compute_display_order",
    "make_cache_key",
    "move_item",
    "request_key",
]
