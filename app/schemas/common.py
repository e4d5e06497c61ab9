from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Wire models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    error: Optional[str] = None


class OrderUpdate(CamelModel):
    id: str
    order: int


class ReorderRequest(CamelModel):
    order_updates: List[OrderUpdate]


class DownloadLink(CamelModel):
    download_url: str
    expires_at: int


__all__ = ["CamelModel", "Envelope", "OrderUpdate", "ReorderRequest", "DownloadLink"]
