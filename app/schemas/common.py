"""
Revi Audit — Shared schema building blocks.

JSON payloads use camelCase keys; Python code uses snake_case attributes.
"""

from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")

SortOrder = Literal["asc", "desc"]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Pagination(CamelModel):
    page: int
    limit: int
    total_count: int
    total_pages: int
    has_next: bool
    has_prev: bool


class Page(CamelModel, Generic[T]):
    items: list[T]
    pagination: Pagination


class MessageResponse(CamelModel):
    success: bool = True
    message: str
