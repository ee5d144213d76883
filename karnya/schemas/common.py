# karnya/schemas/common.py
from typing import Generic, List, TypeVar

from pydantic import Field

from .base import BaseSchema

T = TypeVar("T")


class PageMeta(BaseSchema):
    page: int = Field(1, ge=1)
    page_size: int = Field(10, ge=1)
    total: int = Field(0, ge=0)
    total_pages: int = Field(0, ge=0)


class Page(BaseSchema, Generic[T]):
    items: List[T]
    meta: PageMeta


class MessageOut(BaseSchema):
    message: str
