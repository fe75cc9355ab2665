from math import ceil
from typing import Annotated

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shop.database import get_db


DB = Annotated[AsyncSession, Depends(get_db)]


class Pagination:
    """page/limit query parameters shared by list endpoints."""

    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
    ):
        self.page = page
        self.limit = limit

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def pages(self, total: int) -> int:
        return ceil(total / self.limit) if total > 0 else 0


Page = Annotated[Pagination, Depends()]
