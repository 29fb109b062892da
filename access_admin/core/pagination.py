import math
from dataclasses import dataclass
from fastapi import Query
from typing import Optional
from access_admin.config.settings import settings


@dataclass
class PageParams:
    """Offset pagination window. ``page`` is 1-based; ``limit`` is capped at MAX_PAGE_SIZE."""
    page: int = 1
    limit: int = 25

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def total_pages(self, total: int) -> int:
        return math.ceil(total / self.limit) if total else 0


def get_page_params(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
) -> PageParams:
    if limit is None:
        limit = settings.default_page_size
    return PageParams(page=page, limit=min(limit, settings.max_page_size))
