# app/utils/pagination.py
import math

from app.schemas.common_schemas import Pagination

DEFAULT_PAGE_SIZE = 20


def clamp_paging(page: int, limit: int) -> tuple[int, int]:
    return max(page, 1), max(limit, 1)


def build_pagination(total_count: int, page: int, page_size: int) -> Pagination:
    return Pagination(
        current_page=page,
        total_pages=math.ceil(total_count / page_size),
        total_count=total_count,
        page_size=page_size,
    )
