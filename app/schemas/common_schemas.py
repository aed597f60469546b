# app/schemas/common_schemas.py

from pydantic import BaseModel


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_count: int
    page_size: int
