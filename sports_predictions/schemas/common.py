"""
@file: common.py
@description:
Response envelopes shared by the list and detail endpoints.

Schemas:
- PaginationOut: `{page, limit, total, totalPages}` block of list responses
"""

from pydantic import BaseModel, ConfigDict, Field

from sports_predictions.services.filters import Pagination


class PaginationOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int
    limit: int
    total: int
    total_pages: int = Field(..., alias="totalPages", serialization_alias="totalPages")

    @classmethod
    def build(cls, pagination: Pagination, total: int) -> "PaginationOut":
        return cls(
            page=pagination.page,
            limit=pagination.limit,
            total=total,
            total_pages=pagination.total_pages(total),
        )
