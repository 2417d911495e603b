"""
Shared schemas

Pagination block and error body used across the API
"""
import math

from pydantic import BaseModel, Field


# ============================================================================
# Pagination
# ============================================================================

class Pagination(BaseModel):
    """Offset pagination metadata"""
    page: int = Field(..., description="current page (1-based)")
    limit: int = Field(..., description="page size after clamping")
    total: int = Field(..., description="total matching rows")
    total_pages: int = Field(..., description="ceil(total / limit)", alias="totalPages")
    has_more: bool = Field(..., description="page * limit < total", alias="hasMore")

    class Config:
        populate_by_name = True

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if limit else 0,
            has_more=page * limit < total,
        )


# ============================================================================
# Errors
# ============================================================================

class ErrorResponse(BaseModel):
    """Body of every error response"""
    error: str = Field(..., description="human readable message")
    code: str = Field(..., description="stable error code, e.g. NOT_FOUND")

    class Config:
        json_schema_extra = {
            "example": {"error": "Journal entry not found", "code": "NOT_FOUND"}
        }
