"""
Journal API routes

- /journal - the caller's journal entries with optional batch activity meta
"""

from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import Response
from typing import Optional

from journalwatch.server.api.dependencies import (
    get_current_user_id,
    get_journal_service,
    get_response_builder,
)
from journalwatch.server.schemas import ErrorResponse, JournalListResponse
from journalwatch.server.services import JournalService, ResponseBuilder

router = APIRouter(prefix="/journal", tags=["Journal"])


@router.get(
    "",
    summary="List the caller's journal entries",
    response_model=JournalListResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def list_journal_entries(
    page: int = Query(1, description="page number (0 is treated as 1)", ge=0),
    limit: Optional[int] = Query(None, description="page size, default 20, clamped to 100", ge=0),
    include_activity_meta: bool = Query(
        False,
        alias="includeActivityMeta",
        description="attach totalCount / sources / dateRange to every entry"
    ),
    filter_by_source: Optional[str] = Query(
        None,
        alias="filterBySource",
        description="only entries with at least one activity of this source"
    ),
    if_none_match: Optional[str] = Header(None, alias="If-None-Match"),
    user_id: str = Depends(get_current_user_id),
    service: JournalService = Depends(get_journal_service),
    builder: ResponseBuilder = Depends(get_response_builder),
) -> Response:
    """
    Journal entries of both modes, newest first

    Activity meta is computed in one batch per store mode, never per entry.
    """
    result = await service.list_entries(
        user_id=user_id,
        page=page,
        page_size=limit,
        include_activity_meta=include_activity_meta,
        filter_by_source=filter_by_source or None,
    )
    return builder.activities(result, if_none_match)
