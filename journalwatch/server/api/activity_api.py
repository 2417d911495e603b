"""
Activity API routes

- /journal-entries/{entry_id}/activities - activities of one entry (store from the entry)
- /activity-stats - aggregates by source or temporal bucket (explicit mode flag)
- /activities - the caller's activity feed (explicit mode flag)
"""

from fastapi import APIRouter, Depends, Header, Path, Query
from fastapi.responses import Response
from typing import Optional, Union

from journalwatch.server.api.dependencies import (
    get_activity_query_service,
    get_current_user_id,
    get_response_builder,
    parse_group_by,
    parse_mode,
    validate_timezone,
)
from journalwatch.server.services.activity_service import STATS_GROUP_BY_OPTIONS
from journalwatch.server.schemas import (
    ActivityFeedResponse,
    EntryActivitiesResponse,
    ErrorResponse,
    SourceStatsResponse,
    TemporalStatsResponse,
)
from journalwatch.server.services import ActivityQueryService, ResponseBuilder

router = APIRouter(tags=["Activities"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
    504: {"model": ErrorResponse},
}


# ============================================================================
# Entry activities
# ============================================================================

@router.get(
    "/journal-entries/{entry_id}/activities",
    summary="List the activities of a journal entry",
    response_model=EntryActivitiesResponse,
    responses=ERROR_RESPONSES,
)
async def list_entry_activities(
    entry_id: str = Path(..., description="journal entry id"),
    page: int = Query(1, description="page number (0 is treated as 1)", ge=0),
    limit: Optional[int] = Query(None, description="page size, default 20, clamped to 100", ge=0),
    source: Optional[str] = Query(None, description="only activities of this source"),
    if_none_match: Optional[str] = Header(None, alias="If-None-Match"),
    user_id: str = Depends(get_current_user_id),
    service: ActivityQueryService = Depends(get_activity_query_service),
    builder: ResponseBuilder = Depends(get_response_builder),
) -> Response:
    """
    Activities of one journal entry, newest first

    The activity store is taken from the entry itself; no mode parameter is
    accepted here. Entries owned by another user answer 404.
    """
    result = await service.list_activities_for_entry(
        entry_id=entry_id,
        user_id=user_id,
        page=page,
        page_size=limit,
        source=source,
    )
    return builder.activities(result, if_none_match)


# ============================================================================
# Stats
# ============================================================================

@router.get(
    "/activity-stats",
    summary="Aggregate activity counts",
    response_model=Union[SourceStatsResponse, TemporalStatsResponse],
    responses=ERROR_RESPONSES,
)
async def get_activity_stats(
    group_by: Optional[str] = Query(None, alias="groupBy", description="source | temporal"),
    mode: Optional[str] = Query(None, description="sandbox | live (default live)"),
    timezone: Optional[str] = Query(None, description="IANA time zone, default UTC"),
    if_none_match: Optional[str] = Header(None, alias="If-None-Match"),
    user_id: str = Depends(get_current_user_id),
    service: ActivityQueryService = Depends(get_activity_query_service),
    builder: ResponseBuilder = Depends(get_response_builder),
) -> Response:
    """
    Activity and journal entry counts grouped by source or by temporal bucket

    **groupBy=source**: at most 20 sources, largest first; `meta.truncated`
    tells whether groups were dropped.

    **groupBy=temporal**: the six buckets today, yesterday, this_week,
    last_week, this_month, older computed in `timezone`.
    """
    group_by = parse_group_by(group_by, STATS_GROUP_BY_OPTIONS, required=True)
    store_mode = parse_mode(mode)
    timezone = validate_timezone(timezone)

    if group_by == "source":
        result = await service.stats_by_source(user_id, store_mode)
    else:
        result = await service.stats_by_temporal(user_id, store_mode, timezone)
    return builder.stats(result, if_none_match)


# ============================================================================
# Feed
# ============================================================================

@router.get(
    "/activities",
    summary="List the caller's activities",
    response_model=ActivityFeedResponse,
    responses=ERROR_RESPONSES,
)
async def list_activities(
    page: int = Query(1, description="page number (0 is treated as 1)", ge=0),
    limit: Optional[int] = Query(None, description="page size, default 20, clamped to 100", ge=0),
    source: Optional[str] = Query(None, description="only activities of this source"),
    group_by: Optional[str] = Query(None, alias="groupBy", description="temporal | source | story, omitted for a flat list"),
    mode: Optional[str] = Query(None, description="sandbox | live (default live)"),
    timezone: Optional[str] = Query(None, description="IANA time zone, default UTC"),
    if_none_match: Optional[str] = Header(None, alias="If-None-Match"),
    user_id: str = Depends(get_current_user_id),
    service: ActivityQueryService = Depends(get_activity_query_service),
    builder: ResponseBuilder = Depends(get_response_builder),
) -> Response:
    """
    The caller's activities in one store, newest first

    Each activity carries `storyId`/`storyTitle` of the journal entry it is
    assigned to (cluster entries win). With `groupBy=temporal|source` the
    current page is returned as groups.

    **groupBy=story**: one group per journal entry of the mode with its story
    metadata and full activity count, then an `unassigned` group holding the
    page's activities that no entry references.
    """
    result = await service.list_all_activities(
        user_id=user_id,
        mode=parse_mode(mode),
        page=page,
        page_size=limit,
        source=source,
        group_by=parse_group_by(group_by),
        timezone=validate_timezone(timezone),
    )
    return builder.activities(result, if_none_match)
