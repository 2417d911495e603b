"""
Shared FastAPI dependencies

Caller identity, argument parsing done at the HTTP boundary, and service
factories (overridable through app.dependency_overrides).
"""
from typing import Optional, Sequence

from fastapi import Depends, Header

from journalwatch.errors import InvalidArgumentError, UnauthenticatedError
from journalwatch.models import StoreMode
from journalwatch.server.services import ActivityQueryService, JournalService, ResponseBuilder
from journalwatch.server.services.activity_service import FEED_GROUP_BY_OPTIONS
from journalwatch.server.services.temporal_buckets import validate_timezone


def get_current_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id", description="user id set by the auth gateway")
) -> str:
    """Authenticated user id forwarded by the gateway"""
    if x_user_id is None or not x_user_id.strip():
        raise UnauthenticatedError("Authentication required")
    return x_user_id.strip()


def get_activity_query_service() -> ActivityQueryService:
    return ActivityQueryService()


def get_journal_service(
    query_service: ActivityQueryService = Depends(get_activity_query_service)
) -> JournalService:
    return JournalService(query_service)


def get_response_builder() -> ResponseBuilder:
    return ResponseBuilder()


def parse_mode(mode: Optional[str]) -> StoreMode:
    """Aggregate store flag; defaults to live"""
    if mode is None or not mode.strip():
        return StoreMode.LIVE
    return StoreMode.parse(mode)


def parse_group_by(
    group_by: Optional[str],
    options: Sequence[str] = FEED_GROUP_BY_OPTIONS,
    required: bool = False
) -> Optional[str]:
    if group_by is None or not group_by.strip():
        if required:
            raise InvalidArgumentError(f"groupBy is required, expected one of: {', '.join(options)}")
        return None
    group_by = group_by.strip()
    if group_by not in options:
        raise InvalidArgumentError(
            f"Invalid groupBy '{group_by}', expected one of: {', '.join(options)}"
        )
    return group_by
