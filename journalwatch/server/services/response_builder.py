"""
Response assembly

Turns service results into JSON envelopes ``{data, pagination?, meta}`` with
Cache-Control and a weak ETag, and answers matching If-None-Match with 304.
"""
import hashlib
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from fastapi import Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from journalwatch.config.settings_manager import settings


@dataclass(frozen=True)
class QueryResult:
    """
    Service output

    ``payload`` is the response envelope, ``etag_parts`` identify the resource
    plus its freshness marker and are hashed into the ETag.
    """
    payload: BaseModel
    etag_parts: Sequence[Any]


class ResponseBuilder:
    """Envelope + cache header assembly"""

    def __init__(self, activities_max_age: Optional[int] = None, stats_max_age: Optional[int] = None):
        self.activities_max_age = (
            activities_max_age if activities_max_age is not None else settings.activities_cache_max_age
        )
        self.stats_max_age = stats_max_age if stats_max_age is not None else settings.stats_cache_max_age

    @staticmethod
    def cache_control(max_age: int) -> str:
        return f"private, max-age={max_age}"

    @staticmethod
    def weak_etag(parts: Sequence[Any]) -> str:
        """W/"<sha1 of the parts>"; None parts hash as empty strings"""
        raw = "|".join("" if part is None else str(part) for part in parts)
        return f'W/"{hashlib.sha1(raw.encode("utf-8")).hexdigest()}"'

    @staticmethod
    def etag_matches(if_none_match: Optional[str], etag: str) -> bool:
        """Weak comparison against an If-None-Match header value"""
        if not if_none_match:
            return False
        candidates = [value.strip() for value in if_none_match.split(",")]
        if "*" in candidates:
            return True
        opaque = etag[2:] if etag.startswith("W/") else etag
        for candidate in candidates:
            if candidate.startswith("W/"):
                candidate = candidate[2:]
            if candidate == opaque:
                return True
        return False

    @staticmethod
    def envelope(payload: BaseModel) -> dict:
        return payload.model_dump(by_alias=True, mode="json")

    def build(self, result: QueryResult, max_age: int, if_none_match: Optional[str] = None) -> Response:
        etag = self.weak_etag(result.etag_parts)
        headers = {"Cache-Control": self.cache_control(max_age), "ETag": etag}
        if self.etag_matches(if_none_match, etag):
            return Response(status_code=304, headers=headers)
        return JSONResponse(content=self.envelope(result.payload), headers=headers)

    def activities(self, result: QueryResult, if_none_match: Optional[str] = None) -> Response:
        """Per-entry lists, the feed and journal listings"""
        return self.build(result, self.activities_max_age, if_none_match)

    def stats(self, result: QueryResult, if_none_match: Optional[str] = None) -> Response:
        """Aggregates"""
        return self.build(result, self.stats_max_age, if_none_match)
