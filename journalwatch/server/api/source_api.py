"""
Source registry route
"""

from fastapi import APIRouter

from journalwatch.server.providers import source_registry
from journalwatch.server.schemas import SourceInfo, SourcesResponse

router = APIRouter(prefix="/sources", tags=["Sources"])


@router.get("", summary="List registered sources", response_model=SourcesResponse)
async def list_sources() -> SourcesResponse:
    """Display metadata of every known source, sorted by id"""
    sources = [
        SourceInfo(id=meta.id, display_name=meta.display_name, color=meta.color, icon=meta.icon)
        for _, meta in sorted(source_registry.all().items())
    ]
    return SourcesResponse(data=sources, meta={"count": len(sources)})
