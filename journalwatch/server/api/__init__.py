"""
API routers
"""

from .activity_api import router as activity_router
from .journal_api import router as journal_router
from .source_api import router as source_router

__all__ = [
    "activity_router",
    "journal_router",
    "source_router",
]
