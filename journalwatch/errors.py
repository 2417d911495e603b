"""
Error taxonomy

Every error raised on purpose by the service carries a stable ``code`` and the
HTTP status it maps to; the FastAPI exception handlers in
``journalwatch.server.main`` turn them into ``{"error": ..., "code": ...}`` bodies.
"""


class JournalWatchError(Exception):
    """Base class for typed service errors"""

    status_code = 500
    code = "INTERNAL"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_body(self) -> dict:
        return {"error": self.message, "code": self.code}


class InvalidArgumentError(JournalWatchError):
    """Bad caller input (time zone, groupBy, mode, negative page/limit ...)"""

    status_code = 400
    code = "INVALID_ARGUMENT"


class UnauthenticatedError(JournalWatchError):
    status_code = 401
    code = "UNAUTHENTICATED"


class NotFoundError(JournalWatchError):
    status_code = 404
    code = "NOT_FOUND"


class ForbiddenError(JournalWatchError):
    """
    The entry exists but belongs to someone else.

    Rendered exactly like NotFoundError so callers cannot probe for other
    users' entries; the distinction only shows up in server logs.
    """

    status_code = 404
    code = "NOT_FOUND"
    public_message = "Journal entry not found"

    def to_body(self) -> dict:
        return {"error": self.public_message, "code": self.code}


class RequestTimeoutError(JournalWatchError):
    status_code = 504
    code = "TIMEOUT"


class UpstreamUnavailableError(JournalWatchError):
    status_code = 503
    code = "UPSTREAM_UNAVAILABLE"
