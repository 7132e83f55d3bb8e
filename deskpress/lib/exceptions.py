"""Error taxonomy and JSON exception handlers.

Authentication and authorization failures use Litestar's
``NotAuthorizedException`` (401) and ``PermissionDeniedException`` (403),
validation failures use ``ValidationException`` (400). The classes below cover
the remaining categories. Backend error messages are passed through verbatim.
"""

import logging

from litestar import Request, Response
from litestar.exceptions import HTTPException, ValidationException
from litestar.status_codes import (
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
)

logger = logging.getLogger(__name__)


class ConflictError(HTTPException):
    """A file-backed write was rejected because its content hash is stale."""

    status_code = HTTP_409_CONFLICT


class RemoteServiceError(HTTPException):
    """A remote API or privileged function failed or was unreachable."""

    status_code = HTTP_502_BAD_GATEWAY


class SelfRevocationError(ValidationException):
    """An admin tried to revoke their own admin flag."""


def http_exception_handler(request: Request, exc: HTTPException) -> Response:
    """Render HTTP exceptions as JSON, keeping the detail text as-is."""
    status_code = exc.status_code
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)

    content: dict = {"status_code": status_code, "detail": detail}
    if getattr(exc, "extra", None):
        content["extra"] = exc.extra

    return Response(
        content=content,
        status_code=status_code,
        media_type="application/json",
    )


def internal_server_error_handler(request: Request, exc: Exception) -> Response:
    """Handle unexpected exceptions without leaking internals."""
    logger.exception("Unhandled error on %s", request.url.path)
    return Response(
        content={"status_code": HTTP_500_INTERNAL_SERVER_ERROR, "detail": "Internal Server Error"},
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        media_type="application/json",
    )
