import logging

from fastapi import HTTPException, status
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from classqa.core.errors import DatabaseUnavailable, ErrorKind, ValidationError

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.SESSION_ENDED: status.HTTP_403_FORBIDDEN,
    ErrorKind.SESSION_NOT_STARTED: status.HTTP_403_FORBIDDEN,
    ErrorKind.SUBMISSIONS_DISABLED: status.HTTP_403_FORBIDDEN,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorKind.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
}


def to_http_exception(err: ValidationError) -> HTTPException:
    """Map a service rejection onto the HTTP error the client renders."""
    return HTTPException(
        status_code=STATUS_BY_KIND[err.kind],
        detail={"error": err.error, "kind": err.kind.value},
    )


def database_error(db: Session, exc: SQLAlchemyError) -> Exception:
    """Roll back and pick what to raise for a failed query.

    Connection-level failures become ``DatabaseUnavailable`` (a retryable 503);
    anything else is a 500.
    """
    db.rollback()
    if isinstance(exc, OperationalError):
        logger.warning("Database unavailable: %s", exc)
        return DatabaseUnavailable(str(exc))
    logger.exception("Database error")
    return HTTPException(status_code=500, detail=f"Database error: {str(exc)}")
