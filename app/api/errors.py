# app/api/errors.py
from fastapi import HTTPException

from app.domain.errors import (
    AlreadyTerminalError,
    ConflictError,
    InvalidTransitionError,
    NotEligibleError,
    NotFoundError,
    RefundFailedError,
    ShopError,
    StorageError,
)

_STATUS = {
    NotFoundError: 404,
    ConflictError: 409,
    InvalidTransitionError: 409,
    AlreadyTerminalError: 409,
    NotEligibleError: 403,
    RefundFailedError: 502,
    StorageError: 503,
}


def http_error(exc: Exception) -> HTTPException:
    """Stable HTTP status for every service error."""
    if isinstance(exc, PermissionError):
        return HTTPException(status_code=403, detail=str(exc))
    if isinstance(exc, ValueError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, ShopError):
        for err_type, code in _STATUS.items():
            if isinstance(exc, err_type):
                return HTTPException(status_code=code, detail=str(exc))
    return HTTPException(status_code=500, detail="Internal error")
