"""Translate engine errors into HTTP responses."""

from __future__ import annotations

from fastapi import HTTPException, status

from ..errors import ConflictError, EngineError, NotFoundError, ValidationError


def to_http_exception(exc: EngineError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ConflictError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, ValidationError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(exc))
