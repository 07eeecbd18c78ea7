"""
API Response Envelope

Every endpoint answers with ``{success, message, data?, errors?}``.
"""

from typing import Any, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def success_response(
    message: str,
    data: Optional[Any] = None,
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    """Successful envelope; ``data`` is omitted when None."""
    body: dict = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def created_response(message: str, data: Optional[Any] = None) -> JSONResponse:
    return success_response(message, data, status_code=status.HTTP_201_CREATED)


def error_response(
    message: str,
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    errors: Optional[Any] = None,
) -> JSONResponse:
    """Failure envelope; ``errors`` is omitted when empty."""
    body: dict = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))
