"""Response envelope helpers: ``{"success", "data", "message", "errors"}``."""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from fastapi import HTTPException, status
from fastapi.responses import JSONResponse


class EnvelopeJSONEncoder(json.JSONEncoder):
    """Encode the UUIDs, timestamps and numerics that come back from asyncpg."""

    def default(self, obj):
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return float(obj)
        return super().default(obj)


def success_response(data: Any = None, message: str | None = None) -> dict[str, Any]:
    """Create a successful API response."""
    return {"success": True, "data": data, "message": message}


def error_envelope(
    message: str, errors: dict[str, Any] | None = None, data: Any = None
) -> dict[str, Any]:
    return {"success": False, "message": message, "data": data, "errors": errors}


def error_response(
    message: str,
    errors: dict[str, Any] | None = None,
    status_code: int = status.HTTP_400_BAD_REQUEST,
) -> HTTPException:
    """Raise an HTTPException whose detail is the error envelope."""
    raise HTTPException(status_code=status_code, detail=error_envelope(message, errors))


def error_response_dict(
    error_dict: dict[str, Any], status_code: int = status.HTTP_400_BAD_REQUEST
) -> JSONResponse:
    """Render an envelope as a JSONResponse (for exception handlers)."""
    content = json.loads(json.dumps(error_dict, cls=EnvelopeJSONEncoder))
    return JSONResponse(status_code=status_code, content=content)


def not_found_response(
    resource: str = "Resource", message: str | None = None, code: str | None = None
) -> HTTPException:
    """Raise a 404 envelope, optionally carrying a stable error code."""
    return error_response(
        message=message or f"{resource} not found",
        errors={"code": code} if code else None,
        status_code=status.HTTP_404_NOT_FOUND,
    )
