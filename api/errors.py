from __future__ import annotations

from fastapi import HTTPException

from roofing.errors import AddressNotFound, InputValidationError, MeasurementError, ServiceTimeout


def to_http_error(exc: MeasurementError) -> HTTPException:
    """Map the workflow error taxonomy onto HTTP status codes."""
    if isinstance(exc, InputValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, AddressNotFound):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ServiceTimeout):
        return HTTPException(status_code=504, detail=str(exc))
    return HTTPException(status_code=502, detail=str(exc))
