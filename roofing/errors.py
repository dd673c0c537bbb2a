"""Error taxonomy for the measurement workflow.

A missing snapshot is not an error: lookups return ``None`` for that branch.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class MeasurementError(RuntimeError):
    """Base class for failures local to a single workflow operation."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}


class InputValidationError(MeasurementError):
    """Raised for a missing address, missing coordinates or a malformed payload."""


class ServiceError(MeasurementError):
    """Raised when an external service fails or answers with a non-OK status."""


class ServiceTimeout(ServiceError):
    """Raised when an external call exceeds its time bound."""


class AddressNotFound(ServiceError):
    """Raised when the geocoder has no result for the address."""
