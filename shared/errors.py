"""
Shared error handling for the Product Catalog Access service.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from .logging import get_request_id


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class CatalogError(Exception):
    """Base exception for catalog service errors."""

    status_code = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self, include_details: bool = True) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=get_request_id(),
            code=self.code,
            message=self.message,
            details=self.details if include_details else {}
        )


class ValidationError(CatalogError):
    """Caller input was malformed or out of range."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class NotFoundError(CatalogError):
    """Request was valid but the data does not exist."""

    status_code = 404

    def __init__(self, resource: str, identifier: Any, details: Optional[Dict[str, Any]] = None):
        self.resource = resource
        self.identifier = identifier
        super().__init__("NOT_FOUND", f"{resource} with identifier '{identifier}' not found", details)


class DatabaseError(CatalogError):
    """Relational store access failed.

    ``kind`` classifies the failure (``constraint_violation``,
    ``missing_relation``, ``connection_failure`` or ``query_failed``) and
    ``db_code`` carries the store's native SQLSTATE when one is available.
    """

    status_code = 500

    CONSTRAINT_VIOLATION = "constraint_violation"
    MISSING_RELATION = "missing_relation"
    CONNECTION_FAILURE = "connection_failure"
    QUERY_FAILED = "query_failed"

    def __init__(
        self,
        message: str = "Database operation failed",
        *,
        kind: str = QUERY_FAILED,
        db_code: Optional[str] = None,
        operation: Optional[str] = None,
        original: Optional[BaseException] = None,
    ):
        self.kind = kind
        self.db_code = db_code
        self.operation = operation
        self.original = original
        details: Dict[str, Any] = {"kind": kind}
        if db_code:
            details["db_code"] = db_code
        if operation:
            details["operation"] = operation
        if original is not None:
            details["error"] = str(original)
        super().__init__("DATABASE_ERROR", message, details)


class ServiceUnavailableError(CatalogError):
    """The service refused to process the request (overload or shutdown)."""

    status_code = 503

    def __init__(self, message: str = "Service unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("SERVICE_UNAVAILABLE", message, details)
