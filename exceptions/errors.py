"""
Custom exception classes for the application.

Request-level failures only. Per-row import problems are reported as
RowResult values and parse diagnostics as ParseWarning values.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.
    
    All custom exceptions inherit from this.
    
    Attributes:
        code: Error code (e.g., "PRODUCT_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """
    
    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)
    
    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""
    
    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""
    
    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""
    
    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# PRODUCT ERRORS
# ===================

class ProductNotFoundError(NotFoundError):
    """Product not found."""

    def __init__(self, product_id: str):
        super().__init__(
            resource="Product",
            identifier=product_id,
            code="PRODUCT_NOT_FOUND"
        )


# ===================
# IMPORT ERRORS
# ===================

class InvalidFileError(AppError):
    """Uploaded file missing, of the wrong type, or empty (400)."""

    def __init__(
        self,
        message: str,
        code: str = "INVALID_FILE",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=400,
            details=details
        )


class UnreadableFileError(InvalidFileError):
    """File bytes cannot be decoded as text. The only fatal import error."""

    def __init__(self, reason: str):
        super().__init__(
            code="UNREADABLE_FILE",
            message="File could not be read as delimited text",
            details={"reason": reason}
        )


# ===================
# EXPORT ERRORS
# ===================

class UnsupportedFormatError(AppError):
    """Unknown export format (400)."""

    def __init__(self, format_name: str, supported: list[str]):
        super().__init__(
            code="UNSUPPORTED_FORMAT",
            message=f"Invalid format. Must be one of: {', '.join(supported)}",
            status_code=400,
            details={"provided": format_name, "valid": supported}
        )


class NoProductsFoundError(NotFoundError):
    """Export selection matched no products."""

    def __init__(self, selection: str):
        super().__init__(
            resource="Products",
            identifier=selection,
            code="NO_PRODUCTS_FOUND"
        )
        self.message = "No products found matching the criteria"


class MapperValidationError(ValidationError):
    """A record cannot be expressed in the target export format."""

    def __init__(self, format_name: str, record_id: Optional[str], reason: str):
        super().__init__(
            code="EXPORT_RECORD_INVALID",
            message=reason,
            details={"format": format_name, "record_id": record_id}
        )
        self.format_name = format_name
        self.record_id = record_id
        self.reason = reason
