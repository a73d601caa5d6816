"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    DatabaseError,

    # Product
    ProductNotFoundError,

    # Import
    InvalidFileError,
    UnreadableFileError,

    # Export
    UnsupportedFormatError,
    NoProductsFoundError,
    MapperValidationError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "DatabaseError",

    # Product
    "ProductNotFoundError",

    # Import
    "InvalidFileError",
    "UnreadableFileError",

    # Export
    "UnsupportedFormatError",
    "NoProductsFoundError",
    "MapperValidationError",
]
