"""
Business logic services.

Each service handles one part of the interchange engine.
"""

from services.product_store import ProductStore, InMemoryProductStore, SupabaseProductStore
from services.csv_writer import CSVWriter, escape_field
from services.import_service import ImportService, decode_payload
from services.export_service import (
    ExportMapper,
    ExportMapperRegistry,
    ExportService,
    default_registry,
)

__all__ = [
    "ProductStore",
    "InMemoryProductStore",
    "SupabaseProductStore",
    "CSVWriter",
    "escape_field",
    "ImportService",
    "decode_payload",
    "ExportMapper",
    "ExportMapperRegistry",
    "ExportService",
    "default_registry",
]
