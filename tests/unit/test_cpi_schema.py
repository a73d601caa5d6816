"""
Unit tests for the canonical CPI schema.
"""

import pytest

from parsers.cpi_schema import (
    CPI_COLUMNS,
    CPI_COLUMN_COUNT,
    IMAGE_COLUMNS,
    ColumnRole,
    MeasurementKind,
    canonical_name,
    columns,
    empty_row,
    index_of,
    measurement_of,
    role_of,
    validate_header_layout,
)


class TestColumns:
    """Tests for the column list."""

    def test_has_90_columns(self):
        assert CPI_COLUMN_COUNT == 90
        assert len(columns()) == 90

    def test_first_and_last_columns(self):
        """Order starts with Quantity, SKU, UPC and ends with EAN, GTIN, ID."""
        assert CPI_COLUMNS[:3] == ("Quantity", "SKU", "UPC")
        assert CPI_COLUMNS[-3:] == ("EAN", "GTIN", "ID")

    def test_no_duplicates(self):
        assert len(set(CPI_COLUMNS)) == len(CPI_COLUMNS)

    def test_image_slots_are_contiguous(self):
        """Image 1..12 directly follow the Images aggregate."""
        start = index_of("Images")
        assert CPI_COLUMNS[start + 1:start + 13] == IMAGE_COLUMNS

    def test_index_of_is_case_insensitive(self):
        assert index_of("upc") == 2
        assert index_of("  Title ") == 4

    def test_index_of_unknown_raises(self):
        with pytest.raises(ValueError):
            index_of("Not A Column")

    def test_canonical_name(self):
        assert canonical_name("weight (UNIT)") == "Weight (unit)"
        assert canonical_name("whatever") is None

    def test_empty_row(self):
        row = empty_row()
        assert list(row) == list(CPI_COLUMNS)
        assert set(row.values()) == {""}


class TestRoles:
    """Tests for role metadata."""

    def test_upc_is_the_only_required_column(self):
        required = [c for c in CPI_COLUMNS if role_of(c) == ColumnRole.REQUIRED]
        assert required == ["UPC"]

    def test_roles(self):
        assert role_of("Image 7") == ColumnRole.IMAGE
        assert role_of("Images") == ColumnRole.IMAGE
        assert role_of("Published") == ColumnRole.BOOLEAN
        assert role_of("Sale Price") == ColumnRole.PRICE
        assert role_of("Date sale price ends") == ColumnRole.DATE
        assert role_of("Height (unit)") == ColumnRole.UNIT
        assert role_of("Brand") == ColumnRole.NONE

    def test_measurement_kinds(self):
        assert measurement_of("Weight (unit)") == MeasurementKind.WEIGHT
        assert measurement_of("Length (unit)") == MeasurementKind.LENGTH
        assert measurement_of("Title") is None


class TestValidateHeaderLayout:
    """Tests for validate_header_layout."""

    def test_exact_layout_is_valid(self):
        result = validate_header_layout(list(CPI_COLUMNS))

        assert result.is_valid
        assert result.missing == []
        assert result.extra == []
        assert result.out_of_order == []

    def test_case_and_whitespace_ignored(self):
        headers = [f" {c.upper()} " for c in CPI_COLUMNS]

        assert validate_header_layout(headers).is_valid

    def test_missing_column(self):
        headers = [c for c in CPI_COLUMNS if c != "Brand"]

        result = validate_header_layout(headers)

        assert not result.is_valid
        assert result.missing == ["Brand"]
        assert result.out_of_order == []

    def test_extra_column(self):
        headers = list(CPI_COLUMNS) + ["Seller"]

        result = validate_header_layout(headers)

        assert not result.is_valid
        assert result.extra == ["Seller"]

    def test_swapped_columns_are_out_of_order(self):
        headers = list(CPI_COLUMNS)
        headers[0], headers[1] = headers[1], headers[0]

        result = validate_header_layout(headers)

        assert not result.is_valid
        assert result.out_of_order == ["SKU", "Quantity"]

    def test_arbitrary_spreadsheet(self):
        result = validate_header_layout(["Img URL 1", "Product Title", "Retail Price"])

        assert not result.is_valid
        assert len(result.missing) == 90
        assert result.extra == ["Img URL 1", "Product Title", "Retail Price"]
