"""
End-to-end CPI round-trip tests.

A canonical file imported, exported as CPI and imported again must come
back to the same product data: every mapped field, every unmapped column
(via additional attributes) and the images.

Run: pytest tests/test_round_trip.py -v
"""

from models.export import ExportOptions, ExportRequest
from models.imports import RowAction
from models.product import RECORD_DATA_FIELDS
from parsers.cpi_schema import CPI_COLUMNS, index_of
from parsers.csv_tokenizer import tokenize
from services.export_service import ExportService
from services.import_service import ImportService
from services.product_store import InMemoryProductStore

from tests.factories import build_cpi_csv


FULL_ROW = {
    "Quantity": "12",
    "SKU": "BOTTLE-750",
    "UPC": "012345678905",
    "Condition": "New",
    "Title": 'Stainless Steel Bottle 750ml, "Arctic" edition',
    "Type": "Drinkware",
    "Brand": "Acme",
    "Model": "WB-750",
    "Short Description": "Keeps drinks cold\nfor 24 hours",
    "Description": "<p>Double-wall vacuum insulated.</p>",
    "Key Features": "Leak-proof lid; BPA free",
    "Tags": "bottle,outdoor",
    "Weight (unit)": "340g",
    "Length (unit)": "7.5cm",
    "Width (unit)": "7.5cm",
    "Height (unit)": "26cm",
    "Price": "24.99",
    "Regular Price": "29.99",
    "Currency": "USD",
    "Sale Price": "19.99",
    "Date sale price starts": "2025-01-01",
    "Date sale price ends": "2025-01-31",
    "eBay Category Id": "20625",
    "Google Category": "Home & Garden > Kitchen & Dining > Water Bottles",
    "Color": "Silver",
    "Material": "Stainless steel",
    "Pattern": "Brushed",
    "Stock": "40",
    "Tax status": "taxable",
    "Images": "http://x/front.jpg,http://x/back.jpg",
    "Published": "yes",
    "Download limit": "5",
    "Upload Status": "=pending",
    "EAN": "4006381333931",
}


def data_of(record) -> dict:
    return {name: getattr(record, name) for name in RECORD_DATA_FIELDS}


class TestCPIRoundTrip:
    """Import -> export CPI -> import."""

    def test_export_then_reimport_preserves_everything(self):
        """Should rebuild identical records in a fresh store."""
        # Arrange
        first_store = InMemoryProductStore()
        ImportService(first_store).import_file(build_cpi_csv([FULL_ROW]))
        original = first_store.all()[0]

        # Act
        exported = ExportService(first_store).export(ExportRequest(format="cpi"))
        second_store = InMemoryProductStore()
        summary = ImportService(second_store).import_bytes(exported.to_bytes())

        # Assert
        assert summary.layout == "canonical"
        assert summary.created == 1
        assert summary.error_rows == 0
        assert data_of(second_store.all()[0]) == data_of(original)

    def test_values_survive_as_written(self):
        store = InMemoryProductStore()
        ImportService(store).import_file(build_cpi_csv([FULL_ROW]))

        exported = ExportService(store).export(ExportRequest(format="cpi"))

        row = dict(zip(CPI_COLUMNS, tokenize(exported.content).rows[1]))
        assert row["Title"] == FULL_ROW["Title"]
        assert row["Short Description"] == FULL_ROW["Short Description"]
        assert row["Weight (unit)"] == "340g"
        assert row["Height (unit)"] == "26cm"
        assert row["Published"] == "yes"
        assert row["Download limit"] == "5"
        assert row["Upload Status"] == "'=pending"
        assert row["Image 2"] == "http://x/back.jpg"

    def test_reimport_into_same_store_changes_nothing(self):
        store = InMemoryProductStore()
        service = ImportService(store)
        service.import_file(build_cpi_csv([FULL_ROW]))
        before = data_of(store.all()[0])

        exported = ExportService(store).export(ExportRequest(format="cpi"))
        summary = service.import_bytes(exported.to_bytes())

        assert summary.results[0].action == RowAction.UPDATED
        assert summary.results[0].fields == []
        assert len(store) == 1
        assert data_of(store.all()[0]) == before

    def test_semicolon_export_round_trips(self):
        store = InMemoryProductStore()
        ImportService(store).import_file(build_cpi_csv([FULL_ROW]))
        original = store.all()[0]

        request = ExportRequest(format="cpi", options=ExportOptions(delimiter=";"))
        exported = ExportService(store).export(request)
        other = InMemoryProductStore()
        ImportService(other).import_bytes(exported.to_bytes())

        assert data_of(other.all()[0]) == data_of(original)

    def test_tiny_measurements_round_trip(self):
        """Should export sub-1e-4 values as plain decimals the importer accepts."""
        # Arrange
        store = InMemoryProductStore()
        row = {"UPC": "012345678905", "Title": "Feather Weight Sticker", "Weight (unit)": "0.00001", "Length (unit)": "0.00003"}
        ImportService(store).import_file(build_cpi_csv([row]))

        # Act
        exported = ExportService(store).export(ExportRequest(format="cpi"))
        other = InMemoryProductStore()
        summary = ImportService(other).import_bytes(exported.to_bytes())

        # Assert
        exported_row = dict(zip(CPI_COLUMNS, tokenize(exported.content).rows[1]))
        assert exported_row["Weight (unit)"] == "0.00001g"
        assert exported_row["Length (unit)"] == "0.00003cm"
        assert summary.error_rows == 0
        assert other.all()[0].weight_grams == 0.00001
        assert other.all()[0].dimensions.length_cm == 0.00003

    def test_exported_id_is_ignored_on_import(self):
        store = InMemoryProductStore()
        ImportService(store).import_file(build_cpi_csv([FULL_ROW]))
        exported = ExportService(store).export(ExportRequest(format="cpi"))
        exported_id = tokenize(exported.content).rows[1][index_of("ID")]

        other = InMemoryProductStore()
        ImportService(other).import_bytes(exported.to_bytes())

        assert exported_id == store.all()[0].id
        assert other.all()[0].id != exported_id


class TestUpsertScenario:
    """Two rows with one UPC through the HTTP API."""

    def test_created_then_updated(self, test_client, store):
        content = build_cpi_csv([
            {"UPC": "012345678905", "Title": "First Version Of Title"},
            {"UPC": "012345678905", "Title": "Second Version Of Title"},
        ]).encode("utf-8")

        response = test_client.post(
            "/api/products/bulk-import",
            files={"file": ("products.csv", content, "text/csv")},
        )

        result = response.json()["result"]
        assert response.json()["success"] is True
        assert result["created"] == 1
        assert result["updated"] == 1
        assert len(store) == 1
        assert store.all()[0].title == "Second Version Of Title"
