"""
CPI template routes.

The template is the canonical header row; the sample variant adds one
filled-in product so users can see the expected value formats.
"""

from datetime import date

from fastapi import APIRouter, Query, Request
from fastapi.responses import StreamingResponse

from models.export import ExportFormat, ExportOptions
from models.product import Dimensions, NormalizedProductRecord
from parsers.cpi_schema import CPI_COLUMNS
from routes.errors import handle_error
from services.csv_writer import CSVWriter

router = APIRouter()

SAMPLE_RECORD = NormalizedProductRecord(
    upc="012345678905",
    sku="SAMPLE-001",
    title="Stainless Steel Water Bottle 750ml",
    type="Drinkware",
    brand="Acme",
    model="WB-750",
    condition="New",
    quantity=25,
    short_description="Insulated bottle, keeps drinks cold for 24 hours",
    description="<p>Double-wall vacuum insulated stainless steel bottle.</p>",
    weight_grams=340,
    dimensions=Dimensions(length_cm=7.5, width_cm=7.5, height_cm=26),
    price=24.99,
    regular_price=29.99,
    currency="USD",
    sale_price=19.99,
    sale_price_starts=date(2025, 1, 1),
    sale_price_ends=date(2025, 1, 31),
    color="Silver",
    material="Stainless steel",
    images=("https://example.com/images/bottle-front.jpg",),
    additional_attributes={"Published": True, "Tax status": "taxable"},
)


@router.get("/template")
async def cpi_template(
    request: Request,
    sample: bool = Query(False, description="Include one example product row"),
):
    """Download the canonical CPI header (optionally with a sample row)."""
    try:
        rows = []
        if sample:
            mapper = request.app.state.export_service.registry.get_mapper(ExportFormat.CPI.value)
            rows.append(mapper.map(SAMPLE_RECORD, ExportOptions()))

        content = CSVWriter(excel_friendly=True).render(CPI_COLUMNS, rows)
        filename = "cpi_template_sample.csv" if sample else "cpi_template.csv"

        return StreamingResponse(
            iter([content.encode("utf-8")]),
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'}
        )

    except Exception as e:
        return handle_error(e)
