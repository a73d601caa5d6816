"""
Multi-format export routes.
"""

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse
import structlog

from models.export import ExportRequest
from routes.errors import handle_error

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/multi-format")
async def export_multi_format(body: ExportRequest, request: Request):
    """
    Export selected products as CSV in the requested format.

    Raises:
        400: Unsupported format
        404: No products match the selection
        422: Strict mode and a record fails validation
    """
    try:
        logger.info("export_requested", format=body.format, by_ids=bool(body.selection.ids))

        result = request.app.state.export_service.export(body)
        filename = result.filename()

        return StreamingResponse(
            iter([result.to_bytes()]),
            media_type="text/csv; charset=utf-8",
            headers={
                "Content-Disposition": f'attachment; filename="{filename}"',
                "Cache-Control": "no-cache",
                "X-Export-Rows": str(result.row_count),
                "X-Export-Skipped": str(len(result.skipped)),
            }
        )

    except Exception as e:
        return handle_error(e)


@router.get("/formats")
async def list_formats(request: Request):
    """Available export formats, their headers and option choices."""
    return request.app.state.export_service.registry.describe()
