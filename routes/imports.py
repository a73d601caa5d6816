"""
Bulk product import routes.

A file either imports (HTTP 200, per-row outcomes in the body, even when
some rows failed) or is rejected as a whole (HTTP 400: missing, wrong
type, empty or unreadable).
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, File, Query, Request, UploadFile
import structlog

from exceptions import InvalidFileError
from integrations.image_fetch import request_image_fetch
from models.imports import ImportMode
from routes.errors import handle_error

logger = structlog.get_logger(__name__)

router = APIRouter()

ALLOWED_EXTENSIONS = (".csv", ".txt", ".tsv")
ALLOWED_CONTENT_TYPES = frozenset({
    "text/csv",
    "text/plain",
    "text/tab-separated-values",
    "application/csv",
    "application/vnd.ms-excel",  # what some browsers send for .csv
})


def check_upload(file: Optional[UploadFile]) -> UploadFile:
    """
    Reject uploads that are missing or not delimited text.

    Raises:
        InvalidFileError: 400
    """
    if file is None or not file.filename:
        raise InvalidFileError("No file provided", code="NO_FILE")

    name = file.filename.lower()
    content_type = (file.content_type or "").split(";")[0].strip().lower()
    if not name.endswith(ALLOWED_EXTENSIONS) and content_type not in ALLOWED_CONTENT_TYPES:
        raise InvalidFileError(
            "File must be a CSV file",
            code="INVALID_FILE_TYPE",
            details={"filename": file.filename, "content_type": file.content_type}
        )
    return file


@router.post("/bulk-import")
async def bulk_import(
    request: Request,
    background_tasks: BackgroundTasks,
    file: Optional[UploadFile] = File(None),
    dry_run: bool = Query(False, description="Report actions without writing"),
    mode: Optional[ImportMode] = Query(None, description="upsert, create_only or update_only"),
):
    """
    Import products from a CSV file.

    Canonical CPI files map column by column; other layouts are mapped
    heuristically. Rows upsert by UPC / EAN / SKU.

    Raises:
        400: Missing, wrong-type, empty or unreadable file
    """
    try:
        upload = check_upload(file)
        logger.info(
            "bulk_import_upload_received",
            filename=upload.filename,
            content_type=upload.content_type
        )

        content = await upload.read()
        if not content.strip():
            raise InvalidFileError("File is empty", code="EMPTY_FILE")

        service = request.app.state.import_service
        overrides = {"dry_run": dry_run}
        if mode is not None:
            overrides["mode"] = mode
        options = service.options.model_copy(update=overrides)

        summary = service.import_bytes(content, options)

        settings = request.app.state.settings
        if settings.image_fetch_url and not summary.dry_run:
            for record in service.pending_image_fetches(summary):
                background_tasks.add_task(
                    request_image_fetch,
                    settings.image_fetch_url,
                    record.upc,
                    record.title,
                    record.id,
                    settings.image_fetch_timeout,
                )

        return summary.to_response()

    except Exception as e:
        return handle_error(e)
