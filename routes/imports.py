"""
Bulk import API routes.

Endpoints:
    POST /api/imports/bulk                    run a bulk import
    GET  /api/imports/{session_id}/progress   poll a run's counters
    POST /api/imports/attributes              filter facets for a source
"""

from typing import Any, Optional

import structlog
from fastapi import APIRouter, Body, Header
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from config import settings
from exceptions import AppError, ImportPayloadError
from models.import_session import (
    AttributeOptionsRequest,
    AttributeOptionsResponse,
    BulkImportRequest,
    BulkImportResponse,
    ImportProgressResponse,
)
from services.import_service import get_import_service
from services.selection_filter import build_attribute_options, count_matching
from services.source_transformer import fetch_api_items

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/imports", tags=["Imports"])


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


def _validate(model, payload: Any):
    """Validate a raw JSON body, raising ImportPayloadError on failure."""
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        errors = [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        raise ImportPayloadError("Invalid import payload", {"errors": errors})


# ===================
# ROUTES
# ===================

@router.post("/bulk", response_model=BulkImportResponse)
def bulk_import(
    payload: Any = Body(...),
    x_shop_domain: Optional[str] = Header(None, alias="X-Shop-Domain")
):
    """
    Run a bulk import.

    Sync handler: the import loop blocks, so FastAPI runs it in the
    threadpool and progress polling stays responsive.
    """
    try:
        request = _validate(BulkImportRequest, payload)
        shop = x_shop_domain or settings.shopify_shop_domain

        service = get_import_service()
        response = service.run_bulk_import(shop, request)
        return JSONResponse(content=response.model_dump(mode="json", by_alias=True))

    except Exception as e:
        return handle_error(e)


@router.get("/{session_id}/progress", response_model=ImportProgressResponse)
async def get_import_progress(session_id: str):
    """
    Get progress of an import session.

    Returns counters, total and the product currently being processed.
    """
    try:
        service = get_import_service()
        progress = service.get_progress(session_id)
        return JSONResponse(content=progress.model_dump(mode="json", by_alias=True))

    except Exception as e:
        return handle_error(e)


@router.post("/attributes", response_model=AttributeOptionsResponse)
def get_attribute_options(payload: Any = Body(...)):
    """
    Distinct attribute values (with counts) the filter step can select.

    CSV sources use their headers as keys; API sources report every key
    seen across the fetched items.
    """
    try:
        request = _validate(AttributeOptionsRequest, payload)

        if request.data_source == "api" and request.api_credentials:
            records = fetch_api_items(request.api_credentials)
            keys = None
        elif request.data_source == "csv" and request.csv_data:
            records = request.csv_data.rows
            keys = request.csv_data.headers or None
        else:
            raise ImportPayloadError("No data source provided")

        response = AttributeOptionsResponse(
            total_records=len(records),
            matching_records=count_matching(records, request.import_filters.selected_values),
            attributes=build_attribute_options(records, keys),
        )
        return JSONResponse(content=response.model_dump(mode="json", by_alias=True))

    except Exception as e:
        return handle_error(e)
