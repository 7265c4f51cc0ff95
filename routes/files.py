# User value: This file lists stored documents with their analysis state and extracted fields.
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from google.api_core import exceptions as gcs_exceptions

from schemas.responses import DocumentListResponse
from services.analysis_summary import list_documents
from utils.stage_logging import log_stage

router = APIRouter()


@router.get("/files", response_model=DocumentListResponse)
def list_files(
    prefix: Optional[str] = Query(default=None, description="Only list documents under this prefix"),
):
    try:
        listing = list_documents(prefix=prefix)
    except gcs_exceptions.GoogleAPIError as exc:
        log_stage(document=prefix or "*", stage="FILES_LIST", event="FAILED", error=str(exc))
        raise HTTPException(
            status_code=503,
            detail={"error_code": "STORAGE_UNAVAILABLE", "error_message": "Failed to fetch files"},
        ) from exc

    log_stage(document=prefix or "*", stage="FILES_LIST", event="COMPLETED", count=len(listing.files))
    return listing
