# User value: This file serves the dashboard overview of every analyzed and pending document.
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from google.api_core import exceptions as gcs_exceptions

from schemas.responses import AnalysisSummaryResponse
from services.analysis_summary import build_analysis_summary
from utils.stage_logging import log_stage

router = APIRouter()


@router.get("/analysis/summary", response_model=AnalysisSummaryResponse)
def analysis_summary(
    prefix: Optional[str] = Query(default=None, description="Only include documents under this prefix"),
):
    log_stage(document=prefix or "*", stage="SUMMARY_READ", event="STARTED")
    try:
        summary = build_analysis_summary(prefix=prefix)
    except gcs_exceptions.GoogleAPIError as exc:
        log_stage(document=prefix or "*", stage="SUMMARY_READ", event="FAILED", error=str(exc))
        raise HTTPException(
            status_code=503,
            detail={"error_code": "STORAGE_UNAVAILABLE", "error_message": "Failed to fetch analysis summary"},
        ) from exc

    log_stage(
        document=prefix or "*",
        stage="SUMMARY_READ",
        event="COMPLETED",
        total_files=summary.summary.total_files,
        analyzed_files=summary.summary.analyzed_files,
    )
    return summary
