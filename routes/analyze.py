# User value: This file lets users trigger document analysis and follow its progress.
# routes/analyze.py
from functools import lru_cache

import redis
from fastapi import APIRouter, Depends, HTTPException

from schemas.requests import AnalyzeRequest, BatchAnalyzeRequest
from schemas.responses import (
    AnalyzeResponse,
    BatchAnalyzeResponse,
    BatchItemResponse,
    JobStatusResponse,
)
from services import analysis_orchestrator
from services.errors import (
    AnalysisError,
    AnalysisTimedOut,
    DocumentNotFound,
    StorageUnavailable,
    StorageWriteError,
    SubmissionError,
)
from services.job_client import ContentUnderstandingSettings, JobClient
from utils.metrics import incr
from utils.request_id import get_request_id
from utils.stage_logging import log_stage

router = APIRouter()


@lru_cache(maxsize=1)
def get_job_client() -> JobClient:
    return JobClient(ContentUnderstandingSettings.from_env())


# User value: turns analysis failures into clear, stable error codes.
def to_http_error(exc: AnalysisError) -> HTTPException:
    if isinstance(exc, DocumentNotFound):
        return HTTPException(status_code=404, detail={"error_code": "DOCUMENT_NOT_FOUND", "error_message": str(exc)})
    if isinstance(exc, SubmissionError):
        return HTTPException(status_code=502, detail={"error_code": "ANALYSIS_SUBMIT_FAILED", "error_message": str(exc)})
    if isinstance(exc, AnalysisTimedOut):
        return HTTPException(status_code=504, detail={"error_code": "ANALYSIS_TIMED_OUT", "error_message": str(exc)})
    if isinstance(exc, (StorageWriteError, StorageUnavailable)):
        return HTTPException(status_code=503, detail={"error_code": "STORAGE_UNAVAILABLE", "error_message": str(exc)})
    return HTTPException(status_code=500, detail={"error_code": "ANALYSIS_FAILED", "error_message": str(exc)})


@router.post("/analyze", response_model=AnalyzeResponse)
# User value: analyzes one stored document and returns the normalized result.
def analyze(
    payload: AnalyzeRequest,
    job_client: JobClient = Depends(get_job_client),
):
    file_name = payload.file_name.strip()
    if not file_name:
        raise HTTPException(status_code=400, detail={"error_code": "INVALID_REQUEST", "error_message": "File name is required"})

    request_id = get_request_id() or ""
    try:
        job_id, result = analysis_orchestrator.analyze_document(
            file_name,
            job_client=job_client,
            request_id=request_id,
        )
    except AnalysisError as exc:
        incr("analysis_requests_total", outcome="error", error=exc.__class__.__name__)
        raise to_http_error(exc) from exc

    incr("analysis_requests_total", outcome=result.status)
    return AnalyzeResponse(
        success=result.status != "failed",
        job_id=job_id,
        request_id=request_id or None,
        analysis_result=result,
    )


@router.post("/analyze/batch", response_model=BatchAnalyzeResponse)
# User value: analyzes several documents at once so large uploads finish sooner.
def analyze_batch(
    payload: BatchAnalyzeRequest,
    job_client: JobClient = Depends(get_job_client),
):
    names = [name.strip() for name in payload.file_names if name and name.strip()]
    if not names:
        raise HTTPException(status_code=400, detail={"error_code": "INVALID_REQUEST", "error_message": "At least one file name is required"})

    outcomes = analysis_orchestrator.analyze_documents(
        names,
        job_client=job_client,
        request_id=get_request_id() or "",
    )
    items = [BatchItemResponse(**outcome) for outcome in outcomes]
    completed = sum(1 for item in items if item.status == "completed")
    return BatchAnalyzeResponse(items=items, completed=completed, failed=len(items) - completed)


@router.get("/analyze/jobs/{job_id}", response_model=JobStatusResponse)
# User value: shows where an analysis run is without waiting on it.
def get_analysis_job(job_id: str):
    log_stage(document="", stage="JOB_STATUS_READ", event="STARTED", job_id=job_id)
    try:
        data = analysis_orchestrator.get_job_status(job_id)
    except redis.RedisError as exc:
        log_stage(document="", stage="JOB_STATUS_READ", event="FAILED", job_id=job_id, error=str(exc))
        raise HTTPException(
            status_code=503,
            detail={"error_code": "JOB_STORE_UNAVAILABLE", "error_message": "Job status store unavailable"},
        ) from exc

    if not data:
        log_stage(document="", stage="JOB_STATUS_READ", event="FAILED", job_id=job_id, error="Job not found")
        raise HTTPException(status_code=404, detail="Job not found")

    cleaned = {k: v for k, v in data.items() if v != ""}
    cleaned["job_id"] = job_id
    return JobStatusResponse(**{k: v for k, v in cleaned.items() if k in JobStatusResponse.model_fields})
