# User value: This file lets operators inspect which analyzers are configured.
from fastapi import APIRouter, Depends, HTTPException

from routes.analyze import get_job_client
from services.errors import AnalysisError
from services.feature_flags import is_analyzer_admin_enabled
from services.job_client import JobClient

router = APIRouter(prefix="/analyzers", tags=["analyzers"])


def _require_admin() -> None:
    if not is_analyzer_admin_enabled():
        raise HTTPException(
            status_code=404,
            detail={"error_code": "FEATURE_DISABLED", "error_message": "Analyzer admin views are disabled"},
        )


@router.get("")
def list_analyzers(job_client: JobClient = Depends(get_job_client)):
    _require_admin()
    try:
        analyzers = job_client.list_analyzers()
    except AnalysisError as exc:
        raise HTTPException(
            status_code=502,
            detail={"error_code": "ANALYZER_LOOKUP_FAILED", "error_message": str(exc)},
        ) from exc
    return {"analyzers": analyzers}


@router.get("/{analyzer_id}")
def get_analyzer(analyzer_id: str, job_client: JobClient = Depends(get_job_client)):
    _require_admin()
    try:
        return job_client.get_analyzer(analyzer_id)
    except AnalysisError as exc:
        raise HTTPException(
            status_code=502,
            detail={"error_code": "ANALYZER_LOOKUP_FAILED", "error_message": str(exc)},
        ) from exc
