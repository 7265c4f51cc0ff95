# User value: This file runs one document through analysis end to end and stores results for fast listings.
# services/analysis_orchestrator.py
import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Optional

import redis

import config
from schemas.analysis import AnalysisResult
from schemas.analysis_contract import (
    CONTRACT_VERSION,
    JOB_STATUS_COMPLETED,
    JOB_STATUS_FAILED,
    JOB_STATUS_PROCESSING,
    JOB_STATUS_QUEUED,
    JOB_STATUS_TIMED_OUT,
    RESULT_COMPLETED,
    RESULT_PROCESSING,
)
from services import gcs
from services.errors import AnalysisError, AnalysisTimedOut, DocumentNotFound, StorageUnavailable, SubmissionError
from services.feature_flags import is_metadata_write_enabled, is_sidecar_write_enabled
from services.job_client import JobClient
from services.metadata_codec import DEFAULT_LIMITS, MetadataLimits, describe_degradation, encode
from services.redis_client import get_redis
from utils.metrics import incr
from utils.stage_logging import log_stage
from utils.status_machine import transition_hset

logger = logging.getLogger("api.analysis")


def job_key(job_id: str) -> str:
    return f"analysis_job:{job_id}"


def document_jobs_key(document: str) -> str:
    return f"document_jobs:{document}"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# User value: records progress for status checks without ever failing the analysis itself.
def _track(job_id: str, document: str, mapping: dict, context: str, request_id: str = "") -> None:
    mapping = {k: ("" if v is None else v) for k, v in mapping.items()}
    mapping["updated_at"] = _now()
    try:
        r = get_redis()
        ok, current, target = transition_hset(
            r,
            key=job_key(job_id),
            mapping=mapping,
            context=context,
            request_id=request_id,
        )
        if context == "ANALYSIS_INIT" and ok:
            r.lpush(document_jobs_key(document), job_id)
    except redis.RedisError as exc:
        incr("analysis_tracking_failed_total", context=context)
        log_stage(
            document=document,
            stage="REDIS_JOB_STATUS",
            event="FAILED",
            job_id=job_id,
            context=context,
            error=f"{exc.__class__.__name__}: {exc}",
        )


def get_job_status(job_id: str) -> Optional[dict]:
    data = get_redis().hgetall(job_key(job_id))
    return data or None


# =========================================================
# PERSISTENCE (BEST EFFORT)
# =========================================================
def persist_result(
    document: str,
    result: AnalysisResult,
    *,
    limits: MetadataLimits = DEFAULT_LIMITS,
    job_id: Optional[str] = None,
) -> dict:
    """
    Write the flat side-record and the full sidecar for ``document``.

    Failures are logged and counted, never raised.
    """
    outcome = {"metadata_written": False, "sidecar_written": False}
    if result.status == RESULT_PROCESSING:
        return outcome

    if is_metadata_write_enabled():
        degraded = describe_degradation(result, limits)
        if degraded:
            incr("analysis_metadata_degraded_total", amount=len(degraded))
            log_stage(
                document=document,
                stage="METADATA_ENCODE",
                event="DEGRADED",
                job_id=job_id,
                reasons="|".join(degraded),
            )
        try:
            gcs.write_metadata(blob_path=document, metadata=encode(result, limits))
            outcome["metadata_written"] = True
            log_stage(document=document, stage="METADATA_WRITE", event="COMPLETED", job_id=job_id)
        except Exception as exc:
            incr("analysis_persist_failed_total", target="metadata")
            log_stage(
                document=document,
                stage="METADATA_WRITE",
                event="FAILED",
                job_id=job_id,
                error=f"{exc.__class__.__name__}: {exc}",
            )

    if result.status == RESULT_COMPLETED and is_sidecar_write_enabled():
        try:
            name = gcs.write_sidecar(document_name=document, result=result)
            outcome["sidecar_written"] = True
            log_stage(document=document, stage="SIDECAR_WRITE", event="COMPLETED", job_id=job_id, sidecar=name)
        except Exception as exc:
            incr("analysis_persist_failed_total", target="sidecar")
            log_stage(
                document=document,
                stage="SIDECAR_WRITE",
                event="FAILED",
                job_id=job_id,
                error=f"{exc.__class__.__name__}: {exc}",
            )

    return outcome


# =========================================================
# SINGLE DOCUMENT
# =========================================================
def analyze_document(
    document: str,
    *,
    job_client: JobClient,
    job_id: Optional[str] = None,
    request_id: str = "",
    timeout_sec: Optional[float] = None,
    interval_sec: Optional[float] = None,
    limits: MetadataLimits = DEFAULT_LIMITS,
) -> tuple[str, AnalysisResult]:
    job_id = job_id or uuid.uuid4().hex
    now_ts = _now()

    log_stage(document=document, stage="ANALYSIS_REQUEST", event="STARTED", job_id=job_id)
    _track(
        job_id,
        document,
        {
            "contract_version": CONTRACT_VERSION,
            "job_id": job_id,
            "document": document,
            "status": JOB_STATUS_QUEUED,
            "stage": "Queued",
            "created_at": now_ts,
            "request_id": request_id,
        },
        context="ANALYSIS_INIT",
        request_id=request_id,
    )

    try:
        exists = gcs.document_exists(blob_path=document)
        if exists:
            locator = gcs.generate_signed_url(blob_path=document, expiration_minutes=config.SIGNED_URL_EXPIRATION_MIN)
    except Exception as exc:
        error = f"{exc.__class__.__name__}: {exc}"
        incr("analysis_storage_failed_total", target="lookup")
        _track(job_id, document, {"status": JOB_STATUS_FAILED, "stage": "Storage unavailable", "error": error},
               context="ANALYSIS_LOOKUP", request_id=request_id)
        log_stage(document=document, stage="ANALYSIS_LOOKUP", event="FAILED", job_id=job_id, error=error)
        raise StorageUnavailable(f"Storage unavailable for {document}: {error}") from exc

    if not exists:
        _track(job_id, document, {"status": JOB_STATUS_FAILED, "stage": "Document not found", "error": "Document not found"},
               context="ANALYSIS_LOOKUP", request_id=request_id)
        log_stage(document=document, stage="ANALYSIS_REQUEST", event="FAILED", job_id=job_id, error="Document not found")
        raise DocumentNotFound(f"Document not found: {document}")

    log_stage(document=document, stage="ANALYSIS_SUBMIT", event="STARTED", job_id=job_id)
    try:
        handle = job_client.submit(locator)
    except SubmissionError as exc:
        _track(job_id, document, {"status": JOB_STATUS_FAILED, "stage": "Submission rejected", "error": str(exc)},
               context="ANALYSIS_SUBMIT", request_id=request_id)
        log_stage(document=document, stage="ANALYSIS_SUBMIT", event="FAILED", job_id=job_id, error=str(exc))
        raise

    log_stage(
        document=document,
        stage="ANALYSIS_SUBMIT",
        event="COMPLETED",
        job_id=job_id,
        operation_id=handle.operation_id,
    )
    _track(
        job_id,
        document,
        {"status": JOB_STATUS_PROCESSING, "stage": "Polling analyzer", "operation_id": handle.operation_id},
        context="ANALYSIS_POLL",
        request_id=request_id,
    )

    try:
        result = job_client.poll(handle, timeout_sec=timeout_sec, interval_sec=interval_sec)
    except AnalysisTimedOut as exc:
        incr("analysis_finished_total", outcome="timed_out")
        _track(job_id, document, {"status": JOB_STATUS_TIMED_OUT, "stage": "Timed out", "error": str(exc)},
               context="ANALYSIS_POLL", request_id=request_id)
        log_stage(
            document=document,
            stage="ANALYSIS_POLL",
            event="FAILED",
            job_id=job_id,
            operation_id=handle.operation_id,
            attempts=exc.attempts,
            error=str(exc),
        )
        raise

    persisted = persist_result(document, result, limits=limits, job_id=job_id)

    if result.status == RESULT_COMPLETED:
        terminal = {"status": JOB_STATUS_COMPLETED, "stage": "Completed"}
    else:
        error = result.error or "Analysis result not usable"
        terminal = {"status": JOB_STATUS_FAILED, "stage": "Analyzer failed", "error": error}

    _track(
        job_id,
        document,
        {
            **terminal,
            "result_status": result.status,
            "document_type": result.document_type,
            "confidence": result.confidence,
            "field_count": len(result.fields),
        },
        context="ANALYSIS_FINISH",
        request_id=request_id,
    )
    incr("analysis_finished_total", outcome=result.status)
    log_stage(
        document=document,
        stage="ANALYSIS_REQUEST",
        event="COMPLETED" if result.status == RESULT_COMPLETED else "FAILED",
        job_id=job_id,
        operation_id=handle.operation_id,
        result_status=result.status,
        document_type=result.document_type,
        field_count=len(result.fields),
        metadata_written=persisted["metadata_written"],
        sidecar_written=persisted["sidecar_written"],
        error=result.error,
    )
    return job_id, result


# =========================================================
# BATCH
# =========================================================
def analyze_documents(
    documents: list[str],
    *,
    job_client: JobClient,
    max_workers: Optional[int] = None,
    request_id: str = "",
    timeout_sec: Optional[float] = None,
    interval_sec: Optional[float] = None,
) -> list[dict]:
    """
    Analyze several documents in parallel, bounded by ``max_workers``.

    One entry per distinct document, in input order. Per-document errors are
    reported in the entry instead of aborting the batch.
    """
    ordered = list(dict.fromkeys(d for d in documents if d))
    if not ordered:
        return []

    workers = max(1, min(max_workers or config.ANALYSIS_MAX_CONCURRENCY, len(ordered)))
    job_ids = {document: uuid.uuid4().hex for document in ordered}

    def _run(document: str) -> dict:
        try:
            job_id, result = analyze_document(
                document,
                job_client=job_client,
                job_id=job_ids[document],
                request_id=request_id,
                timeout_sec=timeout_sec,
                interval_sec=interval_sec,
            )
        except AnalysisError as exc:
            return {
                "file_name": document,
                "job_id": job_ids[document],
                "status": "timed_out" if isinstance(exc, AnalysisTimedOut) else "failed",
                "error": str(exc),
                "analysis_result": None,
            }
        return {
            "file_name": document,
            "job_id": job_id,
            "status": result.status,
            "error": result.error,
            "analysis_result": result,
        }

    logger.info("analysis_batch_started documents=%s workers=%s", len(ordered), workers)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        outcomes = list(executor.map(_run, ordered))

    incr("analysis_batch_total", documents=len(ordered))
    return outcomes
