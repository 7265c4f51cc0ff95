# User value: This file builds dashboard and listing views from stored analysis records without re-analyzing anything.
import logging
import math
import re
from datetime import datetime, timezone
from typing import Callable, Optional

from schemas.analysis import AnalysisResult
from schemas.analysis_contract import (
    APPROVAL_APPROVED,
    APPROVAL_REJECTED,
    RESULT_COMPLETED,
    RESULT_FAILED,
    SLOT_CONFIDENCE,
    SLOT_STATUS,
    UNKNOWN_DOCUMENT_TYPE,
)
from schemas.responses import (
    AnalysisSummary,
    AnalysisSummaryResponse,
    DocumentListItem,
    DocumentListResponse,
    DocumentSummaryDetails,
    DocumentSummaryItem,
    ExtractedFieldView,
    UnmappedFile,
)
from services import approval, gcs
from services.feature_flags import is_summary_sidecar_read_enabled
from services.metadata_codec import decode, resolve_document_type

logger = logging.getLogger("api.analysis_summary")

UNMAPPED_PREVIEW_LIMIT = 8
EXTRACTED_FIELD_PREVIEW = 3
ISSUES_BELOW = 70
RECOMMENDATIONS_BELOW = 50

LOW_CONFIDENCE_ISSUES = ["Low confidence detection", "Manual review required"]
QUALITY_RECOMMENDATIONS = ["Re-upload with better quality", "Ensure document is clear"]

# Checked in order; first keyword contained in the document type wins.
DISPLAY_NAMES = (
    ("unknown", "Unidentified Document"),
    ("invoice", "Invoice"),
    ("receipt", "Receipt"),
    ("contract", "Contract"),
    ("certificate", "BANK Certificate"),
    ("identity", "Identity Document"),
    ("statement", "Statement"),
    ("report", "Suitability report"),
    ("plan", "Verification plan"),
    ("consent", "Owners consent"),
    ("environmental", "Statement of environmental effects"),
)

_IMAGE_EXTS = {"jpg", "jpeg", "png", "gif"}
_DOCUMENT_EXTS = {"doc", "docx"}
_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_bytes(size: Optional[int], digits: int = 1) -> str:
    size = int(size or 0)
    if size <= 0:
        return "0 Bytes"
    index = 0
    while size >= 1024 ** (index + 1) and index < len(_SIZE_UNITS) - 1:
        index += 1
    scaled = round(size / (1024 ** index), digits)
    text = f"{scaled:.{digits}f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[index]}"


def file_type(name: str) -> str:
    ext = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    if ext in _IMAGE_EXTS:
        return "image"
    if ext == "pdf":
        return "pdf"
    if ext in _DOCUMENT_EXTS:
        return "document"
    return "file"


def display_name(file_name: str, document_type: str) -> str:
    base = (document_type or "").lower()
    for keyword, label in DISPLAY_NAMES:
        if keyword in base:
            return label
    return document_type or file_name


def summary_id(file_name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "", file_name)


def confidence_percent(metadata: dict) -> float:
    try:
        number = float(metadata.get(SLOT_CONFIDENCE) or 0)
    except ValueError:
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number * 100


def _iso(value: Optional[datetime]) -> str:
    return (value or datetime.now(timezone.utc)).isoformat()


def _load_sidecar(name: str) -> Optional[AnalysisResult]:
    if not is_summary_sidecar_read_enabled():
        return None
    return gcs.load_sidecar_or_none(document_name=name)


# =========================================================
# SUMMARY
# =========================================================
def _summary_item(
    name: str,
    metadata: dict,
    sidecar: Optional[AnalysisResult],
    decision,
) -> DocumentSummaryItem:
    percent = confidence_percent(metadata)
    fields = sidecar.fields if sidecar is not None else decode(metadata)
    document_type = resolve_document_type(metadata, fields)
    if document_type == UNKNOWN_DOCUMENT_TYPE and sidecar is not None and sidecar.document_type:
        document_type = sidecar.document_type

    details = DocumentSummaryDetails(
        extracted_fields=[
            ExtractedFieldView(
                field=entry.key,
                value=entry.value,
                confidence=round_half_up(entry.confidence * 100),
            )
            for entry in fields[:EXTRACTED_FIELD_PREVIEW]
        ],
        issues=list(LOW_CONFIDENCE_ISSUES) if percent < ISSUES_BELOW else None,
        recommendations=list(QUALITY_RECOMMENDATIONS) if percent < RECOMMENDATIONS_BELOW else None,
    )
    return DocumentSummaryItem(
        id=summary_id(name),
        name=display_name(name, document_type),
        type=document_type,
        match_percentage=round_half_up(percent),
        criteria=decision.criteria,
        approval_status=decision.status,
        deterministic=decision.deterministic,
        details=details,
    )


def build_analysis_summary(
    *,
    prefix: Optional[str] = None,
    policy: Optional[str] = None,
    rng: Optional[Callable[[], float]] = None,
) -> AnalysisSummaryResponse:
    """
    Aggregate every stored document into dashboard counters.

    A document counts as analyzed when its side-record says completed; the
    sidecar only enriches the extracted-field preview.
    """
    classify_kwargs = {"policy": policy}
    if rng is not None:
        classify_kwargs["rng"] = rng

    summary = AnalysisSummary()
    items = []
    unmapped = []

    for blob in gcs.list_document_blobs(prefix=prefix):
        summary.total_files += 1
        metadata = dict(blob.metadata or {})

        if metadata.get(SLOT_STATUS) != RESULT_COMPLETED:
            unmapped.append(UnmappedFile(name=blob.name, type=file_type(blob.name), size=format_bytes(blob.size)))
            continue

        summary.analyzed_files += 1
        decision = approval.classify(confidence_percent(metadata), **classify_kwargs)
        if decision.status == APPROVAL_APPROVED:
            summary.approved_files += 1
        elif decision.status == APPROVAL_REJECTED:
            summary.rejected_files += 1
            summary.major_errors += 1

        items.append(_summary_item(blob.name, metadata, _load_sidecar(blob.name), decision))

    summary.unmapped_files = len(unmapped)
    if summary.total_files:
        summary.overall_progress = round_half_up(summary.analyzed_files / summary.total_files * 100)

    logger.info(
        "analysis_summary_built total=%s analyzed=%s unmapped=%s",
        summary.total_files,
        summary.analyzed_files,
        summary.unmapped_files,
    )
    return AnalysisSummaryResponse(
        summary=summary,
        analysis_results=items,
        unmapped_files=unmapped[:UNMAPPED_PREVIEW_LIMIT],
    )


# =========================================================
# FILE LISTING
# =========================================================
def document_state(metadata: dict) -> str:
    status = (metadata or {}).get(SLOT_STATUS)
    if status == RESULT_COMPLETED:
        return "analyzed"
    if status == RESULT_FAILED:
        return "rejected"
    return "pending"


# User value: shows extracted key/value pairs straight from metadata and only reads the sidecar when metadata has none.
def list_documents(*, prefix: Optional[str] = None) -> DocumentListResponse:
    files = []
    for blob in gcs.list_document_blobs(prefix=prefix):
        metadata = {str(k): str(v) for k, v in (blob.metadata or {}).items() if v is not None}
        state = document_state(metadata)

        fields = decode(metadata)
        sidecar = None
        if state == "analyzed":
            if not fields:
                sidecar = _load_sidecar(blob.name)
                if sidecar is not None:
                    fields = list(sidecar.fields)
            document_type = resolve_document_type(metadata, fields)
        else:
            document_type = None

        files.append(
            DocumentListItem(
                id=blob.name,
                name=blob.name,
                size=format_bytes(blob.size, digits=2),
                status=state,
                upload_date=_iso(blob.updated),
                document_type=document_type,
                key_value_pairs=fields if state == "analyzed" else [],
                analysis_result=sidecar,
                metadata=metadata,
            )
        )

    files.sort(key=lambda item: item.upload_date, reverse=True)
    return DocumentListResponse(files=files)
