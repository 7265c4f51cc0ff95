# User value: This file publishes the analysis record shape so clients read results consistently.
from fastapi import APIRouter

from schemas.analysis_contract import (
    APPROVAL_STATUSES,
    CANONICAL_JOB_FIELDS,
    CANONICAL_RESULT_FIELDS,
    CONTRACT_VERSION,
    JOB_STATUSES,
    RESULT_STATUSES,
    SCALAR_SLOTS,
    SIDECAR_SUFFIX,
    TERMINAL_JOB_STATUSES,
)
from services.feature_flags import (
    is_analyzer_admin_enabled,
    is_metadata_write_enabled,
    is_sidecar_write_enabled,
    is_summary_sidecar_read_enabled,
)
from services.metadata_codec import DEFAULT_LIMITS

router = APIRouter()


@router.get("/contract/analysis")
# User value: keeps analysis and job fields consistent across listing and detail views.
def analysis_contract():
    return {
        "contract_version": CONTRACT_VERSION,
        "result_statuses": list(RESULT_STATUSES),
        "job_statuses": list(JOB_STATUSES),
        "terminal_job_statuses": list(TERMINAL_JOB_STATUSES),
        "approval_statuses": list(APPROVAL_STATUSES),
        "canonical_result_fields": list(CANONICAL_RESULT_FIELDS),
        "canonical_job_fields": list(CANONICAL_JOB_FIELDS),
        "metadata": {
            "scalar_slots": list(SCALAR_SLOTS),
            "field_slot_pattern": "kv{i}key|kv{i}value|kv{i}confidence",
            "max_fields": DEFAULT_LIMITS.max_fields,
            "max_key_chars": DEFAULT_LIMITS.max_key_chars,
            "max_value_chars": DEFAULT_LIMITS.max_value_chars,
            "max_text_chars": DEFAULT_LIMITS.max_text_chars,
            "sidecar_suffix": SIDECAR_SUFFIX,
        },
        "capabilities": {
            "metadata_write_enabled": is_metadata_write_enabled(),
            "sidecar_write_enabled": is_sidecar_write_enabled(),
            "summary_sidecar_read_enabled": is_summary_sidecar_read_enabled(),
            "analyzer_admin_enabled": is_analyzer_admin_enabled(),
        },
    }
