# User value: This file keeps analysis status names and metadata slots stable across API, storage and listings.
CONTRACT_VERSION = "2026-10-18-analysis-01"

# Remote analyzer operation states (compared case-insensitively).
OPERATION_RUNNING = "running"
OPERATION_SUCCEEDED = "succeeded"
OPERATION_FAILED = "failed"
OPERATION_TIMED_OUT = "timedout"

TERMINAL_OPERATION_STATES = (
    OPERATION_SUCCEEDED,
    OPERATION_FAILED,
    OPERATION_TIMED_OUT,
)

# AnalysisResult.status values.
RESULT_PROCESSING = "processing"
RESULT_COMPLETED = "completed"
RESULT_FAILED = "failed"

RESULT_STATUSES = (
    RESULT_PROCESSING,
    RESULT_COMPLETED,
    RESULT_FAILED,
)

# Tracked analysis job statuses (redis).
JOB_STATUS_QUEUED = "QUEUED"
JOB_STATUS_PROCESSING = "PROCESSING"
JOB_STATUS_COMPLETED = "COMPLETED"
JOB_STATUS_FAILED = "FAILED"
JOB_STATUS_TIMED_OUT = "TIMED_OUT"

JOB_STATUSES = (
    JOB_STATUS_QUEUED,
    JOB_STATUS_PROCESSING,
    JOB_STATUS_COMPLETED,
    JOB_STATUS_FAILED,
    JOB_STATUS_TIMED_OUT,
)

TERMINAL_JOB_STATUSES = (
    JOB_STATUS_COMPLETED,
    JOB_STATUS_FAILED,
    JOB_STATUS_TIMED_OUT,
)

# Flat side-record slots.
SLOT_DOCUMENT_TYPE = "documenttype"
SLOT_DOCTYPE_LEGACY = "doctype"
SLOT_CONFIDENCE = "confidence"
SLOT_STATUS = "status"
SLOT_PROCESSED_AT = "processedat"
SLOT_EXTRACTED_TEXT = "extractedtext"

SCALAR_SLOTS = (
    SLOT_DOCUMENT_TYPE,
    SLOT_CONFIDENCE,
    SLOT_STATUS,
    SLOT_PROCESSED_AT,
    SLOT_EXTRACTED_TEXT,
)

FIELD_SLOT_ROLES = ("key", "value", "confidence")

UNKNOWN_DOCUMENT_TYPE = "unknown"

# Sidecar object holding the full AnalysisResult.
SIDECAR_SUFFIX = ".analysis.json"
SIDECAR_RESULT_TYPE = "document-analysis"

APPROVAL_APPROVED = "Approved"
APPROVAL_REJECTED = "Rejected"
APPROVAL_PENDING = "Pending"
APPROVAL_NOT_APPLICABLE = "N/A"

APPROVAL_STATUSES = (
    APPROVAL_APPROVED,
    APPROVAL_REJECTED,
    APPROVAL_PENDING,
    APPROVAL_NOT_APPLICABLE,
)

CANONICAL_RESULT_FIELDS = (
    "id",
    "status",
    "document_type",
    "confidence",
    "extracted_text",
    "fields",
    "tables",
    "processed_at",
    "error",
)

CANONICAL_JOB_FIELDS = (
    "contract_version",
    "request_id",
    "job_id",
    "document",
    "status",
    "stage",
    "operation_id",
    "result_status",
    "document_type",
    "confidence",
    "field_count",
    "error",
    "created_at",
    "updated_at",
)
