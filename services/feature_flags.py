# User value: This file lets operators switch analysis side effects on or off without a redeploy.
import os


def _flag(name: str, default: bool = False) -> bool:
    raw = str(os.getenv(name, "1" if default else "0")).strip().lower()
    return raw in {"1", "true", "yes", "on"}


BOOL_FLAG_NAMES = (
    "FEATURE_METADATA_WRITE",
    "FEATURE_SIDECAR_WRITE",
    "FEATURE_SUMMARY_SIDECAR_READ",
    "FEATURE_ANALYZER_ADMIN",
)

FEATURE_METADATA_WRITE = _flag("FEATURE_METADATA_WRITE", True)
FEATURE_SIDECAR_WRITE = _flag("FEATURE_SIDECAR_WRITE", True)
FEATURE_SUMMARY_SIDECAR_READ = _flag("FEATURE_SUMMARY_SIDECAR_READ", True)
FEATURE_ANALYZER_ADMIN = _flag("FEATURE_ANALYZER_ADMIN", False)


# User value: keeps the cheap listing path working even when metadata writes are paused.
def is_metadata_write_enabled() -> bool:
    return FEATURE_METADATA_WRITE


def is_sidecar_write_enabled() -> bool:
    return FEATURE_SIDECAR_WRITE


# User value: lets dashboards skip the expensive full-result read under load.
def is_summary_sidecar_read_enabled() -> bool:
    return FEATURE_SUMMARY_SIDECAR_READ


def is_analyzer_admin_enabled() -> bool:
    return FEATURE_ANALYZER_ADMIN
