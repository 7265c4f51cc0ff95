import logging
import os
from typing import List

from services.approval import MIDDLE_BAND_POLICIES
from services.feature_flags import BOOL_FLAG_NAMES

logger = logging.getLogger("api.startup")

_BOOL_VALUES = {"1", "0", "true", "false", "yes", "no", "on", "off"}


def _is_blank(value: str | None) -> bool:
    return value is None or not str(value).strip()


def _validate_redis_url(value: str | None, key: str, errors: List[str]) -> None:
    if _is_blank(value):
        errors.append(f"{key} is required")
        return
    if not (value.startswith("redis://") or value.startswith("rediss://")):
        errors.append(f"{key} must start with redis:// or rediss://")


def _validate_endpoint(value: str | None, errors: List[str]) -> None:
    if _is_blank(value):
        return
    if not value.startswith("https://") and not value.startswith("http://"):
        errors.append("CU_ENDPOINT must start with https:// or http://")


def _validate_bool_flag_env(name: str, errors: List[str]) -> None:
    raw = os.getenv(name)
    if raw is None:
        return
    if str(raw).strip().lower() not in _BOOL_VALUES:
        errors.append(f"{name} must be one of 1,0,true,false,yes,no,on,off")


def _positive_number(name: str, errors: List[str]) -> float | None:
    raw = os.getenv(name)
    if _is_blank(raw):
        return None
    try:
        value = float(raw)
    except ValueError:
        errors.append(f"{name} must be a number")
        return None
    if value <= 0:
        errors.append(f"{name} must be greater than 0")
        return None
    return value


def _validate_poll_settings(errors: List[str], warnings: List[str]) -> None:
    budget = _positive_number("ANALYSIS_POLL_TIMEOUT_SEC", errors)
    interval = _positive_number("ANALYSIS_POLL_INTERVAL_SEC", errors)
    _positive_number("CU_REQUEST_TIMEOUT_SEC", errors)

    concurrency = os.getenv("ANALYSIS_MAX_CONCURRENCY")
    if not _is_blank(concurrency):
        try:
            if int(concurrency) < 1:
                errors.append("ANALYSIS_MAX_CONCURRENCY must be at least 1")
        except ValueError:
            errors.append("ANALYSIS_MAX_CONCURRENCY must be an integer")

    if budget is not None and interval is not None and budget < interval:
        errors.append("ANALYSIS_POLL_TIMEOUT_SEC must be >= ANALYSIS_POLL_INTERVAL_SEC")
    if budget is not None and budget > 600:
        warnings.append("ANALYSIS_POLL_TIMEOUT_SEC exceeds 600s; request handlers may block for long")


def validate_startup_env() -> None:
    errors: List[str] = []
    warnings: List[str] = []

    required = [
        "CU_ENDPOINT",
        "CU_ANALYZER_ID",
        "CU_API_VERSION",
        "GCS_BUCKET_NAME",
    ]
    for key in required:
        if _is_blank(os.getenv(key)):
            errors.append(f"{key} is required")

    _validate_endpoint(os.getenv("CU_ENDPOINT"), errors)
    _validate_redis_url(os.getenv("REDIS_URL"), "REDIS_URL", errors)

    if _is_blank(os.getenv("CU_API_KEY")) and _is_blank(os.getenv("CU_AAD_TOKEN")):
        errors.append("CU_API_KEY or CU_AAD_TOKEN is required")

    _validate_poll_settings(errors, warnings)

    for name in BOOL_FLAG_NAMES:
        _validate_bool_flag_env(name, errors)

    policy = os.getenv("APPROVAL_MIDDLE_BAND_POLICY")
    if not _is_blank(policy) and policy.strip().lower() not in MIDDLE_BAND_POLICIES:
        errors.append(f"APPROVAL_MIDDLE_BAND_POLICY must be one of {', '.join(MIDDLE_BAND_POLICIES)}")
    elif _is_blank(policy) or policy.strip().lower() == "random":
        warnings.append("APPROVAL_MIDDLE_BAND_POLICY is random; 70-90% confidence verdicts are not reproducible")

    if _is_blank(os.getenv("GOOGLE_APPLICATION_CREDENTIALS_JSON")):
        warnings.append(
            "GOOGLE_APPLICATION_CREDENTIALS_JSON is not set; relying on ambient ADC credentials"
        )

    if errors:
        for err in errors:
            logger.error("startup_env_invalid %s", err)
        raise RuntimeError("Startup env validation failed: " + "; ".join(errors))

    for warning in warnings:
        logger.warning("startup_env_warning %s", warning)

    logger.info(
        "startup_env_validated keys=%s",
        ["CU_ENDPOINT", "CU_ANALYZER_ID", "CU_API_VERSION", "GCS_BUCKET_NAME", "REDIS_URL"],
    )
