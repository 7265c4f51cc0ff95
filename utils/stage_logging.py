import json
import logging
from datetime import datetime, timezone
from typing import Any

from utils.request_id import get_request_id

logger = logging.getLogger("api.stage")


def _norm(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


def log_stage(
    *,
    document: str,
    stage: str,
    event: str,
    job_id: str | None = None,
    operation_id: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    payload = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "document": document,
        "stage": stage,
        "event": event.upper(),
    }

    if job_id:
        payload["job_id"] = job_id
    if operation_id:
        payload["operation_id"] = operation_id
    request_id = get_request_id()
    if request_id:
        payload["request_id"] = request_id
    if error:
        payload["error"] = error

    for key, value in extra.items():
        norm = _norm(value)
        if norm is not None:
            payload[key] = norm

    msg = json.dumps(payload, ensure_ascii=False)
    if error or payload["event"] == "FAILED":
        logger.error("stage_event %s", msg)
    elif payload["event"] == "DEGRADED":
        logger.warning("stage_event %s", msg)
    else:
        logger.info("stage_event %s", msg)
