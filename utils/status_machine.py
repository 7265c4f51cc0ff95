# User value: This file keeps analysis job status moving forward only, so a finished run is never reopened.
import logging
from typing import Optional

from schemas.analysis_contract import (
    JOB_STATUS_QUEUED,
    JOB_STATUS_PROCESSING,
    JOB_STATUS_COMPLETED,
    JOB_STATUS_FAILED,
    JOB_STATUS_TIMED_OUT,
    TERMINAL_JOB_STATUSES,
)

logger = logging.getLogger("api.status_machine")

_ANY_TERMINAL = set(TERMINAL_JOB_STATUSES)

_ALLOWED = {
    None: {JOB_STATUS_QUEUED, JOB_STATUS_PROCESSING} | _ANY_TERMINAL,
    JOB_STATUS_QUEUED: {JOB_STATUS_QUEUED, JOB_STATUS_PROCESSING} | _ANY_TERMINAL,
    JOB_STATUS_PROCESSING: {JOB_STATUS_PROCESSING} | _ANY_TERMINAL,
    JOB_STATUS_COMPLETED: {JOB_STATUS_COMPLETED},
    JOB_STATUS_FAILED: {JOB_STATUS_FAILED},
    JOB_STATUS_TIMED_OUT: {JOB_STATUS_TIMED_OUT},
}


def _norm(status: Optional[str]) -> Optional[str]:
    if status is None:
        return None
    s = str(status).strip().upper()
    return s or None


# User value: rejects moves out of a terminal status so users never see a finished analysis flip back.
def is_allowed_transition(current: Optional[str], target: Optional[str]) -> bool:
    target_n = _norm(target)
    if not target_n:
        return True
    current_n = _norm(current)
    allowed = _ALLOWED.get(current_n, _ALLOWED[None])
    return target_n in allowed


def is_terminal(status: Optional[str]) -> bool:
    return _norm(status) in _ANY_TERMINAL


# User value: writes a status update only when the transition is legal.
def transition_hset(r, *, key: str, mapping: dict, context: str, request_id: str = "") -> tuple[bool, Optional[str], Optional[str]]:
    target = _norm(mapping.get("status"))
    if not target:
        r.hset(key, mapping=mapping)
        return True, None, None

    current = _norm(r.hget(key, "status"))

    if not is_allowed_transition(current, target):
        logger.warning(
            "status_transition_blocked context=%s key=%s current=%s target=%s request_id=%s",
            context,
            key,
            current,
            target,
            request_id,
        )
        return False, current, target

    r.hset(key, mapping=mapping)

    if current and current in _ANY_TERMINAL and current == target:
        logger.info(
            "status_transition_idempotent_terminal context=%s key=%s status=%s request_id=%s",
            context,
            key,
            target,
            request_id,
        )

    return True, current, target
