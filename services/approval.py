# User value: This file turns analyzer confidence into an approval verdict users can act on.
import logging
import math
import random
from typing import Callable, Literal

import config
from schemas.analysis_contract import (
    APPROVAL_APPROVED,
    APPROVAL_NOT_APPLICABLE,
    APPROVAL_REJECTED,
)
from schemas.responses import ApprovalDecision

logger = logging.getLogger("api.approval")

MiddleBandPolicy = Literal["random", "approve", "reject"]
MIDDLE_BAND_POLICIES = ("random", "approve", "reject")

APPROVE_ABOVE = 90.0
REVIEW_ABOVE = 70.0

CRITERIA_FULL = "9/9"
CRITERIA_MIDDLE_APPROVED = "8/9"
CRITERIA_MIDDLE_REJECTED = "7/9"
CRITERIA_LOW = "5/9"


def _middle_band(policy: str, rng: Callable[[], float]) -> ApprovalDecision:
    # "random" is a placeholder coin flip until a real rule engine exists.
    if policy == "approve":
        return ApprovalDecision(status=APPROVAL_APPROVED, criteria=CRITERIA_MIDDLE_APPROVED)
    if policy == "reject":
        return ApprovalDecision(status=APPROVAL_REJECTED, criteria=CRITERIA_MIDDLE_REJECTED)
    if rng() > 0.5:
        return ApprovalDecision(status=APPROVAL_APPROVED, criteria=CRITERIA_MIDDLE_APPROVED, deterministic=False)
    return ApprovalDecision(status=APPROVAL_REJECTED, criteria=CRITERIA_MIDDLE_REJECTED, deterministic=False)


def classify(
    confidence_percent: float,
    policy: str | None = None,
    rng: Callable[[], float] = random.random,
) -> ApprovalDecision:
    """
    Band a 0-100 confidence into an approval decision.

    > 90 approved (9/9), 70 < c <= 90 decided by ``policy``, 0 < c <= 70
    rejected (5/9), anything else N/A.
    """
    policy = (policy or config.APPROVAL_MIDDLE_BAND_POLICY or "random").strip().lower()
    if policy not in MIDDLE_BAND_POLICIES:
        logger.warning("approval_policy_unknown policy=%s fallback=random", policy)
        policy = "random"

    try:
        c = float(confidence_percent)
    except (TypeError, ValueError):
        c = 0.0
    if math.isnan(c):
        c = 0.0

    if c > APPROVE_ABOVE:
        return ApprovalDecision(status=APPROVAL_APPROVED, criteria=CRITERIA_FULL)
    if c > REVIEW_ABOVE:
        return _middle_band(policy, rng)
    if c > 0:
        return ApprovalDecision(status=APPROVAL_REJECTED, criteria=CRITERIA_LOW)
    return ApprovalDecision(status=APPROVAL_NOT_APPLICABLE, criteria=APPROVAL_NOT_APPLICABLE)
