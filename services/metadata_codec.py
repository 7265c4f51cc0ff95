# User value: This file packs analysis results into small object metadata so listings load fast without re-analysis.
"""
Flat side-record codec.

Object metadata is a small ``str -> str`` map with lowercase alphanumeric
keys. ``encode`` writes four scalar slots, a text excerpt and up to
``max_fields`` indexed ``kv{i}key`` / ``kv{i}value`` / ``kv{i}confidence``
triples. ``decode`` folds those triples back into ``FieldEntry`` objects.
The side-record is lossy; the sidecar JSON stays authoritative.
"""
import json
import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Union

from schemas.analysis import AnalysisResult, FieldEntry
from schemas.analysis_contract import (
    RESULT_FAILED,
    SLOT_CONFIDENCE,
    SLOT_DOCTYPE_LEGACY,
    SLOT_DOCUMENT_TYPE,
    SLOT_EXTRACTED_TEXT,
    SLOT_PROCESSED_AT,
    SLOT_STATUS,
    UNKNOWN_DOCUMENT_TYPE,
)
from services.result_transformer import DOCTYPE_FIELD_KEY

FlatMetadata = dict[str, str]

_SLOT_KEY_RE = re.compile(r"^kv(\d+)(key|value|confidence)$")
_TYPE_TAG_RE = re.compile(r'^\{\s*"type"\s*:')
_NO_VALUE_SENTINELS = {"null", "undefined", "{}", "[]"}
_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:[T ]|$)")


@dataclass(frozen=True)
class MetadataLimits:
    """Storage-ceiling limits for the side-record."""

    max_fields: int = 5
    max_key_chars: int = 100
    max_value_chars: int = 200
    max_text_chars: int = 1000


DEFAULT_LIMITS = MetadataLimits()


def decimal_text(value: Any) -> str:
    number = float(value or 0)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def slot_key(index: int, role: str) -> str:
    return f"kv{index}{role}"


# =========================================================
# ENCODE
# =========================================================
def encode(
    result: AnalysisResult,
    limits: MetadataLimits = DEFAULT_LIMITS,
    now: Optional[datetime] = None,
) -> FlatMetadata:
    if result.status == RESULT_FAILED:
        return {SLOT_STATUS: RESULT_FAILED}

    processed_at = result.processed_at or (now or datetime.now(timezone.utc)).isoformat()
    metadata: FlatMetadata = {
        SLOT_DOCUMENT_TYPE: result.document_type or UNKNOWN_DOCUMENT_TYPE,
        SLOT_CONFIDENCE: decimal_text(result.confidence),
        SLOT_STATUS: result.status,
        SLOT_PROCESSED_AT: processed_at,
        SLOT_EXTRACTED_TEXT: (result.extracted_text or "")[: limits.max_text_chars],
    }

    for index, entry in enumerate(result.fields[: limits.max_fields]):
        metadata[slot_key(index, "key")] = entry.key[: limits.max_key_chars]
        metadata[slot_key(index, "value")] = entry.value[: limits.max_value_chars]
        metadata[slot_key(index, "confidence")] = decimal_text(entry.confidence)

    return metadata


# User value: reports what was cut from the side-record so operators can see degraded listings.
def describe_degradation(result: AnalysisResult, limits: MetadataLimits = DEFAULT_LIMITS) -> list[str]:
    if result.status == RESULT_FAILED:
        return []

    reasons = []
    if len(result.fields) > limits.max_fields:
        reasons.append(f"fields_dropped={len(result.fields) - limits.max_fields}")
    if len(result.extracted_text or "") > limits.max_text_chars:
        reasons.append("extracted_text_truncated")
    for index, entry in enumerate(result.fields[: limits.max_fields]):
        if len(entry.key) > limits.max_key_chars:
            reasons.append(f"kv{index}key_truncated")
        if len(entry.value) > limits.max_value_chars:
            reasons.append(f"kv{index}value_truncated")
    return reasons


# =========================================================
# ENVELOPE VALUES
# =========================================================
@dataclass(frozen=True)
class DateValue:
    raw: str

    def render(self) -> str:
        text = self.raw.strip()
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            # Older interpreters reject some ISO forms (e.g. 7-digit fractions); the date part is enough.
            match = _ISO_DATE_RE.match(text)
            if not match:
                return text
            year, month, day = (int(part) for part in match.groups())
            return f"{month}/{day}/{year}"
        return f"{parsed.month}/{parsed.day}/{parsed.year}"


@dataclass(frozen=True)
class BoolValue:
    value: bool

    def render(self) -> str:
        return "Yes" if self.value else "No"


@dataclass(frozen=True)
class StringValue:
    value: str

    def render(self) -> str:
        return self.value


@dataclass(frozen=True)
class NumberValue:
    value: float

    def render(self) -> str:
        return decimal_text(self.value)


@dataclass(frozen=True)
class RawValue:
    value: str

    def render(self) -> str:
        return self.value


EnvelopeValue = Union[DateValue, BoolValue, StringValue, NumberValue, RawValue]


def parse_envelope(raw: str) -> EnvelopeValue:
    """Resolve a stored field value once: typed envelope sub-value or the raw string."""
    try:
        parsed = json.loads(raw)
    except (ValueError, RecursionError):
        return RawValue(raw)
    if isinstance(parsed, str):
        return StringValue(parsed)
    if not isinstance(parsed, dict):
        return RawValue(raw)

    if parsed.get("valueDate"):
        return DateValue(str(parsed["valueDate"]))
    if isinstance(parsed.get("valueBoolean"), bool):
        return BoolValue(parsed["valueBoolean"])
    if parsed.get("valueString"):
        return StringValue(str(parsed["valueString"]))
    number = parsed.get("valueNumber")
    if isinstance(number, (int, float)) and not isinstance(number, bool) and math.isfinite(number):
        return NumberValue(float(number))
    return RawValue(raw)


def is_meaningful(value: str) -> bool:
    text = value.strip()
    if not text:
        return False
    if _TYPE_TAG_RE.match(text):
        return False
    return text.lower() not in _NO_VALUE_SENTINELS


# =========================================================
# DECODE
# =========================================================
def parse_slot_key(key: str) -> Optional[tuple[int, str]]:
    match = _SLOT_KEY_RE.match(key)
    if not match:
        return None
    return int(match.group(1)), match.group(2)


def _parse_confidence(raw: Optional[str]) -> float:
    try:
        number = float(raw) if raw is not None else 1.0
    except ValueError:
        return 1.0
    if not math.isfinite(number):
        return 1.0
    return min(1.0, max(0.0, number))


def group_slots(metadata: FlatMetadata) -> dict[int, dict[str, str]]:
    groups: dict[int, dict[str, str]] = {}
    for key, value in (metadata or {}).items():
        parsed = parse_slot_key(str(key))
        if parsed is None:
            continue
        index, role = parsed
        groups.setdefault(index, {})[role] = "" if value is None else str(value)
    return groups


def materialize(group: dict[str, str]) -> Optional[FieldEntry]:
    key = group.get("key")
    raw_value = group.get("value")
    if not key or not raw_value:
        return None

    value = parse_envelope(raw_value).render()
    if not is_meaningful(value):
        return None

    return FieldEntry(key=key, value=value, confidence=_parse_confidence(group.get("confidence")))


def decode(metadata: FlatMetadata) -> list[FieldEntry]:
    """
    Recover field entries from a flat side-record.

    Safe on partial or foreign metadata: unknown keys are ignored and
    incomplete or meaningless groups are skipped. Output is ordered by index.
    """
    groups = group_slots(metadata)
    entries = []
    for index in sorted(groups):
        entry = materialize(groups[index])
        if entry is not None:
            entries.append(entry)
    return entries


# User value: gives listings the same document type the full result would show.
def resolve_document_type(metadata: FlatMetadata, fields: Optional[list[FieldEntry]] = None) -> str:
    metadata = metadata or {}
    decoded = decode(metadata) if fields is None else fields
    for entry in decoded:
        if entry.key.lower() == DOCTYPE_FIELD_KEY and entry.value:
            return entry.value
    for slot in (SLOT_DOCUMENT_TYPE, SLOT_DOCTYPE_LEGACY):
        value = str(metadata.get(slot) or "").strip()
        if value:
            return value
    return UNKNOWN_DOCUMENT_TYPE
