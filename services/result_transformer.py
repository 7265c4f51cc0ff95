# User value: This file turns the analyzer's raw response into one consistent result users can rely on.
import json
import math
from typing import Any, Optional

from schemas.analysis import AnalysisResult, FieldEntry, TableCell, TableSummary
from schemas.analysis_contract import (
    OPERATION_FAILED,
    OPERATION_SUCCEEDED,
    RESULT_COMPLETED,
    RESULT_FAILED,
    RESULT_PROCESSING,
    UNKNOWN_DOCUMENT_TYPE,
)

DOCTYPE_FIELD_KEY = "doctype"


def _scalar_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def clamp_confidence(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number):
        return default
    return min(1.0, max(0.0, number))


# User value: keeps every field readable even when the analyzer returns a typed object instead of text.
def coerce_field(key: str, raw: Any) -> FieldEntry:
    if isinstance(raw, list):
        text = json.dumps(raw, ensure_ascii=False, separators=(",", ":"), default=str)
        return FieldEntry(key=str(key), value=text, confidence=0.0)
    if isinstance(raw, dict):
        text = raw.get("valueString") or raw.get("content")
        if not text:
            text = json.dumps(raw, ensure_ascii=False, separators=(",", ":"), default=str)
        confidence = clamp_confidence(raw.get("confidence") or 0, 0.0)
        return FieldEntry(key=str(key), value=str(text), confidence=confidence)
    return FieldEntry(key=str(key), value=_scalar_text(raw), confidence=1.0)


# User value: picks the document type users expect (explicit DocType field wins over the analyzer's guess).
def resolve_document_type(fields: list[FieldEntry], record_type: Any = None) -> str:
    for entry in fields:
        if entry.key.lower() == DOCTYPE_FIELD_KEY and entry.value:
            return entry.value
    if isinstance(record_type, str) and record_type:
        return record_type
    return UNKNOWN_DOCUMENT_TYPE


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError, OverflowError):
        return 0


def _optional_text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _tables(raw_tables: Any) -> list[TableSummary]:
    if not isinstance(raw_tables, list):
        return []
    tables = []
    for table in raw_tables:
        if not isinstance(table, dict):
            continue
        raw_cells = table.get("cells") if isinstance(table.get("cells"), list) else []
        cells = [
            TableCell(
                text=str(cell.get("content") or ""),
                row_index=_int(cell.get("rowIndex")),
                column_index=_int(cell.get("columnIndex")),
            )
            for cell in raw_cells
            if isinstance(cell, dict)
        ]
        tables.append(
            TableSummary(
                row_count=_int(table.get("rowCount")),
                column_count=_int(table.get("columnCount")),
                cells=cells,
            )
        )
    return tables


def normalize(operation_id: str, raw: dict) -> AnalysisResult:
    """
    Build the canonical ``AnalysisResult`` from a raw terminal response.

    Pure: no I/O. Only the first document-level record of
    ``result.contents`` is used.
    """
    status = str(raw.get("status") or "").strip().lower()

    if status == OPERATION_FAILED:
        error = raw.get("error") if isinstance(raw.get("error"), dict) else {}
        return AnalysisResult(
            id=operation_id,
            status=RESULT_FAILED,
            error=str(error.get("message") or "Analysis failed"),
            processed_at=_optional_text(raw.get("lastUpdatedDateTime")),
        )

    result = raw.get("result")
    if status != OPERATION_SUCCEEDED or not isinstance(result, dict):
        return AnalysisResult(id=operation_id, status=RESULT_PROCESSING)

    contents = result.get("contents") if isinstance(result.get("contents"), list) else []
    document = contents[0] if contents and isinstance(contents[0], dict) else {}

    raw_fields = document.get("fields") if isinstance(document.get("fields"), dict) else {}
    fields = [coerce_field(key, value) for key, value in raw_fields.items()]

    return AnalysisResult(
        id=operation_id,
        status=RESULT_COMPLETED,
        document_type=resolve_document_type(fields, document.get("docType")),
        confidence=clamp_confidence(document.get("confidence") or 0, 0.0),
        extracted_text=str(result.get("content") or ""),
        fields=fields,
        tables=_tables(result.get("tables")),
        processed_at=_optional_text(raw.get("lastUpdatedDateTime")),
    )
