# User value: This file defines the canonical analysis record users see after a document is processed.
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ResultStatus = Literal["processing", "completed", "failed"]


class FieldEntry(BaseModel):
    # User value: one extracted datum (e.g. InvoiceTotal) with how sure the analyzer was.
    model_config = ConfigDict(frozen=True)

    key: str
    value: str
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)


class TableCell(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str = ""
    row_index: int = 0
    column_index: int = 0


class TableSummary(BaseModel):
    # User value: keeps detected tables available without re-running analysis.
    model_config = ConfigDict(frozen=True)

    row_count: int = 0
    column_count: int = 0
    cells: List[TableCell] = Field(default_factory=list)


class AnalysisResult(BaseModel):
    # User value: the authoritative outcome of one analysis, persisted next to the document.
    model_config = ConfigDict(frozen=True)

    id: str
    status: ResultStatus
    document_type: Optional[str] = None
    confidence: Optional[float] = None
    extracted_text: Optional[str] = None
    fields: List[FieldEntry] = Field(default_factory=list)
    tables: List[TableSummary] = Field(default_factory=list)
    processed_at: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    @property
    def is_failed(self) -> bool:
        return self.status == "failed"


class OperationHandle(BaseModel):
    # Never persisted; only JobClient.poll consumes it.
    model_config = ConfigDict(frozen=True)

    operation_id: str
    operation_location: str
