# User value: This file shapes analysis, listing and summary responses so every view reads the same fields.
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from schemas.analysis import AnalysisResult, FieldEntry

ApprovalStatus = Literal["Approved", "Rejected", "Pending", "N/A"]
DocumentState = Literal["pending", "processing", "analyzed", "rejected"]


class AnalyzeResponse(BaseModel):
    # User value: returns the analysis outcome together with the tracking job id.
    success: bool = True
    job_id: str
    request_id: Optional[str] = None
    analysis_result: AnalysisResult


class BatchItemResponse(BaseModel):
    file_name: str
    job_id: Optional[str] = None
    status: str
    error: Optional[str] = None
    analysis_result: Optional[AnalysisResult] = None


class BatchAnalyzeResponse(BaseModel):
    # User value: summarizes a batch so users see which documents need attention.
    items: List[BatchItemResponse] = Field(default_factory=list)
    completed: int = 0
    failed: int = 0


class JobStatusResponse(BaseModel):
    # User value: shares live status of an analysis run.
    job_id: str
    status: str
    document: Optional[str] = None
    stage: Optional[str] = None
    operation_id: Optional[str] = None
    result_status: Optional[str] = None
    document_type: Optional[str] = None
    confidence: Optional[float] = None
    field_count: Optional[int] = None
    error: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ApprovalDecision(BaseModel):
    # User value: explains the approval outcome derived from analyzer confidence.
    status: ApprovalStatus
    criteria: str
    deterministic: bool = True


class ExtractedFieldView(BaseModel):
    field: str
    value: str
    confidence: int = Field(default=0, ge=0, le=100)


class DocumentSummaryDetails(BaseModel):
    extracted_fields: List[ExtractedFieldView] = Field(default_factory=list)
    issues: Optional[List[str]] = None
    recommendations: Optional[List[str]] = None


class DocumentSummaryItem(BaseModel):
    # User value: one analyzed document with its approval verdict.
    id: str
    name: str
    type: str
    match_percentage: int = 0
    criteria: str = "N/A"
    approval_status: ApprovalStatus = "N/A"
    deterministic: bool = True
    details: DocumentSummaryDetails = Field(default_factory=DocumentSummaryDetails)


class UnmappedFile(BaseModel):
    # User value: lists documents still waiting for analysis.
    name: str
    type: str
    size: str


class AnalysisSummary(BaseModel):
    total_files: int = 0
    analyzed_files: int = 0
    unmapped_files: int = 0
    approved_files: int = 0
    rejected_files: int = 0
    major_errors: int = 0
    overall_progress: int = 0


class AnalysisSummaryResponse(BaseModel):
    # User value: gives a dashboard-level view without re-running any analysis.
    summary: AnalysisSummary
    analysis_results: List[DocumentSummaryItem] = Field(default_factory=list)
    unmapped_files: List[UnmappedFile] = Field(default_factory=list)


class DocumentListItem(BaseModel):
    # User value: one stored document with whatever analysis data is cheaply available.
    id: str
    name: str
    size: str
    status: DocumentState = "pending"
    upload_date: str
    document_type: Optional[str] = None
    key_value_pairs: List[FieldEntry] = Field(default_factory=list)
    analysis_result: Optional[AnalysisResult] = None
    metadata: Dict[str, str] = Field(default_factory=dict)


class DocumentListResponse(BaseModel):
    files: List[DocumentListItem] = Field(default_factory=list)
