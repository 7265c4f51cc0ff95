# User value: This file validates analysis requests so users get clear errors before any remote call.
from typing import List

from pydantic import BaseModel, Field


class AnalyzeRequest(BaseModel):
    # User value: names the stored document to analyze (object name inside the bucket).
    file_name: str = Field(..., min_length=1, alias="fileName")

    model_config = {"populate_by_name": True}


class BatchAnalyzeRequest(BaseModel):
    # User value: lets users submit a batch upload for analysis in one call.
    file_names: List[str] = Field(..., min_length=1, max_length=100, alias="fileNames")

    model_config = {"populate_by_name": True}
