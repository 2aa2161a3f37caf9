from datetime import date
from typing import Any, Literal

from pydantic import BaseModel, Field


class GenerateReportRequest(BaseModel):
    report_type: str = Field(min_length=1, max_length=50)
    start_date: date | None = None
    end_date: date | None = None
    format: Literal["json", "pdf"] = "json"


class ReportPeriodOut(BaseModel):
    start: str
    end: str


class ReportBusinessOut(BaseModel):
    id: int
    name: str
    industry: str
    currency: str


class ReportAuthorOut(BaseModel):
    user_id: int
    user_name: str
    role: str


class ReportMetadataOut(BaseModel):
    report_id: str
    report_type: str
    title: str
    generated_at: str
    period: ReportPeriodOut
    business: ReportBusinessOut
    generated_by: ReportAuthorOut


class ReportResponse(BaseModel):
    metadata: ReportMetadataOut
    data: dict[str, Any]
