from __future__ import annotations

from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, Field


Severity = Literal["LOW", "MEDIUM", "HIGH"]
RiskLevel = Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]


class TimeSeriesPointOut(BaseModel):
    period: str
    period_start: str
    revenue: Decimal
    quantity: int
    transactions: int


class ForecastPointOut(BaseModel):
    period: str
    period_start: str
    trend_revenue: Decimal
    seasonality_factor: Decimal
    predicted_revenue: Decimal
    growth_rate: Decimal | None = None
    confidence: int


class ProductForecastOut(BaseModel):
    product_id: int
    product_name: str
    product_code: str
    current_revenue: Decimal
    predicted_revenue: Decimal
    predicted_growth: str
    method: str
    recommendation: str


class ForecastModelOut(BaseModel):
    slope: Decimal
    intercept: Decimal
    points: int


class SalesForecastResponse(BaseModel):
    method: str
    granularity: str
    history_start: str
    history_end: str
    historical: list[TimeSeriesPointOut]
    predictions: list[ForecastPointOut]
    product_predictions: list[ProductForecastOut]
    model: ForecastModelOut
    assumptions: list[str]
    recommended_actions: list[str]


class AnomalyOut(BaseModel):
    type: str
    severity: Severity
    description: str
    impact: str
    suggested_action: str
    numeric_evidence: dict[str, Any]


class AnomalySummaryOut(BaseModel):
    high: int
    medium: int
    low: int


class AnomalyReportResponse(BaseModel):
    total_anomalies: int
    anomalies: list[AnomalyOut]
    risk_score: RiskLevel
    risk_points: int
    summary: AnomalySummaryOut
    rules_evaluated: list[str]
    monitoring_suggestions: list[str]
    as_of: str


class HealthFactorOut(BaseModel):
    name: str
    score: Decimal
    max: Decimal
    detail: str


class HealthScoreResponse(BaseModel):
    overall_score: int = Field(ge=0, le=100)
    raw_score: Decimal
    health_status: Literal["Critical", "Warning", "Good", "Healthy"]
    status_color: str
    factors: list[HealthFactorOut]
    as_of: str
    timestamp: str


class RecommendationOut(BaseModel):
    action: str
    reason: str
    priority: int


class InsightResponse(BaseModel):
    type: str
    generated_at: str
    insights: list[str]
    recommendations: list[RecommendationOut]
    confidence: int


class AnalyzeRequest(BaseModel):
    question: str | None = Field(default=None, max_length=500)
    analysis_type: str | None = None


class AnalyzeResponse(BaseModel):
    question: str
    analysis_type: str
    analysers: list[str]
    timestamp: str
    insights: list[str]
    recommendations: list[RecommendationOut]
    confidence_score: int
