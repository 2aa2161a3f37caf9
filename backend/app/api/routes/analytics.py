from datetime import date

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_as_of, get_current_user, get_ledger_reader
from app.core.security import FORECAST_ROLES, RISK_ROLES, require_roles
from app.models.user import User
from app.schemas.analytics import (
    AnalyzeRequest,
    AnalyzeResponse,
    AnomalyReportResponse,
    InsightResponse,
    SalesForecastResponse,
)
from app.services.aggregation import parse_granularity
from app.services.anomalies import detect_anomalies
from app.services.forecasting import generate_sales_forecast
from app.services.insights import analyze_business, get_insight
from app.services.ledger_reader import LedgerReader


router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/forecast/sales", response_model=SalesForecastResponse)
def get_sales_forecast(
    horizon: int = Query(default=1, ge=1, le=12),
    granularity: str = Query(default="month"),
    history_months: int | None = Query(default=None, ge=2, le=36),
    as_of: date = Depends(get_as_of),
    reader: LedgerReader = Depends(get_ledger_reader),
    current_user: User = Depends(get_current_user),
) -> dict:
    require_roles(current_user, FORECAST_ROLES)
    return generate_sales_forecast(
        reader,
        as_of=as_of,
        horizon=horizon,
        granularity=parse_granularity(granularity),
        history_months=history_months,
    )


@router.get("/anomalies", response_model=AnomalyReportResponse)
def get_anomalies(
    rules: list[str] | None = Query(default=None),
    as_of: date = Depends(get_as_of),
    reader: LedgerReader = Depends(get_ledger_reader),
    current_user: User = Depends(get_current_user),
) -> dict:
    require_roles(current_user, RISK_ROLES)
    return detect_anomalies(reader, as_of=as_of, rules=rules)


@router.get("/insights/{insight_type}", response_model=InsightResponse)
def get_insight_by_type(
    insight_type: str,
    as_of: date = Depends(get_as_of),
    reader: LedgerReader = Depends(get_ledger_reader),
) -> dict:
    return get_insight(reader, insight_type, as_of=as_of)


@router.post("/analyze", response_model=AnalyzeResponse)
def analyze(
    payload: AnalyzeRequest,
    as_of: date = Depends(get_as_of),
    reader: LedgerReader = Depends(get_ledger_reader),
) -> dict:
    return analyze_business(
        reader,
        as_of=as_of,
        question=payload.question,
        analysis_type=payload.analysis_type,
    )
