from datetime import date

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_as_of, get_current_user, get_ledger_reader
from app.core.security import RISK_ROLES, require_roles
from app.models.user import User
from app.schemas.analytics import HealthScoreResponse
from app.services.aggregation import parse_granularity
from app.services.dashboard import build_overview, build_production_analytics, build_sales_analytics
from app.services.health import compute_health_score
from app.services.ledger_reader import LedgerReader


router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/overview")
def get_overview(
    as_of: date = Depends(get_as_of),
    reader: LedgerReader = Depends(get_ledger_reader),
) -> dict:
    return build_overview(reader, as_of=as_of)


@router.get("/sales-analytics")
def get_sales_analytics(
    granularity: str = Query(default="month"),
    as_of: date = Depends(get_as_of),
    reader: LedgerReader = Depends(get_ledger_reader),
) -> dict:
    return build_sales_analytics(reader, as_of=as_of, granularity=parse_granularity(granularity))


@router.get("/production-analytics")
def get_production_analytics(
    as_of: date = Depends(get_as_of),
    reader: LedgerReader = Depends(get_ledger_reader),
) -> dict:
    return build_production_analytics(reader, as_of=as_of)


@router.get("/health-score", response_model=HealthScoreResponse)
def get_health_score(
    as_of: date = Depends(get_as_of),
    reader: LedgerReader = Depends(get_ledger_reader),
    current_user: User = Depends(get_current_user),
) -> dict:
    require_roles(current_user, RISK_ROLES)
    return compute_health_score(reader, as_of=as_of)
