from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from app.api.deps import get_current_business, get_current_user, get_ledger_reader
from app.core.security import FINANCE_ROLES, require_roles
from app.models.business import Business
from app.models.user import User
from app.schemas.finance import GenerateReportRequest, ReportResponse
from app.services.ledger_reader import LedgerReader
from app.services.reports import build_report, render_report_pdf, report_checksum
from app.services.statements import (
    build_balance_sheet,
    build_cash_flow,
    build_inventory_valuation,
    build_profit_loss,
    parse_report_type,
)


router = APIRouter(prefix="/finance", tags=["finance"])


@router.get("/profit-loss")
def get_profit_loss(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    format: Literal["summary", "detailed"] = Query(default="summary"),
    reader: LedgerReader = Depends(get_ledger_reader),
    current_user: User = Depends(get_current_user),
) -> dict:
    require_roles(current_user, FINANCE_ROLES)
    return build_profit_loss(
        reader,
        start=start_date,
        end=end_date,
        today=date.today(),
        detailed=format == "detailed",
    )


@router.get("/balance-sheet")
def get_balance_sheet(
    as_of_date: date | None = Query(default=None),
    reader: LedgerReader = Depends(get_ledger_reader),
    current_user: User = Depends(get_current_user),
) -> dict:
    require_roles(current_user, FINANCE_ROLES)
    return build_balance_sheet(reader, as_of=as_of_date or date.today())


@router.get("/cash-flow")
def get_cash_flow(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    reader: LedgerReader = Depends(get_ledger_reader),
    current_user: User = Depends(get_current_user),
) -> dict:
    require_roles(current_user, FINANCE_ROLES)
    return build_cash_flow(reader, start=start_date, end=end_date, today=date.today())


@router.get("/inventory-valuation")
def get_inventory_valuation(
    reader: LedgerReader = Depends(get_ledger_reader),
    current_user: User = Depends(get_current_user),
) -> dict:
    require_roles(current_user, FINANCE_ROLES)
    return build_inventory_valuation(reader)


@router.post("/generate-report", response_model=ReportResponse)
def generate_report(
    payload: GenerateReportRequest,
    reader: LedgerReader = Depends(get_ledger_reader),
    business: Business = Depends(get_current_business),
    current_user: User = Depends(get_current_user),
):
    require_roles(current_user, FINANCE_ROLES)
    report = build_report(
        reader,
        report_type=parse_report_type(payload.report_type),
        business=business,
        user=current_user,
        start=payload.start_date,
        end=payload.end_date,
        today=date.today(),
    )
    if payload.format == "json":
        return report

    content = render_report_pdf(report)
    filename = f"{report['metadata']['report_id']}.pdf"
    return StreamingResponse(
        iter([content]),
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Report-Checksum": report_checksum(content),
        },
    )
