import csv
import io
from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from openpyxl import Workbook

from app.api.deps import get_current_user, get_ledger_reader
from app.core.security import FINANCE_ROLES, require_roles
from app.models.enums import ReportType
from app.models.user import User
from app.services.ledger_reader import LedgerReader
from app.services.statements import build_statement, parse_report_type, statement_line_items


router = APIRouter(prefix="/finance/exports", tags=["exports"])

HEADERS = ["section", "line_item", "value"]


def _build_rows(
    reader: LedgerReader,
    report_type: ReportType,
    start: date | None,
    end: date | None,
) -> list[dict]:
    data = build_statement(reader, report_type, start=start, end=end, today=date.today())
    return [
        {"section": section, "line_item": label, "value": value}
        for section, label, value in statement_line_items(report_type, data)
    ]


def _filename(report_type: ReportType, reader: LedgerReader, extension: str) -> str:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    return f"{report_type.value.replace('_', '-')}-{reader.business_id}-{stamp}.{extension}"


@router.get("/{report_type}/csv")
def export_csv(
    report_type: str,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    reader: LedgerReader = Depends(get_ledger_reader),
    current_user: User = Depends(get_current_user),
):
    require_roles(current_user, FINANCE_ROLES)
    kind = parse_report_type(report_type)
    rows = _build_rows(reader, kind, start_date, end_date)
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=HEADERS)
    writer.writeheader()
    writer.writerows(rows)
    output.seek(0)
    filename = _filename(kind, reader, "csv")
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{report_type}/excel")
def export_excel(
    report_type: str,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    reader: LedgerReader = Depends(get_ledger_reader),
    current_user: User = Depends(get_current_user),
):
    require_roles(current_user, FINANCE_ROLES)
    kind = parse_report_type(report_type)
    rows = _build_rows(reader, kind, start_date, end_date)
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = kind.value.replace("_", " ").title()[:31]
    sheet.append(HEADERS)
    for row in rows:
        value = row["value"]
        sheet.append([row["section"], row["line_item"], float(value) if value is not None else None])

    output = io.BytesIO()
    workbook.save(output)
    output.seek(0)
    filename = _filename(kind, reader, "xlsx")
    return StreamingResponse(
        output,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
