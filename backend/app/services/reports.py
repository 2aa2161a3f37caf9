from __future__ import annotations

import hashlib
from datetime import date, datetime, timezone
from decimal import Decimal
from io import BytesIO
from typing import Any

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from app.models.business import Business
from app.models.enums import ReportType
from app.models.user import User
from app.services.ledger_reader import LedgerReader
from app.services.statements import build_statement, statement_line_items


REPORT_TITLES = {
    ReportType.profit_loss: "Profit & Loss Statement",
    ReportType.balance_sheet: "Balance Sheet",
    ReportType.cash_flow: "Cash Flow Statement",
    ReportType.inventory_valuation: "Inventory Valuation",
}


def report_period(data: dict[str, Any], today: date) -> dict[str, str]:
    """The window the statement actually covers; point-in-time statements report a single day."""
    if "period" in data:
        return {"start": data["period"]["start"], "end": data["period"]["end"]}
    as_of = data.get("as_of_date") or today.isoformat()
    return {"start": as_of, "end": as_of}


def build_report(
    reader: LedgerReader,
    *,
    report_type: ReportType,
    business: Business,
    user: User,
    start: date | None,
    end: date | None,
    today: date,
) -> dict[str, Any]:
    generated_at = datetime.now(timezone.utc)
    data = build_statement(reader, report_type, start=start, end=end, today=today)
    return {
        "metadata": {
            "report_id": f"REP-{business.id}-{int(generated_at.timestamp() * 1000)}",
            "report_type": report_type.value,
            "title": REPORT_TITLES[report_type],
            "generated_at": generated_at.isoformat(),
            "period": report_period(data, today),
            "business": {
                "id": business.id,
                "name": business.business_name,
                "industry": business.industry,
                "currency": business.currency,
            },
            "generated_by": {
                "user_id": user.id,
                "user_name": user.full_name,
                "role": user.role.value,
            },
        },
        "data": data,
    }


def _draw_header(pdf: canvas.Canvas, title: str, subtitle: str) -> None:
    pdf.setFont("Helvetica-Bold", 14)
    pdf.drawString(50, 800, title)
    pdf.setFont("Helvetica", 10)
    pdf.drawString(50, 785, subtitle)
    pdf.line(50, 780, 550, 780)


def _format_value(value: Any, currency: str) -> str:
    if value is None:
        return "-"
    if isinstance(value, Decimal):
        return f"{currency} {value:,.2f}"
    return str(value)


def render_report_pdf(report: dict[str, Any]) -> bytes:
    """Render a generated report to PDF bytes without touching the filesystem."""
    metadata = report["metadata"]
    report_type = ReportType(metadata["report_type"])
    currency = metadata["business"]["currency"]

    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    _draw_header(
        pdf,
        f"{metadata['title']} - {metadata['business']['name']}",
        f"Period {metadata['period']['start']} to {metadata['period']['end']} | {metadata['report_id']}",
    )

    y = 755
    pdf.setFont("Helvetica-Bold", 10)
    pdf.drawString(50, y, "Section")
    pdf.drawString(180, y, "Line item")
    pdf.drawRightString(550, y, "Amount")
    y -= 16
    pdf.setFont("Helvetica", 9)

    previous_section = None
    for section, label, value in statement_line_items(report_type, report["data"]):
        if y < 80:
            pdf.showPage()
            pdf.setFont("Helvetica", 9)
            y = 800
        text = f"{value:.2f}%" if label.endswith("%") else _format_value(value, currency)
        pdf.drawString(50, y, section if section != previous_section else "")
        pdf.drawString(180, y, label[:60])
        pdf.drawRightString(550, y, text)
        previous_section = section
        y -= 14

    pdf.setFont("Helvetica-Oblique", 8)
    pdf.drawString(50, 40, f"Generated {metadata['generated_at']} by {metadata['generated_by']['user_name']}")
    pdf.save()
    return buffer.getvalue()


def report_checksum(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()
