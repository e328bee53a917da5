# app/modules/sales/reports.py
"""
Reportes de ventas por rango de fechas.

El agregado (ventas, total, cantidad) se arma aquí; el render a PDF es un
colaborador intercambiable que recibe el agregado y devuelve bytes.
"""
import io
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Protocol, Tuple

from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from app.core.exceptions import RenderError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class SalesReportData:
    sales: List[Any]
    total_amount: Decimal
    count: int
    start_date: date
    end_date: date


def report_window(start_date: Optional[date], end_date: Optional[date]) -> Tuple[datetime, datetime]:
    """
    Convertir el rango [start_date, end_date] (inclusivo por día) en
    límites ``[desde, hasta)`` para filtrar ``created_at``.
    """
    if start_date is None or end_date is None:
        raise ValidationError("el rango requiere start_date y end_date", field="start_date")
    if start_date > end_date:
        raise ValidationError("start_date no puede ser posterior a end_date", field="start_date")

    start = datetime.combine(start_date, time.min)
    end = datetime.combine(end_date + timedelta(days=1), time.min)
    return start, end


def build_report(sales: List[Any], start_date: date, end_date: date) -> SalesReportData:
    total_amount = sum((Decimal(sale.total or 0) for sale in sales), Decimal("0"))
    return SalesReportData(
        sales=list(sales),
        total_amount=total_amount,
        count=len(sales),
        start_date=start_date,
        end_date=end_date
    )


# ==================== RENDER ====================

class ReportRenderer(Protocol):
    media_type: str

    def render(self, report: SalesReportData, requester: Dict[str, Any]) -> bytes:
        ...


class PdfReportRenderer:
    """Render directo con reportlab: encabezado, una línea por venta y totales"""

    media_type = "application/pdf"

    def render(self, report: SalesReportData, requester: Dict[str, Any]) -> bytes:
        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=letter)
        width, height = letter
        y = height - 60

        pdf.setFont("Helvetica-Bold", 16)
        pdf.drawString(50, y, "Reporte de Ventas")
        y -= 24

        pdf.setFont("Helvetica", 10)
        pdf.drawString(50, y, f"Periodo: {report.start_date.isoformat()} a {report.end_date.isoformat()}")
        y -= 14
        pdf.drawString(50, y, f"Generado por: {requester.get('name', '')} ({requester.get('role', '')})")
        y -= 24

        pdf.setFont("Helvetica-Bold", 10)
        pdf.drawString(50, y, "Venta")
        pdf.drawString(110, y, "Fecha")
        pdf.drawString(250, y, "Vendedor")
        pdf.drawRightString(width - 50, y, "Total")
        y -= 16

        pdf.setFont("Helvetica", 10)
        for sale in report.sales:
            if y < 60:
                pdf.showPage()
                pdf.setFont("Helvetica", 10)
                y = height - 60

            seller = getattr(sale, "seller", None)
            pdf.drawString(50, y, f"#{sale.id}")
            pdf.drawString(110, y, sale.created_at.strftime("%Y-%m-%d %H:%M") if sale.created_at else "")
            pdf.drawString(250, y, seller.full_name if seller else str(sale.seller_id))
            pdf.drawRightString(width - 50, y, f"{Decimal(sale.total or 0):,.2f}")
            y -= 14

        y -= 10
        pdf.setFont("Helvetica-Bold", 11)
        pdf.drawString(50, y, f"Cantidad de ventas: {report.count}")
        pdf.drawRightString(width - 50, y, f"Total: {report.total_amount:,.2f}")

        pdf.showPage()
        pdf.save()
        return buffer.getvalue()


def render_report(renderer: ReportRenderer, report: SalesReportData, requester: Dict[str, Any]) -> bytes:
    """Delegar el render; cualquier falla se reporta como RenderError, sin reintento"""
    try:
        return renderer.render(report, requester)
    except Exception as e:
        logger.error(f"❌ Error generando reporte {report.start_date} - {report.end_date}: {e}")
        raise RenderError(f"Error generando el reporte: {e}") from e


def get_report_renderer() -> ReportRenderer:
    """Dependencia FastAPI para el renderer de reportes"""
    return PdfReportRenderer()
