"""
Financial Reports Router

FastAPI router for the financial summary, the statement and its exports.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session
import logging

from app.database.database import get_db
from ..services.financial import FinancialReportService
from ..schemas import FinancialSummary, StatementPayload
from ..utils import create_csv_response, prepare_movements_csv, CSV_HEADERS
from ..utils.pdf import render_statement_pdf

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/summary", response_model=FinancialSummary)
def get_financial_summary(
    date_from: Optional[date] = Query(None, description="Start date (default: first day of the month)"),
    date_to: Optional[date] = Query(None, description="End date (default: today)"),
    db: Session = Depends(get_db)
):
    """Ingresos, gastos, balance, IVA y total por cobrar del período."""
    service = FinancialReportService(db)
    return service.get_summary(date_from, date_to)


@router.get("/statement", response_model=StatementPayload)
def get_statement(
    date_from: Optional[date] = Query(None, description="Start date (default: first day of the month)"),
    date_to: Optional[date] = Query(None, description="End date (default: today)"),
    db: Session = Depends(get_db)
):
    """Estado de cuenta estructurado: resumen, movimientos y facturas."""
    service = FinancialReportService(db)
    return service.get_statement(date_from, date_to)


@router.get("/statement/pdf", response_class=Response)
def get_statement_pdf(
    date_from: Optional[date] = Query(None, description="Start date (default: first day of the month)"),
    date_to: Optional[date] = Query(None, description="End date (default: today)"),
    db: Session = Depends(get_db)
):
    """Estado de cuenta en PDF."""
    service = FinancialReportService(db)
    payload = service.get_statement(date_from, date_to)
    try:
        content = render_statement_pdf(payload)
    except Exception as e:
        logger.error(f"Error rendering statement PDF: {e}")
        raise HTTPException(500, f"Error generando PDF: {str(e)}")

    filename = f"estado_cuenta_{payload.period.date_from}_{payload.period.date_to}.pdf"
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


@router.get("/movements/csv", response_class=Response)
def export_movements_csv(
    date_from: Optional[date] = Query(None, description="Start date (default: first day of the month)"),
    date_to: Optional[date] = Query(None, description="End date (default: today)"),
    db: Session = Depends(get_db)
):
    """Movimientos del período en CSV."""
    service = FinancialReportService(db)
    payload = service.get_statement(date_from, date_to)
    filename = f"movimientos_{payload.period.date_from}_{payload.period.date_to}.csv"
    return create_csv_response(prepare_movements_csv(payload), filename, CSV_HEADERS["movements"])
