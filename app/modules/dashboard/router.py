from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session
from pathlib import Path
from typing import Optional
from uuid import UUID
from datetime import date

from app.database.database import get_db
from app.modules.dashboard.schemas import DashboardView
from app.modules.dashboard.service import DashboardService
from app.modules.files.service import StorageService, get_storage_service
from app.modules.invoices.service import InvoiceService
from app.modules.reports.utils import format_money, format_day, label_for, CATEGORY_LABELS, STATUS_LABELS
from app.modules.share_links.gate import gate_for

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
templates.env.filters["money"] = format_money
templates.env.filters["day"] = format_day
templates.env.filters["category"] = lambda value: label_for(value, CATEGORY_LABELS)
templates.env.filters["invoice_status"] = lambda value: label_for(value, STATUS_LABELS)

dashboard_router = APIRouter(prefix="/dashboard", tags=["Dashboard"])
viewer_router = APIRouter(prefix="/viewer", tags=["Viewer"])


def render_dashboard(request: Request, view: DashboardView) -> HTMLResponse:
    return templates.TemplateResponse(request, "dashboard.html", {"view": view})


@dashboard_router.get("", response_class=HTMLResponse)
def dashboard_page(
    request: Request,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: Session = Depends(get_db)
):
    """Dashboard editable del operador"""
    view = DashboardService(db).build_view(editable=True, date_from=date_from, date_to=date_to)
    return render_dashboard(request, view)


@dashboard_router.get("/data", response_model=DashboardView)
def dashboard_data(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: Session = Depends(get_db)
):
    """El mismo view model del dashboard en JSON"""
    return DashboardService(db).build_view(editable=True, date_from=date_from, date_to=date_to)


@viewer_router.get("", response_class=HTMLResponse)
def viewer_page(
    request: Request,
    token: Optional[str] = Query(None, description="Token de enlace compartido"),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: Session = Depends(get_db)
):
    """Visor de solo lectura; con token, verifica el enlace compartido"""
    gate_for(token).authorize(db)
    view = DashboardService(db).build_view(editable=False, token=token, date_from=date_from, date_to=date_to)
    return render_dashboard(request, view)


@viewer_router.get("/invoices/{invoice_id}/document")
def viewer_invoice_document(
    invoice_id: UUID,
    token: Optional[str] = Query(None, description="Token de enlace compartido"),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage_service)
):
    """Redirige a la URL firmada del PDF de la factura"""
    gate_for(token).authorize(db)
    link = InvoiceService(db, storage).get_document_url(invoice_id)
    return RedirectResponse(link.url, status_code=302)
