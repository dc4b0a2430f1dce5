from pydantic import BaseModel
from datetime import date
from typing import List, Optional

from app.modules.invoices.schemas import InvoiceOut
from app.modules.movements.schemas import MovementOut
from app.modules.reports.schemas import FinancialSummary


class DashboardView(BaseModel):
    """View model compartido por el dashboard y el visor"""
    company_name: str
    editable: bool
    token: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    summary: FinancialSummary
    outstanding: List[InvoiceOut]
    invoices: List[InvoiceOut]
    movements: List[MovementOut]
