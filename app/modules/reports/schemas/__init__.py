"""
Pydantic schemas for Reports module

Defines the period filter, the financial summary and the statement payload
consumed by the PDF and CSV exports.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.modules.movements.models import MovementType
from app.modules.invoices.models import InvoiceStatus


# Base filters for common report parameters
class ReportPeriod(BaseModel):
    """Inclusive date range of a report"""
    date_from: date = Field(..., description="Start date for the report period")
    date_to: date = Field(..., description="End date for the report period")

    @field_validator('date_to')
    @classmethod
    def validate_date_to(cls, v, info):
        start = info.data.get('date_from')
        if start is not None and v < start:
            raise ValueError('date_to must be greater than or equal to date_from')
        return v


# Ledger Schemas
class LedgerTotals(BaseModel):
    """Totales de movimientos dentro del rango"""
    income: Decimal = Decimal("0.00")
    expense: Decimal = Decimal("0.00")
    balance: Decimal = Decimal("0.00")
    vat_paid: Decimal = Decimal("0.00")


class FinancialSummary(BaseModel):
    """Response for the financial summary report"""
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    income: Decimal = Field(description="Ingresos del período")
    expense: Decimal = Field(description="Gastos del período")
    balance: Decimal = Field(description="Ingresos - gastos")
    vat_generated: Decimal = Field(description="IVA de facturas emitidas en el período")
    vat_paid: Decimal = Field(description="IVA de gastos del período")
    vat_payable: Decimal = Field(description="IVA generado - IVA pagado (puede ser negativo)")
    receivable: Decimal = Field(description="Total por cobrar")


# Statement Schemas
class SummaryRow(BaseModel):
    label: str
    value: Decimal


class StatementMovementRow(BaseModel):
    occurred_at: datetime
    category: MovementType
    description: str
    total: Decimal
    subtotal: Decimal
    iva: Decimal
    iva_rate: int


class StatementInvoiceRow(BaseModel):
    id: UUID
    issue_date: datetime
    number: str
    client: str
    total: Decimal
    subtotal: Decimal
    iva: Decimal
    iva_rate: int
    status: InvoiceStatus
    remaining: Decimal


class StatementPayload(BaseModel):
    """Estructura del estado de cuenta que consume el exportador PDF"""
    company_name: str
    period: ReportPeriod
    issued_at: datetime
    summary: FinancialSummary
    summary_rows: List[SummaryRow]
    movements: List[StatementMovementRow]
    invoices: List[StatementInvoiceRow]
