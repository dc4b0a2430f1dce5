from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional, List, Dict
from uuid import UUID
from datetime import datetime

from app.modules.invoices.models import InvoiceStatus


# Invoice Schemas
class InvoiceCreate(BaseModel):
    """Datos del formulario de factura (el PDF llega aparte)"""
    client: str = Field("", max_length=200, description="Cliente / empresa")
    number: Optional[str] = Field(None, max_length=50, description="Número de factura")
    amount: str = Field(..., description="Monto total (IVA incluido)")
    iva_rate: int = Field(0, description="Porcentaje de IVA (0 o 15)")

    @field_validator('amount', mode='before')
    @classmethod
    def amount_as_text(cls, v):
        if v is None:
            return ""
        return str(v)


class InvoiceRecord(BaseModel):
    """Factura tal como está almacenada"""
    id: UUID
    created_at: datetime
    client: str
    number: Optional[str] = None
    amount: Decimal
    subtotal: Optional[Decimal] = None
    iva: Optional[Decimal] = None
    iva_rate: Optional[int] = None
    status: InvoiceStatus
    document_path: Optional[str] = None
    issue_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class InvoiceOut(InvoiceRecord):
    """Factura con los saldos conciliados contra sus pagos"""
    paid_amount: Decimal
    balance_due: Decimal
    derived_status: InvoiceStatus


class InvoiceDetail(InvoiceOut):
    """Esquema detallado que incluye los pagos"""
    payments: List['PaymentOut'] = []


class InvoiceList(BaseModel):
    invoices: List[InvoiceOut]
    total: int
    receivable: Decimal


class InvoiceAmountUpdate(BaseModel):
    amount: str = Field(..., description="Nuevo monto total de la factura")

    @field_validator('amount', mode='before')
    @classmethod
    def amount_as_text(cls, v):
        if v is None:
            return ""
        return str(v)


class ClientSuggestions(BaseModel):
    clients: List[str]


class DocumentLink(BaseModel):
    url: str
    expires_in: int


# Payment Schemas
class PaymentCreate(BaseModel):
    amount: str = Field(..., description="Monto pagado hoy")
    note: Optional[str] = Field(None, max_length=500)

    @field_validator('amount', mode='before')
    @classmethod
    def amount_as_text(cls, v):
        if v is None:
            return ""
        return str(v)


class PaymentOut(BaseModel):
    id: UUID
    invoice_id: UUID
    amount: Decimal
    paid_at: datetime
    note: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentList(BaseModel):
    payments: List[PaymentOut]
    total: int


class PaymentRegistration(BaseModel):
    """Resultado del registro de un pago"""
    payment: PaymentOut
    movement_id: UUID
    paid_amount: Decimal
    balance_due: Decimal
    status: InvoiceStatus


# Reconciliation Schemas
class InvoiceBalance(BaseModel):
    """Saldo conciliado de una factura"""
    paid: Decimal
    remaining: Decimal
    status: InvoiceStatus


class Reconciliation(BaseModel):
    balances: Dict[UUID, InvoiceBalance]
    receivable: Decimal


# Forward reference resolution
InvoiceDetail.model_rebuild()
