from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import datetime
from enum import Enum

from app.modules.movements.models import MovementType


class MovementKind(str, Enum):
    """Tipo simplificado del formulario: ingreso o gasto"""
    INCOME = "income"
    EXPENSE = "expense"


class MovementCreate(BaseModel):
    kind: MovementKind = MovementKind.INCOME
    type: Optional[MovementType] = Field(None, description="Categoría explícita; si se omite se deduce de 'kind'")
    amount: str = Field(..., description="Monto total (IVA incluido)")
    iva_rate: int = Field(0, description="Porcentaje de IVA (0 o 15)")
    counterparty: str = Field("", max_length=200, description="¿Quién pagó? / ¿A quién se pagó?")
    detail: str = Field("", max_length=500, description="Concepto / descripción")

    @field_validator('amount', mode='before')
    @classmethod
    def amount_as_text(cls, v):
        # El monto llega como texto del formulario; se valida en el service
        if v is None:
            return ""
        return str(v)

    @property
    def movement_type(self) -> MovementType:
        if self.type is not None:
            return self.type
        if self.kind == MovementKind.INCOME:
            return MovementType.DIRECT_SALE
        return MovementType.EXPENSE


class MovementOut(BaseModel):
    id: UUID
    created_at: datetime
    type: MovementType
    amount: Decimal
    subtotal: Optional[Decimal] = None
    iva: Optional[Decimal] = None
    iva_rate: Optional[int] = None
    description: Optional[str] = None
    counterparty: Optional[str] = None
    detail: Optional[str] = None
    area: Optional[str] = None
    account: Optional[str] = None
    invoice_id: Optional[UUID] = None

    class Config:
        from_attributes = True


class MovementList(BaseModel):
    movements: List[MovementOut]
    total: int
