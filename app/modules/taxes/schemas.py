from pydantic import BaseModel, Field
from decimal import Decimal
from typing import List


class TaxBreakdown(BaseModel):
    """Desglose de un monto bruto en base imponible e IVA"""
    total: Decimal
    subtotal: Decimal
    iva: Decimal
    iva_rate: int = Field(..., description="Porcentaje de IVA aplicado (ej. 15)")


class TaxSplitRequest(BaseModel):
    """Esquema para previsualizar el desglose de un total"""
    total: Decimal = Field(..., gt=0, description="Monto total con IVA incluido")
    iva_rate: int = Field(0, description="Porcentaje de IVA (0 o 15)")


class VatRateOption(BaseModel):
    """Opción de IVA disponible para formularios"""
    rate: int
    name: str


class VatRateList(BaseModel):
    rates: List[VatRateOption]
