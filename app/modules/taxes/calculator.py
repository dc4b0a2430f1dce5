"""
Helper para cálculo de impuestos
Desglosa montos con IVA incluido en base imponible + IVA
"""

from decimal import Decimal
from typing import List

from fastapi import HTTPException, status

from app.core.config import settings
from app.common.validators import coerce_amount, round_money
from app.modules.taxes.schemas import TaxBreakdown, VatRateOption


class TaxCalculator:
    """Helper para calcular el IVA contenido en un total"""

    def __init__(self, allowed_rates: List[int] = None):
        self.allowed_rates = list(allowed_rates if allowed_rates is not None else settings.VAT_RATES)

    def validate_rate(self, iva_rate: int) -> int:
        """
        Validar que la tasa esté habilitada

        Raises:
            HTTPException 400 si la tasa no está configurada
        """
        if iva_rate not in self.allowed_rates:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Porcentaje de IVA inválido: {iva_rate}. Permitidos: {self.allowed_rates}"
            )
        return iva_rate

    def split(self, total, iva_rate: int) -> TaxBreakdown:
        """
        Desglosar un total con IVA incluido

        Args:
            total: Monto bruto (lo efectivamente cobrado/pagado)
            iva_rate: Porcentaje de IVA (ej. 15 para 15%)

        Returns:
            TaxBreakdown con subtotal e IVA redondeados a 2 decimales
        """
        self.validate_rate(iva_rate)
        return split_gross_amount(total, iva_rate)

    def rate_options(self) -> List[VatRateOption]:
        """Opciones de IVA para los formularios"""
        return [VatRateOption(rate=rate, name=f"IVA {rate}%") for rate in self.allowed_rates]


def split_gross_amount(total, iva_rate: int) -> TaxBreakdown:
    """
    subtotal = total / (1 + tasa), iva = total - subtotal.
    El IVA se toma como diferencia del subtotal ya redondeado,
    así subtotal + iva == total siempre.
    """
    gross = round_money(coerce_amount(total))
    if not iva_rate:
        return TaxBreakdown(total=gross, subtotal=gross, iva=Decimal("0.00"), iva_rate=0)

    divisor = Decimal(1) + Decimal(iva_rate) / Decimal(100)
    subtotal = round_money(gross / divisor)
    iva = round_money(gross - subtotal)
    return TaxBreakdown(total=gross, subtotal=subtotal, iva=iva, iva_rate=iva_rate)
