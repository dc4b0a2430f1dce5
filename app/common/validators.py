"""
Validadores y conversores de montos
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

CENT = Decimal("0.01")
ZERO = Decimal("0")


def coerce_amount(value: Any) -> Decimal:
    """
    Convierte cualquier valor numérico almacenado a Decimal.
    Los registros existentes pueden traer montos vacíos o corruptos;
    en ese caso se toma 0 en lugar de fallar.
    - None, "", "abc" -> 0
    - NaN, Infinity -> 0
    - "12.5", 12.5, Decimal("12.5") -> Decimal("12.5")
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return ZERO
    if not result.is_finite():
        return ZERO
    return result


def round_money(value: Decimal) -> Decimal:
    """Redondeo comercial a 2 decimales."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_positive_amount(value: Any) -> Optional[Decimal]:
    """
    Interpreta un monto ingresado por el usuario.
    Retorna el monto redondeado a centavos, o None si no es numérico
    o si ya redondeado no es mayor a 0 ("0.004" -> None).
    Acepta coma decimal ("12,50").
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        amount = value
    else:
        text = str(value).strip().replace(",", ".")
        if not text:
            return None
        try:
            amount = Decimal(text)
        except (InvalidOperation, ValueError):
            return None
    if not amount.is_finite():
        return None
    amount = round_money(amount)
    if amount <= 0:
        return None
    return amount


def validate_required_text(value: Optional[str]) -> bool:
    """Valida que un campo de texto obligatorio no esté vacío."""
    return value is not None and value.strip() != ""
