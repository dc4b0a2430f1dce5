"""
Ledger aggregator

Pure functions over movements and invoices: income, expense, balance and the
VAT figures of a period. Numeric fields of stored records may be missing or
malformed; they count as 0.
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal
from functools import lru_cache
from typing import Any, Iterable, Optional, Union
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.common.validators import coerce_amount, round_money, ZERO
from app.modules.movements.models import MovementType, INCOME_TYPES
from app.modules.invoices.reconciler import reconcile
from app.modules.reports.schemas import LedgerTotals, FinancialSummary


@lru_cache()
def local_zone() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def to_local(ts: datetime) -> datetime:
    """Convierte a la zona horaria configurada. Naive = UTC."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(local_zone())


def is_income(movement_type: Union[MovementType, str, None]) -> bool:
    """direct_sale e invoice_payment son ingresos; todo lo demás es gasto."""
    if movement_type is None:
        return False
    if not isinstance(movement_type, MovementType):
        try:
            movement_type = MovementType(movement_type)
        except ValueError:
            return False
    return movement_type in INCOME_TYPES


def within_range(ts: Optional[datetime], date_from: Optional[date] = None, date_to: Optional[date] = None) -> bool:
    """
    Rango inclusivo por día: desde date_from 00:00:00 hasta date_to 23:59:59.999999,
    en hora local. Sin límites, todo está dentro.
    """
    if date_from is None and date_to is None:
        return True
    if ts is None:
        return False
    local_ts = to_local(ts)
    zone = local_zone()
    if date_from is not None and local_ts < datetime.combine(date_from, time.min, tzinfo=zone):
        return False
    if date_to is not None and local_ts > datetime.combine(date_to, time.max, tzinfo=zone):
        return False
    return True


def summarize_movements(
    movements: Iterable[Any],
    date_from: Optional[date] = None,
    date_to: Optional[date] = None
) -> LedgerTotals:
    income = ZERO
    expense = ZERO
    vat_paid = ZERO
    for movement in movements:
        if not within_range(movement.created_at, date_from, date_to):
            continue
        amount = coerce_amount(movement.amount)
        if is_income(movement.type):
            income += amount
        else:
            expense += amount
            vat_paid += coerce_amount(movement.iva)
    income = round_money(income)
    expense = round_money(expense)
    return LedgerTotals(
        income=income,
        expense=expense,
        balance=income - expense,
        vat_paid=round_money(vat_paid),
    )


def invoice_date(invoice: Any) -> Optional[datetime]:
    return getattr(invoice, "issue_date", None) or getattr(invoice, "created_at", None)


def vat_generated(
    invoices: Iterable[Any],
    date_from: Optional[date] = None,
    date_to: Optional[date] = None
) -> Decimal:
    """IVA de las facturas emitidas dentro del rango."""
    total = ZERO
    for invoice in invoices:
        if within_range(invoice_date(invoice), date_from, date_to):
            total += coerce_amount(invoice.iva)
    return round_money(total)


def build_financial_summary(
    movements: Iterable[Any],
    invoices: Iterable[Any],
    payments: Iterable[Any],
    date_from: Optional[date] = None,
    date_to: Optional[date] = None
) -> FinancialSummary:
    invoices = list(invoices)
    totals = summarize_movements(movements, date_from, date_to)
    generated = vat_generated(invoices, date_from, date_to)
    reconciliation = reconcile(invoices, payments)
    return FinancialSummary(
        date_from=date_from,
        date_to=date_to,
        income=totals.income,
        expense=totals.expense,
        balance=totals.balance,
        vat_generated=generated,
        vat_paid=totals.vat_paid,
        vat_payable=generated - totals.vat_paid,
        receivable=reconciliation.receivable,
    )
