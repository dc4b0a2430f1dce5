"""
Conciliación de facturas contra pagos.

Funciones puras: reciben las filas leídas del store (ORM o schemas) y calculan
lo pagado, el saldo y el estado de cada factura, más el total por cobrar.
No escriben nada.
"""
from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, Any
from uuid import UUID

from fastapi import HTTPException, status

from app.common.validators import coerce_amount, round_money, ZERO
from app.modules.invoices.models import InvoiceStatus
from app.modules.invoices.schemas import InvoiceBalance, Reconciliation


def paid_by_invoice(payments: Iterable[Any]) -> Dict[UUID, Decimal]:
    """Agrupa los pagos por factura sumando sus montos."""
    totals: Dict[UUID, Decimal] = defaultdict(lambda: ZERO)
    for payment in payments:
        totals[payment.invoice_id] += coerce_amount(payment.amount)
    return dict(totals)


def remaining_amount(amount: Any, paid: Decimal) -> Decimal:
    """Saldo pendiente, nunca negativo."""
    return round_money(max(ZERO, coerce_amount(amount) - paid))


def derive_status(amount: Any, paid: Decimal) -> InvoiceStatus:
    """
    pending si no hay nada pagado, paid si no queda saldo,
    partial en cualquier otro caso.
    """
    if paid <= ZERO:
        return InvoiceStatus.PENDING
    if remaining_amount(amount, paid) == ZERO:
        return InvoiceStatus.PAID
    return InvoiceStatus.PARTIAL


def reconcile_invoice(invoice: Any, paid: Decimal) -> InvoiceBalance:
    paid = round_money(paid)
    return InvoiceBalance(
        paid=paid,
        remaining=remaining_amount(invoice.amount, paid),
        status=derive_status(invoice.amount, paid),
    )


def reconcile(invoices: Iterable[Any], payments: Iterable[Any]) -> Reconciliation:
    """
    Saldo de cada factura y total por cobrar.
    Los pagos de facturas inexistentes se ignoran.
    """
    paid = paid_by_invoice(payments)
    balances: Dict[UUID, InvoiceBalance] = {}
    receivable = ZERO
    for invoice in invoices:
        balance = reconcile_invoice(invoice, paid.get(invoice.id, ZERO))
        balances[invoice.id] = balance
        if balance.remaining > ZERO:
            receivable += balance.remaining
    return Reconciliation(balances=balances, receivable=round_money(receivable))


def validate_payment_amount(amount: Decimal, remaining: Decimal) -> Decimal:
    """Valida un pago contra el saldo actual de la factura."""
    if amount is None or amount <= ZERO:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Monto inválido"
        )
    if remaining <= ZERO:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="La factura ya está pagada"
        )
    if amount > remaining:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"El pago de ${amount} excede el saldo pendiente de ${remaining}"
        )
    return amount
