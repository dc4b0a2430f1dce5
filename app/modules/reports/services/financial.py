"""
Financial Reports Service

Resumen financiero y estado de cuenta del período, calculados sobre el
snapshot de lectura.
"""

from datetime import date, datetime, timezone
from typing import List, Optional

from app.core.config import settings
from app.common.validators import coerce_amount, round_money
from app.modules.invoices.reconciler import reconcile
from .base import BaseReportService
from .ledger import build_financial_summary, within_range, invoice_date
from ..schemas import (
    FinancialSummary, ReportPeriod, StatementPayload, SummaryRow,
    StatementMovementRow, StatementInvoiceRow
)


def summary_rows(summary: FinancialSummary) -> List[SummaryRow]:
    return [
        SummaryRow(label="Ingresos", value=summary.income),
        SummaryRow(label="Gastos", value=summary.expense),
        SummaryRow(label="Balance", value=summary.balance),
        SummaryRow(label="IVA generado", value=summary.vat_generated),
        SummaryRow(label="IVA pagado", value=summary.vat_paid),
        SummaryRow(label="IVA por pagar", value=summary.vat_payable),
        SummaryRow(label="Por cobrar", value=summary.receivable),
    ]


class FinancialReportService(BaseReportService):
    """Service for generating financial reports"""

    def get_summary(self, date_from: Optional[date] = None, date_to: Optional[date] = None) -> FinancialSummary:
        """
        Ingresos, gastos, balance e IVA del período más el total por cobrar.
        """
        date_from, date_to = self._resolve_period(date_from, date_to)
        snapshot = self._load_snapshot()
        return build_financial_summary(
            snapshot.movements, snapshot.invoices, snapshot.payments, date_from, date_to
        )

    def get_statement(self, date_from: Optional[date] = None, date_to: Optional[date] = None) -> StatementPayload:
        """
        Estado de cuenta del período: resumen, movimientos y facturas.

        Ambas tablas se filtran al período; el saldo de cada factura considera
        todos sus pagos.
        """
        date_from, date_to = self._resolve_period(date_from, date_to)
        snapshot = self._load_snapshot()
        summary = build_financial_summary(
            snapshot.movements, snapshot.invoices, snapshot.payments, date_from, date_to
        )
        reconciliation = reconcile(snapshot.invoices, snapshot.payments)

        movements = [
            StatementMovementRow(
                occurred_at=m.created_at,
                category=m.type,
                description=m.description or "",
                total=round_money(coerce_amount(m.amount)),
                subtotal=round_money(coerce_amount(m.subtotal if m.subtotal is not None else m.amount)),
                iva=round_money(coerce_amount(m.iva)),
                iva_rate=m.iva_rate or 0,
            )
            for m in snapshot.movements
            if within_range(m.created_at, date_from, date_to)
        ]

        invoices = []
        for invoice in snapshot.invoices:
            issued = invoice_date(invoice)
            if not within_range(issued, date_from, date_to):
                continue
            balance = reconciliation.balances[invoice.id]
            invoices.append(StatementInvoiceRow(
                id=invoice.id,
                issue_date=issued,
                number=invoice.number or "",
                client=invoice.client,
                total=round_money(coerce_amount(invoice.amount)),
                subtotal=round_money(coerce_amount(invoice.subtotal if invoice.subtotal is not None else invoice.amount)),
                iva=round_money(coerce_amount(invoice.iva)),
                iva_rate=invoice.iva_rate or 0,
                status=balance.status,
                remaining=balance.remaining,
            ))

        return StatementPayload(
            company_name=settings.COMPANY_NAME,
            period=ReportPeriod(date_from=date_from, date_to=date_to),
            issued_at=datetime.now(timezone.utc),
            summary=summary,
            summary_rows=summary_rows(summary),
            movements=movements,
            invoices=invoices,
        )
