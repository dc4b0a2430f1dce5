from sqlalchemy.orm import Session
from datetime import date
from typing import Optional

from app.core.config import settings
from app.common.validators import ZERO
from app.modules.invoices.reconciler import reconcile
from app.modules.invoices.schemas import InvoiceOut
from app.modules.reports.services.ledger import build_financial_summary, within_range
from app.modules.reports.services.snapshot import SnapshotCache, get_snapshot_cache
from app.modules.dashboard.schemas import DashboardView


class DashboardService:
    def __init__(self, db: Session, cache: SnapshotCache = None):
        self.db = db
        self.cache = cache or get_snapshot_cache()

    def build_view(
        self,
        editable: bool,
        token: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None
    ) -> DashboardView:
        """
        Arma el view model del dashboard a partir del snapshot.
        Sin rango, los totales cubren todo el historial.
        """
        snapshot = self.cache.load(self.db)
        reconciliation = reconcile(snapshot.invoices, snapshot.payments)

        invoices = []
        for record in snapshot.invoices:
            balance = reconciliation.balances[record.id]
            invoices.append(InvoiceOut(
                **record.model_dump(),
                paid_amount=balance.paid,
                balance_due=balance.remaining,
                derived_status=balance.status,
            ))
        outstanding = sorted(
            (invoice for invoice in invoices if invoice.balance_due > ZERO),
            key=lambda invoice: invoice.balance_due,
            reverse=True
        )

        return DashboardView(
            company_name=settings.COMPANY_NAME,
            editable=editable,
            token=token,
            date_from=date_from,
            date_to=date_to,
            summary=build_financial_summary(
                snapshot.movements, snapshot.invoices, snapshot.payments, date_from, date_to
            ),
            outstanding=outstanding,
            invoices=invoices,
            movements=[
                m for m in snapshot.movements
                if within_range(m.created_at, date_from, date_to)
            ],
        )
