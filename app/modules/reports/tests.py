"""
Tests para el módulo de Reportes

Cubre:
- Agregación del libro: ingresos, gastos, balance e IVA por período
- Límites del rango de fechas en hora local
- Snapshot de lectura e invalidación por generación
- Resumen, estado de cuenta, PDF y CSV vía API
"""

import pytest
import threading
from datetime import date, datetime, timezone, timedelta
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.main import app
from app.modules.movements.models import Movement, MovementType
from app.modules.invoices.models import Invoice, InvoiceStatus
from app.modules.reports.services.ledger import (
    is_income, within_range, summarize_movements, vat_generated, build_financial_summary
)
from app.modules.reports.services.snapshot import SnapshotCache, LedgerSnapshot
from app.modules.reports.services.base import default_period
from app.modules.reports.utils import format_money, format_csv_value


client = TestClient(app)

# America/Guayaquil = UTC-5
MARCH_5 = datetime(2024, 3, 5, 15, 0, tzinfo=timezone.utc)


def movement(type_, amount, iva=None, created_at=MARCH_5):
    return SimpleNamespace(type=type_, amount=amount, iva=iva, created_at=created_at)


def invoice(amount, iva, issue_date=MARCH_5):
    return SimpleNamespace(
        id=uuid4(), amount=Decimal(amount), iva=iva, issue_date=issue_date, created_at=issue_date
    )


# ===== TESTS DEL AGREGADOR =====

class TestLedgerAggregator:
    """Tests para las funciones puras del libro"""

    def test_income_classification(self):
        assert is_income(MovementType.DIRECT_SALE)
        assert is_income(MovementType.INVOICE_PAYMENT)
        assert is_income("invoice_payment")
        assert not is_income(MovementType.EXPENSE)
        assert not is_income(MovementType.PURCHASE)
        assert not is_income("unknown")
        assert not is_income(None)

    def test_scenario_income_expense_balance(self):
        """Ingreso 500, gasto 120, cobro 50 -> ingresos 550, gastos 120, balance 430"""
        totals = summarize_movements([
            movement(MovementType.DIRECT_SALE, Decimal("500.00")),
            movement(MovementType.EXPENSE, Decimal("120.00")),
            movement(MovementType.INVOICE_PAYMENT, Decimal("50.00")),
        ], date(2024, 3, 1), date(2024, 3, 31))
        assert totals.income == Decimal("550.00")
        assert totals.expense == Decimal("120.00")
        assert totals.balance == Decimal("430.00")
        assert totals.income - totals.expense == totals.balance

    def test_malformed_amounts_count_as_zero(self):
        totals = summarize_movements([
            movement(MovementType.DIRECT_SALE, None),
            movement(MovementType.DIRECT_SALE, "abc"),
            movement(MovementType.DIRECT_SALE, float("nan")),
            movement(MovementType.EXPENSE, "", iva="x"),
            movement(MovementType.DIRECT_SALE, "10.5"),
        ])
        assert totals.income == Decimal("10.50")
        assert totals.expense == Decimal("0.00")
        assert totals.vat_paid == Decimal("0.00")

    def test_vat_paid_only_from_expenses(self):
        totals = summarize_movements([
            movement(MovementType.DIRECT_SALE, Decimal("115"), iva=Decimal("15")),
            movement(MovementType.EXPENSE, Decimal("23"), iva=Decimal("3")),
            movement(MovementType.PURCHASE, Decimal("46"), iva=Decimal("6")),
        ])
        assert totals.vat_paid == Decimal("9.00")

    def test_range_is_inclusive_in_local_time(self):
        # 2024-03-01 00:00 local = 05:00 UTC; 2024-03-31 23:59:59 local = 2024-04-01 04:59:59 UTC
        start = datetime(2024, 3, 1, 5, 0, tzinfo=timezone.utc)
        end = datetime(2024, 4, 1, 4, 59, 59, tzinfo=timezone.utc)
        assert within_range(start, date(2024, 3, 1), date(2024, 3, 31))
        assert within_range(end, date(2024, 3, 1), date(2024, 3, 31))
        assert not within_range(start - timedelta(seconds=1), date(2024, 3, 1), date(2024, 3, 31))
        assert not within_range(end + timedelta(seconds=1), date(2024, 3, 1), date(2024, 3, 31))

    def test_open_bounds(self):
        assert within_range(MARCH_5)
        assert within_range(MARCH_5, date_from=date(2024, 3, 5))
        assert not within_range(MARCH_5, date_to=date(2024, 3, 4))
        assert not within_range(None, date_from=date(2024, 1, 1))

    def test_naive_timestamps_are_utc(self):
        naive = datetime(2024, 3, 2, 3, 0)  # 2024-03-01 22:00 local
        assert within_range(naive, date(2024, 3, 1), date(2024, 3, 1))

    def test_out_of_range_movements_are_ignored(self):
        totals = summarize_movements([
            movement(MovementType.DIRECT_SALE, Decimal("100"), created_at=datetime(2024, 2, 10, tzinfo=timezone.utc)),
            movement(MovementType.DIRECT_SALE, Decimal("40")),
        ], date(2024, 3, 1), date(2024, 3, 31))
        assert totals.income == Decimal("40.00")

    def test_vat_generated_from_invoices_in_range(self):
        invoices = [
            invoice("115", Decimal("15")),
            invoice("230", Decimal("30"), issue_date=datetime(2024, 1, 5, tzinfo=timezone.utc)),
            invoice("10", None),
        ]
        assert vat_generated(invoices, date(2024, 3, 1), date(2024, 3, 31)) == Decimal("15.00")

    def test_vat_payable_may_be_negative(self):
        summary = build_financial_summary(
            [movement(MovementType.EXPENSE, Decimal("230"), iva=Decimal("30"))],
            [invoice("115", Decimal("15"))],
            [],
            date(2024, 3, 1), date(2024, 3, 31)
        )
        assert summary.vat_generated == Decimal("15.00")
        assert summary.vat_paid == Decimal("30.00")
        assert summary.vat_payable == Decimal("-15.00")
        assert summary.receivable == Decimal("115.00")

    def test_default_period(self):
        assert default_period(date(2024, 3, 17)) == (date(2024, 3, 1), date(2024, 3, 17))


# ===== TESTS DEL SNAPSHOT =====

class TestSnapshotCache:
    """Tests para SnapshotCache"""

    def test_reuses_snapshot_until_invalidated(self):
        calls = []

        def loader(db, generation):
            calls.append(generation)
            return LedgerSnapshot(generation=generation)

        cache = SnapshotCache(loader)
        first = cache.load(None)
        assert cache.load(None) is first
        assert calls == [0]

        cache.invalidate()
        second = cache.load(None)
        assert second.generation == 1
        assert calls == [0, 1]

    def test_stale_load_is_discarded(self):
        """Una carga iniciada antes de una escritura no queda guardada"""
        started = threading.Event()
        release = threading.Event()

        def slow_loader(db, generation):
            if generation == 0:
                started.set()
                release.wait(timeout=5)
            return LedgerSnapshot(generation=generation)

        cache = SnapshotCache(slow_loader)
        results = {}
        worker = threading.Thread(target=lambda: results.setdefault("slow", cache.load(None)))
        worker.start()
        started.wait(timeout=5)

        cache.invalidate()
        fresh = cache.load(None)
        release.set()
        worker.join(timeout=5)

        assert results["slow"].generation == 0
        assert fresh.generation == 1
        # Lo que queda en caché es la carga nueva
        assert cache.load(None) is fresh


    def test_snapshot_expires_after_ttl(self):
        """Sin invalidación local (otro worker, SQL manual) el snapshot se relee al vencer"""
        calls = []
        now = [100.0]

        def loader(db, generation):
            calls.append(generation)
            return LedgerSnapshot(generation=generation)

        cache = SnapshotCache(loader, ttl_seconds=30, clock=lambda: now[0])
        first = cache.load(None)
        now[0] += 29
        assert cache.load(None) is first
        assert len(calls) == 1

        now[0] += 1
        second = cache.load(None)
        assert second is not first
        assert len(calls) == 2
        assert cache.generation == 0

    def test_zero_ttl_always_reloads(self):
        calls = []

        def loader(db, generation):
            calls.append(generation)
            return LedgerSnapshot(generation=generation)

        cache = SnapshotCache(loader, ttl_seconds=0)
        cache.load(None)
        cache.load(None)
        assert calls == [0, 0]

# ===== TESTS DE UTILIDADES =====

class TestReportUtils:
    """Tests para el formateo de valores"""

    def test_format_money(self):
        assert format_money(Decimal("1234.5")) == "$1,234.50"
        assert format_money(Decimal("-15")) == "-$15.00"
        assert format_money(None) == "$0.00"

    def test_format_csv_value(self):
        assert format_csv_value(None) == ""
        assert format_csv_value(Decimal("1.50")) == "1.50"
        assert format_csv_value(MovementType.EXPENSE) == "expense"
        assert format_csv_value(date(2024, 3, 1)) == "2024-03-01"


# ===== TESTS DE ENDPOINTS =====

@pytest.fixture
def ledger_rows(db_session: Session):
    """Movimientos e factura dentro de marzo de 2024"""
    db_session.add_all([
        Movement(type=MovementType.DIRECT_SALE, amount=Decimal("500.00"), subtotal=Decimal("500.00"),
                 iva=Decimal("0.00"), iva_rate=0, description="Cliente - Venta", created_at=MARCH_5),
        Movement(type=MovementType.EXPENSE, amount=Decimal("120.00"), subtotal=Decimal("104.35"),
                 iva=Decimal("15.65"), iva_rate=15, description="Proveedor, Gasto & otros", created_at=MARCH_5),
        Movement(type=MovementType.INVOICE_PAYMENT, amount=Decimal("50.00"),
                 description="Pago factura #F-1 - Acme", created_at=MARCH_5),
        Invoice(client="Acme <S.A.>", number="F-1", amount=Decimal("115.00"), subtotal=Decimal("100.00"),
                iva=Decimal("15.00"), iva_rate=15, status=InvoiceStatus.PENDING,
                issue_date=MARCH_5, created_at=MARCH_5),
    ])
    db_session.commit()


MARCH = {"date_from": "2024-03-01", "date_to": "2024-03-31"}


class TestReportEndpoints:
    """Tests para los endpoints /reports"""

    def test_summary(self, ledger_rows):
        response = client.get("/reports/summary", params=MARCH)
        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["income"]) == Decimal("550.00")
        assert Decimal(data["expense"]) == Decimal("120.00")
        assert Decimal(data["balance"]) == Decimal("430.00")
        assert Decimal(data["vat_generated"]) == Decimal("15.00")
        assert Decimal(data["vat_paid"]) == Decimal("15.65")
        assert Decimal(data["vat_payable"]) == Decimal("-0.65")
        assert Decimal(data["receivable"]) == Decimal("115.00")

    def test_summary_other_period_is_empty(self, ledger_rows):
        data = client.get("/reports/summary", params={"date_from": "2024-04-01", "date_to": "2024-04-30"}).json()
        assert Decimal(data["income"]) == Decimal("0")
        # Lo por cobrar no depende del período
        assert Decimal(data["receivable"]) == Decimal("115.00")

    def test_inverted_period(self):
        response = client.get("/reports/summary", params={"date_from": "2024-03-31", "date_to": "2024-03-01"})
        assert response.status_code == 400

    def test_default_period(self):
        response = client.get("/reports/summary")
        assert response.status_code == 200
        data = response.json()
        assert data["date_from"].endswith("-01")

    def test_statement(self, ledger_rows):
        response = client.get("/reports/statement", params=MARCH)
        assert response.status_code == 200
        data = response.json()
        assert data["period"] == {"date_from": "2024-03-01", "date_to": "2024-03-31"}
        assert len(data["movements"]) == 3
        assert len(data["invoices"]) == 1
        assert data["invoices"][0]["status"] == "pending"
        assert Decimal(data["invoices"][0]["remaining"]) == Decimal("115.00")
        assert [row["label"] for row in data["summary_rows"]][:3] == ["Ingresos", "Gastos", "Balance"]
        payment_row = next(row for row in data["movements"] if row["category"] == "invoice_payment")
        # Sin desglose guardado, el subtotal es el total
        assert Decimal(payment_row["subtotal"]) == Decimal("50.00")

    def test_statement_pdf(self, ledger_rows):
        response = client.get("/reports/statement/pdf", params=MARCH)
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")

    def test_statement_pdf_without_rows(self):
        response = client.get("/reports/statement/pdf", params=MARCH)
        assert response.status_code == 200
        assert response.content.startswith(b"%PDF")

    def test_movements_csv(self, ledger_rows):
        response = client.get("/reports/movements/csv", params=MARCH)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        lines = response.text.strip().splitlines()
        assert lines[0] == "Fecha,Categoría,Descripción,Total,Subtotal,IVA,% IVA"
        assert len(lines) == 4
        assert '"Proveedor, Gasto & otros"' in response.text
