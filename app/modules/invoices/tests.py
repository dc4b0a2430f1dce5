"""
Tests para el módulo de Facturas

Cubre:
- Conciliación pura: pagado, saldo, estado y total por cobrar
- Creación con PDF y desglose de IVA
- Registro de pagos en cuatro pasos y sus rechazos
- Edición de monto, eliminación y URL firmada
- Autocompletado de clientes
"""

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Session
from decimal import Decimal
from types import SimpleNamespace
from uuid import UUID, uuid4

from app.main import app
from app.modules.invoices.models import Invoice, InvoicePayment, InvoiceStatus
from app.modules.invoices.reconciler import (
    paid_by_invoice, derive_status, reconcile, reconcile_invoice, remaining_amount, validate_payment_amount
)
from app.modules.invoices.schemas import PaymentCreate
from app.modules.invoices.service import InvoiceService, payment_locks
from app.modules.movements.models import Movement, MovementType


client = TestClient(app)


# ===== FIXTURES =====

@pytest.fixture
def create_invoice(pdf_bytes):
    """Crea una factura vía API y devuelve el JSON"""
    def _create(amount="200.00", client_name="Empresa Uno", number="001-001-000123", iva_rate=0):
        response = client.post(
            "/invoices/",
            data={"client": client_name, "number": number, "amount": amount, "iva_rate": str(iva_rate)},
            files={"pdf_file": ("factura.pdf", pdf_bytes, "application/pdf")},
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _create


def pay(invoice_id, amount):
    return client.post(f"/invoices/{invoice_id}/payments", json={"amount": amount})


def fake_invoice(amount, invoice_id=None):
    return SimpleNamespace(id=invoice_id or uuid4(), amount=Decimal(amount))


def fake_payment(invoice_id, amount):
    return SimpleNamespace(invoice_id=invoice_id, amount=amount)


# ===== TESTS DE CONCILIACIÓN =====

class TestReconciler:
    """Tests para las funciones de conciliación"""

    def test_paid_by_invoice_groups_amounts(self):
        a, b = uuid4(), uuid4()
        totals = paid_by_invoice([
            fake_payment(a, Decimal("80")), fake_payment(b, Decimal("10")), fake_payment(a, Decimal("20"))
        ])
        assert totals == {a: Decimal("100"), b: Decimal("10")}

    def test_malformed_payment_amount_counts_as_zero(self):
        a = uuid4()
        totals = paid_by_invoice([fake_payment(a, None), fake_payment(a, "abc"), fake_payment(a, "5")])
        assert totals[a] == Decimal("5")

    def test_pending_without_payments(self):
        balance = reconcile_invoice(fake_invoice("200.00"), Decimal("0"))
        assert balance.paid == Decimal("0.00")
        assert balance.remaining == Decimal("200.00")
        assert balance.status == InvoiceStatus.PENDING

    def test_partial(self):
        balance = reconcile_invoice(fake_invoice("200.00"), Decimal("80.00"))
        assert balance.remaining == Decimal("120.00")
        assert balance.status == InvoiceStatus.PARTIAL

    def test_paid(self):
        balance = reconcile_invoice(fake_invoice("200.00"), Decimal("200.00"))
        assert balance.remaining == Decimal("0.00")
        assert balance.status == InvoiceStatus.PAID

    def test_amount_edited_below_paid_clamps_to_zero(self):
        """Monto editado por debajo de lo pagado: saldo 0, estado pagada"""
        balance = reconcile_invoice(fake_invoice("50.00"), Decimal("80.00"))
        assert balance.remaining == Decimal("0.00")
        assert balance.status == InvoiceStatus.PAID

    @pytest.mark.parametrize("amount,paid", [
        ("200", "0"), ("200", "0.01"), ("200", "199.99"), ("200", "200"), ("200", "250"), ("0.01", "0.01"),
    ])
    def test_status_matches_remaining(self, amount, paid):
        invoice = fake_invoice(amount)
        balance = reconcile_invoice(invoice, Decimal(paid))
        assert balance.remaining >= 0
        assert balance.remaining == max(Decimal("0"), invoice.amount - Decimal(paid))
        assert (balance.status == InvoiceStatus.PAID) == (balance.remaining == 0 and balance.paid > 0)
        assert (balance.status == InvoiceStatus.PENDING) == (balance.paid == 0)
        assert (balance.status == InvoiceStatus.PARTIAL) == (0 < balance.remaining < invoice.amount)

    def test_settled_remaining_keeps_two_decimals(self):
        assert str(remaining_amount(Decimal("100"), Decimal("100"))) == "0.00"
        assert str(remaining_amount(Decimal("50.00"), Decimal("80.00"))) == "0.00"
        assert str(reconcile_invoice(fake_invoice("200"), Decimal("200")).remaining) == "0.00"

    def test_derive_status(self):
        assert derive_status(Decimal("100"), Decimal("0")) == InvoiceStatus.PENDING
        assert derive_status(Decimal("100"), Decimal("40")) == InvoiceStatus.PARTIAL
        assert derive_status(Decimal("100"), Decimal("100")) == InvoiceStatus.PAID

    def test_receivable_only_counts_open_invoices(self):
        paid_off = fake_invoice("100.00")
        partial = fake_invoice("200.00")
        untouched = fake_invoice("50.00")
        result = reconcile(
            [paid_off, partial, untouched],
            [fake_payment(paid_off.id, Decimal("100")), fake_payment(partial.id, Decimal("80"))]
        )
        assert result.receivable == Decimal("170.00")
        assert result.balances[paid_off.id].status == InvoiceStatus.PAID
        assert result.balances[partial.id].remaining == Decimal("120.00")
        assert result.balances[untouched.id].status == InvoiceStatus.PENDING

    def test_payments_for_unknown_invoices_are_ignored(self):
        invoice = fake_invoice("10.00")
        result = reconcile([invoice], [fake_payment(uuid4(), Decimal("10"))])
        assert result.receivable == Decimal("10.00")

    @pytest.mark.parametrize("amount", [None, Decimal("0"), Decimal("-1"), Decimal("120.01")])
    def test_validate_payment_amount_rejects(self, amount):
        with pytest.raises(HTTPException) as exc:
            validate_payment_amount(amount, Decimal("120.00"))
        assert exc.value.status_code == 400

    def test_validate_payment_rejects_paid_invoice(self):
        with pytest.raises(HTTPException) as exc:
            validate_payment_amount(Decimal("1"), Decimal("0"))
        assert "ya está pagada" in exc.value.detail

    def test_validate_payment_accepts_exact_remaining(self):
        assert validate_payment_amount(Decimal("120.00"), Decimal("120.00")) == Decimal("120.00")


# ===== TESTS DE CREACIÓN =====

class TestInvoiceCreation:
    """Tests para la creación de facturas"""

    def test_create_with_vat(self, create_invoice, storage):
        """115.00 al 15% -> subtotal 100.00, IVA 15.00, estado pendiente"""
        data = create_invoice(amount="115.00", iva_rate=15)
        assert Decimal(data["subtotal"]) == Decimal("100.00")
        assert Decimal(data["iva"]) == Decimal("15.00")
        assert data["status"] == "pending"
        assert data["derived_status"] == "pending"
        assert Decimal(data["balance_due"]) == Decimal("115.00")
        assert data["document_path"].startswith("invoices/")
        assert data["document_path"].endswith(".pdf")
        assert data["document_path"] in storage.objects

    def test_client_is_required(self, pdf_bytes):
        response = client.post(
            "/invoices/",
            data={"client": "   ", "amount": "100"},
            files={"pdf_file": ("factura.pdf", pdf_bytes, "application/pdf")},
        )
        assert response.status_code == 400

    def test_pdf_is_required(self):
        response = client.post("/invoices/", data={"client": "Empresa", "amount": "100"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Suba el PDF de la factura"

    def test_only_pdf_documents(self):
        response = client.post(
            "/invoices/",
            data={"client": "Empresa", "amount": "100"},
            files={"pdf_file": ("factura.png", b"\x89PNG", "image/png")},
        )
        assert response.status_code == 400

    @pytest.mark.parametrize("amount", ["", "abc", "0", "-10"])
    def test_invalid_amount(self, pdf_bytes, storage, amount):
        response = client.post(
            "/invoices/",
            data={"client": "Empresa", "amount": amount},
            files={"pdf_file": ("factura.pdf", pdf_bytes, "application/pdf")},
        )
        assert response.status_code == 400
        assert storage.objects == {}

    @pytest.mark.parametrize("amount", ["0.004", "0,001"])
    def test_sub_cent_amount_is_rejected(self, pdf_bytes, storage, db_session: Session, amount):
        """Un monto que redondeado a centavos queda en 0.00 no crea la factura"""
        response = client.post(
            "/invoices/",
            data={"client": "Empresa", "amount": amount},
            files={"pdf_file": ("factura.pdf", pdf_bytes, "application/pdf")},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Monto inválido"
        assert db_session.query(Invoice).count() == 0
        assert storage.objects == {}

    def test_amount_is_rounded_to_cents(self, create_invoice):
        data = create_invoice(amount="100.005")
        assert data["amount"] == "100.01"
        assert data["balance_due"] == "100.01"

    def test_upload_failure_creates_nothing(self, pdf_bytes, storage, db_session: Session):
        storage.fail_uploads = True
        response = client.post(
            "/invoices/",
            data={"client": "Empresa", "amount": "100"},
            files={"pdf_file": ("factura.pdf", pdf_bytes, "application/pdf")},
        )
        assert response.status_code == 500
        assert db_session.query(Invoice).count() == 0


# ===== TESTS DE PAGOS =====

class TestPaymentRegistration:
    """Tests para el registro de pagos"""

    def test_partial_payment(self, create_invoice):
        """Total 200.00, pago de 80.00 -> pagado 80.00, saldo 120.00, parcial"""
        invoice = create_invoice(amount="200.00")
        response = pay(invoice["id"], "80.00")
        assert response.status_code == 201
        data = response.json()
        assert Decimal(data["paid_amount"]) == Decimal("80.00")
        assert Decimal(data["balance_due"]) == Decimal("120.00")
        assert data["status"] == "partial"

        detail = client.get(f"/invoices/{invoice['id']}").json()
        assert detail["status"] == "partial"
        assert Decimal(detail["balance_due"]) == Decimal("120.00")
        assert len(detail["payments"]) == 1

    def test_full_payment_in_two_steps(self, create_invoice):
        """Total 200.00, pagos de 80.00 y 120.00 -> saldo 0.00, pagada"""
        invoice = create_invoice(amount="200.00")
        pay(invoice["id"], "80.00")
        response = pay(invoice["id"], "120.00")
        assert response.status_code == 201
        data = response.json()
        assert Decimal(data["balance_due"]) == Decimal("0.00")
        assert data["status"] == "paid"

        listing = client.get("/invoices/").json()
        assert Decimal(listing["receivable"]) == Decimal("0.00")
        assert listing["invoices"][0]["derived_status"] == "paid"

    def test_overpayment_is_rejected(self, create_invoice, db_session: Session):
        """Pago de 150.00 contra saldo 120.00 -> rechazado, lo pagado no cambia"""
        invoice = create_invoice(amount="200.00")
        pay(invoice["id"], "80.00")

        response = pay(invoice["id"], "150.00")
        assert response.status_code == 400

        detail = client.get(f"/invoices/{invoice['id']}").json()
        assert Decimal(detail["paid_amount"]) == Decimal("80.00")
        assert db_session.query(InvoicePayment).count() == 1
        assert db_session.query(Movement).filter(
            Movement.type == MovementType.INVOICE_PAYMENT
        ).count() == 1

    @pytest.mark.parametrize("amount", ["0", "-5", "abc", ""])
    def test_non_positive_payment_is_rejected(self, create_invoice, db_session: Session, amount):
        invoice = create_invoice(amount="200.00")
        response = pay(invoice["id"], amount)
        assert response.status_code == 400
        assert db_session.query(InvoicePayment).count() == 0
        assert db_session.query(Movement).count() == 0

    @pytest.mark.parametrize("amount", ["0.004", "0.001"])
    def test_sub_cent_payment_is_rejected(self, create_invoice, db_session: Session, amount):
        """0.004 redondea a 0.00: no se guarda pago ni movimiento"""
        invoice = create_invoice(amount="200.00")
        response = pay(invoice["id"], amount)
        assert response.status_code == 400
        assert response.json()["detail"] == "Monto inválido"
        assert db_session.query(InvoicePayment).count() == 0
        assert db_session.query(Movement).count() == 0
        assert client.get(f"/invoices/{invoice['id']}").json()["status"] == "pending"

    def test_payment_is_stored_in_cents(self, create_invoice, db_session: Session):
        invoice = create_invoice(amount="200.00")
        response = pay(invoice["id"], "80.004")
        assert response.status_code == 201
        assert response.json()["payment"]["amount"] == "80.00"
        assert db_session.query(InvoicePayment).one().amount == Decimal("80.00")
        assert db_session.query(Movement).one().amount == Decimal("80.00")

    def test_settled_invoice_reports_zero_with_cents(self, create_invoice):
        invoice = create_invoice(amount="50.00")
        data = pay(invoice["id"], "50.00").json()
        assert data["balance_due"] == "0.00"
        assert client.get(f"/invoices/{invoice['id']}").json()["balance_due"] == "0.00"

    def test_invoice_row_is_locked_for_payment(self, db_session: Session):
        """La lectura de la factura al pagar emite SELECT ... FOR UPDATE en PostgreSQL"""
        query = InvoiceService(db_session)._locked_invoice_query(uuid4())
        sql = str(query.statement.compile(dialect=postgresql.dialect()))
        assert "FOR UPDATE" in sql

    def test_payment_locks_are_released(self, create_invoice):
        invoice = create_invoice(amount="100.00")
        pay(invoice["id"], "30.00")
        pay(invoice["id"], "500.00")
        assert len(payment_locks) == 0

    def test_status_is_computed_from_stored_payments(self, create_invoice, db_session: Session):
        """El paso 4 suma los pagos guardados, no solo el pago en curso"""
        invoice = create_invoice(amount="100.00")
        invoice_id = UUID(invoice["id"])
        service = InvoiceService(db_session)
        service.register_payment(invoice_id, PaymentCreate(amount="60"))

        db_session.add(InvoicePayment(invoice_id=invoice_id, amount=Decimal("40")))
        db_session.commit()
        payment = db_session.query(InvoicePayment).filter(InvoicePayment.amount == Decimal("40")).one()

        balance = service._update_status(db_session.get(Invoice, invoice_id), payment)
        assert balance.paid == Decimal("100.00")
        assert balance.status == InvoiceStatus.PAID
        assert db_session.get(Invoice, invoice_id).status == InvoiceStatus.PAID

    def test_paid_invoice_rejects_more_payments(self, create_invoice):
        invoice = create_invoice(amount="50.00")
        pay(invoice["id"], "50.00")
        response = pay(invoice["id"], "1.00")
        assert response.status_code == 400
        assert response.json()["detail"] == "La factura ya está pagada"

    def test_payment_creates_income_movement(self, create_invoice, db_session: Session):
        invoice = create_invoice(amount="200.00", number="F-9")
        pay(invoice["id"], "80.00")

        movement = db_session.query(Movement).one()
        assert movement.type == MovementType.INVOICE_PAYMENT
        assert movement.amount == Decimal("80.00")
        assert movement.description == "Pago factura #F-9 - Empresa Uno"
        assert str(movement.invoice_id) == invoice["id"]

    def test_payment_to_unknown_invoice(self):
        response = pay(uuid4(), "10")
        assert response.status_code == 404

    def test_remaining_is_read_from_the_store(self, create_invoice, db_session: Session):
        """Un pago ya guardado cuenta aunque el snapshot aún no se haya recargado"""
        invoice = create_invoice(amount="100.00")
        db_session.add(InvoicePayment(invoice_id=UUID(invoice["id"]), amount=Decimal("70")))
        db_session.commit()

        response = pay(invoice["id"], "40.00")
        assert response.status_code == 400

    def test_movement_failure_keeps_payment(self, create_invoice, db_session: Session, monkeypatch):
        """Si falla el movimiento, el pago queda registrado y el error lo indica"""
        invoice = create_invoice(amount="200.00")

        def broken(*args, **kwargs):
            raise RuntimeError("store unavailable")
        monkeypatch.setattr(InvoiceService, "build_payment_movement", staticmethod(broken))

        service = InvoiceService(db_session)
        invoice_id = UUID(invoice["id"])
        with pytest.raises(HTTPException) as exc:
            service.register_payment(invoice_id, PaymentCreate(amount="80"))
        assert exc.value.status_code == 500
        assert "quedó registrado" in exc.value.detail

        assert db_session.query(InvoicePayment).count() == 1
        assert db_session.query(Movement).count() == 0
        assert db_session.query(Invoice).one().status == InvoiceStatus.PENDING


# ===== TESTS DE EDICIÓN Y ELIMINACIÓN =====

class TestInvoiceMaintenance:
    """Tests para edición, eliminación, documento y autocompletado"""

    def test_update_amount_keeps_status(self, create_invoice):
        invoice = create_invoice(amount="200.00")
        pay(invoice["id"], "80.00")

        response = client.patch(f"/invoices/{invoice['id']}", json={"amount": "50"})
        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["amount"]) == Decimal("50.00")
        # Estado almacenado sin recalcular; el saldo conciliado se fija en 0
        assert data["status"] == "partial"
        assert Decimal(data["balance_due"]) == Decimal("0.00")
        assert data["derived_status"] == "paid"

    def test_update_amount_invalid(self, create_invoice):
        invoice = create_invoice()
        response = client.patch(f"/invoices/{invoice['id']}", json={"amount": "0"})
        assert response.status_code == 400

    @pytest.mark.parametrize("amount", ["0.001", "0.004"])
    def test_update_amount_sub_cent_is_rejected(self, create_invoice, amount):
        invoice = create_invoice(amount="200.00")
        response = client.patch(f"/invoices/{invoice['id']}", json={"amount": amount})
        assert response.status_code == 400

        detail = client.get(f"/invoices/{invoice['id']}").json()
        assert detail["amount"] == "200.00"
        assert detail["balance_due"] == "200.00"

    def test_delete_requires_capability(self, create_invoice):
        invoice = create_invoice()
        assert client.delete(f"/invoices/{invoice['id']}").status_code == 403

    def test_delete_removes_payments_and_document(self, create_invoice, capability_headers, storage, db_session: Session):
        invoice = create_invoice(amount="200.00")
        pay(invoice["id"], "80.00")

        response = client.delete(f"/invoices/{invoice['id']}", headers=capability_headers)
        assert response.status_code == 204
        assert db_session.query(Invoice).count() == 0
        assert db_session.query(InvoicePayment).count() == 0
        assert storage.objects == {}
        # El ingreso ya cobrado permanece en el libro
        assert db_session.query(Movement).count() == 1
        assert client.get(f"/invoices/{invoice['id']}").status_code == 404

    def test_delete_succeeds_when_document_removal_fails(self, create_invoice, capability_headers, storage):
        invoice = create_invoice()
        storage.fail_deletes = True
        response = client.delete(f"/invoices/{invoice['id']}", headers=capability_headers)
        assert response.status_code == 204

    def test_document_url(self, create_invoice):
        invoice = create_invoice()
        response = client.get(f"/invoices/{invoice['id']}/document")
        assert response.status_code == 200
        data = response.json()
        assert invoice["document_path"] in data["url"]
        assert data["expires_in"] == 600

    def test_client_suggestions(self, create_invoice):
        create_invoice(client_name="Acme S.A.")
        create_invoice(client_name="Acme S.A.")
        create_invoice(client_name="acme norte")
        create_invoice(client_name="Beta Ltda")

        response = client.get("/invoices/clients", params={"q": "ac"})
        assert response.status_code == 200
        assert sorted(response.json()["clients"]) == ["Acme S.A.", "acme norte"]

    def test_client_suggestions_limit(self, create_invoice):
        for i in range(10):
            create_invoice(client_name=f"Cliente {i}")
        response = client.get("/invoices/clients", params={"q": "cliente"})
        assert len(response.json()["clients"]) == 8

    def test_client_suggestions_empty_query(self):
        assert client.get("/invoices/clients", params={"q": "  "}).json()["clients"] == []

    def test_list_filter_by_status(self, create_invoice):
        paid = create_invoice(amount="10.00")
        create_invoice(amount="20.00")
        pay(paid["id"], "10.00")

        response = client.get("/invoices/", params={"status": "pending"})
        data = response.json()
        assert data["total"] == 1
        assert Decimal(data["receivable"]) == Decimal("20.00")
