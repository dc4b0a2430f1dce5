"""
Tests para el Dashboard y el visor

Cubre:
- View model: tarjetas, facturas por cobrar ordenadas y movimientos
- Página editable vs. solo lectura sobre la misma plantilla
- Redirección al PDF firmado desde el visor
"""

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.main import app
from app.modules.share_links.models import ShareLink


client = TestClient(app)


# ===== FIXTURES =====

@pytest.fixture
def populated(pdf_bytes):
    """Dos facturas con saldo distinto y un par de movimientos"""
    ids = {}
    for name, amount in [("Pequeña", "100.00"), ("Grande", "300.00"), ("Saldada", "40.00")]:
        response = client.post(
            "/invoices/",
            data={"client": name, "amount": amount},
            files={"pdf_file": ("f.pdf", pdf_bytes, "application/pdf")},
        )
        ids[name] = response.json()["id"]
    client.post(f"/invoices/{ids['Grande']}/payments", json={"amount": "50"})
    client.post(f"/invoices/{ids['Saldada']}/payments", json={"amount": "40"})
    client.post("/movements/", json={"kind": "expense", "amount": "30", "counterparty": "Luz", "detail": "Marzo"})
    return ids


class TestDashboardData:
    """Tests para el view model del dashboard"""

    def test_summary_cards(self, populated):
        data = client.get("/dashboard/data").json()
        summary = data["summary"]
        assert Decimal(summary["income"]) == Decimal("90.00")
        assert Decimal(summary["expense"]) == Decimal("30.00")
        assert Decimal(summary["balance"]) == Decimal("60.00")
        assert Decimal(summary["receivable"]) == Decimal("350.00")

    def test_outstanding_sorted_by_remaining(self, populated):
        data = client.get("/dashboard/data").json()
        outstanding = [(i["client"], Decimal(i["balance_due"])) for i in data["outstanding"]]
        assert outstanding == [("Grande", Decimal("250.00")), ("Pequeña", Decimal("100.00"))]
        assert len(data["invoices"]) == 3

    def test_movement_history(self, populated):
        data = client.get("/dashboard/data").json()
        types = sorted(m["type"] for m in data["movements"])
        assert types == ["expense", "invoice_payment", "invoice_payment"]
        assert data["editable"] is True

    def test_empty_dashboard(self):
        data = client.get("/dashboard/data").json()
        assert data["invoices"] == []
        assert Decimal(data["summary"]["balance"]) == Decimal("0")


class TestDashboardPages:
    """Tests para el renderizado HTML"""

    def test_editable_page_has_forms(self, populated):
        response = client.get("/dashboard")
        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert 'id="movement-form"' in response.text
        assert 'data-action="delete-invoice"' in response.text
        assert "$250.00" in response.text

    def test_viewer_page_is_read_only(self, populated):
        response = client.get("/viewer")
        assert response.status_code == 200
        assert 'id="movement-form"' not in response.text
        assert "data-action" not in response.text
        assert "$250.00" in response.text
        assert f"/viewer/invoices/{populated['Grande']}/document" in response.text

    def test_viewer_links_keep_token(self, populated, db_session: Session):
        db_session.add(ShareLink(token="abc123", active=True))
        db_session.commit()
        response = client.get("/viewer", params={"token": "abc123"})
        assert response.status_code == 200
        assert "document?token=abc123" in response.text

    def test_viewer_document_redirect(self, populated):
        response = client.get(f"/viewer/invoices/{populated['Grande']}/document", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"].startswith("http://storage.test/")

    def test_health(self):
        assert client.get("/health").json()["status"] == "healthy"
        assert client.get("/").status_code == 200
