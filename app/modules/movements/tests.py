"""
Tests para el módulo de Movimientos

Cubre:
- Registro de ingresos y gastos con desglose de IVA
- Validación de montos
- Listado por rango de fechas (más recientes primero)
- Eliminación protegida por token de capacidad
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from decimal import Decimal
from datetime import date, datetime, timezone
from uuid import uuid4

from app.main import app
from app.modules.movements.models import Movement, MovementType
from app.modules.movements.schemas import MovementCreate, MovementKind
from app.modules.movements.service import MovementService


client = TestClient(app)


# ===== FIXTURES =====

@pytest.fixture
def income_data():
    return {
        "kind": "income",
        "amount": "115.00",
        "iva_rate": 15,
        "counterparty": "Cliente ABC",
        "detail": "Servicio de contabilidad"
    }


@pytest.fixture
def expense_data():
    return {
        "kind": "expense",
        "amount": "120",
        "iva_rate": 0,
        "counterparty": "Papelería",
        "detail": "Suministros"
    }


# ===== TESTS DE SERVICE =====

class TestMovementService:
    """Tests para MovementService"""

    def test_record_income(self, db_session: Session):
        """Un ingreso se guarda como venta directa con su desglose"""
        service = MovementService(db_session)
        movement = service.record_movement(MovementCreate(
            kind=MovementKind.INCOME, amount="115", iva_rate=15,
            counterparty="Cliente ABC", detail="Honorarios"
        ))

        assert movement.type == MovementType.DIRECT_SALE
        assert movement.amount == Decimal("115.00")
        assert movement.subtotal == Decimal("100.00")
        assert movement.iva == Decimal("15.00")
        assert movement.iva_rate == 15
        assert movement.description == "Cliente ABC - Honorarios"
        assert movement.area == "GENERAL"
        assert movement.account == "BANCO"

    def test_record_expense(self, db_session: Session):
        service = MovementService(db_session)
        movement = service.record_movement(MovementCreate(kind=MovementKind.EXPENSE, amount="50.5"))
        assert movement.type == MovementType.EXPENSE
        assert movement.amount == Decimal("50.50")
        assert movement.iva == Decimal("0.00")

    def test_explicit_type_wins(self, db_session: Session):
        service = MovementService(db_session)
        movement = service.record_movement(MovementCreate(
            kind=MovementKind.EXPENSE, type=MovementType.PURCHASE, amount="10"
        ))
        assert movement.type == MovementType.PURCHASE
        assert movement.is_income is False

    def test_comma_decimal(self, db_session: Session):
        service = MovementService(db_session)
        movement = service.record_movement(MovementCreate(amount="12,50"))
        assert movement.amount == Decimal("12.50")

    def test_amount_rounded_before_tax_split(self, db_session: Session):
        service = MovementService(db_session)
        movement = service.record_movement(MovementCreate(amount="115.004", iva_rate=15))
        assert movement.amount == Decimal("115.00")
        assert movement.subtotal + movement.iva == movement.amount

    @pytest.mark.parametrize("amount", ["", "abc", "0", "-5", "NaN", "0.004"])
    def test_invalid_amount_is_rejected(self, db_session: Session, amount):
        """Montos no numéricos o no positivos no se guardan"""
        service = MovementService(db_session)
        with pytest.raises(Exception) as exc:
            service.record_movement(MovementCreate(amount=amount))
        assert exc.value.status_code == 400
        assert db_session.query(Movement).count() == 0

    def test_list_filters_by_range(self, db_session: Session):
        old = Movement(
            type=MovementType.EXPENSE, amount=Decimal("10"),
            created_at=datetime(2024, 1, 10, 15, 0, tzinfo=timezone.utc)
        )
        recent = Movement(
            type=MovementType.DIRECT_SALE, amount=Decimal("20"),
            created_at=datetime(2024, 3, 5, 15, 0, tzinfo=timezone.utc)
        )
        db_session.add_all([old, recent])
        db_session.commit()

        service = MovementService(db_session)
        result = service.list_movements(date(2024, 3, 1), date(2024, 3, 31))
        assert result.total == 1
        assert result.movements[0].amount == Decimal("20.00")

        everything = service.list_movements()
        assert everything.total == 2
        # Más recientes primero
        assert everything.movements[0].created_at > everything.movements[1].created_at

    def test_delete_unknown_movement(self, db_session: Session):
        service = MovementService(db_session)
        with pytest.raises(Exception) as exc:
            service.delete_movement(uuid4())
        assert exc.value.status_code == 404


# ===== TESTS DE ENDPOINTS =====

class TestMovementEndpoints:
    """Tests para los endpoints de movimientos"""

    def test_create_movement(self, income_data):
        response = client.post("/movements/", json=income_data)
        assert response.status_code == 201
        data = response.json()
        assert data["type"] == "direct_sale"
        assert Decimal(data["subtotal"]) == Decimal("100.00")
        assert Decimal(data["iva"]) == Decimal("15.00")
        assert data["description"] == "Cliente ABC - Servicio de contabilidad"

    def test_create_movement_invalid_amount(self, income_data):
        income_data["amount"] = "abc"
        response = client.post("/movements/", json=income_data)
        assert response.status_code == 400
        assert response.json()["detail"] == "Monto inválido"

    def test_create_movement_invalid_rate(self, income_data):
        income_data["iva_rate"] = 12
        response = client.post("/movements/", json=income_data)
        assert response.status_code == 400

    @pytest.mark.parametrize("amount", ["0.004", "0,001"])
    def test_create_movement_sub_cent_amount(self, income_data, db_session: Session, amount):
        """Un monto que redondeado queda en 0.00 no genera movimiento"""
        income_data["amount"] = amount
        response = client.post("/movements/", json=income_data)
        assert response.status_code == 400
        assert response.json()["detail"] == "Monto inválido"
        assert db_session.query(Movement).count() == 0

    def test_list_movements(self, income_data, expense_data):
        client.post("/movements/", json=income_data)
        client.post("/movements/", json=expense_data)

        response = client.get("/movements/")
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["movements"][0]["type"] == "expense"

    def test_list_movements_date_query(self, income_data, expense_data):
        """El rango llega como parámetros de query date_from/date_to"""
        client.post("/movements/", json=income_data)
        client.post("/movements/", json=expense_data)

        wide = client.get("/movements/", params={"date_from": "2000-01-01", "date_to": "2100-12-31"}).json()
        assert wide["total"] == 2
        future = client.get("/movements/", params={"date_from": "2100-01-01"}).json()
        assert future["total"] == 0
        assert future["movements"] == []

    def test_list_sees_new_movement_after_cached_read(self, income_data, expense_data):
        """Cada alta invalida el snapshot de lectura"""
        client.post("/movements/", json=income_data)
        assert client.get("/movements/").json()["total"] == 1
        client.post("/movements/", json=expense_data)
        assert client.get("/movements/").json()["total"] == 2

    def test_delete_requires_capability(self, income_data):
        movement_id = client.post("/movements/", json=income_data).json()["id"]

        response = client.delete(f"/movements/{movement_id}")
        assert response.status_code == 403

        response = client.delete(
            f"/movements/{movement_id}", headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 403
        assert client.get("/movements/").json()["total"] == 1

    def test_delete_with_capability(self, income_data, capability_headers):
        movement_id = client.post("/movements/", json=income_data).json()["id"]

        response = client.delete(f"/movements/{movement_id}", headers=capability_headers)
        assert response.status_code == 204
        assert client.get("/movements/").json()["total"] == 0

    def test_delete_unknown(self, capability_headers):
        response = client.delete(f"/movements/{uuid4()}", headers=capability_headers)
        assert response.status_code == 404
