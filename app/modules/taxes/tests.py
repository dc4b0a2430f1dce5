"""
Tests para el desglose de IVA

Cubre:
- Cálculo subtotal/IVA a partir del total con IVA incluido
- Tasas habilitadas y rechazo de tasas inválidas
- Endpoints /taxes
"""

import pytest
from decimal import Decimal
from fastapi import HTTPException
from fastapi.testclient import TestClient

from app.main import app
from app.modules.taxes.calculator import TaxCalculator, split_gross_amount


client = TestClient(app)


class TestSplitGrossAmount:
    """Tests para split_gross_amount"""

    def test_fifteen_percent(self):
        """115.00 al 15% -> subtotal 100.00, IVA 15.00"""
        result = split_gross_amount(Decimal("115.00"), 15)
        assert result.subtotal == Decimal("100.00")
        assert result.iva == Decimal("15.00")
        assert result.total == Decimal("115.00")

    def test_zero_percent(self):
        """Al 0% el subtotal es el total y no hay IVA"""
        result = split_gross_amount(Decimal("87.35"), 0)
        assert result.subtotal == Decimal("87.35")
        assert result.iva == Decimal("0.00")

    @pytest.mark.parametrize("total", ["0.01", "1.00", "10.00", "33.33", "99.99", "1234.56"])
    @pytest.mark.parametrize("rate", [0, 15])
    def test_subtotal_plus_iva_equals_total(self, total, rate):
        """subtotal + IVA == total en cualquier caso"""
        result = split_gross_amount(Decimal(total), rate)
        assert result.subtotal + result.iva == Decimal(total)

    def test_rounds_to_cents(self):
        """10.00 al 15% -> 8.70 + 1.30"""
        result = split_gross_amount(Decimal("10.00"), 15)
        assert result.subtotal == Decimal("8.70")
        assert result.iva == Decimal("1.30")

    def test_garbage_total_counts_as_zero(self):
        result = split_gross_amount("abc", 15)
        assert result.total == Decimal("0.00")
        assert result.iva == Decimal("0.00")


class TestTaxCalculator:
    """Tests para TaxCalculator"""

    def test_rejects_unknown_rate(self):
        with pytest.raises(HTTPException) as exc:
            TaxCalculator([0, 15]).split(Decimal("100"), 12)
        assert exc.value.status_code == 400

    def test_custom_rates(self):
        result = TaxCalculator([0, 12]).split(Decimal("112.00"), 12)
        assert result.subtotal == Decimal("100.00")
        assert result.iva == Decimal("12.00")

    def test_rate_options(self):
        options = TaxCalculator([0, 15]).rate_options()
        assert [o.rate for o in options] == [0, 15]
        assert options[1].name == "IVA 15%"


class TestTaxesEndpoints:
    """Tests para los endpoints de impuestos"""

    def test_list_rates(self):
        response = client.get("/taxes/rates")
        assert response.status_code == 200
        assert [r["rate"] for r in response.json()["rates"]] == [0, 15]

    def test_split_endpoint(self):
        response = client.post("/taxes/split", json={"total": "115.00", "iva_rate": 15})
        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["subtotal"]) == Decimal("100.00")
        assert Decimal(data["iva"]) == Decimal("15.00")

    def test_split_endpoint_invalid_rate(self):
        response = client.post("/taxes/split", json={"total": "115.00", "iva_rate": 7})
        assert response.status_code == 400
