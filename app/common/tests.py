"""
Tests para utilidades comunes: conversión de montos y locks por clave
"""

import pytest
import threading
import time
from decimal import Decimal

from app.common.locks import KeyedLocks
from app.common.validators import coerce_amount, parse_positive_amount, round_money, validate_required_text


class TestAmountValidators:
    """Tests para los conversores de montos"""

    @pytest.mark.parametrize("value,expected", [
        (None, "0"), ("", "0"), ("abc", "0"), (True, "0"), ("NaN", "0"), ("Infinity", "0"),
        ("12.5", "12.5"), (12.5, "12.5"), (Decimal("3.10"), "3.10"), (7, "7"),
    ])
    def test_coerce_amount(self, value, expected):
        assert coerce_amount(value) == Decimal(expected)

    @pytest.mark.parametrize("value", [None, "", "  ", "abc", "0", "-1", "NaN", False, "0.004", "0,001", Decimal("0.0049")])
    def test_parse_positive_amount_rejects(self, value):
        assert parse_positive_amount(value) is None

    def test_parse_positive_amount_accepts_comma(self):
        assert parse_positive_amount("12,50") == Decimal("12.50")
        assert parse_positive_amount(" 80 ") == Decimal("80")

    def test_parse_positive_amount_rounds_to_cents(self):
        assert str(parse_positive_amount("0.005")) == "0.01"
        assert str(parse_positive_amount("12.345")) == "12.35"
        assert str(parse_positive_amount(Decimal("80"))) == "80.00"

    def test_round_money_half_up(self):
        assert round_money(Decimal("2.345")) == Decimal("2.35")
        assert round_money(Decimal("2.344")) == Decimal("2.34")

    def test_validate_required_text(self):
        assert validate_required_text("Acme")
        assert not validate_required_text("   ")
        assert not validate_required_text(None)


class TestKeyedLocks:
    """Tests para KeyedLocks"""

    def test_same_key_is_serialized(self):
        locks = KeyedLocks()
        active = []
        overlaps = []

        def work():
            with locks.hold("factura-1"):
                active.append(1)
                if len(active) > 1:
                    overlaps.append(True)
                time.sleep(0.01)
                active.pop()

        threads = [threading.Thread(target=work) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert overlaps == []

    def test_different_keys_do_not_block(self):
        locks = KeyedLocks()
        with locks.hold("a"):
            acquired = threading.Event()

            def other():
                with locks.hold("b"):
                    acquired.set()

            t = threading.Thread(target=other)
            t.start()
            assert acquired.wait(timeout=2)
            t.join()

    def test_released_keys_are_evicted(self):
        locks = KeyedLocks()
        for key in range(50):
            with locks.hold(key):
                assert len(locks) == 1
        assert len(locks) == 0

    def test_entry_survives_while_waiters_remain(self):
        locks = KeyedLocks()
        done = []

        def waiter():
            with locks.hold("factura-1"):
                done.append(True)

        with locks.hold("factura-1"):
            t = threading.Thread(target=waiter)
            t.start()
            deadline = time.monotonic() + 2
            while locks._locks["factura-1"][1] < 2 and time.monotonic() < deadline:
                time.sleep(0.005)
            assert locks._locks["factura-1"][1] == 2
            assert done == []
        t.join(timeout=2)
        assert done == [True]
        assert len(locks) == 0

    def test_entry_is_evicted_after_error(self):
        locks = KeyedLocks()
        with pytest.raises(RuntimeError):
            with locks.hold("factura-1"):
                raise RuntimeError("boom")
        assert len(locks) == 0
