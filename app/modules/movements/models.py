from app.database.database import Base
from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Enum, Text, Uuid
from app.common.mixins import BaseMixin
import enum


class MovementType(enum.Enum):
    DIRECT_SALE = "direct_sale"          # Venta directa (ingreso)
    INVOICE_PAYMENT = "invoice_payment"  # Cobro de factura (ingreso)
    EXPENSE = "expense"                  # Gasto
    PURCHASE = "purchase"                # Compra


INCOME_TYPES = frozenset({MovementType.DIRECT_SALE, MovementType.INVOICE_PAYMENT})


class Movement(Base, BaseMixin):
    __tablename__ = "movements"

    type = Column(Enum(MovementType), nullable=False, index=True)

    # Montos (amount = total cobrado/pagado, IVA incluido)
    amount = Column(Numeric(15, 2), nullable=False)
    subtotal = Column(Numeric(15, 2), nullable=True)
    iva = Column(Numeric(15, 2), nullable=True)
    iva_rate = Column(Integer, nullable=True)

    # Detalle
    description = Column(Text, nullable=True)
    counterparty = Column(String(200), nullable=True)  # Quién pagó / a quién se pagó
    detail = Column(String(500), nullable=True)        # Concepto
    area = Column(String(50), nullable=False, default="GENERAL")
    account = Column(String(50), nullable=False, default="BANCO")

    # Cobros de facturas
    invoice_id = Column(Uuid, ForeignKey("invoices.id", ondelete="SET NULL"), nullable=True, index=True)

    @property
    def is_income(self) -> bool:
        return self.type in INCOME_TYPES
