from app.database.database import Base
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric, Enum, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.common.mixins import BaseMixin, utcnow
import enum


class InvoiceStatus(enum.Enum):
    PENDING = "pending"  # Sin pagos
    PARTIAL = "partial"  # Con pagos, saldo pendiente
    PAID = "paid"        # Pagada completamente


class Invoice(Base, BaseMixin):
    __tablename__ = "invoices"

    # Invoice data
    client = Column(String(200), nullable=False, index=True)
    number = Column(String(50), nullable=True)
    status = Column(Enum(InvoiceStatus), nullable=False, default=InvoiceStatus.PENDING)

    # Totals (amount = total con IVA incluido, editable)
    amount = Column(Numeric(15, 2), nullable=False)
    subtotal = Column(Numeric(15, 2), nullable=True)
    iva = Column(Numeric(15, 2), nullable=True)
    iva_rate = Column(Integer, nullable=True)

    # Documento PDF en el object storage (clave, no URL)
    document_path = Column(String(500), nullable=True)

    issue_date = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    # Relationships (el borrado de pagos lo hace el service, en orden)
    payments = relationship("InvoicePayment", back_populates="invoice", order_by="InvoicePayment.paid_at")


class InvoicePayment(Base, BaseMixin):
    __tablename__ = "invoice_payments"

    invoice_id = Column(Uuid, ForeignKey("invoices.id"), nullable=False, index=True)

    amount = Column(Numeric(15, 2), nullable=False)
    paid_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    note = Column(Text, nullable=True)

    # Relationships
    invoice = relationship("Invoice", back_populates="payments")
