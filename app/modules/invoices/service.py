from sqlalchemy.orm import Session
from sqlalchemy import func
from fastapi import HTTPException, status
from typing import List, Optional
from uuid import UUID
from decimal import Decimal
import logging

from app.core.config import settings
from app.common.locks import KeyedLocks
from app.common.validators import parse_positive_amount, round_money, validate_required_text, ZERO
from app.modules.files.service import StorageService
from app.modules.invoices.models import Invoice, InvoicePayment, InvoiceStatus
from app.modules.invoices.reconciler import reconcile, reconcile_invoice, validate_payment_amount
from app.modules.invoices.schemas import (
    InvoiceCreate, InvoiceOut, InvoiceDetail, InvoiceList, InvoiceRecord,
    InvoiceAmountUpdate, PaymentCreate, PaymentOut, PaymentList, PaymentRegistration,
    ClientSuggestions, DocumentLink
)
from app.modules.movements.models import Movement, MovementType
from app.modules.reports.services.snapshot import SnapshotCache, get_snapshot_cache
from app.modules.taxes.calculator import TaxCalculator

logger = logging.getLogger(__name__)

CLIENT_SUGGESTIONS_LIMIT = 8

# Un lock por factura: serializa el registro de pagos sobre la misma factura
payment_locks = KeyedLocks()


def invoice_label(invoice) -> str:
    return invoice.number or str(invoice.id)


class InvoiceService:
    def __init__(self, db: Session, storage: Optional[StorageService] = None, cache: Optional[SnapshotCache] = None):
        self.db = db
        self.storage = storage
        self.cache = cache or get_snapshot_cache()
        self.tax_calculator = TaxCalculator()

    def _require_storage(self) -> StorageService:
        if self.storage is None:
            raise RuntimeError("InvoiceService requires a storage service for document operations")
        return self.storage

    def validate_document(self, data: Optional[bytes], content_type: Optional[str]) -> None:
        """Validar el PDF adjunto"""
        if not data:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Suba el PDF de la factura"
            )
        if content_type not in settings.ALLOWED_FILE_TYPES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Tipo de archivo {content_type} no permitido"
            )
        if len(data) > settings.MAX_FILE_SIZE:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="El archivo excede el tamaño máximo permitido"
            )

    def create_invoice(self, invoice_data: InvoiceCreate, document: Optional[bytes], content_type: Optional[str]) -> Invoice:
        """
        Crear una factura con su documento PDF.

        El PDF se sube antes de insertar; si la subida falla no se crea nada.
        """
        try:
            if not validate_required_text(invoice_data.client):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Ingrese el nombre del cliente/empresa"
                )
            amount = parse_positive_amount(invoice_data.amount)
            if amount is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Monto inválido"
                )
            breakdown = self.tax_calculator.split(amount, invoice_data.iva_rate)
            self.validate_document(document, content_type)

            stored = self._require_storage().upload_document(document, content_type)

            invoice = Invoice(
                client=invoice_data.client.strip(),
                number=(invoice_data.number or "").strip() or None,
                amount=breakdown.total,
                subtotal=breakdown.subtotal,
                iva=breakdown.iva,
                iva_rate=breakdown.iva_rate,
                status=InvoiceStatus.PENDING,
                document_path=stored.key,
            )
            self.db.add(invoice)
            self.db.commit()
            self.db.refresh(invoice)
            self.cache.invalidate()

            logger.info(f"Invoice {invoice.id} created for {invoice.client}: {invoice.amount}")
            return invoice

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating invoice: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error creando factura: {str(e)}"
            )

    def list_invoices(self, status_filter: Optional[InvoiceStatus] = None) -> InvoiceList:
        """Facturas con lo pagado, el saldo y el estado conciliado"""
        snapshot = self.cache.load(self.db)
        reconciliation = reconcile(snapshot.invoices, snapshot.payments)
        invoices = []
        for record in snapshot.invoices:
            balance = reconciliation.balances[record.id]
            if status_filter is not None and balance.status != status_filter:
                continue
            invoices.append(self._with_balance(record, balance))
        return InvoiceList(invoices=invoices, total=len(invoices), receivable=reconciliation.receivable)

    @staticmethod
    def _with_balance(record: InvoiceRecord, balance) -> InvoiceOut:
        return InvoiceOut(
            **record.model_dump(),
            paid_amount=balance.paid,
            balance_due=balance.remaining,
            derived_status=balance.status,
        )

    def get_invoice(self, invoice_id: UUID) -> Invoice:
        invoice = self.db.query(Invoice).filter(Invoice.id == invoice_id).first()
        if not invoice:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Factura no encontrada"
            )
        return invoice

    def get_invoice_detail(self, invoice_id: UUID) -> InvoiceDetail:
        """Obtener factura con sus pagos y saldo"""
        invoice = self.get_invoice(invoice_id)
        payments = self._payments_for(invoice_id)
        balance = reconcile_invoice(invoice, sum((p.amount for p in payments), ZERO))
        return InvoiceDetail(
            **InvoiceRecord.model_validate(invoice).model_dump(),
            paid_amount=balance.paid,
            balance_due=balance.remaining,
            derived_status=balance.status,
            payments=[PaymentOut.model_validate(p) for p in payments],
        )

    def _payments_for(self, invoice_id: UUID) -> List[InvoicePayment]:
        return self.db.query(InvoicePayment).filter(
            InvoicePayment.invoice_id == invoice_id
        ).order_by(InvoicePayment.paid_at).all()

    def _paid_amount(self, invoice_id: UUID) -> Decimal:
        total = self.db.query(func.coalesce(func.sum(InvoicePayment.amount), 0)).filter(
            InvoicePayment.invoice_id == invoice_id
        ).scalar()
        return round_money(Decimal(str(total)))

    def list_payments(self, invoice_id: UUID) -> PaymentList:
        self.get_invoice(invoice_id)
        payments = [PaymentOut.model_validate(p) for p in self._payments_for(invoice_id)]
        return PaymentList(payments=payments, total=len(payments))

    def _locked_invoice_query(self, invoice_id: UUID):
        # SELECT ... FOR UPDATE: serializa los pagos entre workers (PostgreSQL); SQLite lo ignora
        return self.db.query(Invoice).filter(Invoice.id == invoice_id).with_for_update()

    def _lock_invoice(self, invoice_id: UUID) -> Invoice:
        invoice = self._locked_invoice_query(invoice_id).first()
        if not invoice:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Factura no encontrada"
            )
        return invoice

    def register_payment(self, invoice_id: UUID, payment_data: PaymentCreate) -> PaymentRegistration:
        """
        Registrar un pago parcial o total.

        Pasos, cada uno con su propio commit:
        1. Validar el monto contra el saldo actual (leído con la factura bloqueada)
        2. Insertar el pago
        3. Insertar el movimiento de ingreso (invoice_payment)
        4. Actualizar el estado de la factura con lo pagado según el store

        La fila de la factura se lee con FOR UPDATE hasta el commit del pago.
        El lock en memoria cubre SQLite, que no tiene bloqueo de filas.

        Si falla el paso 2 no se escribe nada. Si falla el 3 o el 4 el pago
        queda registrado y el error lo indica; no hay rollback de pasos previos.
        """
        amount = parse_positive_amount(payment_data.amount)
        with payment_locks.hold(invoice_id):
            try:
                invoice = self._lock_invoice(invoice_id)
                current = reconcile_invoice(invoice, self._paid_amount(invoice_id))
                validate_payment_amount(amount, current.remaining)
            except HTTPException as e:
                self.db.rollback()
                logger.warning(f"Payment rejected for invoice {invoice_id}: {e.detail}")
                raise

            payment = self._insert_payment(invoice, amount, payment_data.note)
            movement = self._insert_payment_movement(invoice, payment)
            updated = self._update_status(invoice, payment)

        logger.info(
            f"Payment {payment.id} of {amount} registered for invoice {invoice_id} "
            f"(remaining {updated.remaining}, {updated.status.value})"
        )
        return PaymentRegistration(
            payment=PaymentOut.model_validate(payment),
            movement_id=movement.id,
            paid_amount=updated.paid,
            balance_due=updated.remaining,
            status=updated.status,
        )

    def _insert_payment(self, invoice: Invoice, amount: Decimal, note: Optional[str]) -> InvoicePayment:
        try:
            payment = InvoicePayment(invoice_id=invoice.id, amount=amount, note=note)
            self.db.add(payment)
            self.db.commit()
            self.db.refresh(payment)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error inserting payment for invoice {invoice.id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error registrando pago: {str(e)}"
            )
        self.cache.invalidate()
        return payment

    @staticmethod
    def build_payment_movement(invoice: Invoice, payment: InvoicePayment) -> Movement:
        return Movement(
            type=MovementType.INVOICE_PAYMENT,
            amount=payment.amount,
            description=f"Pago factura #{invoice_label(invoice)} - {invoice.client}",
            counterparty=invoice.client,
            detail=f"Pago factura #{invoice_label(invoice)}",
            invoice_id=invoice.id,
        )

    def _insert_payment_movement(self, invoice: Invoice, payment: InvoicePayment) -> Movement:
        try:
            movement = self.build_payment_movement(invoice, payment)
            self.db.add(movement)
            self.db.commit()
            self.db.refresh(movement)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Payment {payment.id} recorded without its ledger movement: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=(
                    f"El pago {payment.id} quedó registrado pero no se pudo crear el movimiento: {str(e)}"
                )
            )
        self.cache.invalidate()
        return movement

    def _update_status(self, invoice: Invoice, payment: InvoicePayment):
        invoice_id = invoice.id
        try:
            invoice = self._lock_invoice(invoice_id)
            balance = reconcile_invoice(invoice, self._paid_amount(invoice_id))
            invoice.status = balance.status
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Payment {payment.id} recorded but invoice {invoice_id} status not updated: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=(
                    f"El pago {payment.id} quedó registrado pero no se pudo actualizar el estado: {str(e)}"
                )
            )
        self.cache.invalidate()
        return balance

    def update_invoice_amount(self, invoice_id: UUID, update: InvoiceAmountUpdate) -> Invoice:
        """
        Reemplazar el monto total.
        No recalcula el estado ni valida contra los pagos registrados.
        """
        try:
            amount = parse_positive_amount(update.amount)
            if amount is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Monto inválido"
                )
            invoice = self.get_invoice(invoice_id)
            invoice.amount = round_money(amount)
            self.db.commit()
            self.db.refresh(invoice)
            self.cache.invalidate()

            logger.info(f"Invoice {invoice_id} amount updated to {invoice.amount}")
            return invoice

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating invoice {invoice_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error actualizando factura: {str(e)}"
            )

    def delete_invoice(self, invoice_id: UUID) -> None:
        """Eliminar factura: primero sus pagos, luego la factura y al final el PDF"""
        try:
            invoice = self.get_invoice(invoice_id)
            document_path = invoice.document_path

            self.db.query(InvoicePayment).filter(
                InvoicePayment.invoice_id == invoice_id
            ).delete(synchronize_session=False)
            self.db.flush()
            self.db.delete(invoice)
            self.db.commit()
            self.cache.invalidate()
            logger.info(f"Invoice {invoice_id} deleted")

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error deleting invoice {invoice_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error eliminando factura: {str(e)}"
            )

        if document_path and self.storage is not None:
            if not self.storage.delete_document(document_path):
                logger.warning(f"Document {document_path} of invoice {invoice_id} was not removed")

    def get_document_url(self, invoice_id: UUID) -> DocumentLink:
        """URL firmada (10 minutos) del PDF de la factura"""
        invoice = self.get_invoice(invoice_id)
        if not invoice.document_path:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="La factura no tiene documento"
            )
        url = self._require_storage().get_presigned_download_url(invoice.document_path)
        return DocumentLink(url=url, expires_in=settings.SIGNED_URL_EXPIRE_MINUTES * 60)

    def suggest_clients(self, prefix: str) -> ClientSuggestions:
        """Autocompletado: hasta 8 clientes distintos que empiezan con el prefijo"""
        query = (prefix or "").strip()
        if not query:
            return ClientSuggestions(clients=[])

        escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        rows = self.db.query(Invoice.client).filter(
            Invoice.client.ilike(f"{escaped}%", escape="\\")
        ).distinct().order_by(Invoice.client).limit(CLIENT_SUGGESTIONS_LIMIT).all()
        return ClientSuggestions(clients=[row[0] for row in rows])
