from fastapi import APIRouter, Depends, status, Query, File, UploadFile, Form
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.database.database import get_db
from app.modules.auth.dependencies import require_capability
from app.modules.files.service import StorageService, get_storage_service
from app.modules.invoices.service import InvoiceService
from app.modules.invoices.schemas import (
    InvoiceCreate, InvoiceDetail, InvoiceList, InvoiceAmountUpdate,
    PaymentCreate, PaymentList, PaymentRegistration, ClientSuggestions, DocumentLink
)
from app.modules.invoices.models import InvoiceStatus

# Router principal del módulo de facturas
router = APIRouter(prefix="/invoices", tags=["Invoices"])


@router.post("/", response_model=InvoiceDetail, status_code=status.HTTP_201_CREATED)
def create_invoice(
    client: str = Form("", description="Cliente / empresa"),
    number: Optional[str] = Form(None, description="Número de factura"),
    amount: str = Form("", description="Monto total (IVA incluido)"),
    iva_rate: int = Form(0, description="Porcentaje de IVA"),
    pdf_file: Optional[UploadFile] = File(None, description="Archivo PDF de la factura"),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage_service)
):
    """
    Crear una nueva factura con su PDF

    El total incluye IVA; el subtotal y el IVA se calculan con la tasa elegida.
    La factura nace en estado pendiente.
    """
    service = InvoiceService(db, storage)
    invoice_data = InvoiceCreate(client=client, number=number, amount=amount, iva_rate=iva_rate)
    document = pdf_file.file.read() if pdf_file is not None else None
    content_type = pdf_file.content_type if pdf_file is not None else None
    invoice = service.create_invoice(invoice_data, document, content_type)
    return service.get_invoice_detail(invoice.id)


@router.get("/", response_model=InvoiceList)
def list_invoices(
    status: Optional[InvoiceStatus] = Query(None, description="Estado conciliado de la factura"),
    db: Session = Depends(get_db)
):
    """
    Listar facturas con lo pagado, el saldo pendiente y el total por cobrar
    """
    service = InvoiceService(db)
    return service.list_invoices(status)


@router.get("/clients", response_model=ClientSuggestions)
def suggest_clients(
    q: str = Query("", description="Prefijo del nombre del cliente"),
    db: Session = Depends(get_db)
):
    """
    Autocompletado de clientes (máximo 8)
    """
    service = InvoiceService(db)
    return service.suggest_clients(q)


@router.get("/{invoice_id}", response_model=InvoiceDetail)
def get_invoice(
    invoice_id: UUID,
    db: Session = Depends(get_db)
):
    """
    Obtener factura con sus pagos
    """
    service = InvoiceService(db)
    return service.get_invoice_detail(invoice_id)


@router.patch("/{invoice_id}", response_model=InvoiceDetail)
def update_invoice_amount(
    invoice_id: UUID,
    update: InvoiceAmountUpdate,
    db: Session = Depends(get_db)
):
    """
    Editar el monto total de la factura

    No recalcula el estado ni valida contra los pagos ya registrados.
    """
    service = InvoiceService(db)
    service.update_invoice_amount(invoice_id, update)
    return service.get_invoice_detail(invoice_id)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_invoice(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
    capability: dict = Depends(require_capability)
):
    """
    Eliminar factura y sus pagos

    Requiere token de capacidad (POST /auth/unlock).
    """
    service = InvoiceService(db, storage)
    service.delete_invoice(invoice_id)


@router.get("/{invoice_id}/payments", response_model=PaymentList)
def get_invoice_payments(
    invoice_id: UUID,
    db: Session = Depends(get_db)
):
    """
    Listar los pagos de una factura
    """
    service = InvoiceService(db)
    return service.list_payments(invoice_id)


@router.post("/{invoice_id}/payments", response_model=PaymentRegistration, status_code=status.HTTP_201_CREATED)
def register_payment(
    invoice_id: UUID,
    payment_data: PaymentCreate,
    db: Session = Depends(get_db)
):
    """
    Registrar un pago parcial o total

    Crea el pago, el movimiento de ingreso correspondiente y actualiza el estado
    de la factura. El pago no puede superar el saldo pendiente.
    """
    service = InvoiceService(db)
    return service.register_payment(invoice_id, payment_data)


@router.get("/{invoice_id}/document", response_model=DocumentLink)
def get_invoice_document(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage_service)
):
    """
    URL firmada del PDF de la factura (válida 10 minutos)
    """
    service = InvoiceService(db, storage)
    return service.get_document_url(invoice_id)
