from fastapi import APIRouter

from app.modules.taxes.calculator import TaxCalculator
from app.modules.taxes.schemas import TaxBreakdown, TaxSplitRequest, VatRateList

taxes_router = APIRouter(prefix="/taxes", tags=["Taxes"])


@taxes_router.get("/rates", response_model=VatRateList)
def list_vat_rates():
    """
    Listar los porcentajes de IVA habilitados
    """
    return VatRateList(rates=TaxCalculator().rate_options())


@taxes_router.post("/split", response_model=TaxBreakdown)
def split_total(request: TaxSplitRequest):
    """
    Previsualizar el desglose subtotal/IVA de un total

    Es el mismo cálculo que se aplica al registrar movimientos y facturas.
    """
    return TaxCalculator().split(request.total, request.iva_rate)
