from fastapi import APIRouter, HTTPException, status
import logging

from app.modules.auth.schemas import UnlockRequest, CapabilityToken
from app.modules.auth.utils import (
    verify_admin_password, create_capability_token, CAPABILITY_TOKEN_EXPIRE_MINUTES
)

logger = logging.getLogger(__name__)

auth_router = APIRouter()


@auth_router.post("/unlock", response_model=CapabilityToken)
def unlock(request: UnlockRequest):
    """
    Desbloquear operaciones destructivas.

    Valida la clave del operador y entrega un token de capacidad de corta
    duración. Enviarlo como `Authorization: Bearer <token>` al eliminar
    movimientos o facturas.
    """
    if not verify_admin_password(request.password):
        logger.warning("Failed unlock attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Contraseña incorrecta"
        )

    logger.info("Capability token issued")
    return CapabilityToken(
        capability_token=create_capability_token(),
        expires_in=CAPABILITY_TOKEN_EXPIRE_MINUTES * 60
    )
