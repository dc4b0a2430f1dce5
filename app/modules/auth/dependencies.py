"""
Dependencias de autorización para FastAPI.
"""
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.modules.auth.utils import verify_capability_token

# Security scheme
security = HTTPBearer(auto_error=False)


class CapabilityDependencies:
    """Dependencias reutilizables para operaciones destructivas."""

    @staticmethod
    def require_capability(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
    ) -> dict:
        """
        Exigir un token de capacidad vigente (obtenido en /auth/unlock).
        """
        if credentials is None or not credentials.credentials:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Operación protegida: desbloquee con la clave del operador"
            )
        return verify_capability_token(credentials.credentials)


# Shortcut
require_capability = CapabilityDependencies.require_capability
