"""
Control de acceso del visor de solo lectura.

Sin token el visor es libre; con token, el enlace compartido debe existir,
estar activo y no haber expirado.
"""
from datetime import datetime, timezone
from typing import Optional
import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.modules.share_links.models import ShareLink

logger = logging.getLogger(__name__)


class AccessGate:
    """Base: decide si una vista de solo lectura puede mostrarse"""

    def is_authorized(self, db: Session) -> bool:
        raise NotImplementedError

    def authorize(self, db: Session) -> None:
        if not self.is_authorized(db):
            logger.warning(f"Viewer access denied by {self!r}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Enlace inválido, inactivo o expirado"
            )


class UnrestrictedGate(AccessGate):

    def is_authorized(self, db: Session) -> bool:
        return True

    def __repr__(self):
        return "UnrestrictedGate()"


class TokenGate(AccessGate):

    def __init__(self, token: str, now: Optional[datetime] = None):
        self.token = token
        self.now = now

    def is_authorized(self, db: Session) -> bool:
        link = db.query(ShareLink).filter(ShareLink.token == self.token).first()
        if link is None or not link.active:
            return False
        if link.expires_at is None:
            return True
        expires_at = link.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        now = self.now or datetime.now(timezone.utc)
        return now < expires_at

    def __repr__(self):
        # El token no se escribe completo en los logs
        return f"TokenGate(token={self.token[:4]}...)"


def gate_for(token: Optional[str]) -> AccessGate:
    """Sin token: acceso libre. Con token: verificación del enlace."""
    if token is None:
        return UnrestrictedGate()
    return TokenGate(token)
