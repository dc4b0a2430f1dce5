from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
import secrets

from app.modules.share_links.models import ShareLink

logger = logging.getLogger(__name__)


class ShareLinkService:
    """Alta y baja de enlaces del visor (uso administrativo, sin endpoints)"""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def generate_token() -> str:
        return secrets.token_urlsafe(24)

    def create_link(self, name: Optional[str] = None, expires_in_days: Optional[int] = None) -> ShareLink:
        expires_at = None
        if expires_in_days is not None:
            if expires_in_days <= 0:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="La vigencia debe ser mayor a 0 días"
                )
            expires_at = datetime.now(timezone.utc) + timedelta(days=expires_in_days)

        link = ShareLink(token=self.generate_token(), name=name, active=True, expires_at=expires_at)
        self.db.add(link)
        self.db.commit()
        self.db.refresh(link)
        logger.info(f"Share link {link.id} created ({name or 'sin nombre'})")
        return link

    def deactivate_link(self, token: str) -> ShareLink:
        link = self.db.query(ShareLink).filter(ShareLink.token == token).first()
        if not link:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Enlace no encontrado"
            )
        link.active = False
        self.db.commit()
        self.db.refresh(link)
        logger.info(f"Share link {link.id} deactivated")
        return link
