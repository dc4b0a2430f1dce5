from app.database.database import Base
from sqlalchemy import Column, String, Boolean, DateTime
from app.common.mixins import BaseMixin


class ShareLink(Base, BaseMixin):
    """Token opaco que habilita el visor de solo lectura"""
    __tablename__ = "share_links"

    token = Column(String(128), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
