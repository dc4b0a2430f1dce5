"""
Common mixins for ledger models
"""
from sqlalchemy import Column, DateTime, Uuid
from sqlalchemy.sql import func
from datetime import datetime, timezone
from uuid import uuid4


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IdMixin:
    """Mixin for models keyed by a UUID primary key"""

    id = Column(Uuid, primary_key=True, default=uuid4, index=True)


class CreatedAtMixin:
    """Mixin for append-only records that only track their creation time"""

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)


class BaseMixin(IdMixin, CreatedAtMixin):
    """Combines id and creation timestamp for most ledger records"""
