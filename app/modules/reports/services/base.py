"""
Base service class for Reports module

Provides the snapshot read shared by every report and the default period
resolution.
"""

from datetime import date, datetime
from typing import Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from .ledger import local_zone
from .snapshot import LedgerSnapshot, SnapshotCache, get_snapshot_cache


def local_today() -> date:
    return datetime.now(local_zone()).date()


def default_period(today: Optional[date] = None) -> Tuple[date, date]:
    """Primer día del mes en curso hasta hoy"""
    today = today or local_today()
    return today.replace(day=1), today


class BaseReportService:
    """Base service class for all report services"""

    def __init__(self, db: Session, cache: Optional[SnapshotCache] = None):
        self.db = db
        self.cache = cache or get_snapshot_cache()

    def _load_snapshot(self) -> LedgerSnapshot:
        return self.cache.load(self.db)

    def _resolve_period(self, date_from: Optional[date], date_to: Optional[date]) -> Tuple[date, date]:
        """Completa los límites omitidos con el período por defecto"""
        default_from, default_to = default_period()
        date_from = date_from or default_from
        date_to = date_to or default_to
        if date_to < date_from:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="date_to must be greater than or equal to date_from"
            )
        return date_from, date_to
