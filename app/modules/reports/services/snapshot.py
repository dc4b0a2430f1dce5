"""
Snapshot de lectura del libro contable.

Todas las vistas de lectura (dashboard, resúmenes, estado de cuenta) leen las
tres colecciones completas (movimientos, facturas, pagos). El snapshot guarda la
última lectura como registros desacoplados de la sesión y se invalida entero
con cada mutación confirmada.

Cada invalidación incrementa un contador de generación. Una carga anota la
generación al empezar y solo guarda su resultado si la generación no cambió al
terminar: una carga lenta iniciada antes de una escritura nunca pisa el estado
más nuevo.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional
import logging
import threading
import time

from sqlalchemy.orm import Session

from app.core.config import settings
from app.modules.movements.models import Movement
from app.modules.movements.schemas import MovementOut
from app.modules.invoices.models import Invoice, InvoicePayment
from app.modules.invoices.schemas import InvoiceRecord, PaymentOut

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerSnapshot:
    generation: int
    movements: List[MovementOut] = field(default_factory=list)
    invoices: List[InvoiceRecord] = field(default_factory=list)
    payments: List[PaymentOut] = field(default_factory=list)
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def fetch_snapshot(db: Session, generation: int) -> LedgerSnapshot:
    """Lectura completa de las tres colecciones"""
    movements = db.query(Movement).order_by(Movement.created_at.desc()).all()
    invoices = db.query(Invoice).order_by(Invoice.created_at.desc()).all()
    payments = db.query(InvoicePayment).order_by(InvoicePayment.paid_at).all()
    return LedgerSnapshot(
        generation=generation,
        movements=[MovementOut.model_validate(m) for m in movements],
        invoices=[InvoiceRecord.model_validate(i) for i in invoices],
        payments=[PaymentOut.model_validate(p) for p in payments],
    )


class SnapshotCache:
    """
    Caché de la última lectura completa, invalidada por generación.

    La generación es local al proceso: las escrituras de otro worker o una
    corrección manual en la base no la incrementan. Por eso el snapshot además
    vence a los `ttl_seconds` (SNAPSHOT_TTL_SECONDS) y se vuelve a leer.
    """

    def __init__(self, loader=fetch_snapshot, ttl_seconds: Optional[float] = None, clock=time.monotonic):
        self._loader = loader
        self._ttl = settings.SNAPSHOT_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._generation = 0
        self._snapshot: Optional[LedgerSnapshot] = None
        self._loaded_at = 0.0

    @property
    def generation(self) -> int:
        return self._generation

    def invalidate(self):
        """Llamar después de cada commit que modifique datos."""
        with self._lock:
            self._generation += 1
            self._snapshot = None
        logger.debug(f"Snapshot invalidated, generation {self._generation}")

    def _is_fresh(self, snapshot: Optional[LedgerSnapshot], generation: int, loaded_at: float) -> bool:
        if snapshot is None or snapshot.generation != generation:
            return False
        return self._clock() - loaded_at < self._ttl

    def load(self, db: Session) -> LedgerSnapshot:
        with self._lock:
            generation = self._generation
            cached = self._snapshot
            loaded_at = self._loaded_at
        if self._is_fresh(cached, generation, loaded_at):
            return cached

        started_at = self._clock()
        snapshot = self._loader(db, generation)

        with self._lock:
            if self._generation == generation:
                self._snapshot = snapshot
                self._loaded_at = started_at
            else:
                logger.info(
                    f"Discarding stale snapshot (generation {generation}, current {self._generation})"
                )
        return snapshot


snapshot_cache = SnapshotCache()


def get_snapshot_cache() -> SnapshotCache:
    return snapshot_cache
