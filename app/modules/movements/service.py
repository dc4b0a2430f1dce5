from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from typing import Optional
from uuid import UUID
from datetime import date
import logging

from app.common.validators import parse_positive_amount
from app.modules.movements.models import Movement
from app.modules.movements.schemas import MovementCreate, MovementList
from app.modules.reports.services.ledger import within_range
from app.modules.reports.services.snapshot import SnapshotCache, get_snapshot_cache
from app.modules.taxes.calculator import TaxCalculator

logger = logging.getLogger(__name__)


class MovementService:
    def __init__(self, db: Session, cache: SnapshotCache = None):
        self.db = db
        self.cache = cache or get_snapshot_cache()
        self.tax_calculator = TaxCalculator()

    @staticmethod
    def build_description(counterparty: str, detail: str) -> str:
        return f"{counterparty} - {detail}"

    def record_movement(self, movement_data: MovementCreate) -> Movement:
        """Registrar un ingreso o gasto con su desglose de IVA"""
        try:
            amount = parse_positive_amount(movement_data.amount)
            if amount is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Monto inválido"
                )
            breakdown = self.tax_calculator.split(amount, movement_data.iva_rate)

            counterparty = movement_data.counterparty.strip()
            detail = movement_data.detail.strip()
            movement = Movement(
                type=movement_data.movement_type,
                amount=breakdown.total,
                subtotal=breakdown.subtotal,
                iva=breakdown.iva,
                iva_rate=breakdown.iva_rate,
                description=self.build_description(counterparty, detail),
                counterparty=counterparty,
                detail=detail,
            )
            self.db.add(movement)
            self.db.commit()
            self.db.refresh(movement)
            self.cache.invalidate()

            logger.info(f"Movement {movement.id} recorded: {movement.type.value} {movement.amount}")
            return movement

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error recording movement: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error guardando el movimiento: {str(e)}"
            )

    def list_movements(self, date_from: Optional[date] = None, date_to: Optional[date] = None) -> MovementList:
        """Movimientos del rango, más recientes primero"""
        snapshot = self.cache.load(self.db)
        movements = [
            m for m in snapshot.movements
            if within_range(m.created_at, date_from, date_to)
        ]
        return MovementList(movements=movements, total=len(movements))

    def get_movement(self, movement_id: UUID) -> Movement:
        movement = self.db.query(Movement).filter(Movement.id == movement_id).first()
        if not movement:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Movimiento no encontrado"
            )
        return movement

    def delete_movement(self, movement_id: UUID) -> None:
        """Eliminar un movimiento (operación destructiva)"""
        try:
            movement = self.get_movement(movement_id)
            self.db.delete(movement)
            self.db.commit()
            self.cache.invalidate()
            logger.info(f"Movement {movement_id} deleted")

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error deleting movement {movement_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error eliminando el movimiento: {str(e)}"
            )
