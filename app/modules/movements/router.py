from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
from datetime import date

from app.database.database import get_db
from app.modules.auth.dependencies import require_capability
from app.modules.movements.service import MovementService
from app.modules.movements.schemas import MovementCreate, MovementOut, MovementList

router = APIRouter(prefix="/movements", tags=["Movements"])


@router.post("/", response_model=MovementOut, status_code=status.HTTP_201_CREATED)
def record_movement(
    movement_data: MovementCreate,
    db: Session = Depends(get_db)
):
    """
    Registrar un ingreso o un gasto

    El monto incluye IVA; subtotal e IVA se desglosan con la tasa elegida.
    """
    service = MovementService(db)
    return service.record_movement(movement_data)


@router.get("/", response_model=MovementList)
def list_movements(
    date_from: Optional[date] = Query(None, description="Fecha inicial (YYYY-MM-DD)"),
    date_to: Optional[date] = Query(None, description="Fecha final (YYYY-MM-DD)"),
    db: Session = Depends(get_db)
):
    """
    Historial de movimientos, más recientes primero
    """
    service = MovementService(db)
    return service.list_movements(date_from, date_to)


@router.delete("/{movement_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_movement(
    movement_id: UUID,
    db: Session = Depends(get_db),
    capability: dict = Depends(require_capability)
):
    """
    Eliminar un movimiento

    Requiere token de capacidad (POST /auth/unlock).
    """
    service = MovementService(db)
    service.delete_movement(movement_id)
