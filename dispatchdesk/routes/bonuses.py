from datetime import date
from decimal import Decimal
from typing import Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from dispatchdesk.database import get_db
from dispatchdesk.dependencies.owner import require_owner
from dispatchdesk.logic.bonus_rules import threshold_table
from dispatchdesk.services import dispatch_service


router = APIRouter(prefix="/api/bonuses", tags=["bonuses"])


class ManualBonusCreate(BaseModel):
    amount: Decimal = Field(gt=0, decimal_places=2)
    payout_date: date
    note: str | None = None
    driver_id: int | None = None  # None = company-wide


@router.get("")
def list_bonuses(
    bonus_type: Literal["automatic", "manual"] | None = Query(default=None),
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    bonuses = dispatch_service.list_bonuses(db, owner_id, bonus_type)
    return {"status": "ok", "bonuses": [bonus.to_dict() for bonus in bonuses]}


@router.get("/thresholds")
def bonus_thresholds(owner_id: str = Depends(require_owner)):
    """Tier tables, lowest threshold first for display."""
    tables = threshold_table()
    return {
        "status": "ok",
        "thresholds": {
            driver_type: [
                {"threshold": float(threshold), "bonus": float(amount)}
                for threshold, amount in reversed(tiers)
            ]
            for driver_type, tiers in tables.items()
        },
    }


@router.post("", status_code=201)
def create_manual_bonus(
    payload: ManualBonusCreate,
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    bonus = dispatch_service.add_manual_bonus(db, owner_id, **payload.model_dump())
    return {"status": "ok", "bonus": bonus.to_dict()}


@router.post("/recalculate")
def recalculate(
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    rows = dispatch_service.recalculate_automatic_bonuses(db, owner_id)
    return {"status": "ok", "automatic_bonuses": [row.to_dict() for row in rows]}


@router.delete("/{bonus_id}")
def remove_bonus(
    bonus_id: int,
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    dispatch_service.delete_bonus(db, owner_id, bonus_id)
    return {"status": "ok"}
