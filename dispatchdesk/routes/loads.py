from datetime import date
from decimal import Decimal
from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from dispatchdesk.database import get_db
from dispatchdesk.dependencies.owner import require_owner
from dispatchdesk.repositories import dispatch_repo
from dispatchdesk.services import dispatch_service


router = APIRouter(prefix="/api/loads", tags=["loads"])


class LoadCreate(BaseModel):
    ref_id: str = Field(min_length=1)
    driver_id: int
    pickup_date: date
    delivery_date: date
    origin: str = Field(min_length=1)
    destination: str = Field(min_length=1)
    rate: Decimal = Field(ge=0, decimal_places=2)
    load_type: Literal["FULL", "PARTIAL"]
    connected_full_load_id: int | None = None
    connected_full_ref_id: str | None = None  # alternative to the numeric id


class LoadUpdate(BaseModel):
    ref_id: str | None = None
    driver_id: int | None = None
    pickup_date: date | None = None
    delivery_date: date | None = None
    origin: str | None = None
    destination: str | None = None
    rate: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    load_type: Literal["FULL", "PARTIAL"] | None = None
    connected_full_load_id: int | None = None
    connected_full_ref_id: str | None = None


@router.get("")
def list_loads(
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    loads = dispatch_repo.list_loads(db, owner_id)
    return {"status": "ok", "loads": [load.to_dict() for load in loads]}


@router.post("", status_code=201)
def create_load(
    payload: LoadCreate,
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    result = dispatch_service.add_load(db, owner_id, payload.model_dump())
    return {
        "status": "ok",
        "load": result.load.to_dict() if result.load else None,
        "bonuses_reconciled": result.bonuses_reconciled,
    }


@router.patch("/{load_id}")
def edit_load(
    load_id: int,
    payload: LoadUpdate,
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    result = dispatch_service.update_load(db, owner_id, load_id, payload.model_dump(exclude_unset=True))
    return {
        "status": "ok",
        "load": result.load.to_dict() if result.load else None,
        "bonuses_reconciled": result.bonuses_reconciled,
    }


@router.delete("/{load_id}")
def remove_load(
    load_id: int,
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    result = dispatch_service.delete_load(db, owner_id, load_id)
    return {"status": "ok", "bonuses_reconciled": result.bonuses_reconciled}
