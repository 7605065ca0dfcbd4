from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from dispatchdesk.database import get_db
from dispatchdesk.dependencies.owner import require_owner
from dispatchdesk.repositories import dispatch_repo
from dispatchdesk.services import dispatch_service


router = APIRouter(prefix="/api/drivers", tags=["drivers"])


class DriverCreate(BaseModel):
    driver_name: str = Field(min_length=1)
    driver_type: Literal["company_driver", "owner_operator"] = "company_driver"
    status: Literal["active", "inactive"] = "active"
    truck_number: str | None = None


class DriverUpdate(BaseModel):
    driver_name: str | None = None
    driver_type: Literal["company_driver", "owner_operator"] | None = None
    status: Literal["active", "inactive"] | None = None
    truck_number: str | None = None


@router.get("")
def list_drivers(
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    drivers = dispatch_repo.list_drivers(db, owner_id)
    return {"status": "ok", "drivers": [driver.to_dict() for driver in drivers]}


@router.post("", status_code=201)
def create_driver(
    payload: DriverCreate,
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    driver = dispatch_service.add_driver(db, owner_id, **payload.model_dump())
    return {"status": "ok", "driver": driver.to_dict()}


@router.patch("/{driver_id}")
def edit_driver(
    driver_id: int,
    payload: DriverUpdate,
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    driver, reconciled = dispatch_service.update_driver(
        db, owner_id, driver_id, payload.model_dump(exclude_unset=True)
    )
    return {"status": "ok", "driver": driver.to_dict(), "bonuses_reconciled": reconciled}


@router.delete("/{driver_id}")
def remove_driver(
    driver_id: int,
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    removed = dispatch_service.delete_driver(db, owner_id, driver_id)
    return {"status": "ok", **removed}
