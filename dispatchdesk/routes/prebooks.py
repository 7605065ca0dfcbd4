from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from dispatchdesk.database import get_db
from dispatchdesk.dependencies.owner import require_owner
from dispatchdesk.services import dispatch_service


router = APIRouter(prefix="/api/prebooks", tags=["prebooks"])


class NoteCreate(BaseModel):
    note_date: date
    note: str = Field(min_length=1)


class NoteUpdate(BaseModel):
    note: str = Field(min_length=1)


@router.get("")
def list_notes(
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    return {"status": "ok", "notes": [row.to_dict() for row in dispatch_service.list_notes(db, owner_id)]}


@router.post("", status_code=201)
def upsert_note(
    payload: NoteCreate,
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    row = dispatch_service.add_note(db, owner_id, payload.note_date, payload.note)
    return {"status": "ok", "note": row.to_dict()}


@router.patch("/{note_id}")
def edit_note(
    note_id: int,
    payload: NoteUpdate,
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    row = dispatch_service.update_note(db, owner_id, note_id, payload.note)
    return {"status": "ok", "note": row.to_dict()}


@router.delete("/{note_id}")
def remove_note(
    note_id: int,
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    dispatch_service.delete_note(db, owner_id, note_id)
    return {"status": "ok"}
