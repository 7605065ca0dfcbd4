"""
Dispatch repository: DB reads/writes for drivers, loads, bonuses and prebook notes.
ORM queries for row access, text() statements for the owner-wide bulk updates.
Nothing here commits; the service layer owns the transaction.
"""
import logging
from typing import Any, TypeVar

from sqlalchemy import text
from sqlalchemy.orm import Session

from dispatchdesk.models.bonus import Bonus
from dispatchdesk.models.driver import Driver
from dispatchdesk.models.load import Load
from dispatchdesk.models.prebook_note import PrebookNote

logger = logging.getLogger(__name__)

Row = TypeVar("Row", Driver, Load, Bonus, PrebookNote)


# ---------------------------------------------------------------------------
# Fetch-all-by-owner
# ---------------------------------------------------------------------------

def list_drivers(db: Session, owner_id: str) -> list[Driver]:
    return (
        db.query(Driver)
        .filter(Driver.owner_id == owner_id)
        .order_by(Driver.created_at.desc(), Driver.id.desc())
        .all()
    )


def list_loads(db: Session, owner_id: str) -> list[Load]:
    return (
        db.query(Load)
        .filter(Load.owner_id == owner_id)
        .order_by(Load.delivery_date.desc(), Load.id.desc())
        .all()
    )


def list_bonuses(db: Session, owner_id: str, bonus_type: str | None = None) -> list[Bonus]:
    query = db.query(Bonus).filter(Bonus.owner_id == owner_id)
    if bonus_type:
        query = query.filter(Bonus.bonus_type == bonus_type)
    return query.order_by(Bonus.payout_date.desc(), Bonus.id.desc()).all()


def list_notes(db: Session, owner_id: str) -> list[PrebookNote]:
    return (
        db.query(PrebookNote)
        .filter(PrebookNote.owner_id == owner_id)
        .order_by(PrebookNote.note_date.asc())
        .all()
    )


# ---------------------------------------------------------------------------
# Single rows
# ---------------------------------------------------------------------------

def get_row(db: Session, model: type[Row], row_id: int) -> Row | None:
    return db.query(model).filter(model.id == row_id).first()


def find_load_by_ref(db: Session, owner_id: str, ref_id: str) -> Load | None:
    return (
        db.query(Load)
        .filter(Load.owner_id == owner_id, Load.ref_id == ref_id)
        .first()
    )


def find_note_by_date(db: Session, owner_id: str, note_date: Any) -> PrebookNote | None:
    return (
        db.query(PrebookNote)
        .filter(PrebookNote.owner_id == owner_id, PrebookNote.note_date == note_date)
        .first()
    )


# ---------------------------------------------------------------------------
# Bulk writes
# ---------------------------------------------------------------------------

def delete_automatic_bonuses(db: Session, owner_id: str) -> int:
    result = db.execute(
        text("""
            DELETE FROM bonuses
            WHERE owner_id = :owner_id
              AND bonus_type = 'automatic'
        """),
        {"owner_id": owner_id},
    )
    return int(result.rowcount or 0)


def insert_bonuses(db: Session, bonuses: list[Bonus]) -> None:
    if not bonuses:
        return
    db.add_all(bonuses)
    db.flush()


def detach_partial_loads(db: Session, owner_id: str, full_load_id: int) -> int:
    """Clear the parent link on PARTIAL loads pointing at full_load_id."""
    result = db.execute(
        text("""
            UPDATE loads
            SET connected_full_load_id = NULL
            WHERE owner_id = :owner_id
              AND connected_full_load_id = :full_load_id
        """),
        {"owner_id": owner_id, "full_load_id": full_load_id},
    )
    return int(result.rowcount or 0)


def delete_driver_rows(db: Session, owner_id: str, driver_id: int) -> dict[str, int]:
    """Remove a driver's bonuses and loads ahead of the driver row itself."""
    detached = db.execute(
        text("""
            UPDATE loads
            SET connected_full_load_id = NULL
            WHERE owner_id = :owner_id
              AND connected_full_load_id IN (
                  SELECT id FROM loads WHERE owner_id = :owner_id AND driver_id = :driver_id
              )
              AND driver_id <> :driver_id
        """),
        {"owner_id": owner_id, "driver_id": driver_id},
    ).rowcount
    bonuses_deleted = db.execute(
        text("DELETE FROM bonuses WHERE owner_id = :owner_id AND driver_id = :driver_id"),
        {"owner_id": owner_id, "driver_id": driver_id},
    ).rowcount
    db.execute(
        text("""
            UPDATE loads
            SET connected_full_load_id = NULL
            WHERE owner_id = :owner_id AND driver_id = :driver_id
        """),
        {"owner_id": owner_id, "driver_id": driver_id},
    )
    loads_deleted = db.execute(
        text("DELETE FROM loads WHERE owner_id = :owner_id AND driver_id = :driver_id"),
        {"owner_id": owner_id, "driver_id": driver_id},
    ).rowcount
    logger.info(
        "dispatch_repo: driver=%d cascade loads=%d bonuses=%d detached_partials=%d",
        driver_id, loads_deleted or 0, bonuses_deleted or 0, detached or 0,
    )
    return {
        "loads_deleted": int(loads_deleted or 0),
        "bonuses_deleted": int(bonuses_deleted or 0),
        "partials_detached": int(detached or 0),
    }
