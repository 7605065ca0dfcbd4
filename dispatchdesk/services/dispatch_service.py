"""
Dispatch back-office operations for one owner.

Every operation:
  - checks the caller owns every row it touches
  - validates input before the write
  - commits, and only then returns (no optimistic local state)
Load writes and driver classification changes are followed by a full
automatic bonus reconciliation against the freshly committed load set.
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from dispatchdesk.logic.money import to_money
from dispatchdesk.logic.payroll import week_start_of
from dispatchdesk.models.bonus import BONUS_TYPES, Bonus
from dispatchdesk.models.driver import DRIVER_STATUSES, DRIVER_TYPES, Driver
from dispatchdesk.models.load import LOAD_TYPES, Load
from dispatchdesk.models.prebook_note import PrebookNote
from dispatchdesk.repositories import dispatch_repo
from dispatchdesk.services.app_state import AppState, PeriodSelection
from dispatchdesk.services.bonus_reconciliation import reconcile_automatic_bonuses
from dispatchdesk.services.errors import (
    DuplicateLoadReferenceError,
    InputValidationError,
    OwnershipError,
    PersistenceError,
    ReconciliationError,
    RecordNotFoundError,
)

logger = logging.getLogger(__name__)

Row = TypeVar("Row", Driver, Load, Bonus, PrebookNote)

_LOAD_FIELDS = (
    "ref_id",
    "driver_id",
    "pickup_date",
    "delivery_date",
    "origin",
    "destination",
    "rate",
    "load_type",
    "connected_full_load_id",
)


@dataclass
class LoadWriteResult:
    load: Load | None
    bonuses_reconciled: bool


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _owned(db: Session, model: type[Row], row_id: int, owner_id: str) -> Row:
    row = dispatch_repo.get_row(db, model, row_id)
    if row is None:
        raise RecordNotFoundError(f"{model.__name__} {row_id} not found")
    if row.owner_id != owner_id:
        logger.warning(
            "dispatch: owner=%s denied access to %s id=%d", owner_id, model.__tablename__, row_id,
        )
        raise OwnershipError(f"{model.__name__} {row_id} belongs to another account")
    return row


def _is_duplicate_ref(error: IntegrityError) -> bool:
    message = str(getattr(error, "orig", error)).lower()
    return "uq_loads_owner_ref" in message or ("unique" in message and "ref_id" in message)


def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if _is_duplicate_ref(e):
            raise DuplicateLoadReferenceError() from e
        logger.error("dispatch: %s integrity error: %s", action, str(e))
        raise PersistenceError(f"Failed to {action}") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("dispatch: %s DB error: %s", action, str(e))
        raise PersistenceError(f"Failed to {action}") from e


def _reconcile_after_write(db: Session, owner_id: str) -> bool:
    try:
        reconcile_automatic_bonuses(db, owner_id)
    except ReconciliationError:
        # already logged and rolled back; the committed write stands
        return False
    return True


def _as_date(value: Any, field_name: str) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except (TypeError, ValueError):
        raise InputValidationError(f"{field_name} must be a date (YYYY-MM-DD)")


def _as_money(value: Any, field_name: str) -> Decimal:
    """Strict parse for caller input; stored values go through to_money."""
    if value is None or isinstance(value, bool):
        raise InputValidationError(f"{field_name} must be a decimal amount")
    try:
        parsed = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation:
        raise InputValidationError(f"{field_name} must be a decimal amount")
    if not parsed.is_finite():
        raise InputValidationError(f"{field_name} must be a decimal amount")
    return to_money(parsed)


def _clean_text(value: Any, field_name: str, required: bool = True) -> str | None:
    cleaned = (str(value) if value is not None else "").strip()
    if required and not cleaned:
        raise InputValidationError(f"{field_name} is required")
    return cleaned or None


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

def load_app_state(db: Session, owner_id: str, selection: PeriodSelection | None = None) -> AppState:
    try:
        return AppState(
            owner_id=owner_id,
            drivers=dispatch_repo.list_drivers(db, owner_id),
            loads=dispatch_repo.list_loads(db, owner_id),
            bonuses=dispatch_repo.list_bonuses(db, owner_id),
            selection=selection or PeriodSelection.today(),
        )
    except SQLAlchemyError as e:
        logger.error("dispatch: owner=%s failed to load data: %s", owner_id, str(e))
        raise PersistenceError("Failed to load data") from e


# ---------------------------------------------------------------------------
# Drivers
# ---------------------------------------------------------------------------

def _validate_driver_fields(fields: dict[str, Any]) -> dict[str, Any]:
    clean: dict[str, Any] = {}
    if "driver_name" in fields:
        clean["driver_name"] = _clean_text(fields["driver_name"], "driver_name")
    if "driver_type" in fields:
        if fields["driver_type"] not in DRIVER_TYPES:
            raise InputValidationError(f"driver_type must be one of {', '.join(DRIVER_TYPES)}")
        clean["driver_type"] = fields["driver_type"]
    if "status" in fields:
        if fields["status"] not in DRIVER_STATUSES:
            raise InputValidationError(f"status must be one of {', '.join(DRIVER_STATUSES)}")
        clean["status"] = fields["status"]
    if "truck_number" in fields:
        clean["truck_number"] = _clean_text(fields["truck_number"], "truck_number", required=False)
    return clean


def add_driver(
    db: Session,
    owner_id: str,
    *,
    driver_name: str,
    driver_type: str = "company_driver",
    status: str = "active",
    truck_number: str | None = None,
) -> Driver:
    clean = _validate_driver_fields(
        {
            "driver_name": driver_name,
            "driver_type": driver_type,
            "status": status,
            "truck_number": truck_number,
        }
    )
    driver = Driver(owner_id=owner_id, **clean)
    db.add(driver)
    _commit(db, "add driver")
    db.refresh(driver)
    logger.info("dispatch: owner=%s added driver=%d type=%s", owner_id, driver.id, driver.driver_type)
    return driver


def update_driver(db: Session, owner_id: str, driver_id: int, changes: dict[str, Any]) -> tuple[Driver, bool]:
    """Returns (driver, bonuses_reconciled). Reconciles only on a classification change."""
    driver = _owned(db, Driver, driver_id, owner_id)
    clean = _validate_driver_fields(changes)
    type_changed = "driver_type" in clean and clean["driver_type"] != driver.driver_type

    for key, value in clean.items():
        setattr(driver, key, value)
    _commit(db, "update driver")

    reconciled = True
    if type_changed:
        logger.info("dispatch: owner=%s driver=%d classification -> %s", owner_id, driver_id, clean["driver_type"])
        reconciled = _reconcile_after_write(db, owner_id)
    db.refresh(driver)
    return driver, reconciled


def delete_driver(db: Session, owner_id: str, driver_id: int) -> dict[str, Any]:
    """Cascades the driver's loads and bonuses, then reconciles the rest."""
    driver = _owned(db, Driver, driver_id, owner_id)
    try:
        removed: dict[str, Any] = dispatch_repo.delete_driver_rows(db, owner_id, driver_id)
        db.delete(driver)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("dispatch: owner=%s delete driver=%d failed: %s", owner_id, driver_id, str(e))
        raise PersistenceError("Failed to delete driver") from e
    _commit(db, "delete driver")

    removed["bonuses_reconciled"] = _reconcile_after_write(db, owner_id)
    return removed


# ---------------------------------------------------------------------------
# Loads
# ---------------------------------------------------------------------------

def _resolve_full_parent(db: Session, owner_id: str, fields: dict[str, Any], self_id: int | None) -> int:
    parent: Load | None = None
    parent_id = fields.get("connected_full_load_id")
    parent_ref = fields.get("connected_full_ref_id")

    if parent_id is None and not parent_ref:
        raise InputValidationError("PARTIAL loads must be linked to an existing FULL load.")

    if parent_id is not None:
        parent = dispatch_repo.get_row(db, Load, int(parent_id))
    else:
        parent = dispatch_repo.find_load_by_ref(db, owner_id, str(parent_ref).strip())

    if (
        parent is None
        or parent.owner_id != owner_id
        or parent.load_type != "FULL"
        or (self_id is not None and parent.id == self_id)
    ):
        raise InputValidationError("The selected FULL load does not exist.")
    return parent.id


def _validate_load(db: Session, owner_id: str, fields: dict[str, Any], self_id: int | None = None) -> dict[str, Any]:
    clean: dict[str, Any] = {
        "ref_id": _clean_text(fields.get("ref_id"), "ref_id"),
        "origin": _clean_text(fields.get("origin"), "origin"),
        "destination": _clean_text(fields.get("destination"), "destination"),
        "pickup_date": _as_date(fields.get("pickup_date"), "pickup_date"),
        "delivery_date": _as_date(fields.get("delivery_date"), "delivery_date"),
    }
    if clean["delivery_date"] < clean["pickup_date"]:
        raise InputValidationError("delivery_date cannot be before pickup_date")

    if fields.get("rate") is None:
        raise InputValidationError("rate is required")
    rate = _as_money(fields["rate"], "rate")
    if rate < Decimal("0.00"):
        raise InputValidationError("rate cannot be negative")
    clean["rate"] = rate

    load_type = fields.get("load_type")
    if load_type not in LOAD_TYPES:
        raise InputValidationError(f"load_type must be one of {', '.join(LOAD_TYPES)}")
    clean["load_type"] = load_type

    driver_id = fields.get("driver_id")
    if driver_id is None:
        raise InputValidationError("driver_id is required")
    driver = dispatch_repo.get_row(db, Driver, int(driver_id))
    if driver is None or driver.owner_id != owner_id:
        raise InputValidationError(f"Driver {driver_id} does not exist")
    clean["driver_id"] = driver.id

    if load_type == "PARTIAL":
        clean["connected_full_load_id"] = _resolve_full_parent(db, owner_id, fields, self_id)
    else:
        clean["connected_full_load_id"] = None

    duplicate = dispatch_repo.find_load_by_ref(db, owner_id, clean["ref_id"])
    if duplicate is not None and duplicate.id != self_id:
        raise DuplicateLoadReferenceError()
    return clean


def add_load(db: Session, owner_id: str, fields: dict[str, Any]) -> LoadWriteResult:
    clean = _validate_load(db, owner_id, fields)
    load = Load(owner_id=owner_id, **clean)
    db.add(load)
    _commit(db, "add load")
    load_id = load.id
    logger.info("dispatch: owner=%s added load=%d ref=%s", owner_id, load_id, clean["ref_id"])

    reconciled = _reconcile_after_write(db, owner_id)
    return LoadWriteResult(load=dispatch_repo.get_row(db, Load, load_id), bonuses_reconciled=reconciled)


def update_load(db: Session, owner_id: str, load_id: int, changes: dict[str, Any]) -> LoadWriteResult:
    load = _owned(db, Load, load_id, owner_id)
    merged = {name: getattr(load, name) for name in _LOAD_FIELDS}
    merged.update(changes)
    if "connected_full_ref_id" in changes and "connected_full_load_id" not in changes:
        merged["connected_full_load_id"] = None
    clean = _validate_load(db, owner_id, merged, self_id=load.id)

    was_full = load.load_type == "FULL"
    for key, value in clean.items():
        setattr(load, key, value)
    if was_full and clean["load_type"] != "FULL":
        # children may only point at FULL loads
        dispatch_repo.detach_partial_loads(db, owner_id, load.id)
    _commit(db, "update load")

    reconciled = _reconcile_after_write(db, owner_id)
    return LoadWriteResult(load=dispatch_repo.get_row(db, Load, load_id), bonuses_reconciled=reconciled)


def delete_load(db: Session, owner_id: str, load_id: int) -> LoadWriteResult:
    load = _owned(db, Load, load_id, owner_id)
    try:
        if load.load_type == "FULL":
            detached = dispatch_repo.detach_partial_loads(db, owner_id, load.id)
            if detached:
                logger.info("dispatch: owner=%s load=%d detached %d partial loads", owner_id, load_id, detached)
        db.delete(load)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("dispatch: owner=%s delete load=%d failed: %s", owner_id, load_id, str(e))
        raise PersistenceError("Failed to delete load") from e
    _commit(db, "delete load")

    reconciled = _reconcile_after_write(db, owner_id)
    return LoadWriteResult(load=None, bonuses_reconciled=reconciled)


# ---------------------------------------------------------------------------
# Bonuses
# ---------------------------------------------------------------------------

def list_bonuses(db: Session, owner_id: str, bonus_type: str | None = None) -> list[Bonus]:
    if bonus_type is not None and bonus_type not in BONUS_TYPES:
        raise InputValidationError(f"bonus_type must be one of {', '.join(BONUS_TYPES)}")
    return dispatch_repo.list_bonuses(db, owner_id, bonus_type)


def add_manual_bonus(
    db: Session,
    owner_id: str,
    *,
    amount: Any,
    payout_date: Any,
    note: str | None = None,
    driver_id: int | None = None,
) -> Bonus:
    value = _as_money(amount, "amount")
    if value <= Decimal("0.00"):
        raise InputValidationError("amount must be greater than zero")
    paid_on = _as_date(payout_date, "payout_date")
    if driver_id is not None:
        _owned(db, Driver, driver_id, owner_id)

    bonus = Bonus(
        owner_id=owner_id,
        driver_id=driver_id,
        bonus_type="manual",
        amount=value,
        week_start=week_start_of(paid_on),
        payout_date=paid_on,
        note=_clean_text(note, "note", required=False),
    )
    db.add(bonus)
    _commit(db, "add bonus")
    db.refresh(bonus)
    return bonus


def delete_bonus(db: Session, owner_id: str, bonus_id: int) -> None:
    bonus = _owned(db, Bonus, bonus_id, owner_id)
    if bonus.bonus_type != "manual":
        raise InputValidationError("Automatic bonuses are recalculated from loads and cannot be deleted")
    db.delete(bonus)
    _commit(db, "delete bonus")


def recalculate_automatic_bonuses(db: Session, owner_id: str) -> list[Bonus]:
    return reconcile_automatic_bonuses(db, owner_id)


# ---------------------------------------------------------------------------
# Prebook notes
# ---------------------------------------------------------------------------

def list_notes(db: Session, owner_id: str) -> list[PrebookNote]:
    return dispatch_repo.list_notes(db, owner_id)


def add_note(db: Session, owner_id: str, note_date: Any, note: str) -> PrebookNote:
    """One note per date: adding on a date that already has one replaces its text."""
    day = _as_date(note_date, "note_date")
    text_value = _clean_text(note, "note")

    existing = dispatch_repo.find_note_by_date(db, owner_id, day)
    if existing is not None:
        existing.note = text_value
        _commit(db, "update note")
        db.refresh(existing)
        return existing

    row = PrebookNote(owner_id=owner_id, note_date=day, note=text_value)
    db.add(row)
    _commit(db, "add note")
    db.refresh(row)
    return row


def update_note(db: Session, owner_id: str, note_id: int, note: str) -> PrebookNote:
    row = _owned(db, PrebookNote, note_id, owner_id)
    row.note = _clean_text(note, "note")
    _commit(db, "update note")
    db.refresh(row)
    return row


def delete_note(db: Session, owner_id: str, note_id: int) -> None:
    row = _owned(db, PrebookNote, note_id, owner_id)
    db.delete(row)
    _commit(db, "delete note")
