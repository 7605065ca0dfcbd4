"""
Automatic bonus reconciliation.

Flow per owner:
  1. Collect the distinct Monday week starts of every load's delivery date
  2. For each (driver, week): weekly gross -> tier bonus
  3. Plan one automatic bonus row per positive result
  4. Delete the owner's automatic bonuses and insert the plan in one transaction
  5. Commit once; on any failure roll back so the previous set stays in place

Manual bonuses are never read or written here. Runs for the same owner are
serialized so the latest committed load set always wins.
"""
import logging
import threading
import weakref
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from dispatchdesk.logic.bonus_rules import resolve_bonus
from dispatchdesk.logic.money import format_usd
from dispatchdesk.logic.payroll import distinct_week_starts, weekly_gross
from dispatchdesk.models.bonus import Bonus
from dispatchdesk.repositories import dispatch_repo
from dispatchdesk.services.errors import ReconciliationError

logger = logging.getLogger(__name__)

_locks_guard = threading.Lock()
# entries vanish once no run holds the owner's lock
_owner_locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()


def owner_lock(owner_id: str) -> threading.Lock:
    with _locks_guard:
        lock = _owner_locks.get(owner_id)
        if lock is None:
            lock = threading.Lock()
            _owner_locks[owner_id] = lock
        return lock


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PlannedBonus:
    driver_id: int
    week_start: date
    weekly_gross: Decimal
    amount: Decimal

    @property
    def note(self) -> str:
        return f"Auto bonus for {format_usd(self.weekly_gross)} weekly gross"

    def to_row(self, owner_id: str) -> Bonus:
        return Bonus(
            owner_id=owner_id,
            driver_id=self.driver_id,
            bonus_type="automatic",
            amount=self.amount,
            week_start=self.week_start,
            payout_date=self.week_start,
            note=self.note,
        )


def compute_automatic_bonuses(
    loads: Iterable[Any],
    drivers: Iterable[Any],
    tables: Mapping[str, Mapping[Any, Any]] | None = None,
) -> list[PlannedBonus]:
    loads = list(loads)
    drivers = list(drivers)
    planned: list[PlannedBonus] = []
    for week_start in distinct_week_starts(loads):
        for driver in sorted(drivers, key=lambda d: d.id):
            gross = weekly_gross(loads, driver.id, week_start)
            amount = resolve_bonus(gross, driver.driver_type, tables)
            if amount > 0:
                planned.append(
                    PlannedBonus(
                        driver_id=driver.id,
                        week_start=week_start,
                        weekly_gross=gross,
                        amount=amount,
                    )
                )
    return planned


# ---------------------------------------------------------------------------
# Apply
# ---------------------------------------------------------------------------

def reconcile_automatic_bonuses(
    db: Session,
    owner_id: str,
    loads: Iterable[Any] | None = None,
    drivers: Iterable[Any] | None = None,
) -> list[Bonus]:
    """
    Replace the owner's automatic bonuses with a freshly computed set.
    loads/drivers default to what is committed for the owner.
    Raises ReconciliationError after rolling back; nothing partial is committed.
    """
    with owner_lock(owner_id):
        try:
            if loads is None:
                loads = dispatch_repo.list_loads(db, owner_id)
            if drivers is None:
                drivers = dispatch_repo.list_drivers(db, owner_id)

            planned = compute_automatic_bonuses(loads, drivers)
            rows = [plan.to_row(owner_id) for plan in planned]

            removed = dispatch_repo.delete_automatic_bonuses(db, owner_id)
            dispatch_repo.insert_bonuses(db, rows)
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error("bonus_reconcile: owner=%s failed, prior set kept: %s", owner_id, str(e))
            raise ReconciliationError(f"Automatic bonus recalculation failed: {e}") from e

    logger.info(
        "bonus_reconcile: owner=%s removed=%d inserted=%d total=%s",
        owner_id, removed, len(rows), sum((plan.amount for plan in planned), Decimal("0.00")),
    )
    return rows
