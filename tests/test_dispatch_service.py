"""Tests for dispatchdesk/services/dispatch_service.py

Run with:  pytest tests/test_dispatch_service.py -v
"""
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from dispatchdesk.logic.payroll import calculate_period
from dispatchdesk.models.load import Load
from dispatchdesk.repositories import dispatch_repo
from dispatchdesk.services import dispatch_service
from dispatchdesk.services.errors import (
    DuplicateLoadReferenceError,
    InputValidationError,
    OwnershipError,
    RecordNotFoundError,
)

OWNER = "owner-1"


def _load_fields(driver_id, **kwargs):
    defaults = dict(
        ref_id="L-100",
        driver_id=driver_id,
        pickup_date=date(2024, 1, 1),
        delivery_date=date(2024, 1, 2),
        origin="Dallas, TX",
        destination="Atlanta, GA",
        rate=Decimal("5000.00"),
        load_type="FULL",
    )
    defaults.update(kwargs)
    return defaults


@pytest.fixture
def jane(db):
    return dispatch_service.add_driver(db, OWNER, driver_name="Jane", truck_number="T-1")


# ---------------------------------------------------------------------------
# Drivers
# ---------------------------------------------------------------------------

class TestDrivers:
    def test_defaults(self, db, jane):
        assert jane.driver_type == "company_driver"
        assert jane.status == "active"

    def test_blank_name_rejected(self, db):
        with pytest.raises(InputValidationError):
            dispatch_service.add_driver(db, OWNER, driver_name="   ")

    def test_bad_classification_rejected(self, db):
        with pytest.raises(InputValidationError):
            dispatch_service.add_driver(db, OWNER, driver_name="Sam", driver_type="contractor")

    def test_other_owner_cannot_edit(self, db, jane):
        with pytest.raises(OwnershipError):
            dispatch_service.update_driver(db, "intruder", jane.id, {"driver_name": "Hacked"})

    def test_missing_driver(self, db):
        with pytest.raises(RecordNotFoundError):
            dispatch_service.update_driver(db, OWNER, 999, {"driver_name": "Ghost"})

    def test_classification_change_recomputes_bonuses(self, db, jane):
        dispatch_service.add_load(db, OWNER, _load_fields(jane.id, rate=Decimal("13500.00")))
        auto = dispatch_repo.list_bonuses(db, OWNER, "automatic")
        assert [b.amount for b in auto] == [Decimal("90.00")]

        _, reconciled = dispatch_service.update_driver(db, OWNER, jane.id, {"driver_type": "owner_operator"})

        assert reconciled is True
        auto = dispatch_repo.list_bonuses(db, OWNER, "automatic")
        assert [b.amount for b in auto] == [Decimal("50.00")]

    def test_delete_cascades_loads_and_bonuses(self, db, jane):
        sam = dispatch_service.add_driver(db, OWNER, driver_name="Sam")
        full = dispatch_service.add_load(db, OWNER, _load_fields(jane.id, rate=Decimal("12000"))).load
        partial = dispatch_service.add_load(
            db, OWNER,
            _load_fields(sam.id, ref_id="L-101", load_type="PARTIAL", connected_full_load_id=full.id),
        ).load
        dispatch_service.add_manual_bonus(db, OWNER, amount="40", payout_date=date(2024, 1, 4), driver_id=jane.id)

        removed = dispatch_service.delete_driver(db, OWNER, jane.id)

        assert removed["loads_deleted"] == 1
        assert removed["bonuses_deleted"] == 2  # one automatic, one manual
        assert removed["bonuses_reconciled"] is True
        remaining = dispatch_repo.list_loads(db, OWNER)
        assert [load.id for load in remaining] == [partial.id]
        assert remaining[0].connected_full_load_id is None


# ---------------------------------------------------------------------------
# Loads
# ---------------------------------------------------------------------------

class TestLoads:
    def test_add_triggers_reconciliation(self, db, jane):
        dispatch_service.add_load(db, OWNER, _load_fields(jane.id, ref_id="L-1", rate=Decimal("5000")))
        result = dispatch_service.add_load(
            db, OWNER, _load_fields(jane.id, ref_id="L-2", rate=Decimal("7000"), delivery_date=date(2024, 1, 5)),
        )

        assert result.bonuses_reconciled is True
        auto = dispatch_repo.list_bonuses(db, OWNER, "automatic")
        assert [(b.week_start, b.amount) for b in auto] == [(date(2024, 1, 1), Decimal("70.00"))]

    def test_partial_requires_parent(self, db, jane):
        with pytest.raises(InputValidationError, match="must be linked"):
            dispatch_service.add_load(db, OWNER, _load_fields(jane.id, load_type="PARTIAL"))

    def test_partial_parent_must_be_full(self, db, jane):
        full = dispatch_service.add_load(db, OWNER, _load_fields(jane.id, ref_id="F-1")).load
        partial = dispatch_service.add_load(
            db, OWNER, _load_fields(jane.id, ref_id="P-1", load_type="PARTIAL", connected_full_load_id=full.id),
        ).load

        with pytest.raises(InputValidationError, match="does not exist"):
            dispatch_service.add_load(
                db, OWNER,
                _load_fields(jane.id, ref_id="P-2", load_type="PARTIAL", connected_full_load_id=partial.id),
            )

    def test_partial_parent_by_ref(self, db, jane):
        full = dispatch_service.add_load(db, OWNER, _load_fields(jane.id, ref_id="F-1")).load
        partial = dispatch_service.add_load(
            db, OWNER, _load_fields(jane.id, ref_id="P-1", load_type="PARTIAL", connected_full_ref_id="F-1"),
        ).load
        assert partial.connected_full_load_id == full.id

    def test_parent_of_other_owner_rejected(self, db, jane):
        stranger = dispatch_service.add_driver(db, "owner-2", driver_name="Other")
        foreign = dispatch_service.add_load(db, "owner-2", _load_fields(stranger.id, ref_id="F-9")).load

        with pytest.raises(InputValidationError):
            dispatch_service.add_load(
                db, OWNER,
                _load_fields(jane.id, ref_id="P-1", load_type="PARTIAL", connected_full_load_id=foreign.id),
            )

    def test_full_load_never_keeps_parent(self, db, jane):
        full = dispatch_service.add_load(db, OWNER, _load_fields(jane.id, ref_id="F-1")).load
        other = dispatch_service.add_load(
            db, OWNER, _load_fields(jane.id, ref_id="F-2", connected_full_load_id=full.id),
        ).load
        assert other.connected_full_load_id is None

    def test_duplicate_ref_rejected(self, db, jane):
        dispatch_service.add_load(db, OWNER, _load_fields(jane.id, ref_id="L-1"))
        with pytest.raises(DuplicateLoadReferenceError, match="already exists"):
            dispatch_service.add_load(db, OWNER, _load_fields(jane.id, ref_id="L-1"))

    def test_same_ref_allowed_for_other_owner(self, db, jane):
        dispatch_service.add_load(db, OWNER, _load_fields(jane.id, ref_id="L-1"))
        other = dispatch_service.add_driver(db, "owner-2", driver_name="Other")
        result = dispatch_service.add_load(db, "owner-2", _load_fields(other.id, ref_id="L-1"))
        assert result.load.owner_id == "owner-2"

    def test_duplicate_detected_from_integrity_error(self):
        error = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: loads.owner_id, loads.ref_id"))
        assert dispatch_service._is_duplicate_ref(error) is True
        other = IntegrityError("INSERT", {}, Exception("NOT NULL constraint failed: loads.origin"))
        assert dispatch_service._is_duplicate_ref(other) is False

    def test_delivery_before_pickup_rejected(self, db, jane):
        with pytest.raises(InputValidationError):
            dispatch_service.add_load(
                db, OWNER, _load_fields(jane.id, pickup_date=date(2024, 1, 5), delivery_date=date(2024, 1, 4)),
            )

    @pytest.mark.parametrize("rate", ["twelve thousand", "1.2e4x", "$12,000", "NaN", "Infinity", ""])
    def test_unparsable_rate_rejected(self, db, jane, rate):
        with pytest.raises(InputValidationError, match="rate must be a decimal amount"):
            dispatch_service.add_load(db, OWNER, _load_fields(jane.id, rate=rate))
        assert dispatch_repo.list_loads(db, OWNER) == []

    def test_exponent_rate_parsed_exactly(self, db, jane):
        result = dispatch_service.add_load(db, OWNER, _load_fields(jane.id, rate="1.2e4"))
        assert result.load.rate == Decimal("12000.00")

    def test_bad_rate_on_update_keeps_stored_rate(self, db, jane):
        load = dispatch_service.add_load(db, OWNER, _load_fields(jane.id, rate=Decimal("12000"))).load
        with pytest.raises(InputValidationError):
            dispatch_service.update_load(db, OWNER, load.id, {"rate": "twelve thousand"})
        db.expire_all()
        assert dispatch_repo.get_row(db, Load, load.id).rate == Decimal("12000.00")

    def test_unknown_driver_rejected(self, db):
        with pytest.raises(InputValidationError):
            dispatch_service.add_load(db, OWNER, _load_fields(12345))

    def test_update_moves_bonus_week(self, db, jane):
        load = dispatch_service.add_load(db, OWNER, _load_fields(jane.id, rate=Decimal("12000"))).load

        dispatch_service.update_load(db, OWNER, load.id, {"delivery_date": date(2024, 1, 10)})

        auto = dispatch_repo.list_bonuses(db, OWNER, "automatic")
        assert [b.week_start for b in auto] == [date(2024, 1, 8)]

    def test_update_to_own_ref_is_not_duplicate(self, db, jane):
        load = dispatch_service.add_load(db, OWNER, _load_fields(jane.id, ref_id="L-1")).load
        result = dispatch_service.update_load(db, OWNER, load.id, {"ref_id": "L-1", "origin": "Tulsa, OK"})
        assert result.load.origin == "Tulsa, OK"

    def test_full_turned_partial_detaches_children(self, db, jane):
        f1 = dispatch_service.add_load(db, OWNER, _load_fields(jane.id, ref_id="F-1")).load
        f2 = dispatch_service.add_load(db, OWNER, _load_fields(jane.id, ref_id="F-2")).load
        child = dispatch_service.add_load(
            db, OWNER, _load_fields(jane.id, ref_id="P-1", load_type="PARTIAL", connected_full_load_id=f1.id),
        ).load

        dispatch_service.update_load(db, OWNER, f1.id, {"load_type": "PARTIAL", "connected_full_load_id": f2.id})

        db.expire_all()
        assert dispatch_repo.get_row(db, Load, child.id).connected_full_load_id is None

    def test_deleting_full_nulls_partial_parent(self, db, jane):
        full = dispatch_service.add_load(db, OWNER, _load_fields(jane.id, ref_id="F-1")).load
        child = dispatch_service.add_load(
            db, OWNER, _load_fields(jane.id, ref_id="P-1", load_type="PARTIAL", connected_full_load_id=full.id),
        ).load

        result = dispatch_service.delete_load(db, OWNER, full.id)

        assert result.bonuses_reconciled is True
        db.expire_all()
        survivor = dispatch_repo.get_row(db, Load, child.id)
        assert survivor is not None
        assert survivor.connected_full_load_id is None

    def test_delete_removes_stale_bonus(self, db, jane):
        load = dispatch_service.add_load(db, OWNER, _load_fields(jane.id, rate=Decimal("12000"))).load
        assert dispatch_repo.list_bonuses(db, OWNER, "automatic")

        dispatch_service.delete_load(db, OWNER, load.id)

        assert dispatch_repo.list_bonuses(db, OWNER, "automatic") == []

    def test_other_owner_cannot_delete(self, db, jane):
        load = dispatch_service.add_load(db, OWNER, _load_fields(jane.id)).load
        with pytest.raises(OwnershipError):
            dispatch_service.delete_load(db, "intruder", load.id)


# ---------------------------------------------------------------------------
# Bonuses
# ---------------------------------------------------------------------------

class TestBonuses:
    def test_manual_bonus_week_aligned(self, db):
        bonus = dispatch_service.add_manual_bonus(db, OWNER, amount="125.50", payout_date="2024-01-04", note=" Safety ")

        assert bonus.bonus_type == "manual"
        assert bonus.driver_id is None
        assert bonus.week_start == date(2024, 1, 1)
        assert bonus.payout_date == date(2024, 1, 4)
        assert bonus.note == "Safety"

    def test_manual_bonus_must_be_positive(self, db):
        with pytest.raises(InputValidationError):
            dispatch_service.add_manual_bonus(db, OWNER, amount="0", payout_date=date(2024, 1, 4))

    def test_automatic_bonus_cannot_be_deleted(self, db, jane):
        dispatch_service.add_load(db, OWNER, _load_fields(jane.id, rate=Decimal("12000")))
        auto = dispatch_repo.list_bonuses(db, OWNER, "automatic")[0]

        with pytest.raises(InputValidationError):
            dispatch_service.delete_bonus(db, OWNER, auto.id)

    def test_manual_bonus_survives_load_changes(self, db, jane):
        manual = dispatch_service.add_manual_bonus(db, OWNER, amount="30", payout_date=date(2024, 1, 2))
        load = dispatch_service.add_load(db, OWNER, _load_fields(jane.id, rate=Decimal("12000"))).load
        dispatch_service.update_load(db, OWNER, load.id, {"rate": Decimal("15000")})
        dispatch_service.delete_load(db, OWNER, load.id)

        manual_rows = dispatch_repo.list_bonuses(db, OWNER, "manual")
        assert [row.id for row in manual_rows] == [manual.id]

    @pytest.mark.parametrize("amount", ["fifty", "5O", "NaN", None])
    def test_manual_bonus_amount_must_parse(self, db, amount):
        with pytest.raises(InputValidationError, match="amount must be a decimal amount"):
            dispatch_service.add_manual_bonus(db, OWNER, amount=amount, payout_date=date(2024, 1, 4))
        assert dispatch_repo.list_bonuses(db, OWNER) == []

    def test_list_filters_by_known_type(self, db):
        dispatch_service.add_manual_bonus(db, OWNER, amount="10", payout_date=date(2024, 1, 2))
        assert len(dispatch_service.list_bonuses(db, OWNER, "manual")) == 1
        assert dispatch_service.list_bonuses(db, OWNER, "automatic") == []
        with pytest.raises(InputValidationError):
            dispatch_service.list_bonuses(db, OWNER, "bogus")

    def test_delete_manual(self, db):
        bonus = dispatch_service.add_manual_bonus(db, OWNER, amount="10", payout_date=date(2024, 1, 2))
        dispatch_service.delete_bonus(db, OWNER, bonus.id)
        assert dispatch_repo.list_bonuses(db, OWNER) == []


# ---------------------------------------------------------------------------
# Snapshot + period totals
# ---------------------------------------------------------------------------

def test_period_totals_from_snapshot(db, jane):
    full = dispatch_service.add_load(db, OWNER, _load_fields(jane.id, ref_id="F-1", rate=Decimal("5000"))).load
    dispatch_service.add_load(
        db, OWNER,
        _load_fields(jane.id, ref_id="P-1", rate=Decimal("2000"), load_type="PARTIAL", connected_full_load_id=full.id),
    )

    state = dispatch_service.load_app_state(db, OWNER)
    totals = calculate_period(state.loads, state.bonuses, date(2024, 1, 1), date(2024, 1, 7))

    assert totals.full_gross == Decimal("5000.00")
    assert totals.partial_gross == Decimal("2000.00")
    assert totals.total_gross == Decimal("7000.00")
    assert totals.full_commission == Decimal("50.00")
    assert totals.partial_commission == Decimal("40.00")
    assert totals.total_bonuses == Decimal("0.00")  # 7000 is below every tier


# ---------------------------------------------------------------------------
# Prebook notes
# ---------------------------------------------------------------------------

class TestPrebookNotes:
    def test_add_on_existing_date_replaces_text(self, db):
        first = dispatch_service.add_note(db, OWNER, date(2024, 3, 1), "Call broker")
        second = dispatch_service.add_note(db, OWNER, "2024-03-01", "Call broker at 9")

        assert first.id == second.id
        notes = dispatch_service.list_notes(db, OWNER)
        assert [(n.note_date, n.note) for n in notes] == [(date(2024, 3, 1), "Call broker at 9")]

    def test_notes_sorted_by_date(self, db):
        dispatch_service.add_note(db, OWNER, date(2024, 3, 5), "later")
        dispatch_service.add_note(db, OWNER, date(2024, 3, 1), "sooner")
        assert [n.note for n in dispatch_service.list_notes(db, OWNER)] == ["sooner", "later"]

    def test_update_and_delete(self, db):
        row = dispatch_service.add_note(db, OWNER, date(2024, 3, 1), "draft")
        assert dispatch_service.update_note(db, OWNER, row.id, "final").note == "final"

        with pytest.raises(OwnershipError):
            dispatch_service.delete_note(db, "intruder", row.id)

        dispatch_service.delete_note(db, OWNER, row.id)
        assert dispatch_service.list_notes(db, OWNER) == []

    def test_blank_note_rejected(self, db):
        with pytest.raises(InputValidationError):
            dispatch_service.add_note(db, OWNER, date(2024, 3, 1), "  ")
