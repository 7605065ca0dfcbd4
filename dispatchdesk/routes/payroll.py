from datetime import date

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from dispatchdesk.database import get_db
from dispatchdesk.dependencies.owner import require_owner
from dispatchdesk.logic.payroll import calculate_period, shift_week, week_end_of, week_start_of, weekly_gross, weekly_gross_table
from dispatchdesk.services import dispatch_service
from dispatchdesk.services.app_state import PeriodSelection
from dispatchdesk.services.errors import InputValidationError


router = APIRouter(prefix="/api", tags=["payroll"])

SESSION_KEY = "period_selection"


class PeriodSelectionUpdate(BaseModel):
    selected_day: date | None = None
    selected_week: date | None = None
    selected_month: str | None = None


def _selection(request: Request) -> PeriodSelection:
    return PeriodSelection.from_session(request.session.get(SESSION_KEY))


@router.get("/period-selection")
def get_period_selection(request: Request):
    return {"status": "ok", **_selection(request).to_session()}


@router.put("/period-selection")
def put_period_selection(request: Request, payload: PeriodSelectionUpdate):
    selection = _selection(request).updated(**payload.model_dump(exclude_none=True))
    request.session[SESSION_KEY] = selection.to_session()
    return {"status": "ok", **selection.to_session()}


@router.get("/payroll/period")
def period_totals(
    start: date = Query(...),
    end: date = Query(...),
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    if end < start:
        raise InputValidationError("end must not be before start")
    state = dispatch_service.load_app_state(db, owner_id)
    totals = calculate_period(state.loads, state.bonuses, start, end)
    return {"status": "ok", "start": start.isoformat(), "end": end.isoformat(), **totals.as_json()}


@router.get("/payroll/weekly-gross")
def driver_weekly_gross(
    driver_id: int = Query(...),
    week_start: date = Query(...),
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    monday = week_start_of(week_start)
    state = dispatch_service.load_app_state(db, owner_id)
    if state.driver(driver_id) is None:
        raise InputValidationError(f"Driver {driver_id} does not exist")
    gross = weekly_gross(state.loads, driver_id, monday)
    return {
        "status": "ok",
        "driver_id": driver_id,
        "week_start": monday.isoformat(),
        "week_end": week_end_of(monday).isoformat(),
        "weekly_gross": float(gross),
    }


@router.get("/payroll/weekly-table")
def weekly_table(
    request: Request,
    week_start: date | None = Query(default=None),
    offset: int = Query(default=0),
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    """Per-driver daily gross grid. `offset` moves whole weeks from week_start."""
    base = week_start or _selection(request).selected_week
    monday = shift_week(base, offset)
    state = dispatch_service.load_app_state(db, owner_id)
    rows = weekly_gross_table(state.drivers, state.loads, monday)
    return {
        "status": "ok",
        "week_start": monday.isoformat(),
        "week_end": week_end_of(monday).isoformat(),
        "rows": [
            {
                **row,
                "daily_gross": [float(value) for value in row["daily_gross"]],
                "weekly_total": float(row["weekly_total"]),
            }
            for row in rows
        ],
    }


@router.get("/payroll/dashboard")
def dashboard(
    request: Request,
    owner_id: str = Depends(require_owner),
    db: Session = Depends(get_db),
):
    state = dispatch_service.load_app_state(db, owner_id, _selection(request))
    return {
        "status": "ok",
        **state.selection.to_session(),
        "day": state.day_totals().as_json(),
        "month": state.month_totals().as_json(),
        "automatic_bonus_count": len(state.automatic_bonuses()),
        "manual_bonus_count": len(state.manual_bonuses()),
    }
