"""Payroll math over in-memory load and bonus rows.

Everything here is pure: inputs are sequences of objects exposing the model
attributes (ORM rows or plain namespaces), outputs are Decimal amounts.
Week boundaries are Monday..Sunday, both ends inclusive.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any

from dispatchdesk.core.config import settings
from dispatchdesk.logic.money import ZERO, to_money


@dataclass(frozen=True)
class PeriodTotals:
    full_gross: Decimal = ZERO
    partial_gross: Decimal = ZERO
    total_gross: Decimal = ZERO
    full_commission: Decimal = ZERO
    partial_commission: Decimal = ZERO
    total_bonuses: Decimal = ZERO
    total_salary: Decimal = ZERO

    def as_json(self) -> dict[str, float]:
        return {key: float(value) for key, value in asdict(self).items()}


# ---------------------------------------------------------------------------
# Calendar helpers
# ---------------------------------------------------------------------------

def week_start_of(day: date) -> date:
    return day - timedelta(days=day.weekday())


def week_end_of(week_start: date) -> date:
    return week_start + timedelta(days=6)


def shift_week(week_start: date, weeks: int) -> date:
    return week_start_of(week_start) + timedelta(weeks=weeks)


def month_bounds(month: str) -> tuple[date, date]:
    """'2024-02' -> (2024-02-01, 2024-02-29)."""
    year_text, _, month_text = month.partition("-")
    year, month_number = int(year_text), int(month_text)
    last_day = calendar.monthrange(year, month_number)[1]
    return date(year, month_number, 1), date(year, month_number, last_day)


def distinct_week_starts(loads: Iterable[Any]) -> list[date]:
    return sorted({week_start_of(load.delivery_date) for load in loads})


# ---------------------------------------------------------------------------
# Weekly gross
# ---------------------------------------------------------------------------

def weekly_gross(loads: Iterable[Any], driver_id: int, week_start: date) -> Decimal:
    week_end = week_end_of(week_start)
    total = ZERO
    for load in loads:
        if load.driver_id != driver_id:
            continue
        if week_start <= load.delivery_date <= week_end:
            total += to_money(load.rate)
    return total


def weekly_gross_table(
    drivers: Iterable[Any],
    loads: Sequence[Any],
    week_start: date,
) -> list[dict[str, Any]]:
    """Daily gross (by pickup date) for each active driver over one week."""
    days = [week_start + timedelta(days=offset) for offset in range(7)]
    rows = []
    for driver in drivers:
        if driver.status != "active":
            continue
        daily = []
        for day in days:
            day_total = ZERO
            for load in loads:
                if load.driver_id == driver.id and load.pickup_date == day:
                    day_total += to_money(load.rate)
            daily.append(day_total)
        rows.append(
            {
                "driver_id": driver.id,
                "driver_name": driver.driver_name,
                "truck_number": driver.truck_number,
                "daily_gross": daily,
                "weekly_total": sum(daily, ZERO),
            }
        )
    rows.sort(key=lambda row: row["truck_number"] or "")
    return rows


# ---------------------------------------------------------------------------
# Period payroll
# ---------------------------------------------------------------------------

def calculate_period(
    loads: Iterable[Any],
    bonuses: Iterable[Any],
    start: date,
    end: date,
    full_rate: Decimal | float | None = None,
    partial_rate: Decimal | float | None = None,
) -> PeriodTotals:
    full_rate_dec = Decimal(str(settings.FULL_LOAD_COMMISSION_RATE if full_rate is None else full_rate))
    partial_rate_dec = Decimal(str(settings.PARTIAL_LOAD_COMMISSION_RATE if partial_rate is None else partial_rate))

    full_gross = ZERO
    partial_gross = ZERO
    for load in loads:
        if not start <= load.delivery_date <= end:
            continue
        if load.load_type == "FULL":
            full_gross += to_money(load.rate)
        elif load.load_type == "PARTIAL":
            partial_gross += to_money(load.rate)

    total_bonuses = ZERO
    for bonus in bonuses:
        if start <= bonus.payout_date <= end:
            total_bonuses += to_money(bonus.amount)

    full_commission = to_money(full_gross * full_rate_dec)
    partial_commission = to_money(partial_gross * partial_rate_dec)

    return PeriodTotals(
        full_gross=full_gross,
        partial_gross=partial_gross,
        total_gross=full_gross + partial_gross,
        full_commission=full_commission,
        partial_commission=partial_commission,
        total_bonuses=total_bonuses,
        total_salary=full_commission + partial_commission + total_bonuses,
    )
