"""Explicit per-owner snapshot of drivers, loads, bonuses and the period selection."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any

from dispatchdesk.core.config import business_today
from dispatchdesk.logic.payroll import PeriodTotals, calculate_period, month_bounds, week_start_of
from dispatchdesk.models.bonus import Bonus
from dispatchdesk.models.driver import Driver
from dispatchdesk.models.load import Load
from dispatchdesk.services.errors import InputValidationError


@dataclass(frozen=True)
class PeriodSelection:
    selected_day: date
    selected_week: date
    selected_month: str  # YYYY-MM

    @classmethod
    def today(cls) -> "PeriodSelection":
        today = business_today()
        return cls(
            selected_day=today,
            selected_week=week_start_of(today),
            selected_month=today.strftime("%Y-%m"),
        )

    @classmethod
    def from_session(cls, raw: dict[str, Any] | None) -> "PeriodSelection":
        defaults = cls.today()
        if not raw:
            return defaults
        try:
            return defaults.updated(
                selected_day=raw.get("selected_day"),
                selected_week=raw.get("selected_week"),
                selected_month=raw.get("selected_month"),
            )
        except InputValidationError:
            return defaults

    def updated(
        self,
        selected_day: str | date | None = None,
        selected_week: str | date | None = None,
        selected_month: str | None = None,
    ) -> "PeriodSelection":
        changes: dict[str, Any] = {}
        if selected_day:
            changes["selected_day"] = _parse_day(selected_day)
        if selected_week:
            # always snapped back to the Monday
            changes["selected_week"] = week_start_of(_parse_day(selected_week))
        if selected_month:
            # a full YYYY-MM-DD date selects its month
            month_text = str(selected_month).strip()[:7]
            try:
                month_bounds(month_text)
            except (ValueError, TypeError):
                raise InputValidationError(f"Invalid month {selected_month!r}, expected YYYY-MM")
            changes["selected_month"] = month_text
        return replace(self, **changes)

    def to_session(self) -> dict[str, str]:
        return {
            "selected_day": self.selected_day.isoformat(),
            "selected_week": self.selected_week.isoformat(),
            "selected_month": self.selected_month,
        }


def _parse_day(value: str | date) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise InputValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD")


@dataclass
class AppState:
    owner_id: str
    drivers: list[Driver] = field(default_factory=list)
    loads: list[Load] = field(default_factory=list)
    bonuses: list[Bonus] = field(default_factory=list)
    selection: PeriodSelection = field(default_factory=PeriodSelection.today)

    def driver(self, driver_id: int) -> Driver | None:
        return next((d for d in self.drivers if d.id == driver_id), None)

    def automatic_bonuses(self) -> list[Bonus]:
        return [b for b in self.bonuses if b.bonus_type == "automatic"]

    def manual_bonuses(self) -> list[Bonus]:
        return [b for b in self.bonuses if b.bonus_type == "manual"]

    def day_totals(self) -> PeriodTotals:
        day = self.selection.selected_day
        return calculate_period(self.loads, self.bonuses, day, day)

    def month_totals(self) -> PeriodTotals:
        start, end = month_bounds(self.selection.selected_month)
        return calculate_period(self.loads, self.bonuses, start, end)
