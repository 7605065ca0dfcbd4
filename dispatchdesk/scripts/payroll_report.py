#!/usr/bin/env python3
"""Print a payroll summary for one owner and date range.

    python -m dispatchdesk.scripts.payroll_report --owner-id abc --start 2024-01-01 --end 2024-01-31
"""
from __future__ import annotations

import argparse
from datetime import date
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(PROJECT_ROOT / ".env")

from dispatchdesk.database import SessionLocal
from dispatchdesk.logic.money import format_usd
from dispatchdesk.logic.payroll import calculate_period, distinct_week_starts, weekly_gross
from dispatchdesk.services.dispatch_service import load_app_state


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Dispatcher payroll summary")
    parser.add_argument("--owner-id", required=True)
    parser.add_argument("--start", type=date.fromisoformat, required=True)
    parser.add_argument("--end", type=date.fromisoformat, required=True)
    parser.add_argument("--by-week", action="store_true", help="also list weekly gross per driver")
    return parser.parse_args(argv)


def build_report(state, start: date, end: date, by_week: bool = False) -> list[str]:
    totals = calculate_period(state.loads, state.bonuses, start, end)
    lines = [
        f"PAYROLL REPORT | {start.isoformat()} -> {end.isoformat()}",
        "-" * 45,
        f"FULL gross:            {format_usd(totals.full_gross)}",
        f"PARTIAL gross:         {format_usd(totals.partial_gross)}",
        f"Total gross:           {format_usd(totals.total_gross)}",
        "-" * 45,
        f"FULL commission:       {format_usd(totals.full_commission)}",
        f"PARTIAL commission:    {format_usd(totals.partial_commission)}",
        f"Bonuses paid:          {format_usd(totals.total_bonuses)}",
        "-" * 45,
        f"TOTAL SALARY:          {format_usd(totals.total_salary)}",
    ]

    if by_week:
        in_range = [load for load in state.loads if start <= load.delivery_date <= end]
        lines.append("")
        for week_start in distinct_week_starts(in_range):
            for driver in state.drivers:
                gross = weekly_gross(state.loads, driver.id, week_start)
                if gross > 0:
                    lines.append(f"{week_start.isoformat()}  {driver.driver_name:<24} {format_usd(gross)}")
    return lines


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    if args.end < args.start:
        print("--end must not be before --start")
        return 2
    with SessionLocal() as db:
        state = load_app_state(db, args.owner_id)
        for line in build_report(state, args.start, args.end, args.by_week):
            print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
