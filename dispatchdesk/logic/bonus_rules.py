"""Automatic weekly bonus tiers.

Each driver classification has its own table of (weekly gross threshold ->
bonus amount) pairs. The tables live in settings so the business can change
them without a deploy; callers may also pass their own tables.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal

from dispatchdesk.core.config import settings
from dispatchdesk.logic.money import ZERO, to_money
from dispatchdesk.services.errors import InputValidationError

BonusTiers = list[tuple[Decimal, Decimal]]


def threshold_table(
    tables: Mapping[str, Mapping[int | str | Decimal, int | str | Decimal]] | None = None,
) -> dict[str, BonusTiers]:
    """Per-classification tiers, highest threshold first."""
    raw_tables = tables if tables is not None else settings.bonus_tiers
    ordered: dict[str, BonusTiers] = {}
    for driver_type, tiers in raw_tables.items():
        pairs = [(to_money(threshold), to_money(amount)) for threshold, amount in tiers.items()]
        # never trust mapping order
        pairs.sort(key=lambda pair: pair[0], reverse=True)
        ordered[driver_type] = pairs
    return ordered


def resolve_bonus(
    weekly_gross: Decimal | int | float | str,
    driver_type: str,
    tables: Mapping[str, Mapping[int | str | Decimal, int | str | Decimal]] | None = None,
) -> Decimal:
    table = threshold_table(tables)
    tiers = table.get(driver_type)
    if tiers is None:
        raise InputValidationError(f"Unknown driver classification: {driver_type!r}")

    gross = to_money(weekly_gross)
    for threshold, amount in tiers:
        if gross >= threshold:
            return amount
    return ZERO
