"""Spoilage computation for ingredients.

Every function here is pure: it reads the ingredient and the reference instant
it is given and returns new values. Missing or malformed data degrades to
``SpoilageStatus.UNKNOWN`` instead of raising.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta, tzinfo

from kitchen_inventory.domain.ingredients import (
    Ingredient,
    IngredientWithSpoilage,
    SpoilageStatus,
)

DEFAULT_NEAR_EXPIRY_THRESHOLD_DAYS = 3

_ONE_DAY = timedelta(days=1)

_URGENCY_ORDER = {
    SpoilageStatus.EXPIRED: 0,
    SpoilageStatus.NEAR_EXPIRY: 1,
    SpoilageStatus.FRESH: 2,
    SpoilageStatus.UNKNOWN: 3,
}


@dataclass(frozen=True)
class SpoilageResult:
    """Computed freshness of a single ingredient."""

    expiry_date: datetime | None
    days_remaining: int | None
    status: SpoilageStatus


_UNKNOWN = SpoilageResult(
    expiry_date=None, days_remaining=None, status=SpoilageStatus.UNKNOWN
)


def compute_spoilage(
    ingredient: Ingredient,
    now: datetime | None = None,
    near_expiry_threshold_days: int = DEFAULT_NEAR_EXPIRY_THRESHOLD_DAYS,
    timezone: tzinfo = UTC,
) -> SpoilageResult:
    """Compute expiry date, days remaining and status for an ingredient.

    Shelf life is added as whole calendar days to the purchase instant seen in
    ``timezone``. Days remaining are rounded up, so any partial day left still
    counts as a day.
    """
    purchased_at = _parse_instant(ingredient.purchased_at)
    if purchased_at is None:
        return _UNKNOWN
    shelf_life_days = ingredient.shelf_life_days
    if not shelf_life_days or shelf_life_days <= 0:
        return _UNKNOWN

    reference = _as_aware(now) if now is not None else datetime.now(tz=UTC)
    try:
        expiry_date = purchased_at.astimezone(timezone) + timedelta(
            days=shelf_life_days
        )
        remaining = expiry_date.astimezone(UTC) - reference.astimezone(UTC)
    except (OverflowError, ValueError):
        # Instants near the ends of the datetime range cannot be shifted.
        return _UNKNOWN
    days_remaining = math.ceil(remaining / _ONE_DAY)

    if days_remaining < 0:
        status = SpoilageStatus.EXPIRED
    elif days_remaining <= near_expiry_threshold_days:
        status = SpoilageStatus.NEAR_EXPIRY
    else:
        status = SpoilageStatus.FRESH
    return SpoilageResult(
        expiry_date=expiry_date, days_remaining=days_remaining, status=status
    )


def enrich_with_spoilage(
    ingredient: Ingredient,
    now: datetime | None = None,
    near_expiry_threshold_days: int = DEFAULT_NEAR_EXPIRY_THRESHOLD_DAYS,
    timezone: tzinfo = UTC,
) -> IngredientWithSpoilage:
    """Attach stock and spoilage data to an ingredient."""
    spoilage = compute_spoilage(
        ingredient,
        now=now,
        near_expiry_threshold_days=near_expiry_threshold_days,
        timezone=timezone,
    )
    return IngredientWithSpoilage(
        id=ingredient.id,
        name=ingredient.name,
        unit=ingredient.unit,
        stock_qty=ingredient.stock_qty,
        shelf_life_days=ingredient.shelf_life_days,
        purchased_at=ingredient.purchased_at,
        in_stock=ingredient.stock_qty > 0,
        expiry_date=spoilage.expiry_date,
        days_remaining=spoilage.days_remaining,
        spoilage_status=spoilage.status,
    )


def enrich_all(
    ingredients: Iterable[Ingredient],
    now: datetime | None = None,
    near_expiry_threshold_days: int = DEFAULT_NEAR_EXPIRY_THRESHOLD_DAYS,
    timezone: tzinfo = UTC,
) -> list[IngredientWithSpoilage]:
    """Enrich every ingredient against the same reference instant."""
    reference = now if now is not None else datetime.now(tz=UTC)
    return [
        enrich_with_spoilage(
            ingredient,
            now=reference,
            near_expiry_threshold_days=near_expiry_threshold_days,
            timezone=timezone,
        )
        for ingredient in ingredients
    ]


def filter_by_spoilage_status(
    items: Iterable[IngredientWithSpoilage], status: SpoilageStatus
) -> list[IngredientWithSpoilage]:
    """Return the items with the given status."""
    return [item for item in items if item.spoilage_status == status]


def sort_by_expiry_urgency(
    items: Iterable[IngredientWithSpoilage],
) -> list[IngredientWithSpoilage]:
    """Sort items most urgent first.

    Expired, then near expiry, then fresh, then unknown; ties go to fewer days
    remaining. Only unknown items lack ``days_remaining``, so the ``None`` key
    never has to compete with a number inside a bucket.
    """
    return sorted(
        items,
        key=lambda item: (
            _URGENCY_ORDER[item.spoilage_status],
            item.days_remaining is None,
            item.days_remaining if item.days_remaining is not None else 0,
        ),
    )


def get_spoilage_summary(
    items: Iterable[IngredientWithSpoilage],
) -> dict[SpoilageStatus, int]:
    """Count items per status; every status is present."""
    summary = dict.fromkeys(SpoilageStatus, 0)
    for item in items:
        summary[item.spoilage_status] += 1
    return summary


def _parse_instant(value: object) -> datetime | None:
    if isinstance(value, datetime):
        return _as_aware(value)
    if isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
        return _as_aware(parsed)
    return None


def _as_aware(value: datetime) -> datetime:
    # Naive timestamps are read as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
