"""Read-side inventory views with computed freshness."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, tzinfo

from kitchen_inventory.domain.ingredients import (
    Ingredient,
    IngredientWithSpoilage,
    SpoilageStatus,
)
from kitchen_inventory.services.ingredients import IngredientStore
from kitchen_inventory.services.purchases import utc_now
from kitchen_inventory.services.spoilage import (
    DEFAULT_NEAR_EXPIRY_THRESHOLD_DAYS,
    enrich_all,
    enrich_with_spoilage,
    filter_by_spoilage_status,
    get_spoilage_summary,
    sort_by_expiry_urgency,
)


@dataclass
class InventoryStats:
    """Store-level counters."""

    ingredient_count: int


@dataclass
class InventoryService:
    """Joins stored ingredients with spoilage data for presentation."""

    store: IngredientStore
    clock: Callable[[], datetime] = field(default=utc_now)
    near_expiry_threshold_days: int = DEFAULT_NEAR_EXPIRY_THRESHOLD_DAYS
    timezone: tzinfo = UTC

    async def list_with_spoilage(
        self, query: str | None = None, now: datetime | None = None
    ) -> list[IngredientWithSpoilage]:
        """Return enriched ingredients, optionally filtered by name."""
        ingredients = await self.store.get_all()
        normalized = (query or "").strip().lower()
        if normalized:
            ingredients = [
                item for item in ingredients if normalized in item.name.lower()
            ]
        return enrich_all(
            ingredients,
            now=now or self.clock(),
            near_expiry_threshold_days=self.near_expiry_threshold_days,
            timezone=self.timezone,
        )

    async def list_by_urgency(
        self, now: datetime | None = None
    ) -> list[IngredientWithSpoilage]:
        """Return enriched ingredients, most urgent first."""
        return sort_by_expiry_urgency(await self.list_with_spoilage(now=now))

    async def list_by_status(
        self, status: SpoilageStatus, now: datetime | None = None
    ) -> list[IngredientWithSpoilage]:
        """Return enriched ingredients with the given status."""
        return filter_by_spoilage_status(
            await self.list_with_spoilage(now=now), status
        )

    async def get_with_spoilage(
        self, ingredient_id: str, now: datetime | None = None
    ) -> IngredientWithSpoilage | None:
        """Return one enriched ingredient, if present."""
        ingredient = await self.store.get(ingredient_id)
        if ingredient is None:
            return None
        return self.enrich(ingredient, now=now)

    def enrich(
        self, ingredient: Ingredient, now: datetime | None = None
    ) -> IngredientWithSpoilage:
        """Enrich a single ingredient with this service's settings."""
        return enrich_with_spoilage(
            ingredient,
            now=now or self.clock(),
            near_expiry_threshold_days=self.near_expiry_threshold_days,
            timezone=self.timezone,
        )

    async def summary(self, now: datetime | None = None) -> dict[SpoilageStatus, int]:
        """Return ingredient counts per spoilage status."""
        return get_spoilage_summary(await self.list_with_spoilage(now=now))

    async def stats(self) -> InventoryStats:
        """Return store-level counters."""
        return InventoryStats(ingredient_count=await self.store.count())
