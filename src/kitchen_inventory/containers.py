"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo

from kitchen_inventory.adapters.memory_ingredient_store import InMemoryIngredientStore
from kitchen_inventory.adapters.supabase_ingredient_store import (
    SupabaseIngredientStore,
)
from kitchen_inventory.config import Settings, parse_store_backend
from kitchen_inventory.services.ingredients import IngredientService, IngredientStore
from kitchen_inventory.services.inventory import InventoryService
from kitchen_inventory.services.purchases import PurchaseService, utc_now


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    store: IngredientStore
    ingredient_service: IngredientService
    purchase_service: PurchaseService
    inventory_service: InventoryService
    clock: Callable[[], datetime]
    open_resources: Callable[[], Awaitable[None]]
    close_resources: Callable[[], Awaitable[None]]


def build_store(settings: Settings) -> IngredientStore:
    """Create the ingredient store selected by the settings."""
    backend = parse_store_backend(settings.store_backend)
    if backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError("Supabase backend requires url and service key")
        return SupabaseIngredientStore(
            url=settings.supabase_url,
            key=settings.supabase_service_key,
            table_name=settings.ingredients_table,
        )
    return InMemoryIngredientStore()


def build_container(
    settings: Settings | None = None,
    store: IngredientStore | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    resolved_store = store or build_store(resolved_settings)
    ingredient_service = IngredientService(resolved_store)
    purchase_service = PurchaseService(store=resolved_store, clock=clock)
    inventory_service = InventoryService(
        store=resolved_store,
        clock=clock,
        near_expiry_threshold_days=resolved_settings.near_expiry_threshold_days,
        timezone=ZoneInfo(resolved_settings.timezone),
    )

    async def open_resources() -> None:
        if isinstance(resolved_store, SupabaseIngredientStore):
            await resolved_store.open()

    async def close_resources() -> None:
        await resolved_store.close()

    return AppContainer(
        settings=resolved_settings,
        store=resolved_store,
        ingredient_service=ingredient_service,
        purchase_service=purchase_service,
        inventory_service=inventory_service,
        clock=clock,
        open_resources=open_resources,
        close_resources=close_resources,
    )
