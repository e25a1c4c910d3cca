"""Shared test fixtures."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TypeVar

import pytest

from kitchen_inventory.adapters.memory_ingredient_store import InMemoryIngredientStore
from kitchen_inventory.config import Settings
from kitchen_inventory.containers import AppContainer, build_container
from kitchen_inventory.domain.ingredients import Ingredient

T = TypeVar("T")

PURCHASE_TIME = datetime(2026, 3, 1, 9, 30, tzinfo=UTC)


@dataclass
class FixedClock:
    """Clock that returns a settable instant."""

    now: datetime = PURCHASE_TIME

    def __call__(self) -> datetime:
        return self.now


@dataclass
class FailingStore(InMemoryIngredientStore):
    """In-memory store whose writes fail after being applied."""

    fail_message: str = "database is locked"
    writes: list[tuple[str, dict[str, object]]] = field(default_factory=list)

    async def update(self, ingredient_id: str, fields: dict[str, object]) -> None:
        await super().update(ingredient_id, fields)
        self.writes.append((ingredient_id, fields))
        raise RuntimeError(self.fail_message)


@dataclass
class CountingStore(InMemoryIngredientStore):
    """In-memory store that records every call made against it."""

    calls: list[str] = field(default_factory=list)

    async def get(self, ingredient_id: str) -> Ingredient | None:
        self.calls.append("get")
        return await super().get(ingredient_id)

    async def get_all(self) -> list[Ingredient]:
        self.calls.append("get_all")
        return await super().get_all()

    async def update(self, ingredient_id: str, fields: dict[str, object]) -> None:
        self.calls.append("update")
        await super().update(ingredient_id, fields)

    async def transaction(
        self, body: Callable[[], Awaitable[T]], mode: str = "rw"
    ) -> T:
        self.calls.append("transaction")
        return await super().transaction(body, mode)


def make_ingredient(  # noqa: PLR0913
    ingredient_id: str = "ing-1",
    name: str = "Milk",
    unit: str = "L",
    stock_qty: float = 2,
    shelf_life_days: int | None = 7,
    purchased_at: datetime | str | None = None,
) -> Ingredient:
    return Ingredient(
        id=ingredient_id,
        name=name,
        unit=unit,
        stock_qty=stock_qty,
        shelf_life_days=shelf_life_days,
        purchased_at=purchased_at,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(store_backend="memory", timezone="UTC")


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def store() -> InMemoryIngredientStore:
    return InMemoryIngredientStore()


@pytest.fixture
def container(
    settings: Settings, store: InMemoryIngredientStore, clock: FixedClock
) -> AppContainer:
    return build_container(settings, store=store, clock=clock)
