"""In-memory implementation of the ingredient store."""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, replace
from typing import TypeVar

from kitchen_inventory.domain.errors import StoreError
from kitchen_inventory.domain.ingredients import Ingredient
from kitchen_inventory.services.ingredients import IngredientStore

T = TypeVar("T")

_MUTABLE_FIELDS = {"name", "unit", "stock_qty", "shelf_life_days", "purchased_at"}


@dataclass
class InMemoryIngredientStore(IngredientStore):
    """Dict-backed store with serialized, rollback-capable transactions."""

    ingredients: dict[str, Ingredient] = field(default_factory=dict)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    _in_transaction: ContextVar[bool] = field(
        default_factory=lambda: ContextVar("in_transaction", default=False),
        repr=False,
    )

    async def get(self, ingredient_id: str) -> Ingredient | None:
        """Return an ingredient by id, if present."""
        async with self._guard():
            return self.ingredients.get(ingredient_id)

    async def get_all(self) -> list[Ingredient]:
        """Return every stored ingredient in insertion order."""
        async with self._guard():
            return list(self.ingredients.values())

    async def add(self, ingredient: Ingredient) -> None:
        """Insert a new ingredient."""
        async with self._guard():
            if ingredient.id in self.ingredients:
                raise StoreError(f"Ingredient {ingredient.id} already exists")
            self.ingredients[ingredient.id] = ingredient

    async def update(self, ingredient_id: str, fields: dict[str, object]) -> None:
        """Overwrite the given fields of an ingredient."""
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise StoreError(f"Unknown ingredient fields: {sorted(unknown)}")
        async with self._guard():
            current = self.ingredients.get(ingredient_id)
            if current is None:
                raise StoreError(f"Ingredient {ingredient_id} does not exist")
            self.ingredients[ingredient_id] = replace(current, **fields)

    async def delete(self, ingredient_id: str) -> None:
        """Remove an ingredient."""
        async with self._guard():
            self.ingredients.pop(ingredient_id, None)

    async def count(self) -> int:
        """Return the number of stored ingredients."""
        async with self._guard():
            return len(self.ingredients)

    async def transaction(
        self, body: Callable[[], Awaitable[T]], mode: str = "rw"
    ) -> T:
        """Run ``body`` atomically, restoring the previous state if it raises."""
        if self._in_transaction.get():
            return await body()
        async with self._lock:
            snapshot = dict(self.ingredients)
            token = self._in_transaction.set(True)
            try:
                return await body()
            except BaseException:
                if mode == "rw":
                    self.ingredients = snapshot
                raise
            finally:
                self._in_transaction.reset(token)

    async def close(self) -> None:
        """Nothing to release for the in-memory store."""

    @asynccontextmanager
    async def _guard(self) -> AsyncIterator[None]:
        # Calls made from inside a transaction body already hold the lock.
        if self._in_transaction.get():
            yield
            return
        async with self._lock:
            yield
