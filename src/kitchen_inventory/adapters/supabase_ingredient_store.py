"""Supabase implementation of the ingredient store."""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import TypeVar

from supabase import AsyncClient, acreate_client

from kitchen_inventory.domain.errors import StoreError
from kitchen_inventory.domain.ingredients import Ingredient
from kitchen_inventory.services.ingredients import IngredientStore

T = TypeVar("T")


@dataclass
class _PendingWrites:
    upserts: dict[str, Ingredient] = field(default_factory=dict)
    deletes: set[str] = field(default_factory=set)


@dataclass
class SupabaseIngredientStore(IngredientStore):
    """Supabase-backed ingredient table.

    Transactions are serialized by a lock that plain reads and writes also wait
    on. Writes made inside ``transaction`` are buffered and reads inside the same
    transaction see them. When the body completes the buffer is flushed as one
    upsert plus one delete request; when it raises nothing is sent.
    """

    url: str
    key: str
    table_name: str = "ingredients"
    client: AsyncClient | None = None
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    _pending: ContextVar[_PendingWrites | None] = field(
        default_factory=lambda: ContextVar("pending_writes", default=None),
        repr=False,
    )

    async def open(self) -> None:
        """Create the Supabase client if it does not exist yet."""
        if self.client is None:
            self.client = await acreate_client(self.url, self.key)

    async def close(self) -> None:
        """Drop the Supabase client."""
        self.client = None

    async def get(self, ingredient_id: str) -> Ingredient | None:
        """Return an ingredient by id, if present."""
        pending = self._pending.get()
        if pending is not None:
            if ingredient_id in pending.deletes:
                return None
            if ingredient_id in pending.upserts:
                return pending.upserts[ingredient_id]
        async with self._guard():
            response = (
                await self._table()
                .select("*")
                .eq("id", ingredient_id)
                .limit(1)
                .execute()
            )
        if not response.data:
            return None
        return _parse_ingredient(response.data[0])

    async def get_all(self) -> list[Ingredient]:
        """Return every stored ingredient."""
        async with self._guard():
            response = await self._table().select("*").order("name").execute()
        ingredients = [_parse_ingredient(row) for row in response.data or []]
        pending = self._pending.get()
        if pending is None:
            return ingredients
        merged = {
            item.id: pending.upserts.get(item.id, item)
            for item in ingredients
            if item.id not in pending.deletes
        }
        for ingredient_id, ingredient in pending.upserts.items():
            merged.setdefault(ingredient_id, ingredient)
        return list(merged.values())

    async def add(self, ingredient: Ingredient) -> None:
        """Insert a new ingredient."""
        pending = self._pending.get()
        if pending is not None:
            pending.deletes.discard(ingredient.id)
            pending.upserts[ingredient.id] = ingredient
            return
        async with self._guard():
            response = await self._table().insert(_to_row(ingredient)).execute()
        if not response.data:
            raise StoreError("Failed to create ingredient")

    async def update(self, ingredient_id: str, fields: dict[str, object]) -> None:
        """Overwrite the given fields of an ingredient."""
        pending = self._pending.get()
        if pending is not None:
            current = await self.get(ingredient_id)
            if current is None:
                raise StoreError(f"Ingredient {ingredient_id} does not exist")
            pending.upserts[ingredient_id] = replace(current, **fields)
            return
        async with self._guard():
            response = (
                await self._table()
                .update(_serialize_fields(fields))
                .eq("id", ingredient_id)
                .execute()
            )
        if not response.data:
            raise StoreError("Failed to update ingredient")

    async def delete(self, ingredient_id: str) -> None:
        """Remove an ingredient."""
        pending = self._pending.get()
        if pending is not None:
            pending.upserts.pop(ingredient_id, None)
            pending.deletes.add(ingredient_id)
            return
        async with self._guard():
            await self._table().delete().eq("id", ingredient_id).execute()

    async def count(self) -> int:
        """Return the number of stored ingredients."""
        if self._pending.get() is not None:
            return len(await self.get_all())
        async with self._guard():
            response = await self._table().select("id", count="exact").execute()
        if response.count is not None:
            return response.count
        return len(response.data or [])

    async def transaction(
        self, body: Callable[[], Awaitable[T]], mode: str = "rw"
    ) -> T:
        """Run ``body`` with buffered writes and flush them on success."""
        if self._pending.get() is not None:
            return await body()
        async with self._lock:
            pending = _PendingWrites()
            token = self._pending.set(pending)
            try:
                result = await body()
            finally:
                self._pending.reset(token)
            if mode == "rw":
                await self._flush(pending)
            return result

    async def _flush(self, pending: _PendingWrites) -> None:
        if pending.upserts:
            await self._table().upsert(
                [_to_row(item) for item in pending.upserts.values()]
            ).execute()
        if pending.deletes:
            await self._table().delete().in_("id", sorted(pending.deletes)).execute()

    @asynccontextmanager
    async def _guard(self) -> AsyncIterator[None]:
        # Calls made from inside a transaction body already hold the lock.
        if self._pending.get() is not None:
            yield
            return
        async with self._lock:
            yield

    def _table(self):  # type: ignore[no-untyped-def]
        if self.client is None:
            raise StoreError("Supabase ingredient store is not open")
        return self.client.table(self.table_name)


def _to_row(ingredient: Ingredient) -> dict[str, object]:
    return {
        "id": ingredient.id,
        "name": ingredient.name,
        "unit": ingredient.unit,
        "stock_qty": ingredient.stock_qty,
        "shelf_life_days": ingredient.shelf_life_days,
        "purchased_at": _serialize_instant(ingredient.purchased_at),
    }


def _serialize_fields(fields: dict[str, object]) -> dict[str, object]:
    return {
        key: _serialize_instant(value) if key == "purchased_at" else value
        for key, value in fields.items()
    }


def _serialize_instant(value: object) -> object:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _parse_ingredient(row: dict[str, object]) -> Ingredient:
    """Parse an ingredient row into a domain model."""
    purchased_raw = row.get("purchased_at")
    purchased_at: datetime | str | None = None
    if isinstance(purchased_raw, str) and purchased_raw:
        try:
            purchased_at = datetime.fromisoformat(purchased_raw)
        except ValueError:
            purchased_at = purchased_raw
    shelf_life_raw = row.get("shelf_life_days")
    return Ingredient(
        id=str(row["id"]),
        name=str(row.get("name", "")),
        unit=str(row.get("unit", "")),
        stock_qty=float(row.get("stock_qty") or 0.0),
        shelf_life_days=int(shelf_life_raw) if shelf_life_raw is not None else None,
        purchased_at=purchased_at,
    )
