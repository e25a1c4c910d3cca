"""Ingredient CRUD operations and the record store interface."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol, TypeVar
from uuid import uuid4

from kitchen_inventory.domain.ingredients import (
    DeleteIngredientResult,
    Ingredient,
    IngredientChanges,
    IngredientDraft,
    IngredientFailureReason,
    IngredientResult,
    validate_ingredient_changes,
    validate_ingredient_form,
)

T = TypeVar("T")

_logger = logging.getLogger(__name__)


class IngredientStore(Protocol):
    """Persistence interface for ingredient records keyed by id."""

    async def get(self, ingredient_id: str) -> Ingredient | None:
        """Return an ingredient by id, if present."""

    async def get_all(self) -> list[Ingredient]:
        """Return every stored ingredient."""

    async def add(self, ingredient: Ingredient) -> None:
        """Insert a new ingredient."""

    async def update(self, ingredient_id: str, fields: dict[str, object]) -> None:
        """Overwrite the given fields of an ingredient."""

    async def delete(self, ingredient_id: str) -> None:
        """Remove an ingredient."""

    async def count(self) -> int:
        """Return the number of stored ingredients."""

    async def transaction(
        self, body: Callable[[], Awaitable[T]], mode: str = "rw"
    ) -> T:
        """Run ``body`` atomically; writes roll back if it raises."""

    async def close(self) -> None:
        """Release store resources."""


def new_ingredient_id() -> str:
    """Return a fresh unique ingredient id."""
    return str(uuid4())


@dataclass
class IngredientService:
    """Application service for direct ingredient data changes.

    ``create``, ``update`` and ``delete`` never raise: invalid input and store
    failures come back as unsuccessful results.
    """

    store: IngredientStore
    id_factory: Callable[[], str] = field(default=new_ingredient_id)

    async def create(self, draft: IngredientDraft) -> IngredientResult:
        """Create an ingredient that has never been purchased."""
        validation = validate_ingredient_form(draft)
        if not validation.valid:
            return IngredientResult.invalid(validation)
        try:
            ingredient = Ingredient(
                id=self.id_factory(),
                name=draft.name.strip(),
                unit=draft.unit.strip(),
                stock_qty=draft.stock_qty,
                shelf_life_days=draft.shelf_life_days,
                purchased_at=None,
            )
            await self.store.add(ingredient)
        except Exception as exc:
            _logger.exception("Failed to create ingredient: name=%s", draft.name)
            return IngredientResult.store_failure(
                str(exc) or "Failed to create ingredient"
            )
        _logger.info(
            "Ingredient created: id=%s name=%s", ingredient.id, ingredient.name
        )
        return IngredientResult(success=True, ingredient=ingredient)

    async def get(self, ingredient_id: str) -> Ingredient | None:
        """Return an ingredient by id."""
        return await self.store.get(ingredient_id)

    async def list_all(self) -> list[Ingredient]:
        """Return all ingredients."""
        return await self.store.get_all()

    async def count(self) -> int:
        """Return the number of ingredients."""
        return await self.store.count()

    async def update(
        self, ingredient_id: str, changes: IngredientChanges
    ) -> IngredientResult:
        """Apply the set fields of ``changes`` in one transaction."""
        validation = validate_ingredient_changes(changes)
        if not validation.valid:
            return IngredientResult.invalid(validation)

        async def apply() -> Ingredient | None:
            existing = await self.store.get(ingredient_id)
            if existing is None:
                return None
            fields = changes.to_fields()
            if fields:
                await self.store.update(ingredient_id, fields)
            return await self.store.get(ingredient_id)

        try:
            updated = await self.store.transaction(apply)
        except Exception as exc:
            _logger.exception("Failed to update ingredient: id=%s", ingredient_id)
            return IngredientResult.store_failure(
                str(exc) or "Failed to update ingredient"
            )
        return IngredientResult(success=True, ingredient=updated)

    async def delete(self, ingredient_id: str) -> DeleteIngredientResult:
        """Delete an ingredient in one transaction."""

        async def remove() -> bool:
            existing = await self.store.get(ingredient_id)
            if existing is None:
                return False
            await self.store.delete(ingredient_id)
            return True

        try:
            deleted = await self.store.transaction(remove)
        except Exception as exc:
            _logger.exception("Failed to delete ingredient: id=%s", ingredient_id)
            return DeleteIngredientResult(
                success=False,
                error=str(exc) or "Failed to delete ingredient",
                reason=IngredientFailureReason.STORE_ERROR,
            )
        if deleted:
            _logger.info("Ingredient deleted: id=%s", ingredient_id)
        return DeleteIngredientResult(success=True, deleted=deleted)

    async def search_by_name(self, query: str | None) -> list[Ingredient]:
        """Case-insensitive substring search; a blank query returns everything."""
        normalized = (query or "").strip().lower()
        ingredients = await self.store.get_all()
        if not normalized:
            return ingredients
        return [item for item in ingredients if normalized in item.name.lower()]

    async def name_exists(self, name: str, exclude_id: str | None = None) -> bool:
        """Return whether another ingredient already uses ``name``."""
        normalized = name.strip().lower()
        ingredients = await self.store.get_all()
        return any(
            item.name.lower() == normalized and item.id != exclude_id
            for item in ingredients
        )
