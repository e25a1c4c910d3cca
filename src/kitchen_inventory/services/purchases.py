"""Buy action: record a purchase and reset freshness tracking."""

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from numbers import Real

from kitchen_inventory.domain.errors import IngredientNotFoundError
from kitchen_inventory.domain.ingredients import Ingredient
from kitchen_inventory.domain.purchases import (
    BUY_INGREDIENT_ACTION,
    BuyFailureReason,
    BuyIngredientAudit,
    BuyIngredientInput,
    BuyIngredientResult,
)
from kitchen_inventory.services.ingredients import IngredientStore

_logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Return the current instant in UTC."""
    return datetime.now(tz=UTC)


@dataclass(frozen=True)
class _Purchase:
    updated_ingredient: Ingredient
    previous_stock_qty: float
    new_stock_qty: float


@dataclass
class PurchaseService:
    """Records purchases atomically against the ingredient store."""

    store: IngredientStore
    clock: Callable[[], datetime] = field(default=utc_now)

    async def buy_ingredient(self, buy: BuyIngredientInput) -> BuyIngredientResult:
        """Add purchased stock and stamp the purchase time.

        Invalid quantities fail before the store is touched. Everything else
        happens in one transaction, so stock and purchase time change together
        or not at all.
        """
        invalid = _validate_quantity(buy.purchased_qty)
        if invalid is not None:
            return BuyIngredientResult.failure(
                invalid, BuyFailureReason.INVALID_QUANTITY
            )

        async def record() -> _Purchase:
            ingredient = await self.store.get(buy.ingredient_id)
            if ingredient is None:
                raise IngredientNotFoundError(buy.ingredient_id)
            previous_stock_qty = ingredient.stock_qty
            new_stock_qty = previous_stock_qty + buy.purchased_qty
            await self.store.update(
                buy.ingredient_id,
                {"stock_qty": new_stock_qty, "purchased_at": self.clock()},
            )
            updated = await self.store.get(buy.ingredient_id)
            if updated is None:
                raise IngredientNotFoundError(buy.ingredient_id)
            return _Purchase(
                updated_ingredient=updated,
                previous_stock_qty=previous_stock_qty,
                new_stock_qty=new_stock_qty,
            )

        try:
            purchase = await self.store.transaction(record)
        except IngredientNotFoundError as exc:
            return BuyIngredientResult.failure(str(exc), BuyFailureReason.NOT_FOUND)
        except Exception as exc:
            _logger.exception(
                "Failed to record purchase: ingredient_id=%s", buy.ingredient_id
            )
            return BuyIngredientResult.failure(
                str(exc) or "Unknown error occurred", BuyFailureReason.STORE_ERROR
            )

        _logger.info(
            "Purchase recorded: ingredient_id=%s qty=%s stock=%s->%s",
            buy.ingredient_id,
            buy.purchased_qty,
            purchase.previous_stock_qty,
            purchase.new_stock_qty,
        )
        return BuyIngredientResult(
            success=True,
            error=None,
            updated_ingredient=purchase.updated_ingredient,
            previous_stock_qty=purchase.previous_stock_qty,
            new_stock_qty=purchase.new_stock_qty,
        )


def create_buy_audit_record(
    buy: BuyIngredientInput,
    result: BuyIngredientResult,
    now: datetime | None = None,
) -> BuyIngredientAudit | None:
    """Derive an audit record from a successful buy; ``None`` otherwise."""
    if (
        not result.success
        or result.previous_stock_qty is None
        or result.new_stock_qty is None
    ):
        return None
    return BuyIngredientAudit(
        action_type=BUY_INGREDIENT_ACTION,
        timestamp=now or utc_now(),
        ingredient_id=buy.ingredient_id,
        purchased_qty=buy.purchased_qty,
        previous_stock_qty=result.previous_stock_qty,
        new_stock_qty=result.new_stock_qty,
    )


def _validate_quantity(purchased_qty: object) -> str | None:
    if isinstance(purchased_qty, bool) or not isinstance(purchased_qty, Real):
        return "Purchase quantity must be a valid number"
    if not math.isfinite(purchased_qty):
        return "Purchase quantity must be a valid number"
    if purchased_qty <= 0:
        return "Purchase quantity must be greater than 0"
    return None
