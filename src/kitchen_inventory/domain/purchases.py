"""Domain models for recording ingredient purchases."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from kitchen_inventory.domain.ingredients import Ingredient

BUY_INGREDIENT_ACTION = "BUY_INGREDIENT"


class BuyFailureReason(StrEnum):
    """Why a purchase could not be recorded."""

    INVALID_QUANTITY = "invalid_quantity"
    NOT_FOUND = "not_found"
    STORE_ERROR = "store_error"


@dataclass(frozen=True)
class BuyIngredientInput:
    """Input for the buy action."""

    ingredient_id: str
    purchased_qty: float


@dataclass(frozen=True)
class BuyIngredientResult:
    """Outcome of the buy action.

    Callers must check ``success`` before reading the payload fields; they are
    all ``None`` on failure.
    """

    success: bool
    error: str | None
    updated_ingredient: Ingredient | None
    previous_stock_qty: float | None
    new_stock_qty: float | None
    reason: BuyFailureReason | None = None

    @classmethod
    def failure(cls, error: str, reason: BuyFailureReason) -> "BuyIngredientResult":
        """Build a failure result with an empty payload."""
        return cls(
            success=False,
            error=error,
            updated_ingredient=None,
            previous_stock_qty=None,
            new_stock_qty=None,
            reason=reason,
        )


@dataclass(frozen=True)
class BuyIngredientAudit:
    """Record of a successful purchase, kept for later replay."""

    action_type: str
    timestamp: datetime
    ingredient_id: str
    purchased_qty: float
    previous_stock_qty: float
    new_stock_qty: float
