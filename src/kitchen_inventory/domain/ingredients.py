"""Domain models for ingredients and their freshness."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

NAME_MAX_LENGTH = 100
UNIT_MAX_LENGTH = 20
SHELF_LIFE_MAX_DAYS = 3650

COMMON_UNITS = (
    "pieces",
    "g",
    "kg",
    "ml",
    "L",
    "cups",
    "tbsp",
    "tsp",
    "oz",
    "lb",
    "bunch",
    "cloves",
    "slices",
)


class SpoilageStatus(StrEnum):
    """Freshness classification of an ingredient."""

    FRESH = "Fresh"
    NEAR_EXPIRY = "NearExpiry"
    EXPIRED = "Expired"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class Ingredient:
    """Represents an ingredient stored in the kitchen inventory.

    ``purchased_at`` is ``None`` until the first purchase is recorded. Stores
    hand back a raw string when the persisted timestamp cannot be parsed.
    """

    id: str
    name: str
    unit: str
    stock_qty: float
    shelf_life_days: int | None
    purchased_at: datetime | str | None = None


@dataclass(frozen=True)
class IngredientWithSpoilage:
    """Ingredient joined with its freshness at a reference instant."""

    id: str
    name: str
    unit: str
    stock_qty: float
    shelf_life_days: int | None
    purchased_at: datetime | str | None
    in_stock: bool
    expiry_date: datetime | None
    days_remaining: int | None
    spoilage_status: SpoilageStatus


@dataclass(frozen=True)
class IngredientDraft:
    """Input for creating an ingredient."""

    name: str
    unit: str = "pieces"
    stock_qty: float = 0
    shelf_life_days: int | None = 7


@dataclass(frozen=True)
class IngredientChanges:
    """Partial input for updating an ingredient; ``None`` leaves a field as is."""

    name: str | None = None
    unit: str | None = None
    stock_qty: float | None = None
    shelf_life_days: int | None = None

    def to_fields(self) -> dict[str, object]:
        """Return the set fields, trimming text values."""
        fields: dict[str, object] = {}
        if self.name is not None:
            fields["name"] = self.name.strip()
        if self.unit is not None:
            fields["unit"] = self.unit.strip()
        if self.stock_qty is not None:
            fields["stock_qty"] = self.stock_qty
        if self.shelf_life_days is not None:
            fields["shelf_life_days"] = self.shelf_life_days
        return fields


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating ingredient input."""

    errors: dict[str, str] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return not self.errors


class IngredientFailureReason(StrEnum):
    """Why an ingredient change could not be applied."""

    INVALID_INPUT = "invalid_input"
    STORE_ERROR = "store_error"


@dataclass(frozen=True)
class IngredientResult:
    """Outcome of creating or updating an ingredient.

    A successful update whose ``ingredient`` is ``None`` means no record had the
    requested id; there was nothing to update.
    """

    success: bool
    ingredient: Ingredient | None = None
    error: str | None = None
    errors: dict[str, str] = field(default_factory=dict)
    reason: IngredientFailureReason | None = None

    @classmethod
    def invalid(cls, validation: ValidationResult) -> "IngredientResult":
        return cls(
            success=False,
            error="Invalid ingredient input",
            errors=dict(validation.errors),
            reason=IngredientFailureReason.INVALID_INPUT,
        )

    @classmethod
    def store_failure(cls, error: str) -> "IngredientResult":
        return cls(
            success=False, error=error, reason=IngredientFailureReason.STORE_ERROR
        )


@dataclass(frozen=True)
class DeleteIngredientResult:
    """Outcome of deleting an ingredient; ``deleted`` is False for unknown ids."""

    success: bool
    deleted: bool = False
    error: str | None = None
    reason: IngredientFailureReason | None = None


def validate_ingredient_form(draft: IngredientDraft) -> ValidationResult:
    """Validate a full ingredient draft."""
    errors: dict[str, str] = {}
    _check_name(draft.name, errors)
    _check_unit(draft.unit, errors)
    _check_stock_qty(draft.stock_qty, errors)
    _check_shelf_life(draft.shelf_life_days, errors)
    return ValidationResult(errors)


def validate_ingredient_changes(changes: IngredientChanges) -> ValidationResult:
    """Validate only the fields present in a partial update."""
    errors: dict[str, str] = {}
    if changes.name is not None:
        _check_name(changes.name, errors)
    if changes.unit is not None:
        _check_unit(changes.unit, errors)
    if changes.stock_qty is not None:
        _check_stock_qty(changes.stock_qty, errors)
    if changes.shelf_life_days is not None:
        _check_shelf_life(changes.shelf_life_days, errors)
    return ValidationResult(errors)


def _check_name(name: str, errors: dict[str, str]) -> None:
    if not name or not name.strip():
        errors["name"] = "Name is required"
    elif len(name.strip()) > NAME_MAX_LENGTH:
        errors["name"] = f"Name must be {NAME_MAX_LENGTH} characters or less"


def _check_unit(unit: str, errors: dict[str, str]) -> None:
    if not unit or not unit.strip():
        errors["unit"] = "Unit is required"
    elif len(unit.strip()) > UNIT_MAX_LENGTH:
        errors["unit"] = f"Unit must be {UNIT_MAX_LENGTH} characters or less"


def _check_stock_qty(stock_qty: float, errors: dict[str, str]) -> None:
    if not math.isfinite(stock_qty):
        errors["stock_qty"] = "Stock quantity must be a valid number"
    elif stock_qty < 0:
        errors["stock_qty"] = "Stock quantity cannot be negative"


def _check_shelf_life(shelf_life_days: int | None, errors: dict[str, str]) -> None:
    if not shelf_life_days or shelf_life_days <= 0:
        errors["shelf_life_days"] = "Shelf life must be greater than 0"
    elif shelf_life_days > SHELF_LIFE_MAX_DAYS:
        errors["shelf_life_days"] = "Shelf life cannot exceed 10 years"
