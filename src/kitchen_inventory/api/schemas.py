"""Pydantic models for the inventory HTTP API."""

from datetime import datetime

from pydantic import BaseModel, Field

from kitchen_inventory.domain.ingredients import (
    IngredientChanges,
    IngredientDraft,
    IngredientWithSpoilage,
    SpoilageStatus,
)
from kitchen_inventory.domain.purchases import BuyIngredientResult


class IngredientCreateRequest(BaseModel):
    """Payload for creating an ingredient."""

    name: str
    unit: str = "pieces"
    stock_qty: float = 0
    shelf_life_days: int = 7

    def to_draft(self) -> IngredientDraft:
        return IngredientDraft(
            name=self.name,
            unit=self.unit,
            stock_qty=self.stock_qty,
            shelf_life_days=self.shelf_life_days,
        )


class IngredientUpdateRequest(BaseModel):
    """Payload for a partial ingredient update."""

    name: str | None = None
    unit: str | None = None
    stock_qty: float | None = None
    shelf_life_days: int | None = None

    def to_changes(self) -> IngredientChanges:
        return IngredientChanges(
            name=self.name,
            unit=self.unit,
            stock_qty=self.stock_qty,
            shelf_life_days=self.shelf_life_days,
        )


class BuyRequest(BaseModel):
    """Payload for recording a purchase."""

    purchased_qty: float


class IngredientView(BaseModel):
    """Ingredient with computed freshness."""

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

    @classmethod
    def from_domain(cls, item: IngredientWithSpoilage) -> "IngredientView":
        return cls(
            id=item.id,
            name=item.name,
            unit=item.unit,
            stock_qty=item.stock_qty,
            shelf_life_days=item.shelf_life_days,
            purchased_at=item.purchased_at,
            in_stock=item.in_stock,
            expiry_date=item.expiry_date,
            days_remaining=item.days_remaining,
            spoilage_status=item.spoilage_status,
        )


class IngredientListResponse(BaseModel):
    """List of ingredients with freshness."""

    ingredients: list[IngredientView]


class SpoilageSummaryResponse(BaseModel):
    """Ingredient counts per status."""

    counts: dict[SpoilageStatus, int]
    total: int


class NameExistsResponse(BaseModel):
    """Result of a name collision check."""

    exists: bool


class BuyResponse(BaseModel):
    """Outcome of recording a purchase."""

    success: bool
    error: str | None = None
    reason: str | None = None
    previous_stock_qty: float | None = None
    new_stock_qty: float | None = None
    ingredient: IngredientView | None = None

    @classmethod
    def from_result(
        cls, result: BuyIngredientResult, view: IngredientWithSpoilage | None
    ) -> "BuyResponse":
        return cls(
            success=result.success,
            error=result.error,
            reason=str(result.reason) if result.reason else None,
            previous_stock_qty=result.previous_stock_qty,
            new_stock_qty=result.new_stock_qty,
            ingredient=IngredientView.from_domain(view) if view else None,
        )


class ValidationErrorResponse(BaseModel):
    """Field errors for rejected input."""

    errors: dict[str, str] = Field(default_factory=dict)
