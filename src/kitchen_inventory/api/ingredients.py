"""Ingredient inventory API endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, Request, Response, status

from kitchen_inventory.api.schemas import (
    BuyRequest,
    BuyResponse,
    IngredientCreateRequest,
    IngredientListResponse,
    IngredientUpdateRequest,
    IngredientView,
    NameExistsResponse,
    SpoilageSummaryResponse,
    ValidationErrorResponse,
)
from kitchen_inventory.domain.ingredients import IngredientFailureReason
from kitchen_inventory.domain.purchases import BuyFailureReason, BuyIngredientInput
from kitchen_inventory.services.spoilage import sort_by_expiry_urgency

if TYPE_CHECKING:
    from kitchen_inventory.containers import AppContainer
    from kitchen_inventory.domain.ingredients import Ingredient, IngredientResult

router = APIRouter(prefix="/ingredients", tags=["ingredients"])

_BUY_FAILURE_STATUS = {
    BuyFailureReason.INVALID_QUANTITY: status.HTTP_400_BAD_REQUEST,
    BuyFailureReason.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    BuyFailureReason.STORE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _container(request: Request) -> AppContainer:
    return request.app.state.container


def _unwrap(result: IngredientResult) -> Ingredient:
    if result.reason == IngredientFailureReason.INVALID_INPUT:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=ValidationErrorResponse(errors=result.errors).model_dump(),
        )
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=result.error
        )
    if result.ingredient is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return result.ingredient


@router.get("")
async def list_ingredients(
    request: Request, q: str | None = None, sort: str = "urgency"
) -> IngredientListResponse:
    """Return ingredients with freshness, most urgent first by default."""
    container = _container(request)
    items = await container.inventory_service.list_with_spoilage(query=q)
    if sort == "urgency":
        items = sort_by_expiry_urgency(items)
    elif sort == "name":
        items = sorted(items, key=lambda item: item.name.lower())
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown sort order: {sort}",
        )
    return IngredientListResponse(
        ingredients=[IngredientView.from_domain(item) for item in items]
    )


@router.get("/summary")
async def spoilage_summary(request: Request) -> SpoilageSummaryResponse:
    """Return ingredient counts per spoilage status."""
    counts = await _container(request).inventory_service.summary()
    return SpoilageSummaryResponse(counts=counts, total=sum(counts.values()))


@router.get("/name-exists")
async def name_exists(
    request: Request, name: str, exclude_id: str | None = None
) -> NameExistsResponse:
    """Check whether another ingredient already uses a name."""
    exists = await _container(request).ingredient_service.name_exists(
        name, exclude_id=exclude_id
    )
    return NameExistsResponse(exists=exists)


@router.get("/{ingredient_id}")
async def get_ingredient(ingredient_id: str, request: Request) -> IngredientView:
    """Return one ingredient with freshness."""
    item = await _container(request).inventory_service.get_with_spoilage(
        ingredient_id
    )
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return IngredientView.from_domain(item)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_ingredient(
    payload: IngredientCreateRequest, request: Request
) -> IngredientView:
    """Create an ingredient that has not been purchased yet."""
    container = _container(request)
    result = await container.ingredient_service.create(payload.to_draft())
    created = _unwrap(result)
    return IngredientView.from_domain(container.inventory_service.enrich(created))


@router.patch("/{ingredient_id}")
async def update_ingredient(
    ingredient_id: str, payload: IngredientUpdateRequest, request: Request
) -> IngredientView:
    """Apply a partial update to an ingredient."""
    container = _container(request)
    result = await container.ingredient_service.update(
        ingredient_id, payload.to_changes()
    )
    updated = _unwrap(result)
    return IngredientView.from_domain(container.inventory_service.enrich(updated))


@router.delete("/{ingredient_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ingredient(ingredient_id: str, request: Request) -> Response:
    """Delete an ingredient."""
    result = await _container(request).ingredient_service.delete(ingredient_id)
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=result.error
        )
    if not result.deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{ingredient_id}/buy")
async def buy_ingredient(
    ingredient_id: str, payload: BuyRequest, request: Request, response: Response
) -> BuyResponse:
    """Record a purchase: add stock and restart the freshness clock."""
    container = _container(request)
    result = await container.purchase_service.buy_ingredient(
        BuyIngredientInput(
            ingredient_id=ingredient_id, purchased_qty=payload.purchased_qty
        )
    )
    if not result.success:
        response.status_code = _BUY_FAILURE_STATUS.get(
            result.reason, status.HTTP_400_BAD_REQUEST
        )
        return BuyResponse.from_result(result, None)
    view = (
        container.inventory_service.enrich(result.updated_ingredient)
        if result.updated_ingredient
        else None
    )
    return BuyResponse.from_result(result, view)
