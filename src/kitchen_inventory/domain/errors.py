"""Errors raised by the inventory core and its stores."""


class IngredientNotFoundError(LookupError):
    """Raised inside a transaction to abort when the ingredient is missing."""

    def __init__(self, ingredient_id: str) -> None:
        self.ingredient_id = ingredient_id
        super().__init__("Ingredient not found")


class StoreError(RuntimeError):
    """Raised when the record store fails to complete an operation."""
