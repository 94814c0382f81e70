from typing import Dict, Iterable, List, Mapping

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from Pantry.database import EQUIPMENT_CATEGORY, Item, Recipe, RecipeIngredient
from Pantry.schemas.recipe import AvailableRecipeResponse
from Pantry.services.base import BaseService
from Pantry.services.recipe_service import RecipeService


def required_quantities(ingredients: Iterable[RecipeIngredient]) -> Dict[int, float]:
    """Total quantity needed per item id."""
    required: Dict[int, float] = {}
    for ing in ingredients:
        required[ing.item_id] = required.get(ing.item_id, 0.0) + ing.quantity
    return required


def find_shortfalls(ingredients: Iterable[RecipeIngredient], stock: Mapping[int, float]) -> List[dict]:
    """
    Compare a recipe's requirements with the quantities in ``stock``.

    Items absent from ``stock`` count as zero. An empty result means the
    recipe can be cooked.
    """
    ingredients = list(ingredients)
    names = {ing.item_id: (ing.item.name if ing.item is not None else f"item {ing.item_id}") for ing in ingredients}
    shortfalls = []
    for item_id, required in required_quantities(ingredients).items():
        available = stock.get(item_id, 0.0)
        if available < required:
            shortfalls.append({
                "item_id": item_id,
                "name": names[item_id],
                "available": available,
                "required": required,
            })
    return shortfalls


class AvailabilityService(BaseService):
    """Which saved recipes can be cooked right now."""

    def __init__(self, db: Session):
        super().__init__(db)

    def _stock(self) -> Dict[int, float]:
        # Equipment is never consumed, so it is left out of the stock view
        rows = (
            self.db.query(Item.id, Item.quantity)
            .filter(or_(Item.category.is_(None), Item.category != EQUIPMENT_CATEGORY))
            .all()
        )
        return {item_id: quantity for item_id, quantity in rows}

    def list_available_recipes(self) -> List[AvailableRecipeResponse]:
        recipes = (
            self.db.query(Recipe)
            .options(selectinload(Recipe.ingredients).joinedload(RecipeIngredient.item))
            .filter(Recipe.saved.is_(True))
            .order_by(Recipe.created_at, Recipe.id)
            .all()
        )
        stock = self._stock()
        return [
            AvailableRecipeResponse(
                id=r.id, name=r.name, servings=r.servings, cooking_time=r.cooking_time or 0
            )
            for r in recipes
            if r.ingredients and not find_shortfalls(r.ingredients, stock)
        ]

    def recipe_shortfalls(self, recipe_id: int) -> List[dict]:
        recipe = RecipeService(self.db)._load(recipe_id)
        return find_shortfalls(recipe.ingredients, self._stock())
