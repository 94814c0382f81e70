"""
Cooking a recipe: deduct every ingredient and retire the recipe, as one unit.

Ingredient rows are locked in id order before they are read (SELECT ... FOR
UPDATE where the backend supports it). Each deduction then goes through the
guarded update in ItemService, so even a backend without row locks cannot
take a quantity below zero. Any failure rolls back every deduction and the
recipe stays where it was.
"""

import logging

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, selectinload

from Pantry.database import Item, Recipe, RecipeIngredient
from Pantry.errors import ConcurrencyConflictError, InsufficientInventoryError, NotFoundError
from Pantry.schemas.recipe import CookResponse
from Pantry.services.availability_service import find_shortfalls, required_quantities
from Pantry.services.base import BaseService
from Pantry.services.item_service import ItemService
from Pantry.services.recipe_service import RecipeService

logger = logging.getLogger(__name__)

# Serialization failure, deadlock
LOCK_CONFLICT_PGCODES = ("40001", "40P01")


def is_lock_conflict(exc: OperationalError) -> bool:
    """True when the backend refused the statement because another transaction holds the rows."""
    if getattr(exc.orig, "pgcode", None) in LOCK_CONFLICT_PGCODES:
        return True
    message = str(exc.orig).lower()
    return "database is locked" in message or "database table is locked" in message


class CookService(BaseService):

    def __init__(self, db: Session):
        super().__init__(db)
        self.items = ItemService(db)
        self.recipes = RecipeService(db)

    def _lock_stock(self, item_ids):
        rows = (
            self.db.query(Item)
            .filter(Item.id.in_(item_ids))
            .order_by(Item.id)
            .with_for_update()
            .populate_existing()
            .all()
        )
        return {row.id: row.quantity for row in rows if not row.is_equipment}

    def cook_recipe(self, recipe_id: int) -> CookResponse:
        try:
            with self.transaction():
                recipe = (
                    self.db.query(Recipe)
                    .options(selectinload(Recipe.ingredients).joinedload(RecipeIngredient.item))
                    .filter(Recipe.id == recipe_id)
                    .first()
                )
                if recipe is None:
                    raise NotFoundError("Recipe", recipe_id)

                required = required_quantities(recipe.ingredients)
                stock = self._lock_stock(sorted(required))
                shortfalls = find_shortfalls(recipe.ingredients, stock)
                if shortfalls:
                    raise InsufficientInventoryError(shortfalls)

                for item_id in sorted(required):
                    if self.items.apply_delta(item_id, -required[item_id]) is None:
                        # Someone else used it between our read and our write
                        current = self.db.get(Item, item_id)
                        raise InsufficientInventoryError([{
                            "item_id": item_id,
                            "name": current.name,
                            "available": current.quantity,
                            "required": required[item_id],
                        }])

                self.recipes._delete_rows(recipe_id)
        except InsufficientInventoryError as e:
            logger.warning("Cooking recipe %s aborted: %s", recipe_id, e)
            raise
        except OperationalError as e:
            if not is_lock_conflict(e):
                raise
            logger.warning("Cooking recipe %s hit a lock conflict: %s", recipe_id, e)
            raise ConcurrencyConflictError(
                f"Inventory for recipe {recipe_id} is being changed by another request; retry",
                {"recipe_id": recipe_id},
            )

        logger.info("Cooked recipe %s; deducted %d ingredient(s)", recipe_id, len(required))
        return CookResponse(recipe_id=recipe_id)
