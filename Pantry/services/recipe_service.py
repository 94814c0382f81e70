import logging
from typing import Dict, Iterable, List, Union

from sqlalchemy import delete
from sqlalchemy.orm import Session, joinedload, selectinload

from Pantry.database import Item, Recipe, RecipeEquipment, RecipeIngredient
from Pantry.errors import NotFoundError, ValidationError
from Pantry.schemas.recipe import RecipeCreate, RecipeResponse
from Pantry.services.base import BaseService

logger = logging.getLogger(__name__)


class RecipeService(BaseService):
    """Recipes and their ingredient/equipment rows, which never outlive the recipe."""

    def __init__(self, db: Session):
        super().__init__(db)

    def _query(self):
        return self.db.query(Recipe).options(
            selectinload(Recipe.ingredients).joinedload(RecipeIngredient.item),
            selectinload(Recipe.equipment).joinedload(RecipeEquipment.item),
        )

    def _load(self, recipe_id: int) -> Recipe:
        recipe = self._query().filter(Recipe.id == recipe_id).first()
        if recipe is None:
            raise NotFoundError("Recipe", recipe_id)
        return recipe

    def get_recipe(self, recipe_id: int) -> RecipeResponse:
        return RecipeResponse.from_db(self._load(recipe_id))

    def list_recipes(self, saved_only: bool = False) -> List[RecipeResponse]:
        """Newest first, with every association resolved to its item."""
        query = self._query()
        if saved_only:
            query = query.filter(Recipe.saved.is_(True))
        recipes = query.order_by(Recipe.created_at.desc(), Recipe.id.desc()).all()
        return [RecipeResponse.from_db(r) for r in recipes]

    def _insert(self, data: RecipeCreate) -> Recipe:
        if not data.ingredients:
            raise ValidationError("A recipe needs at least one ingredient", {"fields": ["ingredients"]})

        # Repeated ingredients collapse into one row so requirements are checked per item
        merged: Dict[int, RecipeIngredient] = {}
        for ing in data.ingredients:
            if ing.item_id in merged:
                if merged[ing.item_id].unit.lower() != ing.unit.lower():
                    raise ValidationError(
                        f"Item {ing.item_id} is listed with different units: {merged[ing.item_id].unit!r} and {ing.unit!r}",
                        {"item_ids": [ing.item_id]},
                    )
                merged[ing.item_id].quantity += ing.quantity
            else:
                merged[ing.item_id] = RecipeIngredient(item_id=ing.item_id, quantity=ing.quantity, unit=ing.unit)
        equipment_ids = list(dict.fromkeys(data.equipment))

        wanted = set(merged) | set(equipment_ids)
        known = {item.id: item for item in self.db.query(Item).filter(Item.id.in_(wanted)).all()}
        missing = sorted(wanted - set(known))
        if missing:
            raise ValidationError(f"Unknown item id(s): {missing}", {"item_ids": missing})
        as_equipment = sorted(i for i in merged if known[i].is_equipment)
        if as_equipment:
            raise ValidationError(
                f"Equipment cannot be used as an ingredient: {as_equipment}", {"item_ids": as_equipment}
            )
        not_equipment = sorted(i for i in equipment_ids if not known[i].is_equipment)
        if not_equipment:
            raise ValidationError(
                f"Item(s) {not_equipment} are not equipment", {"item_ids": not_equipment}
            )

        recipe = Recipe(
            name=data.name,
            description=data.description,
            instructions=data.instructions,
            cooking_time=data.cooking_time,
            servings=data.servings,
            saved=False,
            ingredients=list(merged.values()),
            equipment=[RecipeEquipment(item_id=i) for i in equipment_ids],
        )
        self.db.add(recipe)
        self.db.flush()
        return recipe

    def create_recipes(self, recipes: Iterable[Union[RecipeCreate, dict]]) -> List[RecipeResponse]:
        """Persist recipes with their child rows; all of them or none."""
        parsed = [self.parse(RecipeCreate, data) for data in recipes]
        with self.transaction():
            ids = [self._insert(data).id for data in parsed]
        for recipe_id in ids:
            logger.info("Created recipe %s", recipe_id)
        return [RecipeResponse.from_db(self._load(recipe_id)) for recipe_id in ids]

    def create_recipe(self, data: Union[RecipeCreate, dict]) -> RecipeResponse:
        return self.create_recipes([data])[0]

    def mark_saved(self, recipe_id: int) -> RecipeResponse:
        with self.transaction():
            recipe = self._load(recipe_id)
            recipe.saved = True
        logger.info("Saved recipe %s", recipe_id)
        return RecipeResponse.from_db(self._load(recipe_id))

    def _delete_rows(self, recipe_id: int) -> None:
        """Child rows first, then the recipe. Caller owns the transaction."""
        self.db.execute(delete(RecipeIngredient).where(RecipeIngredient.recipe_id == recipe_id))
        self.db.execute(delete(RecipeEquipment).where(RecipeEquipment.recipe_id == recipe_id))
        result = self.db.execute(delete(Recipe).where(Recipe.id == recipe_id))
        if result.rowcount != 1:
            raise NotFoundError("Recipe", recipe_id)

    def delete_recipe(self, recipe_id: int) -> int:
        with self.transaction():
            self._delete_rows(recipe_id)
        logger.info("Deleted recipe %s", recipe_id)
        return recipe_id
