"""
Recipe generation.

The assistant is asked for one recipe at a time and each answer is judged
by ``validate_recipe_payload`` before anything is written. Rules run in a
fixed order and the first one that fails is named in the GenerationError:

    shape              the answer is JSON with the expected fields
    empty_ingredients  at least one ingredient
    servings           exactly the servings that were asked for
    preferred_items    uses at least one preferred item, when some were given
    unknown_item       every ingredient is a known inventory item
    negative_quantity  no ingredient quantity below zero
    unknown_equipment  equipment, if any, is among the equipment offered

The validator never retries; callers decide whether to ask again.
"""

import logging
from typing import Any, Collection, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import or_
from sqlalchemy.orm import Session

from Pantry.ai_client import KitchenAssistant, extract_json
from Pantry.database import EQUIPMENT_CATEGORY, Item
from Pantry.errors import GenerationError, ValidationError
from Pantry.schemas.generation import GeneratedRecipe
from Pantry.schemas.recipe import RecipeCreate, RecipeGenerationRequest, RecipeIngredientCreate, RecipeResponse
from Pantry.services.base import BaseService, describe_errors
from Pantry.services.recipe_service import RecipeService

logger = logging.getLogger(__name__)


def validate_recipe_payload(raw: Union[str, Any], servings: int, known_item_ids: Collection[int],
                            preferred_item_ids: Optional[Collection[int]] = None,
                            equipment_ids: Optional[Collection[int]] = None) -> RecipeCreate:
    """Judge one answer from the generation service; return it as a RecipeCreate or raise GenerationError."""
    payload = extract_json(raw) if isinstance(raw, str) else raw
    if not isinstance(payload, dict):
        raise GenerationError("shape", "Expected a JSON object describing one recipe")
    try:
        recipe = GeneratedRecipe.model_validate(payload)
    except PydanticValidationError as e:
        raise GenerationError("shape", f"Recipe payload does not match the expected shape: {describe_errors(e)}")

    if not recipe.ingredients:
        raise GenerationError("empty_ingredients", "Generated recipe has no ingredients")

    if recipe.servings != servings:
        raise GenerationError(
            "servings", f"Generated recipe serves {recipe.servings}, {servings} were requested"
        )

    if preferred_item_ids:
        if not any(ing.item_id in preferred_item_ids for ing in recipe.ingredients):
            raise GenerationError("preferred_items", "Generated recipe uses none of the preferred items")

    for ing in recipe.ingredients:
        if ing.item_id not in known_item_ids:
            raise GenerationError("unknown_item", f"Generated recipe references unknown item {ing.item_id}")
        if ing.quantity < 0:
            raise GenerationError(
                "negative_quantity", f"Generated recipe needs a negative quantity of item {ing.item_id}"
            )

    allowed_equipment = set(equipment_ids or ())
    unknown = [i for i in recipe.equipment if i not in allowed_equipment]
    if unknown:
        raise GenerationError("unknown_equipment", f"Generated recipe references unknown equipment {unknown}")

    try:
        return RecipeCreate(
            name=recipe.name,
            description=recipe.description,
            instructions=recipe.instructions,
            cooking_time=recipe.cooking_time,
            servings=recipe.servings,
            ingredients=[
                RecipeIngredientCreate(item_id=ing.item_id, quantity=ing.quantity, unit=ing.unit or "unit")
                for ing in recipe.ingredients
            ],
            equipment=recipe.equipment,
        )
    except PydanticValidationError as e:
        raise GenerationError("shape", f"Generated recipe is not storable: {describe_errors(e)}")


class RecipeGenerationService(BaseService):
    """Builds the generation context from live inventory and stores only answers that pass validation."""

    def __init__(self, db: Session, assistant: KitchenAssistant):
        super().__init__(db)
        self.assistant = assistant

    def _ingredients(self) -> List[Item]:
        return (
            self.db.query(Item)
            .filter(or_(Item.category.is_(None), Item.category != EQUIPMENT_CATEGORY))
            .order_by(Item.id)
            .all()
        )

    def _equipment(self, equipment_ids: List[int]) -> List[Item]:
        rows = {i.id: i for i in self.db.query(Item).filter(Item.id.in_(equipment_ids)).all()}
        bad = sorted(i for i in set(equipment_ids) if i not in rows or not rows[i].is_equipment)
        if bad:
            raise ValidationError(f"Unknown equipment id(s): {bad}", {"item_ids": bad})
        return [rows[i] for i in dict.fromkeys(equipment_ids)]

    def generate_recipes(self, request: Union[RecipeGenerationRequest, dict]) -> List[RecipeResponse]:
        request = self.parse(RecipeGenerationRequest, request)

        inventory = self._ingredients()
        known = {item.id: item for item in inventory}
        preferred = None
        offered = inventory
        if request.item_ids:
            bad = sorted(i for i in set(request.item_ids) if i not in known)
            if bad:
                raise ValidationError(f"Unknown ingredient id(s): {bad}", {"item_ids": bad})
            preferred = set(request.item_ids)
            offered = [known[i] for i in dict.fromkeys(request.item_ids)]
        if not offered:
            raise ValidationError("There are no ingredients in the inventory to cook with")

        equipment = self._equipment(request.equipment_ids) if request.equipment_ids else []

        context = {
            "servings": request.servings,
            "ingredients": [
                {"itemId": i.id, "name": i.name, "quantity": i.quantity, "unit": i.unit} for i in offered
            ],
            "equipment": [{"itemId": e.id, "name": e.name} for e in equipment],
            "special_requests": request.special_requests,
        }

        accepted: List[RecipeCreate] = []
        for attempt in range(request.count):
            context["avoid_names"] = [r.name for r in accepted]
            raw = self.assistant.generate_recipe(context, timeout=request.timeout_seconds)
            try:
                accepted.append(validate_recipe_payload(
                    raw,
                    servings=request.servings,
                    known_item_ids=known.keys(),
                    preferred_item_ids=preferred,
                    equipment_ids=[e.id for e in equipment],
                ))
            except GenerationError as e:
                logger.warning("Rejected generated recipe %d/%d (%s): %s", attempt + 1, request.count, e.rule, e)
                raise

        return RecipeService(self.db).create_recipes(accepted)
