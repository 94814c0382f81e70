import logging
from typing import List, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import or_
from sqlalchemy.orm import Session

from Pantry.ai_client import KitchenAssistant, extract_json, unwrap_list
from Pantry.database import EQUIPMENT_CATEGORY, FOOD_CATEGORIES, Item
from Pantry.errors import GenerationError, ValidationError
from Pantry.schemas.generation import GeneratedCategory, GeneratedItem
from Pantry.schemas.item import CategorizedItem, ItemCreate, ItemResponse
from Pantry.services.base import BaseService, describe_errors
from Pantry.services.item_service import ItemService

logger = logging.getLogger(__name__)


class IntakeService(BaseService):
    """Getting food into the inventory with the assistant's help: photo extraction and categorization."""

    def __init__(self, db: Session, assistant: KitchenAssistant):
        super().__init__(db)
        self.assistant = assistant

    def analyze_image(self, image_url: str, save: bool = False) -> List[Union[ItemCreate, ItemResponse]]:
        """
        Extract items from an uploaded image.

        Every entry must carry name, quantity, unit and category or the whole
        answer is rejected. With ``save`` the items are merged into the
        inventory by name; otherwise they are returned for the caller to review.
        """
        if not image_url or not image_url.strip():
            raise ValidationError("Image URL is required", {"fields": ["image_url"]})

        entries = unwrap_list(extract_json(self.assistant.analyze_image(image_url.strip())), "items")
        items = []
        for index, entry in enumerate(entries, start=1):
            try:
                found = GeneratedItem.model_validate(entry)
                items.append(ItemCreate(
                    name=found.name, quantity=found.quantity, unit=found.unit, category=found.category
                ))
            except PydanticValidationError as e:
                logger.warning("Rejected image analysis for %s: item %d invalid", image_url, index)
                raise GenerationError("item_fields", f"Extracted item {index} is invalid: {describe_errors(e)}")

        logger.info("Extracted %d item(s) from %s", len(items), image_url)
        if save:
            return ItemService(self.db).upsert_many(items)
        return items

    def categorize_items(self) -> List[CategorizedItem]:
        """Ask the assistant for a category for every non-equipment item and store the answers together."""
        items = (
            self.db.query(Item)
            .filter(or_(Item.category.is_(None), Item.category != EQUIPMENT_CATEGORY))
            .order_by(Item.id)
            .all()
        )
        if not items:
            return []
        by_id = {item.id: item for item in items}
        canonical = {c.lower(): c for c in FOOD_CATEGORIES}

        raw = self.assistant.categorize_items([{"id": i.id, "name": i.name} for i in items], FOOD_CATEGORIES)
        answers = {}
        for entry in unwrap_list(extract_json(raw), "categories"):
            try:
                answer = GeneratedCategory.model_validate(entry)
            except PydanticValidationError as e:
                raise GenerationError("shape", f"Invalid categorization entry: {describe_errors(e)}")
            if answer.id not in by_id:
                raise GenerationError("unknown_item", f"Categorization references unknown item {answer.id}")
            category = canonical.get(answer.category.strip().lower())
            if category is None:
                raise GenerationError("category", f"Unknown category {answer.category!r} for item {answer.id}")
            answers[answer.id] = category

        with self.transaction():
            for item_id, category in answers.items():
                by_id[item_id].category = category
        logger.info("Categorized %d of %d item(s)", len(answers), len(items))
        return [
            CategorizedItem(id=item_id, name=by_id[item_id].name, category=category)
            for item_id, category in answers.items()
        ]
