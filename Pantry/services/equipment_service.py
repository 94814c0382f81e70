import logging
from typing import List, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from Pantry.ai_client import KitchenAssistant, extract_json, unwrap_list
from Pantry.database import EQUIPMENT_CATEGORY, Item
from Pantry.errors import GenerationError, ValidationError
from Pantry.schemas.generation import GeneratedEquipment
from Pantry.schemas.item import EquipmentCreate, EquipmentInitResponse, ItemCreate, ItemResponse
from Pantry.services.base import BaseService, describe_errors
from Pantry.services.item_service import ItemService

logger = logging.getLogger(__name__)

EQUIPMENT_LEVELS = ("basic", "average", "fancy")


class EquipmentService(BaseService):
    """Equipment lives in the item table under a reserved category; this service keeps that category honest."""

    def __init__(self, db: Session, assistant: Optional[KitchenAssistant] = None):
        super().__init__(db)
        self.assistant = assistant
        self.items = ItemService(db)

    def list_equipment(self) -> List[ItemResponse]:
        return self.items.list_items(category=EQUIPMENT_CATEGORY, sort="name")

    def add_equipment(self, data: Union[EquipmentCreate, dict]) -> ItemResponse:
        data = self.parse(EquipmentCreate, data)
        return self.items.create_item(data.as_item())

    def clear_equipment(self) -> int:
        return self.items.delete_by_category(EQUIPMENT_CATEGORY)

    def initialize_equipment(self, level: str, additional_info: Optional[str] = None) -> EquipmentInitResponse:
        """
        Replace the equipment list with one suggested for ``level``.

        The suggestion is validated before anything is removed, so a bad answer
        leaves the current equipment untouched.
        """
        if level not in EQUIPMENT_LEVELS:
            raise ValidationError(
                "Invalid level. Must be basic, average, or fancy.", {"fields": ["level"]}
            )
        if self.assistant is None:
            raise GenerationError("configuration", "No generation service configured")

        entries = unwrap_list(extract_json(self.assistant.suggest_equipment(level, additional_info)), "equipment")
        suggestions = []
        for index, entry in enumerate(entries, start=1):
            try:
                found = GeneratedEquipment.model_validate(entry)
            except PydanticValidationError as e:
                raise GenerationError("item_fields", f"Suggested equipment {index} is invalid: {describe_errors(e)}")
            # notes are not stored
            suggestions.append(ItemCreate(
                name=found.name,
                quantity=found.quantity if found.quantity is not None else 1,
                unit=(found.unit or "").strip() or "piece",
                category=EQUIPMENT_CATEGORY,
            ))
        if not suggestions:
            raise GenerationError("empty_equipment", "Generation service suggested no equipment")

        with self.transaction():
            ids = [r[0] for r in self.db.query(Item.id).filter(Item.category == EQUIPMENT_CATEGORY).all()]
            removed = self.items._delete_items(ids)
            created = [self.items._insert(data) for data in suggestions]
        logger.info("Initialized %s equipment: removed %d, added %d", level, removed, len(created))
        return EquipmentInitResponse(
            count=len(created), items=[ItemResponse.from_db(i) for i in created]
        )
