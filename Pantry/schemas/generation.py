"""
Shapes of the payloads returned by the generation service.

These models only check structure. Business rules (servings match, known
items, non-negative quantities) are judged by the services so that each
failure names the rule it broke.
"""

from typing import List, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, StrictStr, field_validator


class GeneratedIngredient(BaseModel):
    item_id: int = Field(..., validation_alias=AliasChoices("item_id", "itemId", "id"))
    quantity: float = Field(..., allow_inf_nan=False)
    unit: str


class GeneratedRecipe(BaseModel):
    name: StrictStr = Field(..., min_length=1)
    description: str = ""
    instructions: Union[str, List[str]] = ""
    cooking_time: int = Field(0, validation_alias=AliasChoices("cooking_time", "cookingTime"))
    servings: int
    ingredients: List[GeneratedIngredient]
    equipment: List[int] = Field(default_factory=list)

    @field_validator('instructions')
    @classmethod
    def join_steps(cls, v: Union[str, List[str]]) -> str:
        if isinstance(v, list):
            return "\n".join(step.strip() for step in v if step and step.strip())
        return v

    @field_validator('equipment', mode='before')
    @classmethod
    def flatten_equipment(cls, v):
        # Accept [3, 4] as well as [{"itemId": 3}, {"item_id": 4}]
        if v is None:
            return []
        flat = []
        for entry in v:
            if isinstance(entry, dict):
                entry = entry.get("itemId", entry.get("item_id", entry.get("id")))
            flat.append(entry)
        return flat


class GeneratedItem(BaseModel):
    """An item extracted from a photo or receipt."""
    name: StrictStr = Field(..., min_length=1)
    quantity: float = Field(..., ge=0, allow_inf_nan=False)
    unit: StrictStr
    category: StrictStr


class GeneratedCategory(BaseModel):
    id: int
    category: StrictStr


class GeneratedEquipment(BaseModel):
    name: StrictStr = Field(..., min_length=1)
    quantity: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    unit: Optional[str] = None
    notes: Optional[str] = None
