from typing import Any, Generic, List, Optional, TypeVar

from pydantic import AliasChoices, BaseModel, Field, field_validator

from Pantry.schemas.item import ItemResponse
from Pantry.utils_time import format_datetime_ampm as format_dt

T = TypeVar('T')


class ApiResponse(BaseModel, Generic[T]):
    """Generic API response wrapper."""
    status: bool = Field(..., description="Response status: True on success, False on error")
    message: Optional[str] = Field(None, description="Optional message")
    data: Optional[Any] = Field(None, description="Response data (only present on success)")


class RecipeIngredientCreate(BaseModel):
    """One ingredient requirement, pointing at an inventory item."""
    item_id: int = Field(..., validation_alias=AliasChoices("item_id", "itemId"))
    quantity: float = Field(..., ge=0, allow_inf_nan=False, description="Required quantity, zero or more")
    unit: str = Field(..., min_length=1, max_length=50)

    @field_validator('unit')
    @classmethod
    def validate_unit(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Unit must not be blank')
        return v


class RecipeCreate(BaseModel):
    """Schema for creating a recipe, either generated or authored by hand."""
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=2000)
    instructions: str = ""
    cooking_time: int = Field(
        0, ge=0, description="Minutes", validation_alias=AliasChoices("cooking_time", "cookingTime")
    )
    servings: int = Field(..., ge=1, le=100, description="Servings must be 1-100")
    ingredients: List[RecipeIngredientCreate] = Field(..., min_length=1, description="At least 1 ingredient required")
    equipment: List[int] = Field(default_factory=list, description="Item ids of required equipment")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Recipe name must not be blank')
        return v


class RecipeIngredientResponse(BaseModel):
    item_id: int
    quantity: float
    unit: str
    item: ItemResponse


class RecipeEquipmentResponse(BaseModel):
    item_id: int
    item: ItemResponse


class RecipeResponse(BaseModel):
    """Schema for recipe response, associations resolved to full items."""
    id: int
    name: str
    description: str
    instructions: str
    cooking_time: int
    servings: int
    saved: bool
    created_at: Optional[str] = None
    ingredients: List[RecipeIngredientResponse] = []
    equipment: List[RecipeEquipmentResponse] = []

    @classmethod
    def from_db(cls, db_recipe):
        return cls(
            id=db_recipe.id,
            name=db_recipe.name,
            description=db_recipe.description or "",
            instructions=db_recipe.instructions or "",
            cooking_time=db_recipe.cooking_time or 0,
            servings=db_recipe.servings,
            saved=bool(db_recipe.saved),
            created_at=format_dt(db_recipe.created_at),
            ingredients=[
                RecipeIngredientResponse(
                    item_id=ing.item_id,
                    quantity=ing.quantity,
                    unit=ing.unit,
                    item=ItemResponse.from_db(ing.item),
                ) for ing in db_recipe.ingredients
            ],
            equipment=[
                RecipeEquipmentResponse(item_id=eq.item_id, item=ItemResponse.from_db(eq.item))
                for eq in db_recipe.equipment
            ],
        )


class AvailableRecipeResponse(BaseModel):
    """Reduced projection returned by the availability check."""
    id: int
    name: str
    servings: int
    cooking_time: int


class CookRequest(BaseModel):
    recipe_id: int = Field(..., validation_alias=AliasChoices("recipe_id", "recipeId"))


class CookResponse(BaseModel):
    recipe_id: int


class RecipeGenerationRequest(BaseModel):
    """Schema for a recipe generation request."""
    servings: int = Field(..., ge=1, le=100, description="Servings must be 1-100")
    count: int = Field(1, ge=1, le=5, description="Number of recipes to generate (1-5)")
    item_ids: Optional[List[int]] = Field(None, description="Preferred ingredients; at least one must be used")
    equipment_ids: Optional[List[int]] = Field(None, description="Equipment the recipes may rely on")
    special_requests: Optional[str] = Field(None, max_length=1000)
    timeout_seconds: Optional[float] = Field(None, gt=0, le=300, allow_inf_nan=False, description="Bound on each generation call")

    @field_validator('item_ids', 'equipment_ids')
    @classmethod
    def empty_list_is_none(cls, v: Optional[List[int]]) -> Optional[List[int]]:
        return v or None
