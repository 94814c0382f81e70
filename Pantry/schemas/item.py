from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from Pantry.database import EQUIPMENT_CATEGORY
from Pantry.utils_time import format_datetime_ampm as format_dt, parse_expiry_date


class ItemCreate(BaseModel):
    """Schema for creating an inventory item (manual entry, image batch or equipment)."""
    name: str = Field(..., min_length=1, max_length=200, description="Item name")
    quantity: float = Field(..., ge=0, allow_inf_nan=False, description="Quantity must be zero or more")
    unit: str = Field(..., min_length=1, max_length=50, description="Unit of measurement")
    category: Optional[str] = Field(None, max_length=100, description="Category, null when uncategorized")
    expiry_date: Optional[date] = Field(None, description="Expiry date (YYYY-MM-DD)")

    @field_validator('name', 'unit')
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('must not be blank')
        return v

    @field_validator('category')
    @classmethod
    def blank_category_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator('expiry_date', mode='before')
    @classmethod
    def validate_expiry_date(cls, v):
        return parse_expiry_date(v)


class ItemUpdate(BaseModel):
    """Schema for a partial item update; only the fields sent are replaced."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    quantity: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    unit: Optional[str] = Field(None, min_length=1, max_length=50)
    category: Optional[str] = Field(None, max_length=100)
    expiry_date: Optional[date] = None

    @field_validator('expiry_date', mode='before')
    @classmethod
    def validate_expiry_date(cls, v):
        return parse_expiry_date(v)


class QuantityAdjustment(BaseModel):
    """Signed change applied to an item's quantity."""
    delta: float = Field(..., allow_inf_nan=False, description="Positive to add stock, negative to use it")


class ItemResponse(BaseModel):
    """Schema for item response."""
    id: int
    name: str
    quantity: float
    unit: str
    category: Optional[str] = None
    expiry_date: Optional[date] = None
    created_at: Optional[str] = None

    @classmethod
    def from_db(cls, db_item):
        return cls(
            id=db_item.id,
            name=db_item.name,
            quantity=db_item.quantity,
            unit=db_item.unit,
            category=db_item.category,
            expiry_date=db_item.expiry_date,
            created_at=format_dt(db_item.created_at),
        )


class ImageAnalysisRequest(BaseModel):
    """Reference to an already uploaded image; the core never sees raw bytes."""
    image_url: str = Field(..., min_length=1, description="URL returned by the upload service")
    save: bool = Field(False, description="Upsert the extracted items into the inventory")


class CategorizedItem(BaseModel):
    id: int
    name: str
    category: str


class EquipmentCreate(BaseModel):
    """Schema for adding a single piece of equipment."""
    name: str = Field(..., min_length=1, max_length=200)
    quantity: float = Field(1, ge=0, allow_inf_nan=False)
    unit: str = Field("piece", min_length=1, max_length=50)

    def as_item(self) -> ItemCreate:
        return ItemCreate(
            name=self.name, quantity=self.quantity, unit=self.unit, category=EQUIPMENT_CATEGORY
        )


class EquipmentInitRequest(BaseModel):
    level: str = Field(..., description="basic, average or fancy")
    additional_info: Optional[str] = Field(None, max_length=1000)


class EquipmentInitResponse(BaseModel):
    count: int
    items: List[ItemResponse] = []
