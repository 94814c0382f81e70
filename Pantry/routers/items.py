import logging
from typing import List, Optional

from fastapi import Depends, HTTPException, Query
from sqlalchemy.orm import Session

from Pantry.ai_client import KitchenAssistant
from Pantry.database import get_db
from Pantry.errors import PantryError
from Pantry.routers.base import api_router, get_assistant
from Pantry.schemas.item import ImageAnalysisRequest, ItemCreate, ItemUpdate, QuantityAdjustment
from Pantry.schemas.recipe import ApiResponse
from Pantry.services.intake_service import IntakeService
from Pantry.services.item_service import ItemService

logger = logging.getLogger(__name__)


@api_router.get("/items", response_model=ApiResponse)
def list_items(
    category: Optional[str] = Query(None, description="Only items in this category"),
    exclude_category: Optional[str] = Query(None, description="Leave out items in this category"),
    sort: Optional[str] = Query(None, description="'name' for alphabetical, insertion order otherwise"),
    db: Session = Depends(get_db)
):
    items = ItemService(db).list_items(category=category, exclude_category=exclude_category, sort=sort)
    return ApiResponse(status=True, message="Items fetched successfully.", data=items)


@api_router.post("/items", response_model=ApiResponse, status_code=201)
def create_item(item: ItemCreate, db: Session = Depends(get_db)):
    result = ItemService(db).create_item(item)
    return ApiResponse(status=True, message="Item created successfully.", data=result)


@api_router.post("/items/batch", response_model=ApiResponse)
def upsert_items(items: List[ItemCreate], db: Session = Depends(get_db)):
    """Merge a list of items into the inventory by name; the whole batch succeeds or nothing changes."""
    result = ItemService(db).upsert_many(items)
    return ApiResponse(status=True, message=f"{len(result)} item(s) saved.", data=result)


@api_router.post("/items/analyze-image", response_model=ApiResponse)
def analyze_image(
    request: ImageAnalysisRequest,
    db: Session = Depends(get_db),
    assistant: KitchenAssistant = Depends(get_assistant)
):
    try:
        result = IntakeService(db, assistant).analyze_image(request.image_url, save=request.save)
        message = "Items extracted and saved." if request.save else "Items extracted from image."
        return ApiResponse(status=True, message=message, data=result)
    except PantryError:
        raise
    except Exception as e:
        logger.exception("analyze_image failed for %s: %s", request.image_url, e)
        raise HTTPException(status_code=500, detail="An error occurred while analyzing the image. Please try again.")


@api_router.post("/items/categorize", response_model=ApiResponse)
def categorize_items(
    db: Session = Depends(get_db),
    assistant: KitchenAssistant = Depends(get_assistant)
):
    try:
        result = IntakeService(db, assistant).categorize_items()
        return ApiResponse(status=True, message=f"{len(result)} item(s) categorized.", data=result)
    except PantryError:
        raise
    except Exception as e:
        logger.exception("categorize_items failed: %s", e)
        raise HTTPException(status_code=500, detail="An error occurred while categorizing items. Please try again.")


@api_router.get("/items/{item_id}", response_model=ApiResponse)
def get_item(item_id: int, db: Session = Depends(get_db)):
    result = ItemService(db).get_item(item_id)
    return ApiResponse(status=True, message="Item fetched successfully.", data=result)


@api_router.put("/items/{item_id}", response_model=ApiResponse)
def update_item(item_id: int, item: ItemUpdate, db: Session = Depends(get_db)):
    result = ItemService(db).update_item(item_id, item)
    return ApiResponse(status=True, message="Item updated successfully.", data=result)


@api_router.patch("/items/{item_id}/quantity", response_model=ApiResponse)
def adjust_quantity(item_id: int, adjustment: QuantityAdjustment, db: Session = Depends(get_db)):
    result = ItemService(db).adjust_quantity(item_id, adjustment.delta)
    return ApiResponse(status=True, message="Quantity updated.", data=result)


@api_router.delete("/items/{item_id}", response_model=ApiResponse)
def delete_item(
    item_id: int,
    missing_ok: bool = Query(False, description="Treat an unknown id as already deleted"),
    db: Session = Depends(get_db)
):
    deleted = ItemService(db).delete_item(item_id, missing_ok=missing_ok)
    message = "Item deleted successfully." if deleted else "Item was already gone."
    return ApiResponse(status=True, message=message, data={"id": item_id, "deleted": deleted})
