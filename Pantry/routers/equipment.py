import logging

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from Pantry.ai_client import KitchenAssistant
from Pantry.database import get_db
from Pantry.errors import PantryError
from Pantry.routers.base import api_router, get_assistant
from Pantry.schemas.item import EquipmentCreate, EquipmentInitRequest
from Pantry.schemas.recipe import ApiResponse
from Pantry.services.equipment_service import EquipmentService

logger = logging.getLogger(__name__)


@api_router.get("/equipment", response_model=ApiResponse)
def list_equipment(db: Session = Depends(get_db)):
    result = EquipmentService(db).list_equipment()
    return ApiResponse(status=True, message="Equipment fetched successfully.", data=result)


@api_router.post("/equipment", response_model=ApiResponse, status_code=201)
def add_equipment(equipment: EquipmentCreate, db: Session = Depends(get_db)):
    result = EquipmentService(db).add_equipment(equipment)
    return ApiResponse(status=True, message="Equipment added successfully.", data=result)


@api_router.delete("/equipment", response_model=ApiResponse)
def clear_equipment(db: Session = Depends(get_db)):
    count = EquipmentService(db).clear_equipment()
    return ApiResponse(status=True, message=f"{count} equipment item(s) removed.", data={"count": count})


@api_router.post("/equipment/initialize", response_model=ApiResponse)
def initialize_equipment(
    request: EquipmentInitRequest,
    db: Session = Depends(get_db),
    assistant: KitchenAssistant = Depends(get_assistant)
):
    try:
        result = EquipmentService(db, assistant).initialize_equipment(request.level, request.additional_info)
        return ApiResponse(status=True, message=f"Successfully initialized {result.count} equipment items.", data=result)
    except PantryError:
        raise
    except Exception as e:
        logger.exception("initialize_equipment failed for level %s: %s", request.level, e)
        raise HTTPException(status_code=500, detail="An error occurred while initializing equipment. Please try again.")
