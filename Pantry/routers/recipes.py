import logging

from fastapi import Depends, HTTPException, Query
from sqlalchemy.orm import Session

from Pantry.ai_client import KitchenAssistant
from Pantry.database import get_db
from Pantry.errors import PantryError
from Pantry.routers.base import api_router, get_assistant
from Pantry.schemas.recipe import ApiResponse, CookRequest, RecipeCreate, RecipeGenerationRequest
from Pantry.services.availability_service import AvailabilityService
from Pantry.services.cook_service import CookService
from Pantry.services.generation_service import RecipeGenerationService
from Pantry.services.recipe_service import RecipeService

logger = logging.getLogger(__name__)


@api_router.get("/recipes", response_model=ApiResponse)
def list_recipes(
    saved: bool = Query(False, description="Only recipes the user has saved"),
    db: Session = Depends(get_db)
):
    result = RecipeService(db).list_recipes(saved_only=saved)
    return ApiResponse(status=True, message="Recipes fetched successfully.", data=result)


# Declared before /recipes/{recipe_id} so "available" is not parsed as an id
@api_router.get("/recipes/available", response_model=ApiResponse)
def available_recipes(db: Session = Depends(get_db)):
    result = AvailabilityService(db).list_available_recipes()
    return ApiResponse(status=True, message="Available recipes fetched successfully.", data=result)


@api_router.post("/recipes/generate", response_model=ApiResponse, status_code=201)
def generate_recipes(
    request: RecipeGenerationRequest,
    db: Session = Depends(get_db),
    assistant: KitchenAssistant = Depends(get_assistant)
):
    try:
        result = RecipeGenerationService(db, assistant).generate_recipes(request)
        return ApiResponse(status=True, message=f"{len(result)} recipe(s) generated.", data=result)
    except PantryError:
        raise
    except Exception as e:
        logger.exception("generate_recipes failed: %s", e)
        raise HTTPException(status_code=500, detail="An error occurred while generating recipes. Please try again.")


@api_router.post("/recipes", response_model=ApiResponse, status_code=201)
def create_recipe(recipe: RecipeCreate, db: Session = Depends(get_db)):
    result = RecipeService(db).create_recipe(recipe)
    return ApiResponse(status=True, message="Recipe created successfully.", data=result)


@api_router.get("/recipes/{recipe_id}", response_model=ApiResponse)
def get_recipe(recipe_id: int, db: Session = Depends(get_db)):
    result = RecipeService(db).get_recipe(recipe_id)
    return ApiResponse(status=True, message="Recipe fetched successfully.", data=result)


@api_router.get("/recipes/{recipe_id}/shortfalls", response_model=ApiResponse)
def recipe_shortfalls(recipe_id: int, db: Session = Depends(get_db)):
    result = AvailabilityService(db).recipe_shortfalls(recipe_id)
    message = "Recipe can be cooked." if not result else "Some ingredients are missing."
    return ApiResponse(status=True, message=message, data=result)


@api_router.put("/recipes/{recipe_id}/save", response_model=ApiResponse)
def save_recipe(recipe_id: int, db: Session = Depends(get_db)):
    result = RecipeService(db).mark_saved(recipe_id)
    return ApiResponse(status=True, message="Recipe saved.", data=result)


@api_router.delete("/recipes/{recipe_id}", response_model=ApiResponse)
def delete_recipe(recipe_id: int, db: Session = Depends(get_db)):
    deleted = RecipeService(db).delete_recipe(recipe_id)
    return ApiResponse(status=True, message="Recipe deleted successfully.", data={"id": deleted})


def _cook(recipe_id: int, db: Session):
    try:
        result = CookService(db).cook_recipe(recipe_id)
        return ApiResponse(status=True, message="Recipe cooked; ingredients deducted.", data=result)
    except PantryError:
        raise
    except Exception as e:
        logger.exception("cook_recipe failed for %s: %s", recipe_id, e)
        raise HTTPException(status_code=500, detail="An error occurred while cooking the recipe. Please try again.")


@api_router.post("/recipes/{recipe_id}/cook", response_model=ApiResponse)
def cook_recipe(recipe_id: int, db: Session = Depends(get_db)):
    return _cook(recipe_id, db)


@api_router.post("/cook-recipe", response_model=ApiResponse)
def cook_recipe_by_body(request: CookRequest, db: Session = Depends(get_db)):
    """Body form used by the web UI: {"recipeId": ...}."""
    return _cook(request.recipe_id, db)
