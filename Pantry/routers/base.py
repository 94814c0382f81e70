from fastapi import APIRouter, Request

from Pantry.ai_client import KitchenAssistant

# Every resource router registers its endpoints here; api.py mounts it once
api_router = APIRouter(prefix="/api")


def get_assistant(request: Request) -> KitchenAssistant:
    """The generation client created at startup; tests override this dependency."""
    return request.app.state.assistant
