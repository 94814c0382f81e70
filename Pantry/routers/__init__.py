# Router modules for the Pantry API
# Import order matters - routers register endpoints on the shared api_router

from . import base
from .base import api_router
from . import items
from . import equipment
from . import recipes

__all__ = ['api_router', 'base', 'items', 'equipment', 'recipes']
