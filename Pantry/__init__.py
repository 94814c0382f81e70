"""
Pantry: kitchen inventory, recipes and cooking.

Services take an explicit SQLAlchemy session; the ones that talk to the
generation service also take a KitchenAssistant.
"""

__version__ = "1.0.0"
