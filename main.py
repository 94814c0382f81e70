#!/usr/bin/env python3
"""
Main entry point for Pantry.
Walks through the inventory, recipe and cooking flow without the HTTP layer.

Run:
    DATABASE_URL=sqlite:///pantry_demo.db python main.py
"""

import logging
import pprint

from Pantry.database import SessionLocal, init_db
from Pantry.errors import InsufficientInventoryError
from Pantry.services.availability_service import AvailabilityService
from Pantry.services.cook_service import CookService
from Pantry.services.equipment_service import EquipmentService
from Pantry.services.item_service import ItemService
from Pantry.services.recipe_service import RecipeService


def example_run():
    init_db()
    db_session = SessionLocal()
    try:
        items = ItemService(db_session)
        recipes = RecipeService(db_session)

        # stock the pantry; a repeated name merges into the existing row
        rice, dal, salt = items.upsert_many([
            {'name': 'Rice', 'quantity': 300, 'unit': 'g', 'category': 'Pantry'},
            {'name': 'Urad Dal', 'quantity': 100, 'unit': 'g', 'category': 'Pantry'},
            {'name': 'Salt', 'quantity': 50, 'unit': 'g', 'category': 'Spices & Seasonings'},
        ])
        items.upsert_by_name({'name': 'rice', 'quantity': 200, 'unit': 'g', 'category': 'Pantry'})
        steamer = EquipmentService(db_session).add_equipment({'name': 'Idli Steamer'})

        idli = recipes.create_recipe({
            'name': 'Idli',
            'description': 'Steamed rice cakes',
            'instructions': 'Soak, grind, ferment overnight, steam for 12 minutes.',
            'cooking_time': 30,
            'servings': 4,
            'ingredients': [
                {'item_id': rice.id, 'quantity': 300, 'unit': 'g'},
                {'item_id': dal.id, 'quantity': 100, 'unit': 'g'},
                {'item_id': salt.id, 'quantity': 5, 'unit': 'g'},
            ],
            'equipment': [steamer.id],
        })
        recipes.mark_saved(idli.id)

        print('Available recipes:')
        pprint.pprint([r.model_dump() for r in AvailabilityService(db_session).list_available_recipes()])

        CookService(db_session).cook_recipe(idli.id)
        print('Inventory after cooking:')
        pprint.pprint([i.model_dump() for i in items.list_items(sort='name')])

        # a second batch needs more dal than is left
        again = recipes.create_recipe({
            'name': 'Idli', 'servings': 4,
            'ingredients': [{'item_id': dal.id, 'quantity': 100, 'unit': 'g'}],
        })
        try:
            CookService(db_session).cook_recipe(again.id)
        except InsufficientInventoryError as e:
            print('Cannot cook again:', e)
    finally:
        db_session.close()


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    example_run()
