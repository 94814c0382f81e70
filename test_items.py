from datetime import date

import pytest

from Pantry.database import EQUIPMENT_CATEGORY, Item, RecipeEquipment
from Pantry.errors import InvalidOperationError, NotFoundError, ValidationError
from Pantry.services.item_service import ItemService
from Pantry.services.recipe_service import RecipeService


def add(service, name, quantity, unit="g", category=None, **extra):
    return service.create_item({"name": name, "quantity": quantity, "unit": unit, "category": category, **extra})


def test_create_item_returns_generated_id_and_fields(db):
    service = ItemService(db)
    item = add(service, "  Flour ", 500, category="Pantry", expiry_date="2026-12-01")

    assert item.id is not None
    assert item.name == "Flour"
    assert item.quantity == 500
    assert item.expiry_date == date(2026, 12, 1)
    assert item.created_at.endswith("UTC")


@pytest.mark.parametrize("data", [
    {"quantity": 1, "unit": "g"},
    {"name": "Salt", "unit": "g"},
    {"name": "Salt", "quantity": 1},
    {"name": "Salt", "quantity": -1, "unit": "g"},
    {"name": "   ", "quantity": 1, "unit": "g"},
    {"name": "Salt", "quantity": 1, "unit": "g", "expiry_date": "someday"},
    {"name": "Salt", "quantity": float("inf"), "unit": "g"},
    {"name": "Salt", "quantity": float("nan"), "unit": "g"},
])
def test_create_item_rejects_bad_input(db, data):
    with pytest.raises(ValidationError):
        ItemService(db).create_item(data)
    assert db.query(Item).count() == 0


def test_list_items_filters_and_orders(db):
    service = ItemService(db)
    add(service, "tomato", 3, "pieces", "Produce")
    add(service, "Basil", 1, "bunch", "Produce")
    add(service, "Pan", 1, "piece", EQUIPMENT_CATEGORY)
    add(service, "Mystery", 1, "jar")

    assert [i.name for i in service.list_items()] == ["tomato", "Basil", "Pan", "Mystery"]
    assert [i.name for i in service.list_items(sort="name")] == ["Basil", "Mystery", "Pan", "tomato"]
    assert [i.name for i in service.list_items(category="Produce")] == ["tomato", "Basil"]
    # uncategorized items are not equipment
    assert [i.name for i in service.list_items(exclude_category=EQUIPMENT_CATEGORY)] == ["tomato", "Basil", "Mystery"]
    assert service.list_items(category="Beverages") == []


def test_upsert_by_name_merges_quantity_and_overwrites_unit(db):
    service = ItemService(db)
    egg = add(service, "Egg", 6, "eggs", "dairy")

    merged = service.upsert_by_name({"name": "Egg", "category": "dairy", "quantity": 3, "unit": "pieces"})

    assert merged.id == egg.id
    assert merged.quantity == 9
    assert merged.unit == "pieces"
    assert db.query(Item).count() == 1


def test_upsert_by_name_ignores_case_but_keeps_categories_apart(db):
    service = ItemService(db)
    milk = add(service, "Milk", 1, "l", "Dairy & Eggs")

    same = service.upsert_by_name({"name": " milk ", "category": "Dairy & Eggs", "quantity": 2, "unit": "l"})
    lower = service.upsert_by_name({"name": "MILK", "category": " dairy & eggs", "quantity": 1, "unit": "l"})
    other = service.upsert_by_name({"name": "Milk", "category": "Beverages", "quantity": 1, "unit": "l"})

    assert same.id == milk.id
    assert same.quantity == 3
    assert lower.id == milk.id
    assert lower.quantity == 4
    assert lower.category == "Dairy & Eggs"
    assert other.id != milk.id


def test_upsert_matches_uncategorized_items(db):
    service = ItemService(db)
    first = add(service, "Honey", 1, "jar")
    again = service.upsert_by_name({"name": "HONEY", "quantity": 1, "unit": "jar", "expiry_date": "2027-01-01"})

    assert again.id == first.id
    assert again.quantity == 2
    assert again.expiry_date == date(2027, 1, 1)


def test_upsert_many_is_all_or_nothing(db):
    service = ItemService(db)
    add(service, "Rice", 100, "g")

    with pytest.raises(ValidationError):
        service.upsert_many([
            {"name": "Rice", "quantity": 100, "unit": "g"},
            {"name": "Beans", "quantity": -5, "unit": "g"},
        ])

    assert [(i.name, i.quantity) for i in service.list_items()] == [("Rice", 100)]


def test_update_item_replaces_only_given_fields(db):
    service = ItemService(db)
    item = add(service, "Butter", 250, "g", "Dairy & Eggs")

    updated = service.update_item(item.id, {"quantity": 100, "expiry_date": "2026-11-30"})

    assert updated.quantity == 100
    assert updated.expiry_date == date(2026, 11, 30)
    assert updated.name == "Butter"
    assert updated.category == "Dairy & Eggs"


def test_update_item_errors(db):
    service = ItemService(db)
    item = add(service, "Butter", 250, "g")

    with pytest.raises(NotFoundError):
        service.update_item(999, {"quantity": 1})
    with pytest.raises(ValidationError):
        service.update_item(item.id, {"quantity": -1})
    with pytest.raises(ValidationError):
        service.update_item(item.id, {"name": None})
    assert service.get_item(item.id).quantity == 250


def test_ingredient_cannot_become_equipment(db):
    service = ItemService(db)
    onion = add(service, "Onion", 2, "pieces")
    RecipeService(db).create_recipe({
        "name": "Soup", "servings": 2,
        "ingredients": [{"item_id": onion.id, "quantity": 1, "unit": "pieces"}],
    })

    with pytest.raises(InvalidOperationError):
        service.update_item(onion.id, {"category": EQUIPMENT_CATEGORY})
    assert service.get_item(onion.id).category is None


def test_adjust_quantity(db):
    service = ItemService(db)
    item = add(service, "Sugar", 10, "g")

    assert service.adjust_quantity(item.id, 5).quantity == 15
    assert service.adjust_quantity(item.id, -15).quantity == 0

    with pytest.raises(InvalidOperationError) as exc:
        service.adjust_quantity(item.id, -0.5)
    assert exc.value.details["available"] == 0
    assert service.get_item(item.id).quantity == 0

    with pytest.raises(NotFoundError):
        service.adjust_quantity(999, 1)


@pytest.mark.parametrize("delta", [float("inf"), float("-inf"), float("nan")])
def test_adjust_quantity_rejects_non_finite_delta(db, delta):
    service = ItemService(db)
    item = add(service, "Sugar", 10, "g")

    with pytest.raises(ValidationError) as exc:
        service.adjust_quantity(item.id, delta)
    assert exc.value.details == {"fields": ["delta"]}
    assert service.get_item(item.id).quantity == 10


def test_delete_item_and_missing_ok(db):
    service = ItemService(db)
    item = add(service, "Leek", 1, "piece")

    assert service.delete_item(item.id) is True
    with pytest.raises(NotFoundError):
        service.delete_item(item.id)
    assert service.delete_item(item.id, missing_ok=True) is False


def test_delete_item_used_by_recipe_is_refused(db):
    service = ItemService(db)
    carrot = add(service, "Carrot", 3, "pieces")
    recipe = RecipeService(db).create_recipe({
        "name": "Carrot Sticks", "servings": 1,
        "ingredients": [{"item_id": carrot.id, "quantity": 2, "unit": "pieces"}],
    })

    with pytest.raises(InvalidOperationError) as exc:
        service.delete_item(carrot.id)
    assert exc.value.details["recipe_ids"] == [recipe.id]
    assert service.get_item(carrot.id).quantity == 3


def test_deleting_equipment_drops_its_recipe_links(db):
    service = ItemService(db)
    pasta = add(service, "Pasta", 500, "g")
    pot = add(service, "Pot", 1, "piece", EQUIPMENT_CATEGORY)
    recipe = RecipeService(db).create_recipe({
        "name": "Pasta", "servings": 2,
        "ingredients": [{"item_id": pasta.id, "quantity": 200, "unit": "g"}],
        "equipment": [pot.id],
    })

    assert service.delete_item(pot.id) is True
    assert db.query(RecipeEquipment).count() == 0
    assert RecipeService(db).get_recipe(recipe.id).equipment == []


def test_delete_by_category(db):
    service = ItemService(db)
    add(service, "Pot", 1, "piece", EQUIPMENT_CATEGORY)
    add(service, "Pan", 1, "piece", EQUIPMENT_CATEGORY)
    add(service, "Rice", 1, "kg")

    assert service.delete_by_category(EQUIPMENT_CATEGORY) == 2
    assert [i.name for i in service.list_items()] == ["Rice"]
