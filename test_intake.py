import pytest

from Pantry.database import EQUIPMENT_CATEGORY, Item
from Pantry.errors import GenerationError, ValidationError
from Pantry.services.intake_service import IntakeService
from Pantry.services.item_service import ItemService

RECEIPT = "https://uploads.example/receipt-1.jpg"


def test_analyze_image_returns_candidates_without_saving(db, assistant):
    assistant.queue("analyze_image", {"items": [
        {"name": "Milk", "quantity": 2, "unit": "l", "category": "Dairy & Eggs"},
        {"name": "Apples", "quantity": 6, "unit": "pieces", "category": "Produce"},
    ]})

    items = IntakeService(db, assistant).analyze_image(RECEIPT)

    assert [(i.name, i.quantity, i.unit) for i in items] == [("Milk", 2, "l"), ("Apples", 6, "pieces")]
    assert db.query(Item).count() == 0
    assert assistant.calls == [("analyze_image", (RECEIPT, None))]


def test_analyze_image_save_merges_by_name(db, assistant):
    milk = ItemService(db).create_item({"name": "milk", "quantity": 1, "unit": "l", "category": "Dairy & Eggs"})
    assistant.queue("analyze_image", [
        {"name": "Milk", "quantity": 2, "unit": "l", "category": "Dairy & Eggs"},
        {"name": "Bread", "quantity": 1, "unit": "loaf", "category": "Pantry"},
    ])

    saved = IntakeService(db, assistant).analyze_image(RECEIPT, save=True)

    assert saved[0].id == milk.id
    assert saved[0].quantity == 3
    assert saved[1].name == "Bread"
    assert db.query(Item).count() == 2


def test_analyze_image_save_ignores_category_case(db, assistant):
    milk = ItemService(db).create_item({"name": "Milk", "quantity": 1, "unit": "l", "category": "Dairy & Eggs"})
    assistant.queue("analyze_image", [{"name": "Milk", "quantity": 1, "unit": "l", "category": "dairy & eggs"}])

    saved = IntakeService(db, assistant).analyze_image(RECEIPT, save=True)

    assert saved[0].id == milk.id
    assert saved[0].quantity == 2
    assert saved[0].category == "Dairy & Eggs"
    assert db.query(Item).count() == 1


@pytest.mark.parametrize("entry", [
    {"quantity": 1, "unit": "l", "category": "Produce"},
    {"name": "Milk", "unit": "l", "category": "Produce"},
    {"name": "Milk", "quantity": -1, "unit": "l", "category": "Produce"},
    {"name": "Milk", "quantity": 1, "unit": 5, "category": "Produce"},
    {"name": "Milk", "quantity": 1, "unit": "l"},
])
def test_one_bad_entry_rejects_the_whole_answer(db, assistant, entry):
    assistant.queue("analyze_image", {"items": [
        {"name": "Eggs", "quantity": 12, "unit": "pieces", "category": "Dairy & Eggs"},
        entry,
    ]})

    with pytest.raises(GenerationError) as exc:
        IntakeService(db, assistant).analyze_image(RECEIPT, save=True)

    assert exc.value.rule == "item_fields"
    assert db.query(Item).count() == 0


def test_analyze_image_needs_a_reference(db, assistant):
    with pytest.raises(ValidationError):
        IntakeService(db, assistant).analyze_image("  ")
    assert assistant.calls == []


def test_analyze_image_rejects_non_list_answer(db, assistant):
    assistant.queue("analyze_image", {"products": []})
    with pytest.raises(GenerationError) as exc:
        IntakeService(db, assistant).analyze_image(RECEIPT)
    assert exc.value.rule == "shape"


@pytest.fixture
def groceries(db):
    items = ItemService(db)
    return {
        "salmon": items.create_item({"name": "Salmon", "quantity": 1, "unit": "fillet"}).id,
        "cumin": items.create_item({"name": "Cumin", "quantity": 20, "unit": "g", "category": "Other"}).id,
        "knife": items.create_item({"name": "Knife", "quantity": 1, "unit": "piece", "category": EQUIPMENT_CATEGORY}).id,
    }


def test_categorize_items_updates_food_only(db, assistant, groceries):
    assistant.queue("categorize_items", {"categories": [
        {"id": groceries["salmon"], "category": "meat & seafood"},
        {"id": groceries["cumin"], "category": "Spices & Seasonings"},
    ]})

    result = IntakeService(db, assistant).categorize_items()

    assert [(r.name, r.category) for r in result] == [
        ("Salmon", "Meat & Seafood"), ("Cumin", "Spices & Seasonings"),
    ]
    sent_items = assistant.calls[0][1][0]
    assert [i["name"] for i in sent_items] == ["Salmon", "Cumin"]
    db.expire_all()
    assert db.get(Item, groceries["knife"]).category == EQUIPMENT_CATEGORY


@pytest.mark.parametrize("answer,rule", [
    ([{"id": 999, "category": "Produce"}], "unknown_item"),
    ([{"id": 1, "category": "Snacks"}], "category"),
    ([{"id": 1}], "shape"),
])
def test_categorize_rejects_bad_answers(db, assistant, groceries, answer, rule):
    valid = {"id": groceries["cumin"], "category": "Spices & Seasonings"}
    assistant.queue("categorize_items", [valid] + answer)

    with pytest.raises(GenerationError) as exc:
        IntakeService(db, assistant).categorize_items()

    assert exc.value.rule == rule
    db.expire_all()
    assert db.get(Item, groceries["cumin"]).category == "Other"


def test_categorize_with_nothing_to_do(db, assistant):
    assert IntakeService(db, assistant).categorize_items() == []
    assert assistant.calls == []
