import logging
import math
from typing import Iterable, List, Optional, Union

from sqlalchemy import delete, func, or_, update
from sqlalchemy.orm import Session

from Pantry.database import EQUIPMENT_CATEGORY, Item, RecipeEquipment, RecipeIngredient
from Pantry.errors import InvalidOperationError, NotFoundError, ValidationError
from Pantry.schemas.item import ItemCreate, ItemResponse, ItemUpdate
from Pantry.services.base import BaseService

logger = logging.getLogger(__name__)


class ItemService(BaseService):
    """Inventory and equipment records. Owns the only code path that changes a quantity."""

    def __init__(self, db: Session):
        super().__init__(db)

    def _get(self, item_id: int) -> Item:
        item = self.db.get(Item, item_id)
        if item is None:
            raise NotFoundError("Item", item_id)
        return item

    def get_item(self, item_id: int) -> ItemResponse:
        return ItemResponse.from_db(self._get(item_id))

    def list_items(self, category: Optional[str] = None, exclude_category: Optional[str] = None,
                   sort: Optional[str] = None) -> List[ItemResponse]:
        """List items, insertion order unless ``sort='name'``."""
        query = self.db.query(Item)
        if category is not None:
            query = query.filter(Item.category == category)
        if exclude_category is not None:
            query = query.filter(or_(Item.category.is_(None), Item.category != exclude_category))
        if sort == "name":
            query = query.order_by(func.lower(Item.name), Item.id)
        else:
            query = query.order_by(Item.id)
        return [ItemResponse.from_db(i) for i in query.all()]

    def apply_delta(self, item_id: int, delta: float) -> Optional[Item]:
        """
        Guarded ``quantity += delta``.

        The check and the write are one UPDATE statement, so no concurrent
        writer can slip between them. Returns the refreshed item, or None when
        the change would take the quantity below zero.
        """
        if not math.isfinite(delta):
            raise ValidationError("Quantity change must be a finite number", {"fields": ["delta"]})
        self.db.flush()
        result = self.db.execute(
            update(Item)
            .where(Item.id == item_id, Item.quantity + delta >= 0)
            .values(quantity=Item.quantity + delta)
            .execution_options(synchronize_session=False)
        )
        item = self.db.get(Item, item_id, populate_existing=True)
        if item is None:
            raise NotFoundError("Item", item_id)
        if result.rowcount != 1:
            return None
        return item

    def _insert(self, data: ItemCreate) -> Item:
        item = Item(
            name=data.name,
            quantity=data.quantity,
            unit=data.unit,
            category=data.category,
            expiry_date=data.expiry_date,
        )
        self.db.add(item)
        self.db.flush()
        return item

    def create_item(self, data: Union[ItemCreate, dict]) -> ItemResponse:
        data = self.parse(ItemCreate, data)
        with self.transaction():
            item = self._insert(data)
        logger.info("Created item %s (%s %g %s)", item.id, item.name, item.quantity, item.unit)
        return ItemResponse.from_db(item)

    def _find_by_name(self, name: str, category: Optional[str]) -> Optional[Item]:
        query = self.db.query(Item).filter(func.lower(func.trim(Item.name)) == name.strip().lower())
        if category is None:
            query = query.filter(Item.category.is_(None))
        else:
            query = query.filter(func.lower(func.trim(Item.category)) == category.strip().lower())
        return query.order_by(Item.id).first()

    def _upsert(self, data: ItemCreate) -> Item:
        existing = self._find_by_name(data.name, data.category)
        if existing is None:
            return self._insert(data)
        item = self.apply_delta(existing.id, data.quantity)
        item.unit = data.unit
        if data.expiry_date is not None:
            item.expiry_date = data.expiry_date
        self.db.flush()
        logger.info("Merged %g %s into item %s (%s)", data.quantity, data.unit, item.id, item.name)
        return item

    def upsert_by_name(self, data: Union[ItemCreate, dict]) -> ItemResponse:
        """Add to an existing item with the same name and category (case ignored), or create a new one."""
        data = self.parse(ItemCreate, data)
        with self.transaction():
            item = self._upsert(data)
        return ItemResponse.from_db(item)

    def upsert_many(self, items: Iterable[Union[ItemCreate, dict]]) -> List[ItemResponse]:
        """Batch form of upsert_by_name; the whole batch commits or none of it does."""
        parsed = [self.parse(ItemCreate, data) for data in items]
        with self.transaction():
            result = [self._upsert(data) for data in parsed]
        return [ItemResponse.from_db(i) for i in result]

    def update_item(self, item_id: int, data: Union[ItemUpdate, dict]) -> ItemResponse:
        data = self.parse(ItemUpdate, data)
        changes = data.model_dump(exclude_unset=True)
        for field in ("name", "unit", "quantity"):
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} cannot be null", {"fields": [field]})
        for field in ("name", "unit"):
            if field in changes:
                changes[field] = changes[field].strip()
                if not changes[field]:
                    raise ValidationError(f"{field} cannot be blank", {"fields": [field]})

        with self.transaction():
            item = self._get(item_id)
            # An absolute quantity is already checked >= 0 by ItemUpdate and the table constraint
            if "category" in changes:
                category = (changes["category"] or "").strip() or None
                if category == EQUIPMENT_CATEGORY and self._used_as_ingredient([item_id]):
                    raise InvalidOperationError(
                        f"Item {item_id} is a recipe ingredient and cannot become equipment",
                        {"item_id": item_id},
                    )
                changes["category"] = category
            for field, value in changes.items():
                setattr(item, field, value)
        logger.info("Updated item %s", item_id)
        return ItemResponse.from_db(item)

    def adjust_quantity(self, item_id: int, delta: float) -> ItemResponse:
        with self.transaction():
            item = self._get(item_id)
            available = item.quantity
            updated = self.apply_delta(item_id, delta)
            if updated is None:
                raise InvalidOperationError(
                    f"Cannot change {item.name} by {delta:g}: only {available:g} {item.unit} left",
                    {"item_id": item_id, "available": available, "delta": delta},
                )
        logger.info("Adjusted item %s by %g -> %g", item_id, delta, updated.quantity)
        return ItemResponse.from_db(updated)

    def _used_as_ingredient(self, item_ids: List[int]) -> List[int]:
        rows = (
            self.db.query(RecipeIngredient.recipe_id)
            .filter(RecipeIngredient.item_id.in_(item_ids))
            .distinct()
            .all()
        )
        return sorted(r[0] for r in rows)

    def _delete_items(self, item_ids: List[int]) -> int:
        """Remove items and the equipment links pointing at them; refuse if a recipe needs one as an ingredient."""
        if not item_ids:
            return 0
        recipe_ids = self._used_as_ingredient(item_ids)
        if recipe_ids:
            raise InvalidOperationError(
                "Item is still an ingredient of saved or pending recipes",
                {"item_ids": item_ids, "recipe_ids": recipe_ids},
            )
        self.db.execute(delete(RecipeEquipment).where(RecipeEquipment.item_id.in_(item_ids)))
        result = self.db.execute(delete(Item).where(Item.id.in_(item_ids)))
        return result.rowcount

    def delete_item(self, item_id: int, missing_ok: bool = False) -> bool:
        """Delete one item. Missing ids raise NotFoundError unless ``missing_ok`` is set."""
        with self.transaction():
            if self.db.get(Item, item_id) is None:
                if missing_ok:
                    return False
                raise NotFoundError("Item", item_id)
            self._delete_items([item_id])
        logger.info("Deleted item %s", item_id)
        return True

    def delete_by_category(self, category: str) -> int:
        with self.transaction():
            ids = [r[0] for r in self.db.query(Item.id).filter(Item.category == category).all()]
            count = self._delete_items(ids)
        logger.info("Deleted %d item(s) in category %r", count, category)
        return count
