from contextlib import contextmanager
from typing import Any, Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from Pantry.errors import ValidationError

M = TypeVar('M', bound=BaseModel)


def describe_errors(exc: PydanticValidationError) -> str:
    """One line per failed field, e.g. 'quantity: Input should be greater than or equal to 0'."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "body"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


class BaseService:
    """Shared plumbing: an explicit session and an all-or-nothing unit of work."""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def transaction(self):
        """Commit on success, roll back everything on any error."""
        try:
            yield self.db
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    @staticmethod
    def parse(schema: Type[M], data: Any) -> M:
        """Accept a schema instance or a plain dict; report bad input as a ValidationError."""
        if isinstance(data, schema):
            return data
        try:
            return schema.model_validate(data)
        except PydanticValidationError as e:
            fields = sorted({".".join(str(p) for p in err.get("loc", ())) for err in e.errors()})
            raise ValidationError(f"Invalid {schema.__name__}: {describe_errors(e)}", {"fields": fields})
