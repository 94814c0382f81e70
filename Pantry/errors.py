"""
Error taxonomy for Pantry.

Every failure a service can report is one of these. Routers never inspect
messages; the HTTP layer maps ``kind`` to a status code.
"""

from typing import Any, Dict, Optional


class PantryError(Exception):
    """Base class for all domain errors."""

    kind = "pantry_error"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": False,
            "message": self.message,
            "error": self.kind,
            "data": self.details,
        }


class ValidationError(PantryError, ValueError):
    """Caller input is malformed or missing required fields."""

    kind = "validation_error"
    status_code = 400


class NotFoundError(PantryError, LookupError):
    """A referenced id does not exist."""

    kind = "not_found"
    status_code = 404

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            f"{entity} {entity_id} not found",
            {"entity": entity.lower(), "id": entity_id},
        )


class InvalidOperationError(PantryError):
    """The request is well formed but would break an invariant."""

    kind = "invalid_operation"
    status_code = 409


class InsufficientInventoryError(InvalidOperationError):
    """One or more ingredients lack the quantity a recipe requires."""

    kind = "insufficient_inventory"

    def __init__(self, shortfalls):
        self.shortfalls = list(shortfalls)
        parts = [
            f"{s['name']} (available {s['available']:g}, required {s['required']:g})"
            for s in self.shortfalls
        ]
        super().__init__(
            "Not enough inventory: " + ", ".join(parts),
            {"shortfalls": self.shortfalls},
        )


class GenerationError(PantryError):
    """The generation service produced an invalid or unusable result."""

    kind = "generation_error"
    status_code = 502

    def __init__(self, rule: str, message: str):
        super().__init__(message, {"rule": rule})
        self.rule = rule


class GenerationTimeoutError(GenerationError):
    """The generation service did not answer within the allowed time."""

    kind = "generation_timeout"
    status_code = 504

    def __init__(self, timeout: float):
        super().__init__("timeout", f"Generation service did not respond within {timeout:g}s")
        self.timeout = timeout


class ConcurrencyConflictError(PantryError):
    """A concurrent transaction touched the same rows; retry the whole operation."""

    kind = "concurrency_conflict"
    status_code = 409
