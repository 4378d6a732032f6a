# farmfence/errors.py
from typing import Optional


class FarmFenceError(Exception):
    """Base for every failure an operation reports to its caller."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message}


class NotFound(FarmFenceError):
    # also used when the record exists but belongs to another account
    status_code = 404


class InvalidInput(FarmFenceError):
    status_code = 400


class Conflict(FarmFenceError):
    """Name already taken; nothing was written. Carries a free alternative."""

    status_code = 409

    def __init__(self, original_name: str, proposed_name: Optional[str], message: str = "Name already exists"):
        super().__init__(message)
        self.original_name = original_name
        self.proposed_name = proposed_name

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "duplicate": True,
            "originalName": self.original_name,
            "suggestedName": self.proposed_name,
        }


class IntegrityViolation(FarmFenceError):
    status_code = 409


class NameExhausted(IntegrityViolation):
    def __init__(self, base_name: str):
        super().__init__(f"No free name left for '{base_name}'")
        self.base_name = base_name


class Unavailable(FarmFenceError):
    """Storage could not complete the transaction; the whole operation may be retried."""

    status_code = 503
