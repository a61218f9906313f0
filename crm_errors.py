"""Typed failures raised by the CRM façade and repositories."""
from typing import Any, Optional


class CRMError(Exception):
    """Base class for every error this package raises on purpose."""


class ValidationError(CRMError):
    """An input field bag is malformed. Raised before any store call."""

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(message or f"Invalid value for '{field}'")


class MissingFieldError(ValidationError):
    """A required input field is absent or empty."""

    def __init__(self, field: str):
        super().__init__(field, f"'{field}' is required")


class NotFoundError(CRMError):
    """No row with this id exists for the caller's tenant."""

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class StoreError(CRMError):
    """The backing database rejected or failed a statement.

    Carries the driver's own message; the underlying exception is chained.
    """


class ConfigError(CRMError, RuntimeError):
    """Required configuration is missing or unusable (e.g. DATABASE_URL)."""
