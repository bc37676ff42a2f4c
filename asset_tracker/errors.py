"""
Service-layer exceptions.

Validation and lookup failures are kept separate from storage failures
so that routes can show the former to the user and answer the latter
with a generic message.
"""


class AssetTrackerError(Exception):
    """Base class for every error raised by the service layer."""


class ValidationError(AssetTrackerError, ValueError):
    """Input is malformed or not allowed by the current policy."""


class NotFoundError(AssetTrackerError, LookupError):
    """A referenced asset or user does not exist."""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} with id {entity_id} not found")


class ConflictError(AssetTrackerError):
    """A unique column already holds the submitted value."""

    def __init__(self, field: str, value=None):
        self.field = field
        self.value = value
        if value is None:
            message = f"Duplicate {field}"
        else:
            message = f"Duplicate {field}: {value!r} is already in use"
        super().__init__(message)


class StorageFailure(AssetTrackerError):
    """
    The database was unavailable or aborted the transaction.

    The unit of work that raised it has been rolled back in full.
    """
