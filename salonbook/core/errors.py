"""
Typed failures raised by the booking core.

None of these are fatal to the process; the caller decides how to present them.
"""


class SalonBookError(Exception):
    """Base class for every failure the core reports."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SalonBookError):
    """Bad input shape or range. Never retried."""


class NotFoundError(SalonBookError):
    """A referenced id does not exist."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} '{entity_id}' not found")
        self.entity = entity
        self.entity_id = entity_id


class ProtectedEntityError(SalonBookError):
    """Attempted mutation of the owner worker."""


class StorageError(SalonBookError):
    """The Record Store rejected or could not complete a call."""

    def __init__(self, message: str, transient: bool = False):
        super().__init__(message)
        self.transient = transient
