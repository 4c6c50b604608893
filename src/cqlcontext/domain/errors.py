"""Exceptions raised by the unit-of-work core."""

from __future__ import annotations


class ContextError(RuntimeError):
    """Base class for errors raised by the unit-of-work context."""


class ContractViolationError(ContextError):
    """Raised when a caller breaks the usage contract of the context.

    These are programming errors (for example requesting ``TableType.ALL`` for a
    single-class save or ending a save with a foreign handle); retrying will not help.
    """


class UnknownTableError(ContractViolationError):
    """Raised when a table or command references a table not registered in the context."""


class TableIdentityError(ContextError):
    """Raised when a table identity cannot be computed from the registration hints."""


class ClassificationError(ContextError):
    """Raised when a table's schema cannot be classified as standard or counter."""


class EntityTrackingError(ContextError):
    """Raised on invalid entity tracking transitions or unreadable entity values."""


class TableAlreadyExistsError(ContextError):
    """Raised by executors when a table being provisioned already exists."""

    def __init__(self, identity: str) -> None:
        super().__init__(f"Table {identity} already exists")
        self.identity = identity
