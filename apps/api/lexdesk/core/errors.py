"""Domain errors raised by service functions.

Routers translate these into HTTP responses (see lexdesk.main).
"""

from uuid import UUID


class DomainError(Exception):
    """Base class for all domain errors."""


class NotFoundError(DomainError):
    """Entity is absent or belongs to another organization.

    The message is identical in both cases so callers cannot test
    for entities in other tenants.
    """

    def __init__(self, entity_type: str, entity_id: UUID | str | None = None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found")


class IllegalTransitionError(DomainError):
    """Requested status change is not allowed from the current status."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot transition from {current} to {target}")


class ValidationFailedError(DomainError):
    """Input failed a business rule."""


class UnresolvedConflictsError(ValidationFailedError):
    """Lead has conflict checks that must be resolved before conversion."""


class ExternalDependencyFailedError(DomainError):
    """Notification sink or AI provider failed."""
