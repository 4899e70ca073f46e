"""Exceptions raised by the orchestration services."""


class OrchestrationError(Exception):
    """Base class for orchestration failures."""


class InvalidTransition(OrchestrationError):
    """A status change that the lifecycle does not allow."""

    def __init__(self, entity: str, current: str, target: str):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"{entity} cannot move from {current} to {target}")


class StaleTransition(OrchestrationError):
    """The row was no longer in the expected status when the update ran."""

    def __init__(self, entity: str, entity_id, expected: str):
        self.entity = entity
        self.entity_id = entity_id
        self.expected = expected
        super().__init__(f"{entity} {entity_id} is no longer {expected}")
