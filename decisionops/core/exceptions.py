class DecisionOpsError(Exception):
    """Base exception for DecisionOps business-rule failures."""

    status_code = 400


class NotFoundError(DecisionOpsError):
    """Raised when a referenced record is missing or belongs to another tenant."""

    status_code = 404

    def __init__(self, entity: str, entity_id: object):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class IllegalStateTransition(DecisionOpsError):
    """Raised when a status change is not in the relevant transition table."""

    status_code = 409

    def __init__(self, current: object, target: object, entity: str = "Status"):
        self.current = current
        self.target = target
        self.entity = entity
        super().__init__(
            f"Invalid {entity.lower()} transition from {_label(current)} to {_label(target)}"
        )


class InvalidArgumentError(DecisionOpsError):
    """Raised when a required field is missing or a structured payload is malformed."""

    status_code = 422


class ForbiddenError(DecisionOpsError):
    """Raised when the actor may not act on the record (e.g. editing someone else's comment)."""

    status_code = 403


class DuplicateError(DecisionOpsError):
    """Raised when a uniqueness rule would be violated."""

    status_code = 409


class ConcurrentModificationError(DecisionOpsError):
    """Raised when a row changed underneath the current transaction."""

    status_code = 409

    def __init__(self, entity: str, entity_id: object):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} was modified concurrently, reload and retry")


def _label(value: object) -> str:
    return getattr(value, "name", None) or str(value)
