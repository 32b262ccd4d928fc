"""
Engine errors.

Every failure carries the figures the caller needs to explain it, so the
caller never re-derives the math. Nothing here is retried by the engine.
"""


class LedgerError(Exception):
    """Base class for engine failures."""


# -----------------------------------------------------------------------------
# Missing entities (fatal to the operation)
# -----------------------------------------------------------------------------


class MissingEntityError(LedgerError):
    """A referenced subscription, curriculum, level or group does not exist."""


class NoActiveSubscriptionError(MissingEntityError):
    def __init__(self, student_id: str, curriculum_id: str):
        self.student_id = student_id
        self.curriculum_id = curriculum_id
        super().__init__(f"No active subscription for student {student_id} in curriculum {curriculum_id}")


class SubscriptionNotFoundError(MissingEntityError):
    def __init__(self, subscription_id: str):
        self.subscription_id = subscription_id
        super().__init__(f"Subscription not found: {subscription_id}")


class CurriculumNotFoundError(MissingEntityError):
    def __init__(self, curriculum_id: str):
        self.curriculum_id = curriculum_id
        super().__init__(f"Curriculum not found or has no levels: {curriculum_id}")


class GroupNotFoundError(MissingEntityError):
    def __init__(self, group_id: str):
        self.group_id = group_id
        super().__init__(f"Group not found: {group_id}")


# -----------------------------------------------------------------------------
# Policy violations (business rule not met)
# -----------------------------------------------------------------------------


class PolicyViolationError(LedgerError):
    """A business rule is not met. The caller decides whether to retry later."""


class AlreadyAtFinalLevelError(PolicyViolationError):
    def __init__(self, level: int):
        self.level = level
        super().__init__(f"Already at the final level ({level})")


class AlreadyAtFirstLevelError(PolicyViolationError):
    def __init__(self):
        self.level = 1
        super().__init__("Already at the first level")


class InsufficientProgressError(PolicyViolationError):
    def __init__(self, required: float, actual: float):
        self.required = required
        self.actual = actual
        super().__init__(
            f"Current level completion {actual:.1f}% is below the required {required:.1f}%"
        )


class InsufficientCreditError(PolicyViolationError):
    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"Remaining credit ({available} days) does not cover the next level ({required} days)"
        )


class InvalidStatusChangeError(PolicyViolationError):
    def __init__(self, current: str, requested: str, detail: str = ""):
        self.current = current
        self.requested = requested
        message = f"Cannot change status from {current} to {requested}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


# -----------------------------------------------------------------------------
# Concurrency
# -----------------------------------------------------------------------------


class ConcurrencyConflictError(LedgerError):
    """The document changed since it was read. Retry the whole operation."""

    def __init__(self, kind: str, entity_id: str, expected_version: int):
        self.kind = kind
        self.entity_id = entity_id
        self.expected_version = expected_version
        super().__init__(
            f"{kind} {entity_id} was modified concurrently (expected version {expected_version})"
        )
