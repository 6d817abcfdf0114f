"""
Degree Status State Machine

Transition rules for degree records and the all-or-nothing batch
precondition check used by the confirmation workflow. Nothing here touches
the database: callers check first, then persist every change in one
statement.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from diploma_api.modules.degrees.models import Degree, DegreeStatus

# Valid status transitions
VALID_STATUS_TRANSITIONS: dict[DegreeStatus, set[DegreeStatus]] = {
    DegreeStatus.DRAFT: {
        DegreeStatus.PENDING_CONFIRMATION,  # First confirmation
    },
    DegreeStatus.PENDING_CONFIRMATION: {
        DegreeStatus.SUBMITTED,  # Second confirmation
        DegreeStatus.DRAFT,  # Admin cancelled mid-confirmation
    },
    DegreeStatus.SUBMITTED: {
        DegreeStatus.LINKED,  # Matching student verified their email
    },
    # Terminal
    DegreeStatus.LINKED: set(),
}


@dataclass(frozen=True)
class BatchTransition:
    """A status change to apply to a whole batch of records."""

    expected: DegreeStatus
    target: DegreeStatus


CONFIRMATION_STEPS: dict[int, BatchTransition] = {
    1: BatchTransition(DegreeStatus.DRAFT, DegreeStatus.PENDING_CONFIRMATION),
    2: BatchTransition(DegreeStatus.PENDING_CONFIRMATION, DegreeStatus.SUBMITTED),
}

REVERT_CONFIRMATION = BatchTransition(DegreeStatus.PENDING_CONFIRMATION, DegreeStatus.DRAFT)

LINK = BatchTransition(DegreeStatus.SUBMITTED, DegreeStatus.LINKED)


class InvalidStatusTransitionError(ValueError):
    """Raised when an invalid status transition is attempted."""

    def __init__(
        self,
        current_status: DegreeStatus,
        new_status: DegreeStatus,
    ):
        self.current_status = current_status
        self.new_status = new_status
        valid_transitions = VALID_STATUS_TRANSITIONS.get(current_status, set())
        super().__init__(
            f"Invalid status transition: {current_status.value} -> {new_status.value}. "
            f"Valid transitions: {sorted(s.value for s in valid_transitions)}"
        )


class BatchPreconditionError(ValueError):
    """
    Raised when some records in a batch are not in the expected status.

    Attributes:
        expected: The status every record had to be in
        offending: Mapping of record id -> actual status for each violation
    """

    def __init__(self, expected: DegreeStatus, offending: dict[int, DegreeStatus]):
        self.expected = expected
        self.offending = offending
        details = ", ".join(f"{id_}={status.value}" for id_, status in sorted(offending.items()))
        super().__init__(
            f"{len(offending)} degree(s) are not in '{expected.value}' status: {details}"
        )


def can_transition(current: DegreeStatus, target: DegreeStatus) -> bool:
    """Whether the state machine allows current -> target."""
    return target in VALID_STATUS_TRANSITIONS.get(current, set())


def next_status(current: DegreeStatus, target: DegreeStatus) -> DegreeStatus:
    """
    Validate a single transition and return the new status.

    Raises:
        InvalidStatusTransitionError: If current -> target is not allowed
    """
    if not can_transition(current, target):
        raise InvalidStatusTransitionError(current, target)
    return target


def can_edit(status: DegreeStatus) -> bool:
    """Only draft records may be updated or deleted."""
    return status == DegreeStatus.DRAFT


def check_batch_transition(
    degrees: Iterable[Degree],
    expected: DegreeStatus,
    target: DegreeStatus,
) -> None:
    """
    Pre-check a batch transition before anything is mutated.

    Every record must currently be in `expected`; a mixed batch is
    rejected as a whole.

    Raises:
        InvalidStatusTransitionError: If expected -> target is not an edge
        BatchPreconditionError: If any record is in another status
    """
    next_status(expected, target)

    offending = {degree.id: degree.status for degree in degrees if degree.status != expected}
    if offending:
        raise BatchPreconditionError(expected, offending)
