"""
Unit tests for the degree status state machine.
"""

import pytest

from diploma_api.modules.degrees.models import DegreeStatus
from diploma_api.modules.degrees.transitions import (
    CONFIRMATION_STEPS,
    LINK,
    REVERT_CONFIRMATION,
    VALID_STATUS_TRANSITIONS,
    BatchPreconditionError,
    InvalidStatusTransitionError,
    can_edit,
    can_transition,
    check_batch_transition,
    next_status,
)


class TestStatusTransitions:
    """Tests for single-record transitions."""

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (DegreeStatus.DRAFT, DegreeStatus.PENDING_CONFIRMATION),
            (DegreeStatus.PENDING_CONFIRMATION, DegreeStatus.SUBMITTED),
            (DegreeStatus.PENDING_CONFIRMATION, DegreeStatus.DRAFT),
            (DegreeStatus.SUBMITTED, DegreeStatus.LINKED),
        ],
    )
    def test_allowed_transitions(self, current, target):
        assert can_transition(current, target)
        assert next_status(current, target) == target

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (DegreeStatus.DRAFT, DegreeStatus.SUBMITTED),
            (DegreeStatus.DRAFT, DegreeStatus.LINKED),
            (DegreeStatus.SUBMITTED, DegreeStatus.DRAFT),
            (DegreeStatus.SUBMITTED, DegreeStatus.PENDING_CONFIRMATION),
            (DegreeStatus.LINKED, DegreeStatus.SUBMITTED),
            (DegreeStatus.LINKED, DegreeStatus.DRAFT),
        ],
    )
    def test_rejected_transitions(self, current, target):
        assert not can_transition(current, target)
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            next_status(current, target)
        assert current.value in str(exc_info.value)

    def test_linked_is_terminal(self):
        assert VALID_STATUS_TRANSITIONS[DegreeStatus.LINKED] == set()

    def test_only_drafts_are_editable(self):
        assert can_edit(DegreeStatus.DRAFT)
        assert not can_edit(DegreeStatus.PENDING_CONFIRMATION)
        assert not can_edit(DegreeStatus.SUBMITTED)
        assert not can_edit(DegreeStatus.LINKED)

    def test_confirmed_alias_maps_to_submitted(self):
        assert DegreeStatus("confirmed") == DegreeStatus.SUBMITTED
        assert DegreeStatus("CONFIRMED") == DegreeStatus.SUBMITTED

    def test_unknown_status_still_rejected(self):
        with pytest.raises(ValueError):
            DegreeStatus("archived")


class TestBatchTransition:
    """Tests for the all-or-nothing batch pre-check."""

    def test_confirmation_steps(self):
        assert CONFIRMATION_STEPS[1].expected == DegreeStatus.DRAFT
        assert CONFIRMATION_STEPS[1].target == DegreeStatus.PENDING_CONFIRMATION
        assert CONFIRMATION_STEPS[2].expected == DegreeStatus.PENDING_CONFIRMATION
        assert CONFIRMATION_STEPS[2].target == DegreeStatus.SUBMITTED
        assert REVERT_CONFIRMATION.target == DegreeStatus.DRAFT
        assert (LINK.expected, LINK.target) == (DegreeStatus.SUBMITTED, DegreeStatus.LINKED)

    def test_uniform_batch_passes(self, make_degree):
        degrees = [make_degree(i, DegreeStatus.DRAFT) for i in (1, 2, 3)]
        check_batch_transition(degrees, DegreeStatus.DRAFT, DegreeStatus.PENDING_CONFIRMATION)

    def test_mixed_batch_names_every_offender(self, make_degree):
        degrees = [
            make_degree(1, DegreeStatus.DRAFT),
            make_degree(2, DegreeStatus.SUBMITTED),
            make_degree(3, DegreeStatus.PENDING_CONFIRMATION),
        ]

        with pytest.raises(BatchPreconditionError) as exc_info:
            check_batch_transition(degrees, DegreeStatus.DRAFT, DegreeStatus.PENDING_CONFIRMATION)

        assert exc_info.value.offending == {
            2: DegreeStatus.SUBMITTED,
            3: DegreeStatus.PENDING_CONFIRMATION,
        }
        assert "2 degree(s) are not in 'draft' status" in str(exc_info.value)
        assert "2=submitted" in str(exc_info.value)

    def test_invalid_edge_rejected_before_records(self, make_degree):
        degrees = [make_degree(1, DegreeStatus.DRAFT)]
        with pytest.raises(InvalidStatusTransitionError):
            check_batch_transition(degrees, DegreeStatus.DRAFT, DegreeStatus.LINKED)
