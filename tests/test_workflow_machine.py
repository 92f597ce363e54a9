"""
Tests for the Submission Workflow State Machine

Tests covering:
1. Transition table legality and actors
2. Rejection requires a reason
3. Progress ordinals and percentages
4. Visibility, active flag and edit modes per state
"""

from __future__ import annotations

import pytest

from listing_engine.workflow import (
    TRANSITIONS,
    Actor,
    EditMode,
    WorkflowState,
    WorkflowTransitionError,
    allowed_targets,
    can_transition,
    check_transition,
    edit_mode_for,
    progress_ordinal,
    progress_percent,
)
from listing_engine.workflow.states import is_active, is_publicly_visible


S = WorkflowState


# =============================================================================
# Transition Table
# =============================================================================


class TestTransitionTable:
    """Tests for transition legality."""

    def test_table_has_nine_transitions(self):
        assert len(TRANSITIONS) == 9

    @pytest.mark.parametrize("from_state,to_state,actor", [
        (S.DRAFT, S.SUBMITTED, Actor.OWNER),
        (S.SUBMITTED, S.UNDER_REVIEW, Actor.MODERATOR),
        (S.UNDER_REVIEW, S.APPROVED, Actor.MODERATOR),
        (S.APPROVED, S.LIVE, Actor.MODERATOR),
        (S.APPROVED, S.NEEDS_REAPPROVAL, Actor.OWNER),
        (S.LIVE, S.NEEDS_REAPPROVAL, Actor.OWNER),
        (S.NEEDS_REAPPROVAL, S.SUBMITTED, Actor.OWNER),
        (S.REJECTED, S.SUBMITTED, Actor.OWNER),
    ])
    def test_legal_transitions(self, from_state, to_state, actor):
        assert can_transition(from_state, to_state, actor)

    def test_under_review_cannot_go_live_directly(self):
        """Live is only reachable through approved."""
        with pytest.raises(WorkflowTransitionError) as exc_info:
            check_transition(S.UNDER_REVIEW, S.LIVE, Actor.MODERATOR)
        assert exc_info.value.code == WorkflowTransitionError.ILLEGAL

    def test_under_review_exits(self):
        assert set(allowed_targets(S.UNDER_REVIEW)) == {S.APPROVED, S.REJECTED}

    def test_rejected_listing_can_be_resubmitted(self):
        transition = check_transition(S.REJECTED, S.SUBMITTED, Actor.OWNER)
        assert transition.to_state == S.SUBMITTED
        assert transition.requires_valid_values

    def test_wrong_actor(self):
        with pytest.raises(WorkflowTransitionError) as exc_info:
            check_transition(S.SUBMITTED, S.UNDER_REVIEW, Actor.OWNER)
        assert exc_info.value.code == WorkflowTransitionError.WRONG_ACTOR
        assert "moderator" in exc_info.value.message

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_rejection_requires_reason(self, reason):
        with pytest.raises(WorkflowTransitionError) as exc_info:
            check_transition(S.UNDER_REVIEW, S.REJECTED, Actor.MODERATOR, reason)
        assert exc_info.value.code == WorkflowTransitionError.REASON_REQUIRED

    def test_rejection_with_reason(self):
        assert can_transition(S.UNDER_REVIEW, S.REJECTED, Actor.MODERATOR, "Photos missing")

    def test_no_terminal_states(self):
        """Every state has a way out."""
        for state in WorkflowState:
            assert allowed_targets(state), state

    def test_allowed_targets_by_actor(self):
        assert allowed_targets(S.APPROVED, Actor.MODERATOR) == [S.LIVE]
        assert allowed_targets(S.APPROVED, Actor.OWNER) == [S.NEEDS_REAPPROVAL]

    def test_error_serialises(self):
        with pytest.raises(WorkflowTransitionError) as exc_info:
            check_transition(S.DRAFT, S.LIVE, Actor.MODERATOR)
        data = exc_info.value.to_dict()
        assert data["code"] == "illegal_transition"
        assert data["from_state"] == "draft"
        assert data["to_state"] == "live"


# =============================================================================
# State Attributes
# =============================================================================


class TestStateAttributes:
    """Tests for progress, visibility and edit modes."""

    @pytest.mark.parametrize("state,ordinal", [
        (S.REJECTED, 0),
        (S.DRAFT, 1),
        (S.SUBMITTED, 2),
        (S.UNDER_REVIEW, 3),
        (S.NEEDS_REAPPROVAL, 3),
        (S.APPROVED, 4),
        (S.LIVE, 5),
    ])
    def test_progress_ordinals(self, state, ordinal):
        assert progress_ordinal(state) == ordinal
        assert progress_percent(state) == pytest.approx(ordinal / 5 * 100)

    def test_visibility(self):
        visible = {s for s in WorkflowState if is_publicly_visible(s)}
        assert visible == {S.APPROVED, S.LIVE}
        assert [s for s in WorkflowState if is_active(s)] == [S.LIVE]

    @pytest.mark.parametrize("state,mode", [
        (S.DRAFT, EditMode.DIRECT),
        (S.REJECTED, EditMode.DIRECT),
        (S.SUBMITTED, EditMode.LOCKED),
        (S.UNDER_REVIEW, EditMode.LOCKED),
        (S.APPROVED, EditMode.PENDING),
        (S.LIVE, EditMode.PENDING),
        (S.NEEDS_REAPPROVAL, EditMode.PENDING),
    ])
    def test_edit_modes(self, state, mode):
        assert edit_mode_for(state) == mode
