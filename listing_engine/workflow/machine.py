"""
Workflow Machine - Transition Table for Listing States

Every legal transition is one entry in TRANSITIONS keyed by
(from_state, to_state). Anything not in the table is illegal.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Optional

from listing_engine.workflow.states import Actor, WorkflowState


# =============================================================================
# Errors
# =============================================================================


class WorkflowTransitionError(Exception):
    """Raised when a transition is illegal, by the wrong actor or incomplete."""

    ILLEGAL = "illegal_transition"
    WRONG_ACTOR = "wrong_actor"
    REASON_REQUIRED = "reason_required"

    def __init__(
        self,
        code: str,
        from_state: WorkflowState,
        to_state: WorkflowState,
        message: str,
    ):
        super().__init__(message)
        self.code = code
        self.from_state = from_state
        self.to_state = to_state
        self.message = message

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "from_state": self.from_state.value,
            "to_state": self.to_state.value,
            "message": self.message,
        }


# =============================================================================
# Transition Table
# =============================================================================


@dataclass(frozen=True)
class Transition:
    """One legal transition."""

    from_state: WorkflowState
    to_state: WorkflowState
    actor: Actor
    requires_reason: bool = False
    requires_valid_values: bool = False


def _t(from_state, to_state, actor, **flags) -> tuple[tuple[WorkflowState, WorkflowState], Transition]:
    return (from_state, to_state), Transition(from_state, to_state, actor, **flags)


S = WorkflowState

TRANSITIONS: Final[dict[tuple[WorkflowState, WorkflowState], Transition]] = dict([
    _t(S.DRAFT, S.SUBMITTED, Actor.OWNER, requires_valid_values=True),
    _t(S.SUBMITTED, S.UNDER_REVIEW, Actor.MODERATOR),
    _t(S.UNDER_REVIEW, S.APPROVED, Actor.MODERATOR),
    _t(S.UNDER_REVIEW, S.REJECTED, Actor.MODERATOR, requires_reason=True),
    _t(S.APPROVED, S.LIVE, Actor.MODERATOR),
    _t(S.APPROVED, S.NEEDS_REAPPROVAL, Actor.OWNER),
    _t(S.LIVE, S.NEEDS_REAPPROVAL, Actor.OWNER),
    _t(S.NEEDS_REAPPROVAL, S.SUBMITTED, Actor.OWNER, requires_valid_values=True),
    _t(S.REJECTED, S.SUBMITTED, Actor.OWNER, requires_valid_values=True),
])

del S


def get_transition(from_state: WorkflowState, to_state: WorkflowState) -> Optional[Transition]:
    """Look up a transition, None when illegal."""
    return TRANSITIONS.get((from_state, to_state))


def allowed_targets(state: WorkflowState, actor: Optional[Actor] = None) -> list[WorkflowState]:
    """Get the states reachable from `state`, optionally for one actor."""
    return [
        t.to_state
        for t in TRANSITIONS.values()
        if t.from_state == state and (actor is None or t.actor == actor)
    ]


def check_transition(
    from_state: WorkflowState,
    to_state: WorkflowState,
    actor: Actor,
    reason: Optional[str] = None,
) -> Transition:
    """
    Validate a transition request.

    Args:
        from_state: Current state
        to_state: Requested state
        actor: Who is requesting it
        reason: Reason text (required for rejection)

    Returns:
        The matching Transition

    Raises:
        WorkflowTransitionError: If illegal, wrong actor or missing reason
    """
    transition = get_transition(from_state, to_state)
    if transition is None:
        raise WorkflowTransitionError(
            WorkflowTransitionError.ILLEGAL,
            from_state,
            to_state,
            f"Cannot move a listing from {from_state.value} to {to_state.value}",
        )
    if transition.actor != actor:
        raise WorkflowTransitionError(
            WorkflowTransitionError.WRONG_ACTOR,
            from_state,
            to_state,
            f"Only the {transition.actor.value} can move a listing "
            f"from {from_state.value} to {to_state.value}",
        )
    if transition.requires_reason and (reason is None or not reason.strip()):
        raise WorkflowTransitionError(
            WorkflowTransitionError.REASON_REQUIRED,
            from_state,
            to_state,
            f"A reason is required to move a listing to {to_state.value}",
        )
    return transition


def can_transition(
    from_state: WorkflowState,
    to_state: WorkflowState,
    actor: Actor,
    reason: Optional[str] = None,
) -> bool:
    """Non-raising form of check_transition()."""
    try:
        check_transition(from_state, to_state, actor, reason)
    except WorkflowTransitionError:
        return False
    return True
