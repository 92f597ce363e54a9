"""
Workflow States - Listing Moderation Lifecycle

A listing's workflow state is independent of the template that produced it.
Each state carries fixed display and policy attributes:

- progress ordinal (coarse percent-complete display only)
- public visibility and the "active" flag consumed by search surfaces
- the owner's edit mode (direct, held as pending changes, or locked)
"""

from __future__ import annotations

from enum import Enum
from typing import Final


class WorkflowState(Enum):
    """Moderation state of a listing."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    LIVE = "live"
    NEEDS_REAPPROVAL = "needs_reapproval"
    REJECTED = "rejected"


class Actor(Enum):
    """Who may perform a transition."""

    OWNER = "owner"
    MODERATOR = "moderator"


class EditMode(Enum):
    """How owner edits are applied in a state."""

    DIRECT = "direct"  # Values replaced in place
    PENDING = "pending"  # Held for moderator re-approval
    LOCKED = "locked"  # No edits


# =============================================================================
# State Attributes
# =============================================================================

PROGRESS_ORDINALS: Final[dict[WorkflowState, int]] = {
    WorkflowState.REJECTED: 0,
    WorkflowState.DRAFT: 1,
    WorkflowState.SUBMITTED: 2,
    WorkflowState.UNDER_REVIEW: 3,
    WorkflowState.NEEDS_REAPPROVAL: 3,
    WorkflowState.APPROVED: 4,
    WorkflowState.LIVE: 5,
}

MAX_PROGRESS_ORDINAL: Final[int] = max(PROGRESS_ORDINALS.values())

PUBLICLY_VISIBLE_STATES: Final[frozenset[WorkflowState]] = frozenset({
    WorkflowState.APPROVED,
    WorkflowState.LIVE,
})

ACTIVE_STATES: Final[frozenset[WorkflowState]] = frozenset({WorkflowState.LIVE})

EDIT_MODES: Final[dict[WorkflowState, EditMode]] = {
    WorkflowState.DRAFT: EditMode.DIRECT,
    WorkflowState.REJECTED: EditMode.DIRECT,
    WorkflowState.SUBMITTED: EditMode.LOCKED,
    WorkflowState.UNDER_REVIEW: EditMode.LOCKED,
    WorkflowState.APPROVED: EditMode.PENDING,
    WorkflowState.LIVE: EditMode.PENDING,
    WorkflowState.NEEDS_REAPPROVAL: EditMode.PENDING,
}

for _table in (PROGRESS_ORDINALS, EDIT_MODES):
    if set(_table) != set(WorkflowState):
        raise RuntimeError("State attribute table does not cover every WorkflowState")


def progress_ordinal(state: WorkflowState) -> int:
    return PROGRESS_ORDINALS[state]


def progress_percent(state: WorkflowState) -> float:
    """Coarse percent-complete for display. Has no bearing on legality."""
    return PROGRESS_ORDINALS[state] / MAX_PROGRESS_ORDINAL * 100


def is_publicly_visible(state: WorkflowState) -> bool:
    return state in PUBLICLY_VISIBLE_STATES


def is_active(state: WorkflowState) -> bool:
    return state in ACTIVE_STATES


def edit_mode_for(state: WorkflowState) -> EditMode:
    return EDIT_MODES[state]
