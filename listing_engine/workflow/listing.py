"""
Listing - A Seller's Property Listing and Its Workflow State

The listing owns its submitted values. Edits to a listing that has been
approved are held as pending values; the last approved values stay
available for display until a moderator approves the pending ones.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from listing_engine.workflow.states import (
    EditMode,
    WorkflowState,
    edit_mode_for,
    is_active,
    is_publicly_visible,
    progress_ordinal,
    progress_percent,
)


# =============================================================================
# Errors
# =============================================================================


class ListingNotFoundError(Exception):
    """Raised when a listing ID is unknown."""

    def __init__(self, listing_id: str):
        super().__init__(f"Listing {listing_id} not found")
        self.listing_id = listing_id


class ListingLockedError(Exception):
    """Raised when an owner edit arrives while the listing is under moderation."""

    def __init__(self, listing_id: str, state: WorkflowState):
        super().__init__(f"Listing {listing_id} is {state.value} and cannot be edited")
        self.listing_id = listing_id
        self.state = state


def generate_listing_id() -> str:
    """Generate a unique listing ID."""
    return f"LST-{uuid.uuid4().hex[:12].upper()}"


# =============================================================================
# Listing
# =============================================================================


@dataclass
class Listing:
    """
    A property listing.

    values are always JSON-encodable (file references are stored as dicts).
    """

    # === IDENTITY ===
    template_id: str
    template_version: int
    owner_id: str
    listing_id: str = field(default_factory=generate_listing_id)

    # === WORKFLOW ===
    state: WorkflowState = WorkflowState.DRAFT
    rejection_reason: Optional[str] = None

    # === VALUES ===
    values: dict[str, Any] = field(default_factory=dict)
    pending_values: Optional[dict[str, Any]] = None
    approved_values: Optional[dict[str, Any]] = None

    # === TIMESTAMPS ===
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None

    # =========================================================================
    # Derived Flags
    # =========================================================================

    @property
    def edit_mode(self) -> EditMode:
        return edit_mode_for(self.state)

    @property
    def is_editable(self) -> bool:
        return self.edit_mode != EditMode.LOCKED

    @property
    def is_publicly_visible(self) -> bool:
        """Approved or live, or still showing approved content while edits await re-approval."""
        return is_publicly_visible(self.state) or self.serve_last_approved

    @property
    def is_active(self) -> bool:
        return is_active(self.state)

    @property
    def serve_last_approved(self) -> bool:
        """
        Whether display surfaces should keep showing the last approved content.

        Holds from the first pending edit until approval applies it, through
        resubmission and review. Exposed as a flag only; the listing-display
        collaborator enforces it.
        """
        return self.has_pending_changes and self.approved_values is not None

    @property
    def has_pending_changes(self) -> bool:
        return self.pending_values is not None

    @property
    def progress_ordinal(self) -> int:
        return progress_ordinal(self.state)

    @property
    def progress_percent(self) -> float:
        return progress_percent(self.state)

    @property
    def working_values(self) -> dict[str, Any]:
        """Values the owner is currently editing (pending if any)."""
        source = self.pending_values if self.pending_values is not None else self.values
        return copy.deepcopy(source)

    @property
    def display_values(self) -> dict[str, Any]:
        """Values public surfaces should show."""
        if self.serve_last_approved and self.approved_values is not None:
            return copy.deepcopy(self.approved_values)
        return copy.deepcopy(self.values)

    # =========================================================================
    # Serialisation
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Convert listing to dictionary for serialisation."""
        return {
            "listing_id": self.listing_id,
            "template_id": self.template_id,
            "template_version": self.template_version,
            "owner_id": self.owner_id,
            "state": self.state.value,
            "rejection_reason": self.rejection_reason,
            "values": copy.deepcopy(self.values),
            "pending_values": copy.deepcopy(self.pending_values),
            "approved_values": copy.deepcopy(self.approved_values),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            # Derived
            "edit_mode": self.edit_mode.value,
            "is_publicly_visible": self.is_publicly_visible,
            "is_active": self.is_active,
            "serve_last_approved": self.serve_last_approved,
            "has_pending_changes": self.has_pending_changes,
            "progress_percent": self.progress_percent,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Listing":
        """Create listing from dictionary."""

        def _dt(value: Optional[str]) -> Optional[datetime]:
            return datetime.fromisoformat(value) if value else None

        return cls(
            listing_id=data["listing_id"],
            template_id=data["template_id"],
            template_version=int(data.get("template_version", 1)),
            owner_id=data["owner_id"],
            state=WorkflowState(data["state"]),
            rejection_reason=data.get("rejection_reason"),
            values=data.get("values") or {},
            pending_values=data.get("pending_values"),
            approved_values=data.get("approved_values"),
            created_at=_dt(data.get("created_at")) or datetime.utcnow(),
            updated_at=_dt(data.get("updated_at")) or datetime.utcnow(),
            submitted_at=_dt(data.get("submitted_at")),
            approved_at=_dt(data.get("approved_at")),
        )
