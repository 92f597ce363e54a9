"""
Workflow Logbook - Append-Only Audit Trail for Listing Workflow

Every workflow-relevant action on a listing (creation, draft saves,
submissions, moderator transitions) appends an event to the listing's
logbook.

Hash Chain Properties:
- Each event contains a SHA-256 hash of its content
- Each event references the hash of the previous event (forming a chain)
- Hash computation is deterministic (sorted keys, consistent serialization)
- Tampering with any event breaks the chain integrity
"""

from __future__ import annotations

import copy
import hashlib
import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from listing_engine.workflow.states import Actor, WorkflowState


# =============================================================================
# Hash Chain Utilities
# =============================================================================


def _serialize_for_hash(data: dict[str, Any]) -> str:
    """Serialize data deterministically for hash computation."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)


def compute_event_hash(
    listing_id: str,
    sequence: int,
    timestamp: datetime,
    action: str,
    actor: str,
    actor_id: Optional[str],
    from_state: Optional[str],
    to_state: str,
    note: Optional[str],
    values_snapshot: Optional[dict[str, Any]],
    previous_event_hash: Optional[str],
) -> str:
    """
    Compute SHA-256 hash for a workflow event.

    Including previous_event_hash creates the chain linkage.
    """
    hashable_content = {
        "listing_id": listing_id,
        "sequence": sequence,
        "timestamp": timestamp.isoformat(),
        "action": action,
        "actor": actor,
        "actor_id": actor_id,
        "from_state": from_state,
        "to_state": to_state,
        "note": note,
        "values_snapshot": values_snapshot,
        "previous_event_hash": previous_event_hash,
    }
    serialized = _serialize_for_hash(hashable_content)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def verify_event_chain(events: list["WorkflowEvent"]) -> dict[str, Any]:
    """
    Verify the integrity of an event hash chain.

    Returns:
        dict with:
            - valid: bool indicating if chain is intact
            - broken_at: sequence number where chain broke (if any)
            - error: description of the issue (if any)
    """
    if not events:
        return {"valid": True, "broken_at": None, "error": None}

    if events[0].previous_event_hash is not None:
        return {
            "valid": False,
            "broken_at": 1,
            "error": "First event has a previous_event_hash (should be None)",
        }

    for i, event in enumerate(events):
        if not event.verify_hash():
            return {
                "valid": False,
                "broken_at": event.sequence,
                "error": f"Hash mismatch at event {event.sequence}",
            }
        if i > 0 and event.previous_event_hash != events[i - 1].event_hash:
            return {
                "valid": False,
                "broken_at": event.sequence,
                "error": f"Chain broken at event {event.sequence}: "
                         f"previous_event_hash does not match event {i} hash",
            }

    return {"valid": True, "broken_at": None, "error": None}


# =============================================================================
# Enums
# =============================================================================


class WorkflowAction(Enum):
    """Type of action recorded by an event."""

    CREATED = "created"
    DRAFT_SAVED = "draft_saved"
    PENDING_EDIT = "pending_edit"
    SUBMITTED = "submitted"
    TRANSITIONED = "transitioned"
    CHANGES_APPLIED = "changes_applied"


# =============================================================================
# Workflow Event
# =============================================================================


@dataclass(frozen=True)
class WorkflowEvent:
    """
    Immutable record of one workflow action.

    values_snapshot holds the listing's values where the action changed or
    fixed them (creation, saves, submissions, applied changes).
    """

    # === IDENTITY ===
    event_id: str
    listing_id: str
    sequence: int
    timestamp: datetime

    # === ACTION INFO ===
    action: WorkflowAction
    actor: Actor
    actor_id: Optional[str]
    from_state: Optional[WorkflowState]
    to_state: WorkflowState
    note: Optional[str]

    # === SNAPSHOT ===
    values_snapshot: Optional[dict[str, Any]]

    # === HASH CHAIN ===
    event_hash: str
    previous_event_hash: Optional[str]

    def _expected_hash(self) -> str:
        return compute_event_hash(
            listing_id=self.listing_id,
            sequence=self.sequence,
            timestamp=self.timestamp,
            action=self.action.value,
            actor=self.actor.value,
            actor_id=self.actor_id,
            from_state=self.from_state.value if self.from_state else None,
            to_state=self.to_state.value,
            note=self.note,
            values_snapshot=self.values_snapshot,
            previous_event_hash=self.previous_event_hash,
        )

    @classmethod
    def create(
        cls,
        listing_id: str,
        sequence: int,
        action: WorkflowAction,
        actor: Actor,
        to_state: WorkflowState,
        from_state: Optional[WorkflowState] = None,
        actor_id: Optional[str] = None,
        note: Optional[str] = None,
        values_snapshot: Optional[dict[str, Any]] = None,
        previous_event_hash: Optional[str] = None,
    ) -> "WorkflowEvent":
        """Create a new event with hash chain linkage."""
        snapshot_copy = copy.deepcopy(values_snapshot)
        timestamp = datetime.utcnow()

        event_hash = compute_event_hash(
            listing_id=listing_id,
            sequence=sequence,
            timestamp=timestamp,
            action=action.value,
            actor=actor.value,
            actor_id=actor_id,
            from_state=from_state.value if from_state else None,
            to_state=to_state.value,
            note=note,
            values_snapshot=snapshot_copy,
            previous_event_hash=previous_event_hash,
        )

        return cls(
            event_id=f"{listing_id}-e{sequence}",
            listing_id=listing_id,
            sequence=sequence,
            timestamp=timestamp,
            action=action,
            actor=actor,
            actor_id=actor_id,
            from_state=from_state,
            to_state=to_state,
            note=note,
            values_snapshot=snapshot_copy,
            event_hash=event_hash,
            previous_event_hash=previous_event_hash,
        )

    def verify_hash(self) -> bool:
        """True if the hash matches the content, False if tampered."""
        return self.event_hash == self._expected_hash()

    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary for serialisation."""
        return {
            "event_id": self.event_id,
            "listing_id": self.listing_id,
            "sequence": self.sequence,
            "timestamp": self.timestamp.isoformat(),
            "action": self.action.value,
            "actor": self.actor.value,
            "actor_id": self.actor_id,
            "from_state": self.from_state.value if self.from_state else None,
            "to_state": self.to_state.value,
            "note": self.note,
            "values_snapshot": self.values_snapshot,
            "event_hash": self.event_hash,
            "previous_event_hash": self.previous_event_hash,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WorkflowEvent":
        """Create event from dictionary."""
        from_state = data.get("from_state")
        return cls(
            event_id=data["event_id"],
            listing_id=data["listing_id"],
            sequence=data["sequence"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            action=WorkflowAction(data["action"]),
            actor=Actor(data["actor"]),
            actor_id=data.get("actor_id"),
            from_state=WorkflowState(from_state) if from_state else None,
            to_state=WorkflowState(data["to_state"]),
            note=data.get("note"),
            values_snapshot=data.get("values_snapshot"),
            event_hash=data["event_hash"],
            previous_event_hash=data.get("previous_event_hash"),
        )


# =============================================================================
# Workflow Logbook
# =============================================================================


@dataclass
class WorkflowLogbook:
    """
    Append-only workflow history of one listing.

    Rules:
    - Events are append-only
    - No event is ever modified or removed
    """

    listing_id: str
    created_at: datetime = field(default_factory=datetime.utcnow)
    _events: list[WorkflowEvent] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        if not self.listing_id:
            raise ValueError("listing_id is required")

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def events(self) -> tuple[WorkflowEvent, ...]:
        """Get all events (read-only tuple)."""
        return tuple(self._events)

    @property
    def event_count(self) -> int:
        return len(self._events)

    @property
    def current_event(self) -> Optional[WorkflowEvent]:
        return self._events[-1] if self._events else None

    @property
    def current_hash(self) -> Optional[str]:
        current = self.current_event
        return current.event_hash if current else None

    # =========================================================================
    # Recording
    # =========================================================================

    def record(
        self,
        action: WorkflowAction,
        actor: Actor,
        to_state: WorkflowState,
        from_state: Optional[WorkflowState] = None,
        actor_id: Optional[str] = None,
        note: Optional[str] = None,
        values_snapshot: Optional[dict[str, Any]] = None,
    ) -> WorkflowEvent:
        """Append an event linked to the current chain head."""
        event = WorkflowEvent.create(
            listing_id=self.listing_id,
            sequence=len(self._events) + 1,
            action=action,
            actor=actor,
            to_state=to_state,
            from_state=from_state,
            actor_id=actor_id,
            note=note,
            values_snapshot=values_snapshot,
            previous_event_hash=self.current_hash,
        )
        self._events.append(event)
        return event

    # =========================================================================
    # Hash Chain Verification
    # =========================================================================

    def verify_chain_integrity(self) -> dict[str, Any]:
        """Verify the whole chain; adds event_count to the result."""
        result = verify_event_chain(list(self._events))
        result["event_count"] = self.event_count
        return result

    def is_chain_valid(self) -> bool:
        return self.verify_chain_integrity()["valid"]

    # =========================================================================
    # History & Serialisation
    # =========================================================================

    def get_history(self) -> list[dict[str, Any]]:
        """Get event summaries oldest to newest, without value snapshots."""
        history = []
        for event in self._events:
            history.append({
                "sequence": event.sequence,
                "timestamp": event.timestamp.isoformat(),
                "action": event.action.value,
                "actor": event.actor.value,
                "actor_id": event.actor_id,
                "from_state": event.from_state.value if event.from_state else None,
                "to_state": event.to_state.value,
                "note": event.note,
                "event_hash": event.event_hash,
                "previous_event_hash": event.previous_event_hash,
            })
        return history

    def to_dict(self) -> dict[str, Any]:
        """Convert logbook to dictionary for serialisation."""
        return {
            "listing_id": self.listing_id,
            "created_at": self.created_at.isoformat(),
            "event_count": self.event_count,
            "events": [e.to_dict() for e in self._events],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WorkflowLogbook":
        """Create logbook from dictionary."""
        logbook = cls(
            listing_id=data["listing_id"],
            created_at=datetime.fromisoformat(data["created_at"]),
        )
        for e_data in data.get("events", []):
            logbook._events.append(WorkflowEvent.from_dict(e_data))
        return logbook
