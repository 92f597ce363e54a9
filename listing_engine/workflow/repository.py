"""
Listing Repository - Authoritative Storage and Workflow for Listings

Server side of the listing persistence API. Every operation that changes a
listing builds the new record on a copy under the repository lock and swaps
it in only once every check has passed, so callers observe either the pre-
or the post-transition listing and never a partial one.

Submissions are re-validated here against the listing's template; the form
engine's own validation is advisory.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from listing_engine.forms.repository import FormTemplateRepository, get_template_repository
from listing_engine.forms.resolver import OptionResolver
from listing_engine.forms.schema import decode_value, encode_values
from listing_engine.forms.template import FormTemplate, TemplateLifecycleError
from listing_engine.forms.validation import FormValidationResult, validate_values
from listing_engine.reference.provider import get_reference_provider
from listing_engine.workflow.listing import (
    Listing,
    ListingLockedError,
    ListingNotFoundError,
)
from listing_engine.workflow.logbook import WorkflowAction, WorkflowLogbook
from listing_engine.workflow.machine import check_transition
from listing_engine.workflow.states import (
    Actor,
    EditMode,
    WorkflowState,
)


logger = logging.getLogger(__name__)


class SubmissionRejectedError(Exception):
    """Raised when a submission fails server-side validation."""

    def __init__(self, listing_id: str, errors: dict[str, str]):
        super().__init__(f"Listing {listing_id} failed validation ({len(errors)} errors)")
        self.listing_id = listing_id
        self.errors = dict(errors)


# States where the listing waits on a moderator
AWAITING_MODERATION: frozenset[WorkflowState] = frozenset({
    WorkflowState.SUBMITTED,
    WorkflowState.UNDER_REVIEW,
})


# =============================================================================
# Repository
# =============================================================================


class ListingRepository:
    """
    Repository for listings and their workflow logbooks.

    Uses in-memory storage with optional file persistence.
    """

    def __init__(
        self,
        templates: FormTemplateRepository,
        resolver: OptionResolver,
        persist_path: Optional[str] = None,
        check_option_membership: bool = True,
    ):
        """
        Initialise repository.

        Args:
            templates: Template repository listings are validated against
            resolver: Option resolver for server-side option membership checks
            persist_path: Optional path to persist data to JSON file
            check_option_membership: Flag choice values missing from options
        """
        self._templates = templates
        self._resolver = resolver
        self._check_option_membership = check_option_membership
        self._listings: dict[str, Listing] = {}
        self._logbooks: dict[str, WorkflowLogbook] = {}
        self._persist_path = Path(persist_path) if persist_path else None
        self._lock = threading.RLock()

        if self._persist_path and self._persist_path.exists():
            self._load_from_file()

    def _save_to_file(self) -> None:
        """Persist data to file."""
        if not self._persist_path:
            return

        data = {
            "listings": {lid: l.to_dict() for lid, l in self._listings.items()},
            "logbooks": {lid: lb.to_dict() for lid, lb in self._logbooks.items()},
            "saved_at": datetime.utcnow().isoformat(),
        }

        self._persist_path.parent.mkdir(parents=True, exist_ok=True)
        self._persist_path.write_text(json.dumps(data, indent=2))

    def _load_from_file(self) -> None:
        """Load data from file."""
        try:
            data = json.loads(self._persist_path.read_text())
            for lid, l_data in data.get("listings", {}).items():
                self._listings[lid] = Listing.from_dict(l_data)
            for lid, lb_data in data.get("logbooks", {}).items():
                self._logbooks[lid] = WorkflowLogbook.from_dict(lb_data)
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            logger.warning("Could not load listing data from %s: %s", self._persist_path, e)

    # =========================================================================
    # Internals
    # =========================================================================

    def _require(self, listing_id: str) -> Listing:
        listing = self._listings.get(listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        return listing

    def _prepare_values(self, template: FormTemplate, values: dict[str, Any]) -> dict[str, Any]:
        known = set(template.field_keys)
        unknown = [k for k in values if k not in known]
        if unknown:
            logger.warning(
                "Ignoring values for unknown fields %s of template %s",
                ", ".join(sorted(unknown)),
                template.template_id,
            )
        return encode_values({k: v for k, v in values.items() if k in known})

    @staticmethod
    def _write_working(listing: Listing, values: dict[str, Any]) -> None:
        # Edits go wherever the owner is currently working
        if listing.pending_values is not None:
            listing.pending_values = values
        else:
            listing.values = values

    def _commit(
        self,
        listing: Listing,
        action: WorkflowAction,
        actor: Actor,
        from_state: Optional[WorkflowState] = None,
        actor_id: Optional[str] = None,
        note: Optional[str] = None,
        values_snapshot: Optional[dict[str, Any]] = None,
    ) -> Listing:
        """Swap in an updated listing and append its logbook event."""
        listing.updated_at = datetime.utcnow()
        self._listings[listing.listing_id] = listing
        logbook = self._logbooks.setdefault(listing.listing_id, WorkflowLogbook(listing.listing_id))
        logbook.record(
            action=action,
            actor=actor,
            to_state=listing.state,
            from_state=from_state,
            actor_id=actor_id,
            note=note,
            values_snapshot=values_snapshot,
        )
        self._save_to_file()
        return copy.deepcopy(listing)

    # =========================================================================
    # Validation
    # =========================================================================

    def validate_listing_values(
        self,
        template: FormTemplate,
        values: dict[str, Any],
    ) -> FormValidationResult:
        """Validate stored (encoded) values against a template."""
        decoded = {}
        for f in template.all_fields():
            if f.key in values:
                decoded[f.key] = decode_value(f, values[f.key])
        options = self._resolver.resolve_all(template, decoded)
        return validate_values(
            template,
            decoded,
            options_by_key=options,
            check_option_membership=self._check_option_membership,
        )

    # =========================================================================
    # Listing Operations
    # =========================================================================

    def create_listing(
        self,
        template_id: str,
        owner_id: str,
        values: Optional[dict[str, Any]] = None,
    ) -> Listing:
        """
        Create a draft listing from a published template.

        Raises:
            TemplateNotFoundError: If the template does not exist
            TemplateLifecycleError: If the template is not published
        """
        template = self._templates.require(template_id)
        if not template.is_published:
            raise TemplateLifecycleError(
                f"Template {template_id} is {template.status.value} and not offered for new listings",
                template_id=template_id,
            )

        with self._lock:
            listing = Listing(
                template_id=template.template_id,
                template_version=template.version,
                owner_id=owner_id,
                values=self._prepare_values(template, values or {}),
            )
            logger.info("Created listing %s from template %s", listing.listing_id, template_id)
            return self._commit(
                listing,
                WorkflowAction.CREATED,
                Actor.OWNER,
                actor_id=owner_id,
                values_snapshot=listing.values,
            )

    def get(self, listing_id: str) -> Optional[Listing]:
        """Get a copy of a listing, None if not found."""
        listing = self._listings.get(listing_id)
        return copy.deepcopy(listing) if listing else None

    def require(self, listing_id: str) -> Listing:
        """
        Get a copy of a listing.

        Raises:
            ListingNotFoundError: If not found
        """
        return copy.deepcopy(self._require(listing_id))

    def get_template_for(self, listing_id: str) -> FormTemplate:
        """Get the template a listing was created from."""
        return self._templates.require(self._require(listing_id).template_id)

    def save_draft_values(
        self,
        listing_id: str,
        values: dict[str, Any],
        actor_id: Optional[str] = None,
    ) -> Listing:
        """
        Save the owner's in-progress values.

        Draft and rejected listings are edited directly. Edits to approved
        or live listings are held as pending changes and move the listing
        to needs_reapproval.

        Raises:
            ListingNotFoundError: If not found
            ListingLockedError: If the listing is awaiting moderation
        """
        with self._lock:
            current = self._require(listing_id)
            template = self._templates.require(current.template_id)
            updated = copy.deepcopy(current)
            prepared = self._prepare_values(template, values)

            mode = updated.edit_mode
            if mode == EditMode.LOCKED:
                raise ListingLockedError(listing_id, current.state)

            if mode == EditMode.DIRECT:
                self._write_working(updated, prepared)
                return self._commit(
                    updated,
                    WorkflowAction.DRAFT_SAVED,
                    Actor.OWNER,
                    actor_id=actor_id,
                    values_snapshot=prepared,
                )

            from_state = updated.state
            if updated.state != WorkflowState.NEEDS_REAPPROVAL:
                check_transition(updated.state, WorkflowState.NEEDS_REAPPROVAL, Actor.OWNER)
                updated.state = WorkflowState.NEEDS_REAPPROVAL
                logger.info("Listing %s edited while %s; needs re-approval", listing_id, from_state.value)
            updated.pending_values = prepared
            return self._commit(
                updated,
                WorkflowAction.PENDING_EDIT,
                Actor.OWNER,
                from_state=from_state,
                actor_id=actor_id,
                values_snapshot=prepared,
            )

    def submit_listing(
        self,
        listing_id: str,
        values: Optional[dict[str, Any]] = None,
        actor_id: Optional[str] = None,
    ) -> WorkflowState:
        """
        Submit a listing for moderation.

        Args:
            listing_id: Listing ID
            values: Values to store before validating (None keeps stored values)
            actor_id: Owner identifier for the logbook

        Returns:
            New workflow state (submitted)

        Raises:
            ListingNotFoundError: If not found
            WorkflowTransitionError: If the listing cannot be submitted now
            SubmissionRejectedError: If the values fail validation
        """
        with self._lock:
            current = self._require(listing_id)
            check_transition(current.state, WorkflowState.SUBMITTED, Actor.OWNER)

            template = self._templates.require(current.template_id)
            updated = copy.deepcopy(current)
            if values is not None:
                self._write_working(updated, self._prepare_values(template, values))

            submitted = updated.working_values
            result = self.validate_listing_values(template, submitted)
            if result.is_blocked:
                logger.info("Submission of %s rejected: %s", listing_id, ", ".join(result.error_keys))
                raise SubmissionRejectedError(listing_id, result.errors)

            from_state = updated.state
            updated.state = WorkflowState.SUBMITTED
            updated.rejection_reason = None
            updated.submitted_at = datetime.utcnow()
            self._commit(
                updated,
                WorkflowAction.SUBMITTED,
                Actor.OWNER,
                from_state=from_state,
                actor_id=actor_id,
                values_snapshot=submitted,
            )
            logger.info("Listing %s: %s -> submitted", listing_id, from_state.value)
            return updated.state

    def transition_workflow(
        self,
        listing_id: str,
        target_state: WorkflowState,
        reason: Optional[str] = None,
        actor: Actor = Actor.MODERATOR,
        actor_id: Optional[str] = None,
    ) -> Listing:
        """
        Move a listing to another workflow state.

        Submission is routed through submit_listing() so it is always
        re-validated. Approval applies any pending changes and records the
        approved values.

        Raises:
            ListingNotFoundError: If not found
            WorkflowTransitionError: If illegal, wrong actor or missing reason
        """
        if target_state == WorkflowState.SUBMITTED:
            check_transition(self._require(listing_id).state, target_state, actor, reason)
            self.submit_listing(listing_id, actor_id=actor_id)
            return self.require(listing_id)

        with self._lock:
            current = self._require(listing_id)
            check_transition(current.state, target_state, actor, reason)

            updated = copy.deepcopy(current)
            from_state = updated.state
            updated.state = target_state
            action = WorkflowAction.TRANSITIONED
            snapshot = None

            if target_state == WorkflowState.REJECTED:
                updated.rejection_reason = reason.strip()

            elif target_state == WorkflowState.APPROVED:
                if updated.pending_values is not None:
                    updated.values = updated.pending_values
                    updated.pending_values = None
                    action = WorkflowAction.CHANGES_APPLIED
                updated.approved_values = copy.deepcopy(updated.values)
                updated.approved_at = datetime.utcnow()
                snapshot = updated.values

            elif target_state == WorkflowState.NEEDS_REAPPROVAL:
                if updated.pending_values is None:
                    updated.pending_values = copy.deepcopy(updated.values)

            logger.info(
                "Listing %s: %s -> %s by %s",
                listing_id,
                from_state.value,
                target_state.value,
                actor.value,
            )
            return self._commit(
                updated,
                action,
                actor,
                from_state=from_state,
                actor_id=actor_id,
                note=reason,
                values_snapshot=snapshot,
            )

    # =========================================================================
    # Query Operations
    # =========================================================================

    def get_logbook(self, listing_id: str) -> WorkflowLogbook:
        """Get a listing's logbook."""
        self._require(listing_id)
        return self._logbooks.setdefault(listing_id, WorkflowLogbook(listing_id))

    def get_history(self, listing_id: str) -> list[dict[str, Any]]:
        """Get a listing's workflow history, oldest first."""
        return self.get_logbook(listing_id).get_history()

    def list_all(self) -> list[Listing]:
        """Get all listings, newest first."""
        return sorted(
            (copy.deepcopy(l) for l in self._listings.values()),
            key=lambda l: l.created_at,
            reverse=True,
        )

    def list_by_state(self, state: WorkflowState) -> list[Listing]:
        """Get listings in one workflow state."""
        return [l for l in self.list_all() if l.state == state]

    def list_by_owner(self, owner_id: str) -> list[Listing]:
        """Get listings of one owner."""
        return [l for l in self.list_all() if l.owner_id == owner_id]

    def count(self) -> int:
        return len(self._listings)

    def count_by_state(self) -> dict[str, int]:
        """Get count of listings by workflow state."""
        counts: dict[str, int] = {}
        for listing in self._listings.values():
            state = listing.state.value
            counts[state] = counts.get(state, 0) + 1
        return counts

    def get_summary(self) -> dict:
        """
        Get summary statistics for the moderation view.

        Returns dict with counts by state, the moderation queue size and
        recent listings.
        """
        listings = list(self._listings.values())
        recent = []
        for listing in self.list_all()[:10]:
            recent.append({
                "listing_id": listing.listing_id,
                "owner_id": listing.owner_id,
                "template_id": listing.template_id,
                "state": listing.state.value,
                "progress_percent": listing.progress_percent,
                "has_pending_changes": listing.has_pending_changes,
                "created_at": listing.created_at.isoformat(),
            })

        return {
            "total_listings": self.count(),
            "state_counts": self.count_by_state(),
            "awaiting_moderation": sum(1 for l in listings if l.state in AWAITING_MODERATION),
            "publicly_visible": sum(1 for l in listings if l.is_publicly_visible),
            "live": sum(1 for l in listings if l.is_active),
            "with_pending_changes": sum(1 for l in listings if l.has_pending_changes),
            "recent_listings": recent,
        }


# =============================================================================
# Singleton Instance
# =============================================================================

_repository_instance: Optional[ListingRepository] = None


def get_listing_repository(
    persist_path: Optional[str] = None,
    templates: Optional[FormTemplateRepository] = None,
    resolver: Optional[OptionResolver] = None,
    check_option_membership: bool = True,
) -> ListingRepository:
    """
    Get the listing repository singleton.

    Arguments are only used on the first call. Missing collaborators fall
    back to the template repository and reference provider singletons.

    Returns:
        ListingRepository instance
    """
    global _repository_instance
    if _repository_instance is None:
        _repository_instance = ListingRepository(
            templates=templates or get_template_repository(),
            resolver=resolver or OptionResolver(get_reference_provider()),
            persist_path=persist_path,
            check_option_membership=check_option_membership,
        )
    return _repository_instance


def reset_listing_repository() -> None:
    """Reset the singleton instance (for testing)."""
    global _repository_instance
    _repository_instance = None
