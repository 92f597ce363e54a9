"""
Listing Editor - Binds a Form Engine to One Listing

Forwards the engine's submit event to the listing gateway and keeps the
engine's read-only flag in line with the listing's edit mode. A submit
blocked by local validation never reaches the gateway.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from listing_engine.forms.engine import FormEngine, SubmitResult
from listing_engine.forms.resolver import OptionResolver
from listing_engine.forms.template import TemplateLifecycleError
from listing_engine.workflow.gateway import ListingGateway
from listing_engine.workflow.listing import ListingLockedError
from listing_engine.workflow.states import EditMode, WorkflowState, edit_mode_for


logger = logging.getLogger(__name__)


class ListingEditor:
    """Owner-side editing session for a listing."""

    def __init__(
        self,
        engine: FormEngine,
        gateway: ListingGateway,
        listing_id: str,
        state: WorkflowState = WorkflowState.DRAFT,
    ):
        self._engine = engine
        self._gateway = gateway
        self._listing_id = listing_id
        self._state = state
        self._engine.on_submit(self._forward_submit)
        self.apply_state(state)

    @classmethod
    def open(
        cls,
        gateway: ListingGateway,
        resolver: OptionResolver,
        listing_id: str,
        template_id: str,
        state: WorkflowState = WorkflowState.DRAFT,
        values: Optional[dict[str, Any]] = None,
        check_option_membership: bool = True,
    ) -> "ListingEditor":
        """Fetch the template through the gateway and build an editor for it."""
        template = gateway.get_form_template(template_id)
        engine = FormEngine(
            template,
            resolver,
            values=values,
            check_option_membership=check_option_membership,
        )
        return cls(engine, gateway, listing_id, state)

    @property
    def engine(self) -> FormEngine:
        return self._engine

    @property
    def listing_id(self) -> str:
        return self._listing_id

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def edit_mode(self) -> EditMode:
        return edit_mode_for(self._state)

    def apply_state(self, state: WorkflowState) -> None:
        """Record the listing's state as reported by the server."""
        self._state = state
        self._engine.read_only = edit_mode_for(state) == EditMode.LOCKED

    def _forward_submit(self, values: dict[str, Any]) -> None:
        new_state = self._gateway.submit_listing(self._listing_id, values)
        logger.info("Listing %s submitted, now %s", self._listing_id, new_state.value)
        self.apply_state(new_state)

    def save_draft(self) -> None:
        """
        Save the engine's current values without validating them.

        Raises:
            ListingLockedError: If the listing is awaiting moderation
            TemplateLifecycleError: If the template does not allow drafts
        """
        if self.edit_mode == EditMode.LOCKED:
            raise ListingLockedError(self._listing_id, self._state)
        template = self._engine.template
        if not template.allow_save_draft:
            raise TemplateLifecycleError(
                f"Template {template.template_id} does not allow saving drafts",
                template_id=template.template_id,
            )

        self._gateway.save_draft_values(self._listing_id, self._engine.get_values())
        if self.edit_mode == EditMode.PENDING and self._state != WorkflowState.NEEDS_REAPPROVAL:
            self.apply_state(WorkflowState.NEEDS_REAPPROVAL)

    def submit(self) -> SubmitResult:
        """Validate locally and, when valid, submit through the gateway."""
        return self._engine.submit()
