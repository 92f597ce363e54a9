"""
Listing Gateway - Client Side of the Listing Persistence API

The form engine and editor talk to persistence only through
ListingGateway. Two implementations:

- LocalListingGateway: calls the in-process repositories directly
- HttpListingGateway: calls the HTTP API with requests

Errors reported by the server are raised as GatewayError; the client does
not attempt to repair its own state after a failure.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import requests

from listing_engine.forms.repository import FormTemplateRepository
from listing_engine.forms.schema import encode_values
from listing_engine.forms.template import FormTemplate
from listing_engine.workflow.repository import ListingRepository
from listing_engine.workflow.states import Actor, WorkflowState


logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Raised when the persistence API reports a failure."""

    def __init__(self, status_code: Optional[int], message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.details = details or {}


class ListingGateway(ABC):
    """Persistence operations the form client depends on."""

    @abstractmethod
    def get_form_template(self, template_id: str) -> FormTemplate:
        ...

    @abstractmethod
    def save_draft_values(self, listing_id: str, values: dict[str, Any]) -> None:
        ...

    @abstractmethod
    def submit_listing(self, listing_id: str, values: dict[str, Any]) -> WorkflowState:
        """Submit values for moderation. The server re-validates them."""

    @abstractmethod
    def transition_workflow(
        self,
        listing_id: str,
        target_state: WorkflowState,
        reason: Optional[str] = None,
    ) -> WorkflowState:
        ...


# =============================================================================
# In-Process Gateway
# =============================================================================


class LocalListingGateway(ListingGateway):
    """Gateway backed by in-process repositories; errors propagate as raised."""

    def __init__(
        self,
        templates: FormTemplateRepository,
        listings: ListingRepository,
        actor: Actor = Actor.MODERATOR,
    ):
        self._templates = templates
        self._listings = listings
        self._actor = actor

    def get_form_template(self, template_id: str) -> FormTemplate:
        return self._templates.require(template_id)

    def save_draft_values(self, listing_id: str, values: dict[str, Any]) -> None:
        self._listings.save_draft_values(listing_id, values)

    def submit_listing(self, listing_id: str, values: dict[str, Any]) -> WorkflowState:
        return self._listings.submit_listing(listing_id, values)

    def transition_workflow(
        self,
        listing_id: str,
        target_state: WorkflowState,
        reason: Optional[str] = None,
    ) -> WorkflowState:
        listing = self._listings.transition_workflow(
            listing_id,
            target_state,
            reason=reason,
            actor=self._actor,
        )
        return listing.state


# =============================================================================
# HTTP Gateway
# =============================================================================


class HttpListingGateway(ListingGateway):
    """Gateway calling the listing HTTP API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    def _request(self, method: str, path: str, payload: Optional[dict] = None) -> dict:
        url = f"{self._base_url}{path}"
        try:
            response = self._session.request(method, url, json=payload, timeout=self._timeout)
        except requests.RequestException as e:
            raise GatewayError(None, f"Request to {url} failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {"data": body}

        if not response.ok:
            message = body.get("detail") or body.get("message") or response.reason or "Request failed"
            if not isinstance(message, str):
                message = str(message)
            logger.warning("%s %s returned %d: %s", method, url, response.status_code, message)
            raise GatewayError(response.status_code, message, body)
        return body

    def get_form_template(self, template_id: str) -> FormTemplate:
        body = self._request("GET", f"/api/form-templates/{template_id}")
        try:
            return FormTemplate.from_dict(body)
        except (KeyError, ValueError) as e:
            raise GatewayError(None, f"Malformed template {template_id}: {e}") from e

    def save_draft_values(self, listing_id: str, values: dict[str, Any]) -> None:
        self._request("PUT", f"/api/listings/{listing_id}/draft", {"values": encode_values(values)})

    def submit_listing(self, listing_id: str, values: dict[str, Any]) -> WorkflowState:
        body = self._request("POST", f"/api/listings/{listing_id}/submit", {"values": encode_values(values)})
        return self._state_from(body)

    def transition_workflow(
        self,
        listing_id: str,
        target_state: WorkflowState,
        reason: Optional[str] = None,
    ) -> WorkflowState:
        body = self._request(
            "POST",
            f"/api/admin/listings/{listing_id}/transition",
            {"target_state": target_state.value, "reason": reason},
        )
        return self._state_from(body)

    @staticmethod
    def _state_from(body: dict) -> WorkflowState:
        try:
            return WorkflowState(body["state"])
        except (KeyError, ValueError) as e:
            raise GatewayError(None, f"Response has no valid state: {e}") from e
