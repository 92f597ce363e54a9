"""
Admin Routes - Template Authoring and Listing Moderation

Authentication is handled in front of this service; every request reaching
these routes acts as a moderator.

Routes:
- GET  /api/admin/form-templates              - All templates
- POST /api/admin/form-templates              - Create a draft template
- PUT  /api/admin/form-templates/{id}         - Edit a draft template
- POST /api/admin/form-templates/{id}/publish - Publish a draft
- POST /api/admin/form-templates/{id}/archive - Archive a template
- POST /api/admin/form-templates/{id}/clone   - Clone into a new lineage
- POST /api/admin/form-templates/{id}/revise  - Start the next version
- GET  /api/admin/listings                    - Listings and moderation summary
- POST /api/admin/listings/{id}/transition    - Move a listing through the workflow
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from listing_engine.forms import SectionSchema, SellerType, get_template_repository
from listing_engine.workflow import Actor, WorkflowState, allowed_targets, get_listing_repository
from web.listing_routes import listing_payload


# =============================================================================
# Router Setup
# =============================================================================

router = APIRouter(prefix="/api/admin", tags=["admin"])


# =============================================================================
# Request Models
# =============================================================================


class TemplateCreateRequest(BaseModel):
    """Request body for a new draft template."""
    name: str
    seller_type: str
    category_id: Optional[str] = None
    sections: list[dict[str, Any]] = Field(default_factory=list)
    allow_save_draft: bool = True
    show_preview_before_submit: bool = True
    terms_text: Optional[str] = None


class TemplateUpdateRequest(BaseModel):
    """Request body for editing a draft. Omitted fields are left unchanged."""
    name: Optional[str] = None
    category_id: Optional[str] = None
    sections: Optional[list[dict[str, Any]]] = None
    allow_save_draft: Optional[bool] = None
    show_preview_before_submit: Optional[bool] = None
    terms_text: Optional[str] = None


class CloneRequest(BaseModel):
    """Request body for cloning a template."""
    name: Optional[str] = None


class TransitionRequest(BaseModel):
    """Request body for a workflow transition."""
    target_state: str
    reason: Optional[str] = None
    actor_id: Optional[str] = None


def _parse_sections(raw: list[dict[str, Any]]) -> tuple[SectionSchema, ...]:
    try:
        return tuple(SectionSchema.from_dict(s) for s in raw)
    except (KeyError, TypeError, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid sections: {e}")


# =============================================================================
# Form Templates
# =============================================================================


@router.get("/form-templates")
def list_all_templates(lineage_id: Optional[str] = Query(None)):
    """All templates, or every version of one lineage."""
    repo = get_template_repository()
    items = repo.list_lineage(lineage_id) if lineage_id else repo.list_all()
    return {"items": [t.to_dict() for t in items]}


@router.post("/form-templates", status_code=201)
def create_template(body: TemplateCreateRequest):
    """Create a draft template at version 1."""
    try:
        seller_type = SellerType(body.seller_type)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid seller type: {body.seller_type}")
    if not body.name.strip():
        raise HTTPException(status_code=400, detail="Template name is required")

    template = get_template_repository().create(
        name=body.name,
        seller_type=seller_type,
        category_id=body.category_id,
        sections=_parse_sections(body.sections),
        allow_save_draft=body.allow_save_draft,
        show_preview_before_submit=body.show_preview_before_submit,
        terms_text=body.terms_text,
    )
    return template.to_dict()


@router.put("/form-templates/{template_id}")
def update_template(template_id: str, body: TemplateUpdateRequest):
    """Edit a draft template."""
    sections = _parse_sections(body.sections) if body.sections is not None else None
    try:
        template = get_template_repository().update(
            template_id,
            name=body.name,
            sections=sections,
            category_id=body.category_id,
            allow_save_draft=body.allow_save_draft,
            show_preview_before_submit=body.show_preview_before_submit,
            terms_text=body.terms_text,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return template.to_dict()


@router.post("/form-templates/{template_id}/publish")
def publish_template(template_id: str):
    """Publish a draft after its integrity check."""
    return get_template_repository().publish(template_id).to_dict()


@router.post("/form-templates/{template_id}/archive")
def archive_template(template_id: str):
    """Archive a template; existing listings keep referring to it."""
    return get_template_repository().archive(template_id).to_dict()


@router.post("/form-templates/{template_id}/clone", status_code=201)
def clone_template(template_id: str, body: Optional[CloneRequest] = None):
    """Clone a template into a new draft lineage."""
    name = body.name if body else None
    return get_template_repository().clone(template_id, name).to_dict()


@router.post("/form-templates/{template_id}/revise", status_code=201)
def revise_template(template_id: str):
    """Start the next version of a template as a draft."""
    return get_template_repository().revise(template_id).to_dict()


# =============================================================================
# Listing Moderation
# =============================================================================


@router.get("/listings")
def list_listings(
    state: Optional[str] = Query(None),
    owner_id: Optional[str] = Query(None),
):
    """Listings newest first, with the moderation summary."""
    repo = get_listing_repository()

    if state:
        try:
            listings = repo.list_by_state(WorkflowState(state))
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid state: {state}")
    else:
        listings = repo.list_all()
    if owner_id:
        listings = [l for l in listings if l.owner_id == owner_id]

    items = []
    for listing in listings:
        payload = listing_payload(listing)
        payload["moderator_actions"] = [s.value for s in allowed_targets(listing.state, Actor.MODERATOR)]
        items.append(payload)

    return {"items": items, "summary": repo.get_summary()}


@router.post("/listings/{listing_id}/transition")
def transition_listing(listing_id: str, body: TransitionRequest):
    """
    Move a listing to another workflow state as a moderator.

    Rejection requires a reason.
    """
    try:
        target = WorkflowState(body.target_state)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid state: {body.target_state}")

    listing = get_listing_repository().transition_workflow(
        listing_id,
        target,
        reason=body.reason,
        actor=Actor.MODERATOR,
        actor_id=body.actor_id,
    )
    return {
        "listing_id": listing_id,
        "state": listing.state.value,
        "listing": listing_payload(listing),
    }
