"""
Listing Routes - Public API for Reference Data, Forms and Listings

Server side of the listing persistence API used by HttpListingGateway and
HttpReferenceProvider.

Routes:
- GET  /api/reference/categories         - Property categories
- GET  /api/reference/states             - States and union territories
- GET  /api/reference/linked-options     - Options keyed by a parent value
- GET  /api/form-templates               - Published templates
- GET  /api/form-templates/{id}          - One template
- GET  /api/form-templates/{id}/preview  - HTML preview of a template
- POST /api/listings                     - Create a draft listing
- GET  /api/listings/{id}                - Listing detail
- PUT  /api/listings/{id}/draft          - Save draft values
- POST /api/listings/{id}/submit         - Submit for moderation
- GET  /api/listings/{id}/history        - Workflow history
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, Field

from listing_engine.forms import (
    FormEngine,
    OptionResolver,
    SellerType,
    get_template_repository,
)
from listing_engine.reference import ReferenceDataError, get_reference_provider
from listing_engine.workflow import Listing, get_listing_repository
from utils.formatting import format_percent, humanize_key


# =============================================================================
# Router Setup
# =============================================================================

TEMPLATES_DIR = Path(__file__).parent / "templates"

router = APIRouter(prefix="/api", tags=["listings"])
templates = Jinja2Templates(directory=TEMPLATES_DIR)


# =============================================================================
# Request Models
# =============================================================================


class CreateListingRequest(BaseModel):
    """Request body for creating a draft listing."""
    template_id: str
    owner_id: str
    values: dict[str, Any] = Field(default_factory=dict)


class DraftValuesRequest(BaseModel):
    """Request body for saving draft values."""
    values: dict[str, Any]
    actor_id: Optional[str] = None


class SubmitListingRequest(BaseModel):
    """Request body for submitting a listing. Omitted values keep the stored ones."""
    values: Optional[dict[str, Any]] = None
    actor_id: Optional[str] = None


def listing_payload(listing: Listing) -> dict:
    """Listing JSON with display helpers."""
    payload = listing.to_dict()
    payload["progress_label"] = format_percent(listing.progress_percent, decimals=0)
    payload["state_label"] = humanize_key(listing.state.value)
    return payload


def _reference_items(fetch) -> dict:
    try:
        return {"items": [item.to_dict() for item in fetch()]}
    except ReferenceDataError as e:
        raise HTTPException(status_code=502, detail=str(e))


# =============================================================================
# Reference Data
# =============================================================================


@router.get("/reference/categories")
def list_categories():
    """Property categories in display order."""
    return _reference_items(get_reference_provider().get_categories)


@router.get("/reference/states")
def list_states():
    """States and union territories."""
    return _reference_items(get_reference_provider().get_states)


@router.get("/reference/linked-options")
def list_linked_options(parent: str = Query(..., description="Parent field value")):
    """Options keyed by a parent field's value (cities of a state, subcategories of a category)."""
    provider = get_reference_provider()
    return _reference_items(lambda: provider.get_linked_options(parent))


# =============================================================================
# Form Templates
# =============================================================================


@router.get("/form-templates")
def list_form_templates(
    seller_type: Optional[str] = Query(None),
    category_id: Optional[str] = Query(None),
):
    """Published templates offered to new listings."""
    seller = None
    if seller_type:
        try:
            seller = SellerType(seller_type)
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid seller type: {seller_type}")

    published = get_template_repository().list_published(seller_type=seller, category_id=category_id)
    return {"items": [t.to_dict() for t in published]}


@router.get("/form-templates/{template_id}")
def get_form_template(template_id: str):
    """One template, whatever its status."""
    return get_template_repository().require(template_id).to_dict()


@router.get("/form-templates/{template_id}/preview", response_class=HTMLResponse)
def preview_form_template(request: Request, template_id: str, stage: Optional[int] = None):
    """Render a template's fields as an HTML form preview."""
    template = get_template_repository().require(template_id)
    engine = FormEngine(template, OptionResolver(get_reference_provider()))
    sections = engine.render_stage(stage) if stage is not None else engine.render_all()

    return templates.TemplateResponse(
        request,
        "form_preview.html",
        {
            "template": template,
            "seller_label": humanize_key(template.seller_type.value),
            "stages": engine.stages(),
            "current_stage": stage,
            "sections": sections,
        },
    )


# =============================================================================
# Listings
# =============================================================================


@router.post("/listings", status_code=201)
def create_listing(body: CreateListingRequest):
    """Create a draft listing from a published template."""
    listing = get_listing_repository().create_listing(
        template_id=body.template_id,
        owner_id=body.owner_id,
        values=body.values,
    )
    return listing_payload(listing)


@router.get("/listings/{listing_id}")
def get_listing(listing_id: str):
    """Listing detail."""
    return listing_payload(get_listing_repository().require(listing_id))


@router.put("/listings/{listing_id}/draft")
def save_draft(listing_id: str, body: DraftValuesRequest):
    """
    Save the owner's in-progress values.

    Edits to approved or live listings are held as pending changes.
    """
    listing = get_listing_repository().save_draft_values(
        listing_id,
        body.values,
        actor_id=body.actor_id,
    )
    return listing_payload(listing)


@router.post("/listings/{listing_id}/submit")
def submit_listing(listing_id: str, body: SubmitListingRequest):
    """Submit a listing for moderation. Values are re-validated here."""
    state = get_listing_repository().submit_listing(
        listing_id,
        values=body.values,
        actor_id=body.actor_id,
    )
    return {"listing_id": listing_id, "state": state.value}


@router.get("/listings/{listing_id}/history")
def get_listing_history(listing_id: str):
    """Workflow history with hash chain verification."""
    repo = get_listing_repository()
    logbook = repo.get_logbook(listing_id)
    return {
        "listing_id": listing_id,
        "chain": logbook.verify_chain_integrity(),
        "events": logbook.get_history(),
    }
