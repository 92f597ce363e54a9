"""
FastAPI application for the listing form engine.

Serves the listing persistence API, reference data and template
administration. Configuration comes from environment variables (see
utils.config.Config).
"""

import logging
import os
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from listing_engine import __version__
from listing_engine.forms import (
    TemplateLifecycleError,
    TemplateNotFoundError,
    get_template_repository,
)
from listing_engine.forms.resolver import OptionResolver
from listing_engine.reference import get_reference_provider
from listing_engine.workflow import (
    ListingLockedError,
    ListingNotFoundError,
    SubmissionRejectedError,
    WorkflowTransitionError,
    get_listing_repository,
)
from utils.config import Config
from web.admin_routes import router as admin_router
from web.listing_routes import router as listing_router


logger = logging.getLogger(__name__)


# =============================================================================
# Environment Configuration
# =============================================================================

# CORS configuration
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "").split(",") if os.getenv("ALLOWED_ORIGINS") else []


# =============================================================================
# Error Mapping
# =============================================================================


def register_error_handlers(app: FastAPI) -> None:
    """Map domain exceptions to JSON error responses."""

    @app.exception_handler(TemplateNotFoundError)
    async def template_not_found(request: Request, exc: TemplateNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ListingNotFoundError)
    async def listing_not_found(request: Request, exc: ListingNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(TemplateLifecycleError)
    async def template_lifecycle(request: Request, exc: TemplateLifecycleError):
        return JSONResponse(
            status_code=409,
            content={"detail": str(exc), "issues": list(exc.issues)},
        )

    @app.exception_handler(WorkflowTransitionError)
    async def workflow_transition(request: Request, exc: WorkflowTransitionError):
        content = exc.to_dict()
        content["detail"] = exc.message
        return JSONResponse(status_code=409, content=content)

    @app.exception_handler(SubmissionRejectedError)
    async def submission_rejected(request: Request, exc: SubmissionRejectedError):
        return JSONResponse(
            status_code=422,
            content={"detail": str(exc), "errors": exc.errors},
        )

    @app.exception_handler(ListingLockedError)
    async def listing_locked(request: Request, exc: ListingLockedError):
        return JSONResponse(
            status_code=423,
            content={"detail": str(exc), "state": exc.state.value},
        )


def create_app(config: Optional[Config] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or Config.load()

    app = FastAPI(
        title="Listing Form Engine",
        description="Dynamic property listing forms and moderation workflow",
        version=__version__,
        debug=config.debug,
    )

    @app.get("/health", include_in_schema=False)
    def health():
        """Health endpoint. No dependencies, no IO."""
        return {"status": "healthy", "version": __version__}

    if ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT"],
            allow_headers=["*"],
        )

    # First calls fix the singletons used by the routes
    provider = get_reference_provider(config.reference_api_url, timeout=config.request_timeout)
    template_repo = get_template_repository(config.templates_path)
    get_listing_repository(
        persist_path=config.listings_path,
        templates=template_repo,
        resolver=OptionResolver(provider),
        check_option_membership=config.check_option_membership,
    )

    @app.on_event("startup")
    def on_startup():
        """Seed default templates on first run."""
        if config.seed_default_templates:
            template_repo.seed_defaults()
        logger.info("Listing Form Engine started with %d form templates", template_repo.count())

    register_error_handlers(app)
    app.include_router(listing_router)
    app.include_router(admin_router)

    return app


# Create app instance for uvicorn
app = create_app()
