"""
Listing Workflow - Moderation State Machine and Listing Persistence
"""

from listing_engine.workflow.states import (
    WorkflowState,
    Actor,
    EditMode,
    progress_ordinal,
    progress_percent,
    edit_mode_for,
)
from listing_engine.workflow.machine import (
    TRANSITIONS,
    Transition,
    WorkflowTransitionError,
    allowed_targets,
    can_transition,
    check_transition,
)
from listing_engine.workflow.listing import (
    Listing,
    ListingLockedError,
    ListingNotFoundError,
)
from listing_engine.workflow.logbook import (
    WorkflowAction,
    WorkflowEvent,
    WorkflowLogbook,
    verify_event_chain,
)
from listing_engine.workflow.repository import (
    ListingRepository,
    SubmissionRejectedError,
    get_listing_repository,
    reset_listing_repository,
)
from listing_engine.workflow.gateway import (
    GatewayError,
    ListingGateway,
    LocalListingGateway,
    HttpListingGateway,
)
from listing_engine.workflow.editor import ListingEditor
