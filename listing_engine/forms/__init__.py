"""
Listing Forms - Schema, Rendering and Validation

Admin-authored templates (sections of typed fields), option resolution,
the per-type field renderer and the stateful form engine.
"""

from listing_engine.forms.schema import (
    FieldType,
    SourceType,
    ValidationRules,
    FileConfig,
    FileReference,
    FieldSchema,
    SectionSchema,
    is_empty_value,
    encode_values,
)
from listing_engine.forms.template import (
    SellerType,
    TemplateStatus,
    FormTemplate,
    TemplateLifecycleError,
)
from listing_engine.forms.resolver import (
    OptionResolver,
    resolve_options,
)
from listing_engine.forms.renderer import (
    ControlKind,
    InputContract,
    OptionContract,
    UNCHANGED,
    render_field,
    to_stored_value,
    toggle_option,
)
from listing_engine.forms.validation import (
    FormValidationResult,
    validate_field,
    validate_values,
)
from listing_engine.forms.engine import (
    FormEngine,
    FormLockedError,
    RenderedSection,
    SubmitAccepted,
    SubmitBlocked,
    SubmitResult,
)
from listing_engine.forms.repository import (
    FormTemplateRepository,
    TemplateNotFoundError,
    get_template_repository,
    reset_template_repository,
)
