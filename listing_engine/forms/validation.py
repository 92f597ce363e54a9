"""
Form Validation - Per-Field Validation of Submitted Values

Validates a value map against a template's flattened field list. Errors are
returned as a map of field key to a user-facing message; they are never
raised.

Validation always covers every field regardless of which stage is showing,
so errors cannot hide on an unvisited stage.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from listing_engine.forms.schema import (
    FieldSchema,
    FieldType,
    FileReference,
    is_empty_value,
)
from listing_engine.forms.template import FormTemplate
from listing_engine.forms.renderer import display_string, parse_number


logger = logging.getLogger(__name__)


# =============================================================================
# Validation Result
# =============================================================================


@dataclass(frozen=True)
class FormValidationResult:
    """
    Result of validating a value map.

    errors preserves template field order.
    """

    errors: dict[str, str]

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def is_blocked(self) -> bool:
        """Check if submission is blocked due to validation errors."""
        return bool(self.errors)

    @property
    def error_keys(self) -> tuple[str, ...]:
        return tuple(self.errors)

    def to_dict(self) -> dict:
        """Convert result to dictionary."""
        return {
            "valid": self.valid,
            "is_blocked": self.is_blocked,
            "errors": dict(self.errors),
        }


def _format_bound(bound: float) -> str:
    if isinstance(bound, float) and bound.is_integer():
        return str(int(bound))
    return str(bound)


# =============================================================================
# Field Checks
# =============================================================================


def _check_numeric(field: FieldSchema, value: Any) -> Optional[str]:
    number = parse_number(value)
    if number == "":
        return f"{field.label} must be a number"

    rules = field.validation
    if rules is None:
        return None
    if rules.min is not None and number < rules.min:
        if rules.max is not None:
            return f"{field.label} must be between {_format_bound(rules.min)} and {_format_bound(rules.max)}"
        return f"{field.label} must be at least {_format_bound(rules.min)}"
    if rules.max is not None and number > rules.max:
        if rules.min is not None:
            return f"{field.label} must be between {_format_bound(rules.min)} and {_format_bound(rules.max)}"
        return f"{field.label} must be at most {_format_bound(rules.max)}"
    return None


def _check_files(field: FieldSchema, value: Any) -> Optional[str]:
    if not isinstance(value, (list, tuple)):
        return f"{field.label} contains an invalid file"
    files = list(value)
    if any(not isinstance(f, FileReference) for f in files):
        return f"{field.label} contains an invalid file"

    config = field.file_config
    if config is None:
        return None
    if config.max_files is not None and len(files) > config.max_files:
        return f"{field.label} accepts at most {config.max_files} files"
    for f in files:
        if config.allowed_types and f.content_type not in config.allowed_types:
            return f"{f.filename} is not an allowed file type"
        if config.max_size_mb is not None and f.size_bytes > config.max_size_mb * 1024 * 1024:
            return f"{f.filename} exceeds {_format_bound(config.max_size_mb)} MB"
    return None


def _is_capped_text(field: FieldSchema, value: Any) -> bool:
    # Map input is free-form and never capped
    return field.is_text_like and field.field_type != FieldType.MAP and isinstance(value, str)


def _check_pattern(field: FieldSchema, value: Any) -> Optional[str]:
    pattern = field.validation.regex if field.validation else None
    if not pattern or isinstance(value, (list, tuple)):
        return None
    try:
        matched = re.fullmatch(pattern, display_string(value))
    except re.error as e:
        logger.warning("Field %s has an invalid pattern %r: %s", field.key, pattern, e)
        return None
    if matched is None:
        return f"{field.label} has an invalid format"
    return None


def _check_membership(field: FieldSchema, value: Any, options: Sequence[str]) -> Optional[str]:
    # An empty option list means unresolved or unavailable; nothing to compare
    if not options:
        return None
    if field.field_type == FieldType.CHECKBOX:
        chosen = value if isinstance(value, (list, tuple)) else [value]
        unknown = [str(v) for v in chosen if str(v) not in options]
        if unknown:
            return f"Please select valid options for {field.label}"
        return None
    if display_string(value) not in options:
        return f"Please select a valid option for {field.label}"
    return None


def validate_field(
    field: FieldSchema,
    value: Any,
    options: Optional[Sequence[str]] = None,
    check_option_membership: bool = True,
) -> Optional[str]:
    """
    Validate one field's value.

    Args:
        field: Field schema
        value: Stored value
        options: Resolved option labels for choice fields
        check_option_membership: Flag choice values missing from options

    Returns:
        Error message, or None when valid
    """
    if is_empty_value(value):
        if field.required:
            return f"{field.label} is required"
        return None

    if field.field_type == FieldType.NUMERIC:
        error = _check_numeric(field, value)
        if error:
            return error

    if field.field_type == FieldType.FILE_UPLOAD:
        return _check_files(field, value)

    rules = field.validation
    if rules is not None and rules.char_limit is not None and _is_capped_text(field, value):
        if len(value) > rules.char_limit:
            return f"{field.label} must be at most {rules.char_limit} characters"

    error = _check_pattern(field, value)
    if error:
        return error

    if check_option_membership and field.is_choice and options is not None:
        return _check_membership(field, value, options)

    return None


def validate_values(
    template: FormTemplate,
    values: Mapping[str, Any],
    options_by_key: Optional[Mapping[str, Sequence[str]]] = None,
    check_option_membership: bool = True,
) -> FormValidationResult:
    """
    Validate a value map against every field of a template.

    Args:
        template: Template defining the fields
        values: Value map keyed by field key
        options_by_key: Resolved options per field key
        check_option_membership: Flag choice values missing from options

    Returns:
        FormValidationResult with errors in template order
    """
    options_by_key = options_by_key or {}
    errors: dict[str, str] = {}
    for field in template.all_fields():
        error = validate_field(
            field,
            values.get(field.key),
            options_by_key.get(field.key),
            check_option_membership=check_option_membership,
        )
        if error:
            errors[field.key] = error
    return FormValidationResult(errors=errors)
