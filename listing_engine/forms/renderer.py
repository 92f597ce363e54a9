"""
Field Renderer - Typed Input Contracts for Form Fields

Maps (field, current value, resolved options, error) to an InputContract
describing which control to show, the constraints it enforces and the
stable test ids it carries. Rendering is pure.

Raw control input is mapped back to a stored value with to_stored_value();
checkbox groups use toggle_option().

Every FieldType has exactly one renderer in the dispatch table. The table is
checked when the module is imported.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Final, Optional

from listing_engine.forms.schema import (
    FieldSchema,
    FieldType,
    FileReference,
    decode_file_reference,
)


# =============================================================================
# Contract Types
# =============================================================================


class ControlKind(Enum):
    """Kind of control a field renders as."""

    TEXT_INPUT = "text"
    NUMBER_INPUT = "number"
    TEXTAREA = "textarea"
    CHECKBOX_GROUP = "checkbox_group"
    SELECT = "select"
    RADIO_GROUP = "radio_group"
    DATE_INPUT = "date"
    FILE_INPUT = "file"


# Placeholders shown when the field does not author one
DEFAULT_SELECT_PLACEHOLDER: Final = "Select..."
DEFAULT_MAP_PLACEHOLDER: Final = "Enter coordinates or address..."

# Types rendered half-width in a two-column grid
COMPACT_TYPES: Final[frozenset[FieldType]] = frozenset({
    FieldType.TEXT,
    FieldType.ALPHANUMERIC,
    FieldType.NUMERIC,
    FieldType.DROPDOWN,
    FieldType.RADIO,
    FieldType.DATE,
    FieldType.MAP,
})


@dataclass(frozen=True)
class OptionContract:
    """One selectable option within a choice control."""

    value: str
    label: str
    test_id: str
    selected: bool = False

    def to_dict(self) -> dict:
        return {
            "value": self.value,
            "label": self.label,
            "test_id": self.test_id,
            "selected": self.selected,
        }


@dataclass(frozen=True)
class InputContract:
    """
    Everything a UI layer needs to draw one field.

    value is the display value: a string for single-value controls, a tuple
    of selected options for checkbox groups and a tuple of filenames for
    file inputs.
    """

    field_key: str
    label: str
    field_type: FieldType
    control: ControlKind
    test_id: str
    value: Any
    required: bool = False
    placeholder: Optional[str] = None
    max_length: Optional[int] = None
    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None
    options: tuple[OptionContract, ...] = ()
    multiple: bool = False
    accept: tuple[str, ...] = ()
    disabled: bool = False
    error: Optional[str] = None
    icon: Optional[str] = None
    full_width: bool = False

    @property
    def label_test_id(self) -> str:
        return f"label-{self.field_key}"

    @property
    def wrapper_test_id(self) -> str:
        return f"field-wrapper-{self.field_key}"

    @property
    def error_test_id(self) -> Optional[str]:
        return f"error-{self.field_key}" if self.error else None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON responses."""
        value = list(self.value) if isinstance(self.value, tuple) else self.value
        return {
            "field_key": self.field_key,
            "label": self.label,
            "field_type": self.field_type.value,
            "control": self.control.value,
            "test_id": self.test_id,
            "label_test_id": self.label_test_id,
            "wrapper_test_id": self.wrapper_test_id,
            "error_test_id": self.error_test_id,
            "value": value,
            "required": self.required,
            "placeholder": self.placeholder,
            "max_length": self.max_length,
            "min": self.min,
            "max": self.max,
            "pattern": self.pattern,
            "options": [o.to_dict() for o in self.options],
            "multiple": self.multiple,
            "accept": list(self.accept),
            "disabled": self.disabled,
            "error": self.error,
            "icon": self.icon,
            "full_width": self.full_width,
        }


class _Unchanged:
    """Marker returned when raw input must not produce a value change."""

    _instance: Optional["_Unchanged"] = None

    def __new__(cls) -> "_Unchanged":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNCHANGED"

    def __bool__(self) -> bool:
        return False


UNCHANGED: Final = _Unchanged()


# =============================================================================
# Value Helpers
# =============================================================================


def display_string(value: Any) -> str:
    """String form of a value for single-value controls."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def selected_options(value: Any) -> list[str]:
    """Current checkbox selection; a non-list value is an empty selection."""
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return []


def parse_number(raw: Any) -> Any:
    """
    Parse numeric input.

    Returns an int or float, or "" when the input is cleared or cannot be
    read as a finite number.
    """
    if raw is None or isinstance(raw, bool):
        return ""
    if isinstance(raw, (int, float)):
        return raw if math.isfinite(raw) else ""
    text = str(raw).strip()
    if not text:
        return ""
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return ""
    return number if math.isfinite(number) else ""


def toggle_option(current: Any, option: str, checked: bool) -> list[str]:
    """
    Add or remove one option from a checkbox selection.

    Args:
        current: Current stored value (non-lists count as empty)
        option: Option being toggled
        checked: New checked state

    Returns:
        New selection list, in selection order
    """
    selection = selected_options(current)
    if checked:
        if option not in selection:
            selection.append(option)
        return selection
    return [v for v in selection if v != option]


def _cap(text: str, field: FieldSchema) -> str:
    rules = field.validation
    if rules is not None and rules.char_limit is not None and len(text) > rules.char_limit:
        return text[: rules.char_limit]
    return text


def to_stored_value(field: FieldSchema, raw: Any, current: Any = None) -> Any:
    """
    Map raw control input to the value to store.

    Args:
        field: Field receiving the input
        raw: Raw control value (text, number, selection, file references)
        current: Currently stored value

    Returns:
        Value to store, or UNCHANGED when no change must be emitted
    """
    field_type = field.field_type

    if field_type == FieldType.NUMERIC:
        return parse_number(raw)

    if field_type == FieldType.CHECKBOX:
        if raw is None or raw == "":
            return []
        if isinstance(raw, (list, tuple, set, frozenset)):
            return [str(v) for v in raw]
        return [str(raw)]

    if field_type == FieldType.FILE_UPLOAD:
        if raw is None:
            return UNCHANGED
        files = [raw] if isinstance(raw, (FileReference, dict)) else list(raw)
        if not files:
            # Cancelled selection keeps the previous set
            return UNCHANGED
        return tuple(decode_file_reference(f) for f in files)

    if field_type == FieldType.DATE:
        if isinstance(raw, datetime):
            return raw.date().isoformat()
        if isinstance(raw, date):
            return raw.isoformat()
        return display_string(raw)

    if field_type in (FieldType.DROPDOWN, FieldType.RADIO):
        return display_string(raw)

    # text, alphanumeric, textarea, map
    text = display_string(raw)
    if field_type == FieldType.MAP:
        return text
    return _cap(text, field)


# =============================================================================
# Per-Type Renderers
# =============================================================================


def _base(field: FieldSchema, control: ControlKind, test_id: str, value: Any, error: Optional[str]) -> dict:
    return {
        "field_key": field.key,
        "label": field.label,
        "field_type": field.field_type,
        "control": control,
        "test_id": test_id,
        "value": value,
        "required": field.required,
        "placeholder": field.placeholder,
        "error": error,
        "icon": field.icon,
        "full_width": field.field_type not in COMPACT_TYPES,
    }


def _char_limit(field: FieldSchema) -> Optional[int]:
    return field.validation.char_limit if field.validation else None


def _pattern(field: FieldSchema) -> Optional[str]:
    return field.validation.regex if field.validation else None


def _render_text(field, value, options, error) -> InputContract:
    return InputContract(
        **_base(field, ControlKind.TEXT_INPUT, f"input-{field.key}", display_string(value), error),
        max_length=_char_limit(field),
        pattern=_pattern(field),
    )


def _render_numeric(field, value, options, error) -> InputContract:
    rules = field.validation
    return InputContract(
        **_base(field, ControlKind.NUMBER_INPUT, f"input-{field.key}", display_string(value), error),
        min=rules.min if rules else None,
        max=rules.max if rules else None,
    )


def _render_textarea(field, value, options, error) -> InputContract:
    return InputContract(
        **_base(field, ControlKind.TEXTAREA, f"textarea-{field.key}", display_string(value), error),
        max_length=_char_limit(field),
    )


def _render_checkbox(field, value, options, error) -> InputContract:
    selection = selected_options(value)
    return InputContract(
        **_base(field, ControlKind.CHECKBOX_GROUP, f"checkbox-group-{field.key}", tuple(selection), error),
        options=tuple(
            OptionContract(
                value=opt,
                label=opt,
                test_id=f"checkbox-{field.key}-{opt}",
                selected=opt in selection,
            )
            for opt in options
        ),
    )


def _render_dropdown(field, value, options, error) -> InputContract:
    current = display_string(value)
    base = _base(field, ControlKind.SELECT, f"select-{field.key}", current, error)
    base["placeholder"] = field.placeholder or DEFAULT_SELECT_PLACEHOLDER
    return InputContract(
        **base,
        options=tuple(
            OptionContract(
                value=opt,
                label=opt,
                test_id=f"select-option-{field.key}-{opt}",
                selected=bool(current) and opt == current,
            )
            for opt in options
        ),
        disabled=field.is_linked and not options,
    )


def _render_radio(field, value, options, error) -> InputContract:
    current = display_string(value)
    return InputContract(
        **_base(field, ControlKind.RADIO_GROUP, f"radio-group-{field.key}", current, error),
        options=tuple(
            OptionContract(
                value=opt,
                label=opt,
                test_id=f"radio-{field.key}-{opt}",
                selected=bool(current) and opt == current,
            )
            for opt in options
        ),
    )


def _render_date(field, value, options, error) -> InputContract:
    return InputContract(
        **_base(field, ControlKind.DATE_INPUT, f"input-{field.key}", display_string(value), error),
    )


def _render_file_upload(field, value, options, error) -> InputContract:
    files = value if isinstance(value, (list, tuple)) else ()
    names = tuple(f.filename for f in files if isinstance(f, FileReference))
    config = field.file_config
    return InputContract(
        **_base(field, ControlKind.FILE_INPUT, f"input-{field.key}", names, error),
        multiple=config is None or config.max_files is None or config.max_files > 1,
        accept=config.allowed_types if config else (),
    )


def _render_map(field, value, options, error) -> InputContract:
    base = _base(field, ControlKind.TEXT_INPUT, f"input-{field.key}", display_string(value), error)
    base["placeholder"] = field.placeholder or DEFAULT_MAP_PLACEHOLDER
    return InputContract(**base)


Renderer = Callable[[FieldSchema, Any, list, Optional[str]], InputContract]

_RENDERERS: Final[dict[FieldType, Renderer]] = {
    FieldType.TEXT: _render_text,
    FieldType.ALPHANUMERIC: _render_text,
    FieldType.NUMERIC: _render_numeric,
    FieldType.TEXTAREA: _render_textarea,
    FieldType.CHECKBOX: _render_checkbox,
    FieldType.DROPDOWN: _render_dropdown,
    FieldType.RADIO: _render_radio,
    FieldType.DATE: _render_date,
    FieldType.FILE_UPLOAD: _render_file_upload,
    FieldType.MAP: _render_map,
}

_missing = set(FieldType) - set(_RENDERERS)
if _missing:
    raise RuntimeError(
        "No renderer for field types: " + ", ".join(sorted(t.value for t in _missing))
    )


def render_field(
    field: FieldSchema,
    current_value: Any = None,
    options: Optional[list[str]] = None,
    error: Optional[str] = None,
) -> InputContract:
    """
    Render one field into an input contract.

    Args:
        field: Field to render
        current_value: Stored value (any shape; mismatches render empty)
        options: Resolved option labels for choice fields
        error: Validation message to attach

    Returns:
        InputContract for the field
    """
    return _RENDERERS[field.field_type](field, current_value, list(options or []), error)
