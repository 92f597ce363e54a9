"""
Form Schema - Field and Section Definitions for Listing Forms

Defines the closed set of field types and option sources that admins can
author, and the immutable FieldSchema/SectionSchema records a FormTemplate
is built from.

Principles:
- Field types, validation rule shapes and option sources are a closed set
- Malformed authored data degrades (logged) rather than failing to load
- Section order and field order are the visual order
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Final, Optional


logger = logging.getLogger(__name__)


# =============================================================================
# Enums
# =============================================================================


class FieldType(Enum):
    """Input types a field can be authored with."""

    TEXT = "text"
    ALPHANUMERIC = "alphanumeric"
    NUMERIC = "numeric"
    TEXTAREA = "textarea"
    CHECKBOX = "checkbox"  # Multi-select
    DROPDOWN = "dropdown"
    RADIO = "radio"
    DATE = "date"
    FILE_UPLOAD = "file_upload"
    MAP = "map"  # Free-text coordinates or address


class SourceType(Enum):
    """Where a field's selectable options come from."""

    CATEGORY_MASTER = "category_master"
    STATE_MASTER = "state_master"
    LINKED_TO_PARENT = "linked_to_parent"


# =============================================================================
# Constants
# =============================================================================

# Types whose value is a free string subject to char_limit
TEXT_LIKE_TYPES: Final[frozenset[FieldType]] = frozenset({
    FieldType.TEXT,
    FieldType.ALPHANUMERIC,
    FieldType.TEXTAREA,
    FieldType.MAP,
})

# Types whose value is chosen from a resolved option list
CHOICE_TYPES: Final[frozenset[FieldType]] = frozenset({
    FieldType.CHECKBOX,
    FieldType.DROPDOWN,
    FieldType.RADIO,
})


def generate_field_id() -> str:
    """Generate a unique field ID."""
    return f"FLD-{uuid.uuid4().hex[:12].upper()}"


def generate_section_id() -> str:
    """Generate a unique section ID."""
    return f"SEC-{uuid.uuid4().hex[:12].upper()}"


def _pick(data: dict, *names: str, default: Any = None) -> Any:
    """Read the first present key; authored payloads use snake or camel case."""
    for name in names:
        if name in data and data[name] is not None:
            return data[name]
    return default


def is_empty_value(value: Any) -> bool:
    """
    Check whether a stored value counts as unanswered.

    None, empty or whitespace-only strings and empty sequences are empty.
    Zero is a value.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) == 0
    return False


# =============================================================================
# Rule Records
# =============================================================================


@dataclass(frozen=True)
class ValidationRules:
    """
    Validation rule set for a field.

    min/max bound numeric values, char_limit caps text length and regex must
    fully match the string form of the value.
    """

    min: Optional[float] = None
    max: Optional[float] = None
    char_limit: Optional[int] = None
    regex: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return (
            self.min is None
            and self.max is None
            and self.char_limit is None
            and not self.regex
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialisation."""
        return {
            "min": self.min,
            "max": self.max,
            "char_limit": self.char_limit,
            "regex": self.regex,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["ValidationRules"]:
        """Create rules from dictionary, None when nothing is set."""
        if not data:
            return None
        char_limit = _pick(data, "char_limit", "charLimit")
        rules = cls(
            min=data.get("min"),
            max=data.get("max"),
            char_limit=int(char_limit) if char_limit is not None else None,
            regex=data.get("regex") or None,
        )
        return None if rules.is_empty else rules


@dataclass(frozen=True)
class FileConfig:
    """Constraints on a file_upload field."""

    max_files: Optional[int] = None
    max_size_mb: Optional[float] = None
    allowed_types: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        """Convert to dictionary for serialisation."""
        return {
            "max_files": self.max_files,
            "max_size_mb": self.max_size_mb,
            "allowed_types": list(self.allowed_types),
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["FileConfig"]:
        """Create file config from dictionary."""
        if not data:
            return None
        return cls(
            max_files=_pick(data, "max_files", "maxFiles"),
            max_size_mb=_pick(data, "max_size_mb", "maxSizeMB"),
            allowed_types=tuple(_pick(data, "allowed_types", "allowedTypes", default=())),
        )


@dataclass(frozen=True)
class FileReference:
    """
    Opaque reference to an uploaded file.

    The file itself lives with the storage collaborator; the form only holds
    the metadata needed to validate against a FileConfig.
    """

    filename: str
    content_type: str = "application/octet-stream"
    size_bytes: int = 0
    storage_key: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialisation."""
        return {
            "filename": self.filename,
            "content_type": self.content_type,
            "size_bytes": self.size_bytes,
            "storage_key": self.storage_key,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FileReference":
        """Create file reference from dictionary."""
        return cls(
            filename=data["filename"],
            content_type=data.get("content_type", "application/octet-stream"),
            size_bytes=int(data.get("size_bytes", 0)),
            storage_key=data.get("storage_key"),
        )


# =============================================================================
# Field Schema
# =============================================================================


@dataclass(frozen=True)
class FieldSchema:
    """
    Metadata describing one form input.

    The key is the storage key for the field's value and must be unique
    within a template. A linked_to_parent field reads its lookup key from
    the field named by linked_field_key.
    """

    key: str
    label: str
    field_type: FieldType = FieldType.TEXT
    required: bool = False
    placeholder: Optional[str] = None
    static_options: tuple[str, ...] = ()
    validation: Optional[ValidationRules] = None
    source_type: Optional[SourceType] = None
    linked_field_key: Optional[str] = None
    default_value: Optional[str] = None

    # === AUTHORING METADATA ===
    field_id: str = field(default_factory=generate_field_id)
    icon: Optional[str] = None
    file_config: Optional[FileConfig] = None
    declared_type: Optional[str] = None  # Raw type string when it was not recognised

    def __post_init__(self) -> None:
        if not self.key:
            raise ValueError("Field key is required")
        if isinstance(self.static_options, list):
            object.__setattr__(self, "static_options", tuple(self.static_options))

    @property
    def is_dynamic(self) -> bool:
        """True when options come from a reference source."""
        return self.source_type is not None

    @property
    def is_linked(self) -> bool:
        return self.source_type == SourceType.LINKED_TO_PARENT

    @property
    def is_choice(self) -> bool:
        return self.field_type in CHOICE_TYPES

    @property
    def is_text_like(self) -> bool:
        return self.field_type in TEXT_LIKE_TYPES

    def to_dict(self) -> dict:
        """Convert to dictionary for serialisation."""
        return {
            "field_id": self.field_id,
            "key": self.key,
            "label": self.label,
            "field_type": self.declared_type or self.field_type.value,
            "required": self.required,
            "placeholder": self.placeholder,
            "static_options": list(self.static_options),
            "validation": self.validation.to_dict() if self.validation else None,
            "source_type": self.source_type.value if self.source_type else None,
            "linked_field_key": self.linked_field_key,
            "default_value": self.default_value,
            "icon": self.icon,
            "file_config": self.file_config.to_dict() if self.file_config else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FieldSchema":
        """
        Create field from authored data.

        Unknown field types degrade to text and unknown option sources to
        none. Both are logged; neither raises.
        """
        key = _pick(data, "key", "field_key", "fieldKey", default="")

        raw_type = _pick(data, "field_type", "fieldType", "type", default=FieldType.TEXT.value)
        declared_type = None
        try:
            field_type = FieldType(raw_type)
        except ValueError:
            logger.warning("Field %s has unknown type %r, rendering as text", key, raw_type)
            field_type = FieldType.TEXT
            declared_type = str(raw_type)

        raw_source = _pick(data, "source_type", "sourceType")
        source_type = None
        if raw_source:
            try:
                source_type = SourceType(raw_source)
            except ValueError:
                logger.warning("Field %s has unknown source type %r, ignoring", key, raw_source)

        linked_field_key = _pick(data, "linked_field_key", "linkedFieldKey")
        if source_type == SourceType.LINKED_TO_PARENT and not linked_field_key:
            logger.warning("Field %s is linked_to_parent without a linked field key", key)

        default_value = _pick(data, "default_value", "defaultValue")

        return cls(
            key=key,
            label=_pick(data, "label", default=key),
            field_type=field_type,
            required=bool(_pick(data, "required", "is_required", "isRequired", default=False)),
            placeholder=data.get("placeholder"),
            static_options=tuple(
                str(o) for o in _pick(data, "static_options", "staticOptions", "options", default=())
            ),
            validation=ValidationRules.from_dict(
                _pick(data, "validation", "validation_rules", "validationRules")
            ),
            source_type=source_type,
            linked_field_key=linked_field_key or None,
            default_value=str(default_value) if default_value is not None else None,
            field_id=_pick(data, "field_id", "id", default=None) or generate_field_id(),
            icon=data.get("icon"),
            file_config=FileConfig.from_dict(_pick(data, "file_config", "fileConfig")),
            declared_type=declared_type,
        )


# =============================================================================
# Section Schema
# =============================================================================


@dataclass(frozen=True)
class SectionSchema:
    """An ordered group of fields displayed together at one stage."""

    name: str
    stage: int = 1
    fields: tuple[FieldSchema, ...] = ()
    section_id: str = field(default_factory=generate_section_id)
    icon: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.fields, list):
            object.__setattr__(self, "fields", tuple(self.fields))

    def get_field(self, key: str) -> Optional[FieldSchema]:
        for f in self.fields:
            if f.key == key:
                return f
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialisation."""
        return {
            "section_id": self.section_id,
            "name": self.name,
            "stage": self.stage,
            "icon": self.icon,
            "fields": [f.to_dict() for f in self.fields],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SectionSchema":
        """Create section from dictionary."""
        return cls(
            name=data["name"],
            stage=int(data.get("stage", 1)),
            fields=tuple(FieldSchema.from_dict(f) for f in data.get("fields", [])),
            section_id=_pick(data, "section_id", "id", default=None) or generate_section_id(),
            icon=data.get("icon"),
        )


# =============================================================================
# Value Encoding
# =============================================================================


def encode_value(value: Any) -> Any:
    """Convert a stored value to its JSON form."""
    if isinstance(value, FileReference):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    return value


def decode_file_reference(raw: Any) -> Any:
    """Decode one file entry; entries that cannot be decoded are returned as-is for validation to report."""
    if not isinstance(raw, dict):
        return raw
    try:
        return FileReference.from_dict(raw)
    except (KeyError, TypeError, ValueError):
        return raw


def decode_value(field_schema: FieldSchema, raw: Any) -> Any:
    """Convert a JSON value back to the runtime shape of its field type."""
    if raw is None:
        return None
    if field_schema.field_type == FieldType.FILE_UPLOAD and isinstance(raw, (list, tuple)):
        return tuple(decode_file_reference(r) for r in raw)
    if field_schema.field_type == FieldType.FILE_UPLOAD and isinstance(raw, dict):
        return (decode_file_reference(raw),)
    if field_schema.field_type == FieldType.CHECKBOX and isinstance(raw, (list, tuple)):
        return [str(v) for v in raw]
    return raw


def encode_values(values: dict[str, Any]) -> dict[str, Any]:
    """Encode a whole value map for persistence or transport."""
    return {key: encode_value(value) for key, value in values.items()}
