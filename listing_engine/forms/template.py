"""
Form Template - Versioned, Admin-Authored Listing Form

A FormTemplate is an ordered list of sections scoped to a seller type and,
optionally, a property category.

Lifecycle:
- Created as draft; edits only while draft
- publish (draft -> published) is the only way to become usable
- archive is terminal; historical listings keep referencing the template
- clone seeds a new lineage at version 1
- revise seeds the next version of the same lineage
"""

from __future__ import annotations

import copy
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from listing_engine.forms.schema import (
    FieldSchema,
    FieldType,
    SectionSchema,
    SourceType,
)


# =============================================================================
# Enums
# =============================================================================


class SellerType(Enum):
    """Seller segment a template is authored for."""

    INDIVIDUAL = "individual"
    BROKER = "broker"
    BUILDER = "builder"


class TemplateStatus(Enum):
    """Lifecycle status of a form template."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


# =============================================================================
# Errors
# =============================================================================


class TemplateLifecycleError(Exception):
    """Raised when a lifecycle operation is not legal for the template."""

    def __init__(
        self,
        message: str,
        template_id: Optional[str] = None,
        issues: tuple[str, ...] = (),
    ):
        super().__init__(message)
        self.message = message
        self.template_id = template_id
        self.issues = issues


def generate_template_id() -> str:
    """Generate a unique template ID."""
    return f"TPL-{uuid.uuid4().hex[:12].upper()}"


# =============================================================================
# Form Template
# =============================================================================


@dataclass
class FormTemplate:
    """
    Versioned listing form.

    lineage_id groups the versions of one form: revise() keeps it, clone()
    starts a new one.
    """

    # === IDENTITY ===
    name: str
    seller_type: SellerType
    category_id: Optional[str] = None
    template_id: str = field(default_factory=generate_template_id)
    lineage_id: Optional[str] = None
    version: int = 1

    # === CONTENT ===
    sections: tuple[SectionSchema, ...] = ()

    # === STATUS ===
    status: TemplateStatus = TemplateStatus.DRAFT

    # === SUBMISSION OPTIONS ===
    allow_save_draft: bool = True
    show_preview_before_submit: bool = True
    terms_text: Optional[str] = None

    # === TIMESTAMPS ===
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)
    published_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Template name is required")
        if self.lineage_id is None:
            self.lineage_id = self.template_id
        if isinstance(self.sections, list):
            self.sections = tuple(self.sections)

    # =========================================================================
    # Field Access
    # =========================================================================

    def all_fields(self) -> list[FieldSchema]:
        """Get every field flattened in section order then field order."""
        return [f for section in self.sections for f in section.fields]

    def get_field(self, key: str) -> Optional[FieldSchema]:
        """Get a field by key."""
        for f in self.all_fields():
            if f.key == key:
                return f
        return None

    @property
    def field_keys(self) -> list[str]:
        return [f.key for f in self.all_fields()]

    def linked_dependents(self, key: str) -> list[FieldSchema]:
        """Get the fields whose options are keyed by the value of `key`."""
        return [f for f in self.all_fields() if f.is_linked and f.linked_field_key == key]

    def stages(self) -> list[int]:
        """Get the distinct stage numbers in ascending order."""
        return sorted({s.stage for s in self.sections})

    def sections_for_stage(self, stage: int) -> list[SectionSchema]:
        """Get the sections displayed at a stage, in authored order."""
        return [s for s in self.sections if s.stage == stage]

    # =========================================================================
    # Integrity
    # =========================================================================

    def integrity_issues(self) -> list[str]:
        """
        Check authored structure for problems that must block publishing.

        Returns:
            List of human-readable issues, empty when the template is sound
        """
        issues: list[str] = []
        fields = self.all_fields()

        if not fields:
            issues.append("Template has no fields")

        seen: set[str] = set()
        for f in fields:
            if f.key in seen:
                issues.append(f"Duplicate field key '{f.key}'")
            seen.add(f.key)

        # Section index where each key first appears
        positions: dict[str, int] = {}
        for s_idx, section in enumerate(self.sections):
            for f in section.fields:
                positions.setdefault(f.key, s_idx)

        for s_idx, section in enumerate(self.sections):
            for f in section.fields:
                if f.is_linked:
                    if not f.linked_field_key:
                        issues.append(f"Field '{f.key}' is linked_to_parent but names no linked field")
                    elif f.linked_field_key == f.key:
                        issues.append(f"Field '{f.key}' is linked to itself")
                    elif f.linked_field_key not in positions:
                        issues.append(
                            f"Field '{f.key}' is linked to unknown field '{f.linked_field_key}'"
                        )
                    elif positions[f.linked_field_key] > s_idx:
                        issues.append(
                            f"Field '{f.key}' is linked to '{f.linked_field_key}' "
                            "which appears in a later section"
                        )
                elif f.linked_field_key:
                    issues.append(
                        f"Field '{f.key}' names linked field '{f.linked_field_key}' "
                        f"but its source is not {SourceType.LINKED_TO_PARENT.value}"
                    )

                if f.is_dynamic and not f.is_choice:
                    issues.append(
                        f"Field '{f.key}' has an option source but type {f.field_type.value}"
                    )

                rules = f.validation
                if rules is not None:
                    if rules.min is not None and rules.max is not None and rules.min > rules.max:
                        issues.append(f"Field '{f.key}' has min greater than max")
                    if rules.char_limit is not None and rules.char_limit <= 0:
                        issues.append(f"Field '{f.key}' has a non-positive char limit")
                    if rules.regex:
                        try:
                            re.compile(rules.regex)
                        except re.error as e:
                            issues.append(f"Field '{f.key}' has an invalid pattern: {e}")

                if f.field_type in (FieldType.DROPDOWN, FieldType.RADIO, FieldType.CHECKBOX):
                    if not f.is_dynamic and not f.static_options:
                        issues.append(f"Field '{f.key}' has no options")

        return issues

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def is_editable(self) -> bool:
        return self.status == TemplateStatus.DRAFT

    @property
    def is_published(self) -> bool:
        return self.status == TemplateStatus.PUBLISHED

    def ensure_editable(self) -> None:
        """Raise unless the template is still a draft."""
        if not self.is_editable:
            raise TemplateLifecycleError(
                f"Template {self.template_id} is {self.status.value} and cannot be edited",
                template_id=self.template_id,
            )

    def update(
        self,
        name: Optional[str] = None,
        sections: Optional[tuple[SectionSchema, ...]] = None,
        category_id: Optional[str] = None,
        allow_save_draft: Optional[bool] = None,
        show_preview_before_submit: Optional[bool] = None,
        terms_text: Optional[str] = None,
    ) -> None:
        """Apply authoring edits. Only drafts may be edited."""
        self.ensure_editable()
        if name is not None:
            if not name.strip():
                raise ValueError("Template name is required")
            self.name = name
        if sections is not None:
            self.sections = tuple(sections)
        if category_id is not None:
            self.category_id = category_id or None
        if allow_save_draft is not None:
            self.allow_save_draft = allow_save_draft
        if show_preview_before_submit is not None:
            self.show_preview_before_submit = show_preview_before_submit
        if terms_text is not None:
            self.terms_text = terms_text or None
        self.updated_at = datetime.utcnow()

    def publish(self) -> None:
        """
        Transition draft -> published.

        Raises:
            TemplateLifecycleError: If not a draft or the integrity check fails
        """
        if self.status != TemplateStatus.DRAFT:
            raise TemplateLifecycleError(
                f"Only draft templates can be published (template is {self.status.value})",
                template_id=self.template_id,
            )
        issues = self.integrity_issues()
        if issues:
            raise TemplateLifecycleError(
                f"Template {self.template_id} failed integrity check",
                template_id=self.template_id,
                issues=tuple(issues),
            )
        now = datetime.utcnow()
        self.status = TemplateStatus.PUBLISHED
        self.published_at = now
        self.updated_at = now

    def archive(self) -> None:
        """Transition to archived. Archived is terminal."""
        if self.status == TemplateStatus.ARCHIVED:
            raise TemplateLifecycleError(
                f"Template {self.template_id} is already archived",
                template_id=self.template_id,
            )
        self.status = TemplateStatus.ARCHIVED
        self.updated_at = datetime.utcnow()

    def clone(self, name: Optional[str] = None) -> "FormTemplate":
        """
        Deep-copy sections and fields into a new draft lineage at version 1.

        Any status may be cloned, including archived.
        """
        return FormTemplate(
            name=name or f"{self.name} (Copy)",
            seller_type=self.seller_type,
            category_id=self.category_id,
            version=1,
            sections=copy.deepcopy(self.sections),
            allow_save_draft=self.allow_save_draft,
            show_preview_before_submit=self.show_preview_before_submit,
            terms_text=self.terms_text,
        )

    def revise(self, next_version: Optional[int] = None) -> "FormTemplate":
        """
        Start the next version of this form as a draft in the same lineage.

        Args:
            next_version: Version to assign (defaults to version + 1)

        Raises:
            TemplateLifecycleError: If the template is a draft
        """
        if self.status == TemplateStatus.DRAFT:
            raise TemplateLifecycleError(
                f"Template {self.template_id} is still a draft; edit it directly",
                template_id=self.template_id,
            )
        return FormTemplate(
            name=self.name,
            seller_type=self.seller_type,
            category_id=self.category_id,
            lineage_id=self.lineage_id,
            version=next_version if next_version is not None else self.version + 1,
            sections=copy.deepcopy(self.sections),
            allow_save_draft=self.allow_save_draft,
            show_preview_before_submit=self.show_preview_before_submit,
            terms_text=self.terms_text,
        )

    # =========================================================================
    # Serialisation
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Convert template to dictionary for serialisation."""
        return {
            "template_id": self.template_id,
            "lineage_id": self.lineage_id,
            "name": self.name,
            "seller_type": self.seller_type.value,
            "category_id": self.category_id,
            "version": self.version,
            "status": self.status.value,
            "allow_save_draft": self.allow_save_draft,
            "show_preview_before_submit": self.show_preview_before_submit,
            "terms_text": self.terms_text,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "published_at": self.published_at.isoformat() if self.published_at else None,
            "stages": self.stages(),
            "sections": [s.to_dict() for s in self.sections],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FormTemplate":
        """Create template from dictionary."""
        published_at = data.get("published_at")
        return cls(
            template_id=data["template_id"],
            lineage_id=data.get("lineage_id"),
            name=data["name"],
            seller_type=SellerType(data["seller_type"]),
            category_id=data.get("category_id"),
            version=int(data.get("version", 1)),
            status=TemplateStatus(data.get("status", TemplateStatus.DRAFT.value)),
            sections=tuple(SectionSchema.from_dict(s) for s in data.get("sections", [])),
            allow_save_draft=data.get("allow_save_draft", True),
            show_preview_before_submit=data.get("show_preview_before_submit", True),
            terms_text=data.get("terms_text"),
            created_at=datetime.fromisoformat(data["created_at"]) if data.get("created_at") else datetime.utcnow(),
            updated_at=datetime.fromisoformat(data["updated_at"]) if data.get("updated_at") else datetime.utcnow(),
            published_at=datetime.fromisoformat(published_at) if published_at else None,
        )
