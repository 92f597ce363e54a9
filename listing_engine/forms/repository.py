"""
Form Template Repository - Storage for Versioned Form Templates

In-memory storage with optional JSON file persistence. Lifecycle rules live
on FormTemplate; the repository adds the rules that need the whole set:
publishing a revision archives the previously published member of its
lineage.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional

from listing_engine.forms.defaults import build_default_template
from listing_engine.forms.schema import SectionSchema
from listing_engine.forms.template import (
    FormTemplate,
    SellerType,
    TemplateLifecycleError,
    TemplateStatus,
)


logger = logging.getLogger(__name__)


class TemplateNotFoundError(Exception):
    """Raised when a template ID is unknown."""

    def __init__(self, template_id: str):
        super().__init__(f"Form template {template_id} not found")
        self.template_id = template_id


# =============================================================================
# Repository
# =============================================================================


class FormTemplateRepository:
    """
    Repository for storing and retrieving form templates.

    Templates are never deleted; archived templates stay readable so that
    historical listings can still be rendered.
    """

    def __init__(self, persist_path: Optional[str] = None):
        """
        Initialise repository.

        Args:
            persist_path: Optional path to persist data to JSON file
        """
        self._templates: dict[str, FormTemplate] = {}
        self._persist_path = Path(persist_path) if persist_path else None
        self._lock = threading.RLock()

        if self._persist_path and self._persist_path.exists():
            self._load_from_file()

    def _save_to_file(self) -> None:
        """Persist data to file."""
        if not self._persist_path:
            return

        data = {
            "templates": {tid: t.to_dict() for tid, t in self._templates.items()},
            "saved_at": datetime.utcnow().isoformat(),
        }

        self._persist_path.parent.mkdir(parents=True, exist_ok=True)
        self._persist_path.write_text(json.dumps(data, indent=2))

    def _load_from_file(self) -> None:
        """Load data from file."""
        try:
            data = json.loads(self._persist_path.read_text())
            for tid, t_data in data.get("templates", {}).items():
                self._templates[tid] = FormTemplate.from_dict(t_data)
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            logger.warning("Could not load template data from %s: %s", self._persist_path, e)

    # =========================================================================
    # CRUD Operations
    # =========================================================================

    def add(self, template: FormTemplate) -> FormTemplate:
        """
        Store a template built elsewhere.

        Raises:
            ValueError: If template_id already exists
        """
        with self._lock:
            if template.template_id in self._templates:
                raise ValueError(f"Template {template.template_id} already exists")
            self._templates[template.template_id] = template
            self._save_to_file()
            return template

    def create(
        self,
        name: str,
        seller_type: SellerType,
        category_id: Optional[str] = None,
        sections: tuple[SectionSchema, ...] = (),
        allow_save_draft: bool = True,
        show_preview_before_submit: bool = True,
        terms_text: Optional[str] = None,
    ) -> FormTemplate:
        """Create a new draft template at version 1."""
        template = FormTemplate(
            name=name,
            seller_type=seller_type,
            category_id=category_id,
            sections=tuple(sections),
            allow_save_draft=allow_save_draft,
            show_preview_before_submit=show_preview_before_submit,
            terms_text=terms_text,
        )
        logger.info("Created template %s (%s)", template.template_id, name)
        return self.add(template)

    def get(self, template_id: str) -> Optional[FormTemplate]:
        """Get a template by ID."""
        return self._templates.get(template_id)

    def require(self, template_id: str) -> FormTemplate:
        """
        Get a template by ID.

        Raises:
            TemplateNotFoundError: If not found
        """
        template = self._templates.get(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        return template

    def update(self, template_id: str, **changes) -> FormTemplate:
        """
        Apply authoring edits to a draft (see FormTemplate.update).

        Raises:
            TemplateNotFoundError: If not found
            TemplateLifecycleError: If the template is not a draft
        """
        with self._lock:
            template = self.require(template_id)
            template.update(**changes)
            self._save_to_file()
            return template

    # =========================================================================
    # Lifecycle Operations
    # =========================================================================

    def publish(self, template_id: str) -> FormTemplate:
        """
        Publish a draft.

        Any other published template of the same lineage is archived, so a
        lineage has at most one published version.
        """
        with self._lock:
            template = self.require(template_id)
            template.publish()
            for other in self._templates.values():
                if (
                    other.template_id != template_id
                    and other.lineage_id == template.lineage_id
                    and other.status == TemplateStatus.PUBLISHED
                ):
                    other.archive()
                    logger.info(
                        "Archived %s v%d superseded by v%d",
                        other.template_id,
                        other.version,
                        template.version,
                    )
            self._save_to_file()
            logger.info("Published template %s v%d", template_id, template.version)
            return template

    def archive(self, template_id: str) -> FormTemplate:
        """Archive a template."""
        with self._lock:
            template = self.require(template_id)
            template.archive()
            self._save_to_file()
            logger.info("Archived template %s", template_id)
            return template

    def clone(self, template_id: str, name: Optional[str] = None) -> FormTemplate:
        """Clone a template into a new draft lineage."""
        with self._lock:
            return self.add(self.require(template_id).clone(name))

    def revise(self, template_id: str) -> FormTemplate:
        """
        Start the next version of a template's lineage.

        The new draft's version is one above the highest version in the
        lineage, whichever member it was revised from.

        Raises:
            TemplateLifecycleError: If the lineage already has an open draft
        """
        with self._lock:
            source = self.require(template_id)
            lineage = self.list_lineage(source.lineage_id)
            for other in lineage:
                if other.status == TemplateStatus.DRAFT:
                    raise TemplateLifecycleError(
                        f"Lineage {source.lineage_id} already has draft {other.template_id}",
                        template_id=template_id,
                    )
            revision = source.revise(next_version=lineage[-1].version + 1)
            logger.info("Revised %s into %s v%d", template_id, revision.template_id, revision.version)
            return self.add(revision)

    # =========================================================================
    # Query Operations
    # =========================================================================

    def list_all(self) -> list[FormTemplate]:
        """Get all templates."""
        return list(self._templates.values())

    def list_lineage(self, lineage_id: str) -> list[FormTemplate]:
        """Get every version of one form, oldest first."""
        return sorted(
            (t for t in self._templates.values() if t.lineage_id == lineage_id),
            key=lambda t: t.version,
        )

    def list_published(
        self,
        seller_type: Optional[SellerType] = None,
        category_id: Optional[str] = None,
    ) -> list[FormTemplate]:
        """
        Get templates offered to new listings.

        A category filter matches templates for that category and templates
        without a category.
        """
        result = []
        for t in self._templates.values():
            if t.status != TemplateStatus.PUBLISHED:
                continue
            if seller_type is not None and t.seller_type != seller_type:
                continue
            if category_id is not None and t.category_id not in (None, category_id):
                continue
            result.append(t)
        return sorted(result, key=lambda t: (t.category_id is None, t.name))

    def count(self) -> int:
        return len(self._templates)

    def seed_defaults(self) -> int:
        """
        Create and publish the default template for each seller type.

        Does nothing when any template exists.

        Returns:
            Number of templates created
        """
        with self._lock:
            if self._templates:
                logger.info("Found %d form templates, skipping seed", len(self._templates))
                return 0
            for seller_type in SellerType:
                template = self.add(build_default_template(seller_type))
                self.publish(template.template_id)
            logger.info("Seeded %d default form templates", len(SellerType))
            return len(SellerType)


# =============================================================================
# Singleton Instance
# =============================================================================

_repository_instance: Optional[FormTemplateRepository] = None


def get_template_repository(persist_path: Optional[str] = None) -> FormTemplateRepository:
    """
    Get the template repository singleton.

    Args:
        persist_path: Optional path for persistence (only used on first call)

    Returns:
        FormTemplateRepository instance
    """
    global _repository_instance
    if _repository_instance is None:
        _repository_instance = FormTemplateRepository(persist_path)
    return _repository_instance


def reset_template_repository() -> None:
    """Reset the singleton instance (for testing)."""
    global _repository_instance
    _repository_instance = None
