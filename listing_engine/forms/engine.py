"""
Form Engine - Stateful Orchestration of a Listing Form

Holds the in-progress value map for one template instance, recomputes the
options of linked fields when their parent changes, renders fields through
the field renderer and aggregates validation.

The engine never clears a dependent field's value when its options change;
a stale selection is reported by validate() instead.

Option fetches may complete out of order. apply_linked_options() accepts a
result only when it was fetched for the parent's current value.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

from listing_engine.forms.renderer import (
    UNCHANGED,
    InputContract,
    render_field,
    to_stored_value,
    toggle_option,
)
from listing_engine.forms.resolver import OptionResolver, linked_key_for
from listing_engine.forms.schema import (
    FieldSchema,
    FieldType,
    SectionSchema,
    decode_value,
)
from listing_engine.forms.template import FormTemplate
from listing_engine.forms.validation import validate_values


logger = logging.getLogger(__name__)


# =============================================================================
# Errors and Results
# =============================================================================


class FormLockedError(Exception):
    """Raised when a read-only form receives a value change."""

    def __init__(self, field_key: str):
        super().__init__(f"Form is read-only; cannot change '{field_key}'")
        self.field_key = field_key


@dataclass(frozen=True)
class SubmitAccepted:
    """Returned when validation passed and the submit event was emitted."""

    values: dict[str, Any]


@dataclass(frozen=True)
class SubmitBlocked:
    """Returned when validation failed; nothing was emitted."""

    errors: dict[str, str]


SubmitResult = Union[SubmitAccepted, SubmitBlocked]

SubmitListener = Callable[[dict[str, Any]], None]


@dataclass(frozen=True)
class RenderedSection:
    """A section with its fields rendered."""

    section_id: str
    name: str
    stage: int
    icon: Optional[str]
    fields: tuple[InputContract, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "section_id": self.section_id,
            "name": self.name,
            "stage": self.stage,
            "icon": self.icon,
            "fields": [f.to_dict() for f in self.fields],
        }


def _seed_value(field_schema: FieldSchema) -> Any:
    default = field_schema.default_value
    if field_schema.field_type == FieldType.CHECKBOX:
        return [default] if default else []
    if field_schema.field_type == FieldType.FILE_UPLOAD:
        return None
    return to_stored_value(field_schema, default)


# =============================================================================
# Form Engine
# =============================================================================


class FormEngine:
    """
    In-process form state for one template instance.

    Exposed to collaborators: get_values(), set_value(), validate(),
    get_errors() and the submit event (on_submit()).
    """

    def __init__(
        self,
        template: FormTemplate,
        resolver: OptionResolver,
        values: Optional[dict[str, Any]] = None,
        check_option_membership: bool = True,
        read_only: bool = False,
    ):
        """
        Initialise engine.

        Args:
            template: Template to fill in
            resolver: Option resolver bound to a reference provider
            values: Previously stored values (overrides defaults)
            check_option_membership: Flag choice values missing from options
            read_only: Start locked
        """
        self._template = template
        self._resolver = resolver
        self._check_option_membership = check_option_membership
        self._read_only = read_only

        self._values: dict[str, Any] = {}
        for f in template.all_fields():
            if f.default_value is not None:
                self._values[f.key] = _seed_value(f)

        for key, raw in (values or {}).items():
            f = template.get_field(key)
            if f is None:
                logger.debug("Dropping value for unknown field %s", key)
                continue
            self._values[key] = decode_value(f, copy.deepcopy(raw))

        self._options: dict[str, list[str]] = {}
        self._errors: dict[str, str] = {}
        self._submit_listeners: list[SubmitListener] = []

        self.refresh_options()

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def template(self) -> FormTemplate:
        return self._template

    @property
    def read_only(self) -> bool:
        return self._read_only

    @read_only.setter
    def read_only(self, locked: bool) -> None:
        self._read_only = locked

    def _require_field(self, key: str) -> FieldSchema:
        f = self._template.get_field(key)
        if f is None:
            raise KeyError(key)
        return f

    # =========================================================================
    # Values
    # =========================================================================

    def get_values(self) -> dict[str, Any]:
        """Get a copy of the current value map."""
        return copy.deepcopy(self._values)

    def get_value(self, key: str) -> Any:
        self._require_field(key)
        return copy.deepcopy(self._values.get(key))

    def set_value(self, key: str, value: Any) -> None:
        """
        Replace the value of one field.

        Options of fields linked to `key` are recomputed. Their values are
        left untouched.

        Raises:
            KeyError: If the template has no such field
            FormLockedError: If the form is read-only
        """
        self._require_field(key)
        if self._read_only:
            raise FormLockedError(key)

        self._values[key] = copy.deepcopy(value)

        for dependent in self._template.linked_dependents(key):
            self._refresh_field_options(dependent)
            logger.debug(
                "Recomputed options for %s after %s changed (%d options)",
                dependent.key,
                key,
                len(self._options[dependent.key]),
            )

    def handle_input(self, key: str, raw: Any) -> bool:
        """
        Apply raw control input to a field.

        Returns:
            True if a value change was emitted
        """
        f = self._require_field(key)
        stored = to_stored_value(f, raw, self._values.get(key))
        if stored is UNCHANGED:
            return False
        self.set_value(key, stored)
        return True

    def toggle_option(self, key: str, option: str, checked: bool) -> list[str]:
        """Check or uncheck one option of a checkbox group."""
        self._require_field(key)
        selection = toggle_option(self._values.get(key), option, checked)
        self.set_value(key, selection)
        return list(selection)

    # =========================================================================
    # Options
    # =========================================================================

    def _linked_value(self, f: FieldSchema) -> Any:
        if f.is_linked and f.linked_field_key:
            return self._values.get(f.linked_field_key)
        return None

    def _refresh_field_options(self, f: FieldSchema) -> None:
        linked_value = self._linked_value(f)
        self._options[f.key] = self._resolver.resolve(f, linked_value)

    def options_for(self, key: str) -> list[str]:
        """Get the currently resolved options of a field."""
        self._require_field(key)
        return list(self._options.get(key, []))

    def refresh_options(self) -> None:
        """Re-resolve options for every field."""
        for f in self._template.all_fields():
            self._refresh_field_options(f)

    def apply_linked_options(self, key: str, linked_value: Any, options: list[str]) -> bool:
        """
        Apply an option list fetched for a linked field.

        The result is accepted only if linked_value still equals the parent's
        current value; results for superseded values are discarded whatever
        order they arrive in.

        Returns:
            True if the options were applied
        """
        f = self._require_field(key)
        fetched_for = linked_key_for(linked_value)
        current = linked_key_for(self._linked_value(f))
        if fetched_for != current:
            logger.debug(
                "Discarding options for %s fetched for %r (current %r)",
                key,
                fetched_for,
                current,
            )
            return False
        self._options[key] = list(options)
        return True

    async def refresh_options_async(self) -> None:
        """
        Re-resolve dynamic options off the event loop.

        Each result goes through apply_linked_options(), so values changed
        while a fetch was in flight win over the stale result.
        """
        dynamic = [f for f in self._template.all_fields() if f.is_dynamic]
        snapshots = [(f, copy.deepcopy(self._linked_value(f))) for f in dynamic]
        results = await asyncio.gather(*(
            asyncio.to_thread(self._resolver.resolve, f, linked_value)
            for f, linked_value in snapshots
        ))
        for (f, linked_value), options in zip(snapshots, results):
            self.apply_linked_options(f.key, linked_value, options)

    # =========================================================================
    # Validation
    # =========================================================================

    def validate(self) -> dict[str, str]:
        """
        Validate every field in template order.

        Returns:
            Map of field key to error message (empty when valid)
        """
        result = validate_values(
            self._template,
            self._values,
            options_by_key=self._options,
            check_option_membership=self._check_option_membership,
        )
        self._errors = dict(result.errors)
        return dict(self._errors)

    def get_errors(self) -> dict[str, str]:
        """Get the errors from the last validate() call."""
        return dict(self._errors)

    # =========================================================================
    # Rendering
    # =========================================================================

    def stages(self) -> list[int]:
        return self._template.stages()

    def render_field(self, key: str) -> InputContract:
        """Render one field with its current value, options and error."""
        f = self._require_field(key)
        return render_field(
            f,
            self._values.get(key),
            self._options.get(key, []),
            self._errors.get(key),
        )

    def _render_section(self, section: SectionSchema) -> RenderedSection:
        return RenderedSection(
            section_id=section.section_id,
            name=section.name,
            stage=section.stage,
            icon=section.icon,
            fields=tuple(self.render_field(f.key) for f in section.fields),
        )

    def render_stage(self, stage: int) -> list[RenderedSection]:
        """Render the sections of one stage."""
        return [self._render_section(s) for s in self._template.sections_for_stage(stage)]

    def render_all(self) -> list[RenderedSection]:
        """Render every section in template order."""
        return [self._render_section(s) for s in self._template.sections]

    # =========================================================================
    # Submit
    # =========================================================================

    def on_submit(self, listener: SubmitListener) -> None:
        """Register a listener for the submit event."""
        self._submit_listeners.append(listener)

    def submit(self) -> SubmitResult:
        """
        Validate and, when valid, emit the submit event.

        Returns:
            SubmitAccepted with the submitted values, or SubmitBlocked with
            the errors (no listener is called)
        """
        errors = self.validate()
        if errors:
            logger.info("Submit blocked for template %s: %d errors", self._template.template_id, len(errors))
            return SubmitBlocked(errors=errors)

        values = self.get_values()
        for listener in list(self._submit_listeners):
            listener(copy.deepcopy(values))
        return SubmitAccepted(values=values)
