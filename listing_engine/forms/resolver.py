"""
Option Resolver - Concrete Option Lists for Fields

Turns a field's option source into an ordered list of option labels using an
injected ReferenceDataProvider. Resolution never raises: provider failures
and malformed link declarations yield an empty (or static) list and are
logged.

Resolution never touches stored values. A selection that disappears from a
re-resolved list is kept and left for validation to flag.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from listing_engine.forms.schema import FieldSchema, SourceType, is_empty_value
from listing_engine.forms.template import FormTemplate
from listing_engine.reference.provider import (
    ReferenceDataError,
    ReferenceDataProvider,
)


logger = logging.getLogger(__name__)


def linked_key_for(value: Any) -> Optional[str]:
    """
    Normalise a parent field's value into a lookup key.

    Returns None for empty values; the dependent field then has no options.
    """
    if is_empty_value(value):
        return None
    if isinstance(value, (list, tuple)):
        # Multi-select parents are not a supported link shape
        return None
    return str(value).strip()


def resolve_options(
    field: FieldSchema,
    linked_value: Any,
    provider: ReferenceDataProvider,
) -> list[str]:
    """
    Resolve the selectable option labels for a field.

    Args:
        field: Field being rendered
        linked_value: Current value of the field named by linked_field_key
        provider: Reference data provider

    Returns:
        Option labels in provider (or authored) order
    """
    source = field.source_type

    if source is None:
        return list(field.static_options)

    if source == SourceType.LINKED_TO_PARENT and not field.linked_field_key:
        logger.warning(
            "Field %s is linked_to_parent without a linked field key; using static options",
            field.key,
        )
        return list(field.static_options)

    try:
        if source == SourceType.CATEGORY_MASTER:
            return [c.name for c in provider.get_categories()]

        if source == SourceType.STATE_MASTER:
            return [s.name for s in provider.get_states()]

        key = linked_key_for(linked_value)
        if key is None:
            return []
        return [o.name for o in provider.get_linked_options(key)]

    except ReferenceDataError as e:
        logger.warning("Options for field %s unavailable: %s", field.key, e)
        return []


class OptionResolver:
    """Resolver bound to one provider, used by the form engine."""

    def __init__(self, provider: ReferenceDataProvider):
        self._provider = provider

    @property
    def provider(self) -> ReferenceDataProvider:
        return self._provider

    def resolve(self, field: FieldSchema, linked_value: Any = None) -> list[str]:
        """Resolve options given the linked field's current value."""
        return resolve_options(field, linked_value, self._provider)

    def resolve_in(self, field: FieldSchema, values: Mapping[str, Any]) -> list[str]:
        """Resolve options reading the linked value out of a value map."""
        linked_value = values.get(field.linked_field_key) if field.linked_field_key else None
        return self.resolve(field, linked_value)

    def resolve_all(
        self,
        template: FormTemplate,
        values: Mapping[str, Any],
    ) -> dict[str, list[str]]:
        """Resolve options for every field of a template, keyed by field key."""
        return {f.key: self.resolve_in(f, values) for f in template.all_fields()}
