"""
Reference Data Providers - Option Sources for Dynamic Fields

Providers are injected into the option resolver. The form engine has no
process-wide cache: whatever provider it is given is the only place option
data comes from, which keeps it testable with fakes.

Two implementations:
- StaticReferenceProvider: in-process tables (states, cities, categories)
- HttpReferenceProvider: the same lookups over the reference API
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import requests

from listing_engine.reference.categories import CategoryCatalog
from listing_engine.reference.locations import (
    INDIAN_STATES,
    State,
    find_state,
    get_cities_by_state,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Records and Errors
# =============================================================================


@dataclass(frozen=True)
class OptionRecord:
    """A selectable reference entry: stable id plus display name."""

    id: str
    name: str

    def to_dict(self) -> dict:
        """Convert to dictionary for serialisation."""
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: dict) -> "OptionRecord":
        """Create OptionRecord from dictionary."""
        return cls(id=str(data["id"]), name=str(data["name"]))


class ReferenceDataError(Exception):
    """Raised when a provider cannot supply reference data."""


# =============================================================================
# Provider Interface
# =============================================================================


class ReferenceDataProvider(ABC):
    """Abstract source of reference option lists."""

    @abstractmethod
    def get_categories(self) -> list[OptionRecord]:
        """Get all property categories, in display order."""

    @abstractmethod
    def get_linked_options(self, parent_value: str) -> list[OptionRecord]:
        """
        Get the sub-options keyed by a parent field's value.

        Args:
            parent_value: Current value of the parent field

        Returns:
            Sub-options in display order, empty if the value is unknown
        """

    @abstractmethod
    def get_states(self) -> list[State]:
        """Get the fixed state/union-territory list, in display order."""


# =============================================================================
# Static Provider
# =============================================================================


class StaticReferenceProvider(ReferenceDataProvider):
    """
    In-process provider backed by the location and category tables.

    Linked lookups resolve a parent value naming a state (name or code) to
    its cities, and a parent value naming a category (name, slug or id) to
    its subcategories.
    """

    def __init__(self, catalog: Optional[CategoryCatalog] = None):
        self._catalog = catalog or CategoryCatalog()

    def get_categories(self) -> list[OptionRecord]:
        return [
            OptionRecord(id=c.category_id, name=c.name)
            for c in self._catalog.list_categories()
        ]

    def get_linked_options(self, parent_value: str) -> list[OptionRecord]:
        state = find_state(parent_value)
        if state is not None:
            return [
                OptionRecord(id=f"{state.code}:{city.name}", name=city.name)
                for city in get_cities_by_state(state.code)
            ]

        category = self._catalog.find_category(parent_value)
        if category is not None:
            return [
                OptionRecord(id=s.subcategory_id, name=s.name)
                for s in self._catalog.list_subcategories(category.category_id)
            ]

        return []

    def get_states(self) -> list[State]:
        return list(INDIAN_STATES)


# =============================================================================
# HTTP Provider
# =============================================================================


class HttpReferenceProvider(ReferenceDataProvider):
    """
    Provider that reads the reference API exposed by web.listing_routes.

    Network and decoding failures are raised as ReferenceDataError; the
    option resolver turns those into empty option lists.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    def _get(self, path: str, params: Optional[dict] = None) -> list[dict]:
        url = f"{self._base_url}{path}"
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            raise ReferenceDataError(f"Failed to fetch {url}: {e}") from e

        items = payload.get("items") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise ReferenceDataError(f"Unexpected payload from {url}")
        return items

    def get_categories(self) -> list[OptionRecord]:
        return [OptionRecord.from_dict(item) for item in self._get("/api/reference/categories")]

    def get_linked_options(self, parent_value: str) -> list[OptionRecord]:
        items = self._get("/api/reference/linked-options", params={"parent": parent_value})
        return [OptionRecord.from_dict(item) for item in items]

    def get_states(self) -> list[State]:
        try:
            return [State.from_dict(item) for item in self._get("/api/reference/states")]
        except (KeyError, ValueError) as e:
            raise ReferenceDataError(f"Malformed state record: {e}") from e


# =============================================================================
# Singleton Instance
# =============================================================================

_provider_instance: Optional[ReferenceDataProvider] = None


def get_reference_provider(
    base_url: Optional[str] = None,
    timeout: float = 10.0,
) -> ReferenceDataProvider:
    """
    Get the reference data provider singleton.

    Args:
        base_url: Reference API URL (only used on first call). When empty the
                  in-process tables are used.
        timeout: Request timeout in seconds for the reference API

    Returns:
        ReferenceDataProvider instance
    """
    global _provider_instance
    if _provider_instance is None:
        if base_url:
            logger.info("Using reference API at %s", base_url)
            _provider_instance = HttpReferenceProvider(base_url, timeout=timeout)
        else:
            _provider_instance = StaticReferenceProvider()
    return _provider_instance


def reset_reference_provider() -> None:
    """Reset the singleton instance (for testing)."""
    global _provider_instance
    _provider_instance = None
