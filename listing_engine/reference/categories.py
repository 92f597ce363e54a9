"""
Property Categories - Category and Subcategory Master Data

Backs the category_master option source and the category -> subcategory
linked lookup. Categories are returned in sort order; that order is what
the form displays and is never re-sorted downstream.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final, Optional


# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True)
class PropertyCategory:
    """A top-level property category (Apartments, Plots, ...)."""

    category_id: str
    name: str
    slug: str
    sort_order: int
    has_project_stage: bool = False
    allowed_transaction_types: tuple[str, ...] = ("sale", "rent", "lease")
    is_active: bool = True

    def to_dict(self) -> dict:
        """Convert to dictionary for serialisation."""
        return {
            "category_id": self.category_id,
            "name": self.name,
            "slug": self.slug,
            "sort_order": self.sort_order,
            "has_project_stage": self.has_project_stage,
            "allowed_transaction_types": list(self.allowed_transaction_types),
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class PropertySubcategory:
    """A subcategory belonging to one category."""

    subcategory_id: str
    category_id: str
    name: str
    slug: str
    sort_order: int
    applicable_for: tuple[str, ...] = field(default=("sale", "rent", "lease"))


# =============================================================================
# Default Data
# =============================================================================

DEFAULT_CATEGORIES: Final[tuple[PropertyCategory, ...]] = (
    PropertyCategory("CAT-APARTMENTS", "Apartments", "apartments", 1, has_project_stage=True),
    PropertyCategory("CAT-VILLAS", "Villas", "villas", 2, has_project_stage=True),
    PropertyCategory(
        "CAT-PLOTS", "Plots", "plots", 3, allowed_transaction_types=("sale",)
    ),
    PropertyCategory("CAT-INDEPENDENT-HOUSE", "Independent House", "independent-house", 4),
    PropertyCategory(
        "CAT-NEW-PROJECTS", "New Projects", "new-projects", 5,
        has_project_stage=True, allowed_transaction_types=("sale",),
    ),
    PropertyCategory(
        "CAT-ULTRA-LUXURY", "Ultra Luxury", "ultra-luxury", 6, has_project_stage=True
    ),
    PropertyCategory("CAT-COMMERCIAL", "Commercial", "commercial", 7),
    PropertyCategory(
        "CAT-JOINT-VENTURE", "Joint Venture", "joint-venture", 8,
        allowed_transaction_types=("sale",),
    ),
    PropertyCategory(
        "CAT-PG-COLIVING", "PG / Co-Living", "pg-coliving", 9,
        allowed_transaction_types=("rent",),
    ),
    PropertyCategory(
        "CAT-FARM-LAND", "Farm Land", "farm-land", 10, allowed_transaction_types=("sale", "lease")
    ),
    PropertyCategory(
        "CAT-RUSH-DEAL", "Rush Deal", "rush-deal", 11, allowed_transaction_types=("sale",)
    ),
)

# Subcategory names keyed by category slug, in sort order
_SUBCATEGORY_NAMES: Final[dict[str, tuple[tuple[str, str], ...]]] = {
    "apartments": (
        ("Studio Apartment", "studio"),
        ("1 BHK", "1bhk"),
        ("2 BHK", "2bhk"),
        ("3 BHK", "3bhk"),
        ("4 BHK", "4bhk"),
        ("5 BHK+", "5bhk-plus"),
        ("Penthouse", "penthouse"),
        ("Duplex Apartment", "duplex-apartment"),
        ("Service Apartment", "service-apartment"),
    ),
    "villas": (
        ("Independent Villa", "independent-villa"),
        ("Luxury Villa", "luxury-villa"),
        ("Farm House", "farm-house"),
        ("Row House", "row-house"),
        ("Twin Villa", "twin-villa"),
        ("Triplex Villa", "triplex-villa"),
    ),
    "plots": (
        ("Residential Plot", "residential-plot"),
        ("Commercial Plot", "commercial-plot"),
        ("Agricultural Plot", "agricultural-plot"),
        ("Industrial Plot", "industrial-plot"),
        ("NA Plot", "na-plot"),
    ),
    "independent-house": (
        ("1 RK House", "1rk-house"),
        ("1 BHK House", "1bhk-house"),
        ("2 BHK House", "2bhk-house"),
        ("3 BHK House", "3bhk-house"),
        ("4 BHK House", "4bhk-house"),
        ("5 BHK+ House", "5bhk-plus-house"),
    ),
    "new-projects": (
        ("Residential Project", "residential-project"),
        ("Commercial Project", "commercial-project"),
        ("Integrated Township", "integrated-township"),
    ),
    "ultra-luxury": (
        ("Premium Apartments", "premium-apartments"),
        ("Luxury Villas", "luxury-villas"),
        ("Premium Commercial", "premium-commercial"),
    ),
    "commercial": (
        ("Office Space", "office-space"),
        ("Shop", "shop"),
        ("Showroom", "showroom"),
        ("Warehouse", "warehouse"),
        ("Industrial Building", "industrial-building"),
        ("Co-working Space", "coworking-space"),
        ("Business Center", "business-center"),
    ),
    "joint-venture": (
        ("Land JV", "land-jv"),
        ("Redevelopment", "redevelopment"),
        ("Partial Development", "partial-development"),
    ),
    "pg-coliving": (
        ("Single Sharing", "single-sharing"),
        ("Double Sharing", "double-sharing"),
        ("Triple Sharing", "triple-sharing"),
        ("Boys Only PG", "boys-only-pg"),
        ("Girls Only PG", "girls-only-pg"),
    ),
    "farm-land": (
        ("Agriculture Land", "agriculture-land"),
        ("Converted Land", "converted-land"),
        ("NA Farm Plot", "na-farm-plot"),
        ("Orchard", "orchard"),
    ),
    "rush-deal": (
        ("Distress Sale", "distress-sale"),
        ("Bank Auction", "bank-auction"),
        ("Quick Sale", "quick-sale"),
    ),
}


def _build_subcategories() -> tuple[PropertySubcategory, ...]:
    by_slug = {c.slug: c for c in DEFAULT_CATEGORIES}
    result = []
    for category_slug, entries in _SUBCATEGORY_NAMES.items():
        category = by_slug[category_slug]
        for position, (name, slug) in enumerate(entries, start=1):
            result.append(
                PropertySubcategory(
                    subcategory_id=f"SUB-{slug.upper()}",
                    category_id=category.category_id,
                    name=name,
                    slug=slug,
                    sort_order=position,
                )
            )
    return tuple(result)


DEFAULT_SUBCATEGORIES: Final[tuple[PropertySubcategory, ...]] = _build_subcategories()


# =============================================================================
# Category Catalog
# =============================================================================


class CategoryCatalog:
    """
    Read-only view over categories and their subcategories.

    Inactive categories are hidden from every lookup.
    """

    def __init__(
        self,
        categories: tuple[PropertyCategory, ...] = DEFAULT_CATEGORIES,
        subcategories: tuple[PropertySubcategory, ...] = DEFAULT_SUBCATEGORIES,
    ):
        self._categories = sorted(
            (c for c in categories if c.is_active), key=lambda c: c.sort_order
        )
        self._subcategories = list(subcategories)

    def list_categories(self) -> list[PropertyCategory]:
        """Get active categories in sort order."""
        return list(self._categories)

    def find_category(self, value: str) -> Optional[PropertyCategory]:
        """Find a category by id, slug or display name (case-insensitive)."""
        wanted = value.strip().lower()
        for category in self._categories:
            if wanted in (
                category.category_id.lower(),
                category.slug,
                category.name.lower(),
            ):
                return category
        return None

    def list_subcategories(self, category_id: str) -> list[PropertySubcategory]:
        """Get subcategories of a category in sort order."""
        return sorted(
            (s for s in self._subcategories if s.category_id == category_id),
            key=lambda s: s.sort_order,
        )
