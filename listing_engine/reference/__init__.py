"""
Reference Data - States, Cities and Property Categories

Read-only lookups behind the state_master, category_master and
linked_to_parent option sources.
"""

from listing_engine.reference.locations import (
    RegionType,
    State,
    City,
    INDIAN_STATES,
    INDIAN_CITIES,
    CITIES_BY_STATE,
    get_state_by_code,
    get_state_by_name,
    find_state,
    get_cities_by_state,
    city_exists_in_state,
)
from listing_engine.reference.categories import (
    PropertyCategory,
    PropertySubcategory,
    CategoryCatalog,
    DEFAULT_CATEGORIES,
    DEFAULT_SUBCATEGORIES,
)
from listing_engine.reference.provider import (
    OptionRecord,
    ReferenceDataError,
    ReferenceDataProvider,
    StaticReferenceProvider,
    HttpReferenceProvider,
    get_reference_provider,
    reset_reference_provider,
)
