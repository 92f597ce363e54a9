"""
Tests for Reference Data

Tests covering:
1. State and union territory table and lookups
2. City table keyed by state code
3. Category and subcategory catalog
4. Static provider linked lookups (state -> cities, category -> subcategories)
5. Provider singleton
"""

from __future__ import annotations

import pytest

from listing_engine.reference import (
    CITIES_BY_STATE,
    INDIAN_STATES,
    CategoryCatalog,
    HttpReferenceProvider,
    OptionRecord,
    PropertyCategory,
    RegionType,
    State,
    StaticReferenceProvider,
    city_exists_in_state,
    find_state,
    get_cities_by_state,
    get_reference_provider,
    get_state_by_code,
    get_state_by_name,
    reset_reference_provider,
)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def provider():
    """Static provider over the default tables."""
    return StaticReferenceProvider()


@pytest.fixture(autouse=True)
def fresh_singleton():
    """Reset the provider singleton around each test."""
    reset_reference_provider()
    yield
    reset_reference_provider()


# =============================================================================
# States
# =============================================================================


class TestStates:
    """Tests for the state table and lookups."""

    def test_table_has_28_states_and_8_union_territories(self):
        """Every state and union territory is listed once."""
        states = [s for s in INDIAN_STATES if s.type == RegionType.STATE]
        territories = [s for s in INDIAN_STATES if s.type == RegionType.UNION_TERRITORY]
        assert len(states) == 28
        assert len(territories) == 8
        assert len({s.code for s in INDIAN_STATES}) == 36

    def test_lookup_by_code_is_case_insensitive(self):
        """Codes match regardless of case and whitespace."""
        assert get_state_by_code("mh").name == "Maharashtra"
        assert get_state_by_code(" KA ").name == "Karnataka"

    def test_lookup_by_name(self):
        """Names match case-insensitively."""
        assert get_state_by_name("maharashtra").code == "MH"
        assert get_state_by_name("Atlantis") is None

    def test_find_state_accepts_name_or_code(self):
        """find_state tries the name first, then the code."""
        assert find_state("Delhi").code == "DL"
        assert find_state("DL").name == "Delhi"
        assert find_state("Nowhere") is None

    def test_state_round_trips_through_dict(self):
        """State serialises code, name and type."""
        state = get_state_by_code("DL")
        data = state.to_dict()
        assert data == {"code": "DL", "name": "Delhi", "type": "ut"}
        assert State.from_dict(data) == state


# =============================================================================
# Cities
# =============================================================================


class TestCities:
    """Tests for the city table."""

    def test_every_city_key_is_a_known_state(self):
        """City table is keyed by state codes only."""
        codes = {s.code for s in INDIAN_STATES}
        assert set(CITIES_BY_STATE) <= codes

    def test_maharashtra_cities_start_with_mumbai_and_pune(self):
        """Cities come back in table order."""
        names = [c.name for c in get_cities_by_state("MH")]
        assert names[:2] == ["Mumbai", "Pune"]

    def test_unknown_state_has_no_cities(self):
        assert get_cities_by_state("ZZ") == []

    def test_city_exists_in_state(self):
        """City membership is case-insensitive and per state."""
        assert city_exists_in_state("pune", "MH")
        assert not city_exists_in_state("Pune", "KA")


# =============================================================================
# Categories
# =============================================================================


class TestCategoryCatalog:
    """Tests for the category catalog."""

    def test_lists_eleven_categories_in_order(self):
        catalog = CategoryCatalog()
        names = [c.name for c in catalog.list_categories()]
        assert len(names) == 11
        assert names[0] == "Apartments"
        assert names[-1] == "Rush Deal"

    def test_find_category_by_id_slug_or_name(self):
        """Category lookup accepts any of its identifiers."""
        catalog = CategoryCatalog()
        assert catalog.find_category("CAT-VILLAS").slug == "villas"
        assert catalog.find_category("plots").name == "Plots"
        assert catalog.find_category("Independent House").category_id == "CAT-INDEPENDENT-HOUSE"
        assert catalog.find_category("Castles") is None

    def test_subcategories_belong_to_their_category(self):
        catalog = CategoryCatalog()
        subs = catalog.list_subcategories("CAT-APARTMENTS")
        assert subs[0].name == "Studio Apartment"
        assert all(s.category_id == "CAT-APARTMENTS" for s in subs)

    def test_inactive_categories_are_hidden(self):
        """Inactive categories never appear in lookups."""
        hidden = PropertyCategory("CAT-HIDDEN", "Hidden", "hidden", 1, is_active=False)
        shown = PropertyCategory("CAT-SHOWN", "Shown", "shown", 2)
        catalog = CategoryCatalog(categories=(hidden, shown), subcategories=())
        assert [c.name for c in catalog.list_categories()] == ["Shown"]
        assert catalog.find_category("hidden") is None


# =============================================================================
# Static Provider
# =============================================================================


class TestStaticReferenceProvider:
    """Tests for the in-process provider."""

    def test_categories_are_option_records(self, provider):
        categories = provider.get_categories()
        assert categories[0] == OptionRecord(id="CAT-APARTMENTS", name="Apartments")
        assert len(categories) == 11

    def test_states_are_the_full_table(self, provider):
        assert provider.get_states() == list(INDIAN_STATES)

    def test_state_name_resolves_to_cities(self, provider):
        """A state name as parent value yields that state's cities."""
        options = provider.get_linked_options("Maharashtra")
        names = [o.name for o in options]
        assert "Mumbai" in names
        assert "Pune" in names
        assert options[0].id == "MH:Mumbai"

    def test_state_code_resolves_to_cities(self, provider):
        assert provider.get_linked_options("MH") == provider.get_linked_options("Maharashtra")

    def test_category_resolves_to_subcategories(self, provider):
        """A category name, slug or id as parent value yields subcategories."""
        by_name = provider.get_linked_options("Apartments")
        assert by_name[0].name == "Studio Apartment"
        assert provider.get_linked_options("apartments") == by_name
        assert provider.get_linked_options("CAT-APARTMENTS") == by_name

    def test_unknown_parent_yields_no_options(self, provider):
        assert provider.get_linked_options("Atlantis") == []


# =============================================================================
# Singleton
# =============================================================================


class TestProviderSingleton:
    """Tests for get_reference_provider()."""

    def test_defaults_to_static_provider(self):
        assert isinstance(get_reference_provider(), StaticReferenceProvider)

    def test_base_url_selects_http_provider(self):
        assert isinstance(get_reference_provider("http://reference.local"), HttpReferenceProvider)

    def test_first_call_wins(self):
        """Later arguments are ignored once the instance exists."""
        first = get_reference_provider()
        assert get_reference_provider("http://reference.local") is first
