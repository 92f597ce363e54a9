"""
Tests for Form Schema and Template Lifecycle

Tests covering:
1. Field schema parsing (unknown types degrade, never raise)
2. Template field access and stage grouping
3. Authoring integrity checks that block publishing
4. Lifecycle: draft -> published -> archived, clone, revise
5. Template repository persistence, lineages and default seeding
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

import pytest

from listing_engine.forms import (
    FieldSchema,
    FieldType,
    FileReference,
    FormTemplate,
    FormTemplateRepository,
    SectionSchema,
    SellerType,
    SourceType,
    TemplateLifecycleError,
    TemplateNotFoundError,
    TemplateStatus,
    ValidationRules,
    is_empty_value,
)
from listing_engine.forms.defaults import build_default_template
from listing_engine.forms.schema import decode_value, encode_values


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def temp_persist_path():
    """Create a temporary file path for persistence."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield str(Path(tmpdir) / "form_templates.json")


@pytest.fixture
def repository(temp_persist_path):
    """Create a fresh repository for each test."""
    return FormTemplateRepository(persist_path=temp_persist_path)


@pytest.fixture
def location_sections():
    """Two sections: location at stage 1, details at stage 2."""
    return (
        SectionSchema(
            name="Location",
            stage=1,
            fields=(
                FieldSchema("state", "State", FieldType.DROPDOWN, required=True,
                            source_type=SourceType.STATE_MASTER),
                FieldSchema("city", "City", FieldType.DROPDOWN, required=True,
                            source_type=SourceType.LINKED_TO_PARENT, linked_field_key="state"),
            ),
        ),
        SectionSchema(
            name="Details",
            stage=2,
            fields=(
                FieldSchema("bedrooms", "Bedrooms", FieldType.NUMERIC, required=True,
                            validation=ValidationRules(min=1, max=10)),
            ),
        ),
    )


@pytest.fixture
def draft(location_sections):
    """A sound draft template."""
    return FormTemplate(
        name="Location Form",
        seller_type=SellerType.INDIVIDUAL,
        sections=location_sections,
    )


def _template_with(*fields: FieldSchema) -> FormTemplate:
    return FormTemplate(
        name="Single Section",
        seller_type=SellerType.BROKER,
        sections=(SectionSchema(name="Main", fields=fields),),
    )


# =============================================================================
# Field Schema
# =============================================================================


class TestFieldSchema:
    """Tests for field schema parsing."""

    def test_from_dict_accepts_camel_case(self):
        """Authored JSON may use camelCase keys."""
        f = FieldSchema.from_dict({
            "fieldKey": "city",
            "label": "City",
            "fieldType": "dropdown",
            "isRequired": True,
            "sourceType": "linked_to_parent",
            "linkedFieldKey": "state",
        })
        assert f.key == "city"
        assert f.field_type == FieldType.DROPDOWN
        assert f.required
        assert f.is_linked
        assert f.linked_field_key == "state"

    def test_unknown_type_renders_as_text(self, caplog):
        """An unknown type degrades to text and keeps the declared type."""
        with caplog.at_level(logging.WARNING):
            f = FieldSchema.from_dict({"key": "rating", "label": "Rating", "type": "stars"})
        assert f.field_type == FieldType.TEXT
        assert f.declared_type == "stars"
        assert f.to_dict()["field_type"] == "stars"
        assert "unknown type" in caplog.text

    def test_unknown_source_is_ignored(self, caplog):
        with caplog.at_level(logging.WARNING):
            f = FieldSchema.from_dict({
                "key": "zone",
                "label": "Zone",
                "type": "dropdown",
                "source_type": "zone_master",
                "options": ["A", "B"],
            })
        assert f.source_type is None
        assert f.static_options == ("A", "B")
        assert "unknown source type" in caplog.text

    def test_empty_rules_parse_to_none(self):
        assert ValidationRules.from_dict({}) is None
        assert ValidationRules.from_dict({"min": None, "regex": ""}) is None
        assert ValidationRules.from_dict({"charLimit": "50"}).char_limit == 50

    def test_key_is_required(self):
        with pytest.raises(ValueError):
            FieldSchema("", "No Key")

    def test_zero_is_not_empty(self):
        """Zero is an answer; blank strings and empty selections are not."""
        assert not is_empty_value(0)
        assert is_empty_value(None)
        assert is_empty_value("   ")
        assert is_empty_value([])

    def test_file_values_decode_to_references(self):
        """Stored file dicts come back as FileReference tuples."""
        f = FieldSchema("photos", "Photos", FieldType.FILE_UPLOAD)
        ref = FileReference("front.jpg", "image/jpeg", 1024)
        encoded = encode_values({"photos": (ref,)})
        assert encoded == {"photos": [ref.to_dict()]}
        assert decode_value(f, encoded["photos"]) == (ref,)


# =============================================================================
# Template Structure
# =============================================================================


class TestTemplateStructure:
    """Tests for field access and stages."""

    def test_fields_flatten_in_section_order(self, draft):
        assert draft.field_keys == ["state", "city", "bedrooms"]

    def test_linked_dependents(self, draft):
        assert [f.key for f in draft.linked_dependents("state")] == ["city"]
        assert draft.linked_dependents("bedrooms") == []

    def test_stages_and_sections_for_stage(self, draft):
        assert draft.stages() == [1, 2]
        assert [s.name for s in draft.sections_for_stage(2)] == ["Details"]

    def test_lineage_defaults_to_template_id(self, draft):
        assert draft.lineage_id == draft.template_id
        assert draft.version == 1
        assert draft.status == TemplateStatus.DRAFT

    def test_round_trips_through_dict(self, draft):
        restored = FormTemplate.from_dict(draft.to_dict())
        assert restored.template_id == draft.template_id
        assert restored.field_keys == draft.field_keys
        assert restored.get_field("city").linked_field_key == "state"
        assert restored.get_field("bedrooms").validation == ValidationRules(min=1, max=10)


# =============================================================================
# Integrity Checks
# =============================================================================


class TestIntegrity:
    """Tests for authoring problems that block publishing."""

    def test_sound_template_has_no_issues(self, draft):
        assert draft.integrity_issues() == []

    def test_default_templates_are_sound(self):
        for seller_type in SellerType:
            assert build_default_template(seller_type).integrity_issues() == []

    def test_duplicate_keys(self):
        template = _template_with(
            FieldSchema("title", "Title"),
            FieldSchema("title", "Title Again"),
        )
        assert "Duplicate field key 'title'" in template.integrity_issues()

    def test_link_to_later_section(self):
        template = FormTemplate(
            name="Backwards",
            seller_type=SellerType.BUILDER,
            sections=(
                SectionSchema(name="First", fields=(
                    FieldSchema("city", "City", FieldType.DROPDOWN,
                                source_type=SourceType.LINKED_TO_PARENT, linked_field_key="state"),
                )),
                SectionSchema(name="Second", fields=(
                    FieldSchema("state", "State", FieldType.DROPDOWN,
                                source_type=SourceType.STATE_MASTER),
                )),
            ),
        )
        issues = template.integrity_issues()
        assert any("later section" in issue for issue in issues)

    def test_link_problems(self):
        template = _template_with(
            FieldSchema("a", "A", FieldType.DROPDOWN, source_type=SourceType.LINKED_TO_PARENT),
            FieldSchema("b", "B", FieldType.DROPDOWN,
                        source_type=SourceType.LINKED_TO_PARENT, linked_field_key="b"),
            FieldSchema("c", "C", FieldType.DROPDOWN,
                        source_type=SourceType.LINKED_TO_PARENT, linked_field_key="missing"),
        )
        issues = template.integrity_issues()
        assert any("names no linked field" in i for i in issues)
        assert any("linked to itself" in i for i in issues)
        assert any("unknown field 'missing'" in i for i in issues)

    def test_rule_problems(self):
        template = _template_with(
            FieldSchema("n", "N", FieldType.NUMERIC, validation=ValidationRules(min=5, max=1)),
            FieldSchema("t", "T", validation=ValidationRules(char_limit=0)),
            FieldSchema("r", "R", validation=ValidationRules(regex="([a-z")),
        )
        issues = template.integrity_issues()
        assert any("min greater than max" in i for i in issues)
        assert any("non-positive char limit" in i for i in issues)
        assert any("invalid pattern" in i for i in issues)

    def test_choice_without_options_and_source_on_text(self):
        template = _template_with(
            FieldSchema("kind", "Kind", FieldType.RADIO),
            FieldSchema("state", "State", FieldType.TEXT, source_type=SourceType.STATE_MASTER),
        )
        issues = template.integrity_issues()
        assert "Field 'kind' has no options" in issues
        assert any("has an option source but type text" in i for i in issues)

    def test_no_fields(self):
        template = FormTemplate(name="Empty", seller_type=SellerType.BROKER)
        assert template.integrity_issues() == ["Template has no fields"]


# =============================================================================
# Lifecycle
# =============================================================================


class TestLifecycle:
    """Tests for template lifecycle transitions."""

    def test_publish_draft(self, draft):
        draft.publish()
        assert draft.status == TemplateStatus.PUBLISHED
        assert draft.published_at is not None

    def test_publish_blocked_by_integrity_issues(self):
        template = _template_with(FieldSchema("kind", "Kind", FieldType.RADIO))
        with pytest.raises(TemplateLifecycleError) as exc_info:
            template.publish()
        assert exc_info.value.issues == ("Field 'kind' has no options",)
        assert template.status == TemplateStatus.DRAFT

    def test_published_template_is_not_editable(self, draft):
        draft.publish()
        with pytest.raises(TemplateLifecycleError):
            draft.update(name="Renamed")
        with pytest.raises(TemplateLifecycleError):
            draft.publish()

    def test_update_draft(self, draft):
        draft.update(name="Renamed", allow_save_draft=False, terms_text="")
        assert draft.name == "Renamed"
        assert draft.allow_save_draft is False
        assert draft.terms_text is None

    def test_archive_is_terminal(self, draft):
        draft.publish()
        draft.archive()
        assert draft.status == TemplateStatus.ARCHIVED
        with pytest.raises(TemplateLifecycleError):
            draft.archive()

    def test_clone_starts_new_lineage(self, draft):
        draft.publish()
        draft.archive()
        copy = draft.clone()
        assert copy.status == TemplateStatus.DRAFT
        assert copy.version == 1
        assert copy.lineage_id == copy.template_id != draft.lineage_id
        assert copy.name == "Location Form (Copy)"
        assert copy.field_keys == draft.field_keys
        assert copy.sections[0] is not draft.sections[0]

    def test_revise_keeps_lineage(self, draft):
        draft.publish()
        revision = draft.revise()
        assert revision.lineage_id == draft.lineage_id
        assert revision.version == 2
        assert revision.status == TemplateStatus.DRAFT

    def test_draft_cannot_be_revised(self, draft):
        with pytest.raises(TemplateLifecycleError):
            draft.revise()


# =============================================================================
# Repository
# =============================================================================


class TestTemplateRepository:
    """Tests for FormTemplateRepository."""

    def test_create_and_require(self, repository, location_sections):
        template = repository.create("Form", SellerType.BROKER, sections=location_sections)
        assert repository.require(template.template_id) is template
        assert repository.count() == 1

    def test_require_unknown(self, repository):
        with pytest.raises(TemplateNotFoundError):
            repository.require("TPL-MISSING")
        assert repository.get("TPL-MISSING") is None

    def test_persists_to_file(self, temp_persist_path, location_sections):
        repo = FormTemplateRepository(persist_path=temp_persist_path)
        template = repo.create("Form", SellerType.BROKER, sections=location_sections)
        repo.publish(template.template_id)

        reloaded = FormTemplateRepository(persist_path=temp_persist_path)
        restored = reloaded.require(template.template_id)
        assert restored.status == TemplateStatus.PUBLISHED
        assert restored.field_keys == ["state", "city", "bedrooms"]

    def test_publishing_revision_archives_previous(self, repository, location_sections):
        """A lineage has at most one published version."""
        v1 = repository.create("Form", SellerType.BROKER, sections=location_sections)
        repository.publish(v1.template_id)
        v2 = repository.revise(v1.template_id)
        repository.publish(v2.template_id)

        assert repository.require(v1.template_id).status == TemplateStatus.ARCHIVED
        assert repository.require(v2.template_id).status == TemplateStatus.PUBLISHED
        assert [t.version for t in repository.list_lineage(v1.lineage_id)] == [1, 2]

    def test_revise_blocked_while_lineage_has_draft(self, repository, location_sections):
        v1 = repository.create("Form", SellerType.BROKER, sections=location_sections)
        repository.publish(v1.template_id)
        repository.revise(v1.template_id)
        with pytest.raises(TemplateLifecycleError):
            repository.revise(v1.template_id)

    def test_revise_from_older_version_takes_next_number(self, repository, location_sections):
        v1 = repository.create("Form", SellerType.BROKER, sections=location_sections)
        repository.publish(v1.template_id)
        v2 = repository.revise(v1.template_id)
        repository.publish(v2.template_id)
        v3 = repository.revise(v1.template_id)
        assert v3.version == 3

    def test_list_published_filters(self, repository, location_sections):
        general = repository.create("General", SellerType.BROKER, sections=location_sections)
        plots = repository.create("Plots", SellerType.BROKER, category_id="CAT-PLOTS",
                                  sections=location_sections)
        repository.create("Unpublished", SellerType.BROKER, sections=location_sections)
        repository.publish(general.template_id)
        repository.publish(plots.template_id)

        names = [t.name for t in repository.list_published(SellerType.BROKER, "CAT-PLOTS")]
        assert names == ["Plots", "General"]
        assert [t.name for t in repository.list_published(SellerType.BROKER, "CAT-VILLAS")] == ["General"]
        assert repository.list_published(SellerType.BUILDER) == []

    def test_seed_defaults_once(self, repository):
        assert repository.seed_defaults() == len(SellerType)
        assert len(repository.list_published()) == len(SellerType)
        assert repository.seed_defaults() == 0
