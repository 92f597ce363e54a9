"""
Shared fixtures for listing form tests.
"""

from __future__ import annotations

import pytest

from listing_engine.forms import (
    FieldSchema,
    FieldType,
    FormTemplate,
    OptionResolver,
    SectionSchema,
    SellerType,
    SourceType,
    ValidationRules,
)
from listing_engine.reference import StaticReferenceProvider


@pytest.fixture
def resolver():
    """Resolver over the in-process reference tables."""
    return OptionResolver(StaticReferenceProvider())


@pytest.fixture
def location_template():
    """State/city pair plus a bounded bedrooms field, across two stages."""
    return FormTemplate(
        name="Location Form",
        seller_type=SellerType.INDIVIDUAL,
        sections=(
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
                    FieldSchema("bedrooms", "Bedrooms", FieldType.NUMERIC,
                                validation=ValidationRules(min=1, max=10)),
                    FieldSchema("pin_code", "PIN Code", FieldType.TEXT,
                                validation=ValidationRules(regex=r"[1-9][0-9]{5}")),
                    FieldSchema("amenities", "Amenities", FieldType.CHECKBOX,
                                static_options=("Lift", "CCTV", "Gymnasium")),
                ),
            ),
        ),
    )


@pytest.fixture
def valid_values():
    """A complete, valid value map for the default listing template."""
    return {
        "transaction_type": "Sale",
        "category": "Apartments",
        "subcategory": "2 BHK",
        "property_title": "Sea-facing 2 BHK in Bandra",
        "description": "Well-lit apartment close to the promenade.",
        "state": "Maharashtra",
        "city": "Mumbai",
        "locality": "Bandra West",
        "pin_code": 400050,
        "price": 25000000,
        "area": 850,
        "area_unit": "Sq.ft",
        "amenities": ["Lift", "Security"],
        "property_images": [
            {"filename": "front.jpg", "content_type": "image/jpeg", "size_bytes": 204800},
        ],
    }
