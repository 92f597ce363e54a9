"""
Default Listing Templates

The stock listing form offered to every seller type until admins author
their own: Basic Info at stage 1, Property Details and Amenities at stage 2,
Media Upload at stage 3.
"""

from __future__ import annotations

from typing import Final

from listing_engine.forms.schema import (
    FieldSchema,
    FieldType,
    FileConfig,
    SectionSchema,
    SourceType,
    ValidationRules,
)
from listing_engine.forms.template import FormTemplate, SellerType


DEFAULT_TERMS_TEXT: Final = (
    "I agree to the Terms of Service and Privacy Policy. "
    "I confirm that the information provided is accurate."
)

AREA_UNITS: Final[tuple[str, ...]] = (
    "Sq.ft", "Sq.yd", "Sq.m", "Acres", "Hectares", "Cents",
    "Grounds", "Bigha", "Kanal", "Marla", "Gunta", "Biswa",
)

AMENITIES: Final[tuple[str, ...]] = (
    "Swimming Pool", "Gymnasium", "Club House", "Park", "Power Back Up",
    "Lift", "Security", "Reserved Parking", "Visitor Parking",
    "Rain Water Harvesting", "Intercom Facility", "Internet/Wi-Fi",
    "Piped Gas", "Jogging Track", "Air Conditioned", "Maintenance Staff",
    "Waste Disposal", "Water Storage", "Fire Safety", "CCTV",
    "Smart Home", "Vaastu Compliant",
)


def _basic_info() -> SectionSchema:
    return SectionSchema(
        name="Basic Info",
        stage=1,
        icon="FileText",
        fields=(
            FieldSchema("transaction_type", "Transaction Type", FieldType.RADIO, required=True,
                        static_options=("Sale", "Rent", "Lease"), icon="ArrowRightLeft"),
            FieldSchema("category", "Category", FieldType.DROPDOWN, required=True,
                        source_type=SourceType.CATEGORY_MASTER, icon="Grid3x3"),
            FieldSchema("subcategory", "Subcategory", FieldType.DROPDOWN, required=True,
                        source_type=SourceType.LINKED_TO_PARENT, linked_field_key="category",
                        icon="List"),
            FieldSchema("property_title", "Property Title", FieldType.TEXT, required=True,
                        validation=ValidationRules(char_limit=100), icon="Type"),
            FieldSchema("description", "Description", FieldType.TEXTAREA, required=True,
                        icon="FileText"),
            FieldSchema("project_society_name", "Project/Society Name", FieldType.ALPHANUMERIC,
                        icon="Building2"),
            FieldSchema("state", "State", FieldType.DROPDOWN, required=True,
                        source_type=SourceType.STATE_MASTER, icon="MapPin"),
            FieldSchema("city", "City", FieldType.DROPDOWN, required=True,
                        source_type=SourceType.LINKED_TO_PARENT, linked_field_key="state",
                        icon="MapPin"),
            FieldSchema("locality", "Locality", FieldType.TEXT, required=True, icon="MapPin"),
            FieldSchema("area_in_locality", "Area in Locality", FieldType.TEXT, icon="MapPin"),
            FieldSchema("nearby_landmark", "Nearby Landmark", FieldType.TEXT, icon="MapPin"),
            FieldSchema("pin_code", "PIN Code", FieldType.NUMERIC,
                        validation=ValidationRules(regex=r"[1-9][0-9]{5}"), icon="Hash"),
            FieldSchema("price", "Price", FieldType.NUMERIC, required=True,
                        validation=ValidationRules(min=0), icon="IndianRupee"),
            FieldSchema("area", "Area", FieldType.NUMERIC, required=True,
                        validation=ValidationRules(min=0), icon="Ruler"),
            FieldSchema("area_unit", "Area Unit", FieldType.DROPDOWN, required=True,
                        static_options=AREA_UNITS, default_value="Sq.ft", icon="Ruler"),
        ),
    )


def _property_details() -> SectionSchema:
    return SectionSchema(
        name="Property Details",
        stage=2,
        icon="Home",
        fields=(
            FieldSchema("bhk_bedrooms", "BHK/Bedrooms", FieldType.DROPDOWN, icon="Bed",
                        static_options=("1 RK", "1 BHK", "2 BHK", "3 BHK", "4 BHK", "5 BHK", "5+ BHK")),
            FieldSchema("bathrooms", "Bathrooms", FieldType.DROPDOWN, icon="Bath",
                        static_options=("1", "2", "3", "4", "5+")),
            FieldSchema("balconies", "Balconies", FieldType.DROPDOWN, icon="DoorOpen",
                        static_options=("0", "1", "2", "3", "4+")),
            FieldSchema("facing", "Facing", FieldType.DROPDOWN, icon="Compass",
                        static_options=("North", "South", "East", "West",
                                        "North-East", "North-West", "South-East", "South-West")),
            FieldSchema("floor", "Floor", FieldType.NUMERIC, icon="Building",
                        validation=ValidationRules(min=-5, max=200)),
            FieldSchema("total_floors", "Total Floors", FieldType.NUMERIC, icon="Building",
                        validation=ValidationRules(min=1, max=200)),
            FieldSchema("furnishing", "Furnishing", FieldType.DROPDOWN, icon="Armchair",
                        static_options=("Unfurnished", "Semi-Furnished", "Fully Furnished")),
            FieldSchema("flooring", "Flooring", FieldType.DROPDOWN, icon="Grid3x3",
                        static_options=("Marble", "Vitrified", "Wooden", "Granite",
                                        "Mosaic", "Cement", "Others")),
            FieldSchema("age_of_property", "Age of Property", FieldType.DROPDOWN, icon="Clock",
                        static_options=("New Construction", "Less than 1 year", "1-3 years",
                                        "3-5 years", "5-10 years", "10+ years")),
            FieldSchema("possession_status", "Possession Status", FieldType.DROPDOWN, icon="Key",
                        static_options=("Ready to Move", "Under Construction")),
        ),
    )


def _amenities() -> SectionSchema:
    return SectionSchema(
        name="Amenities",
        stage=2,
        icon="Star",
        fields=(
            FieldSchema("amenities", "Amenities", FieldType.CHECKBOX,
                        static_options=AMENITIES, icon="Star"),
        ),
    )


def _media_upload() -> SectionSchema:
    return SectionSchema(
        name="Media Upload",
        stage=3,
        icon="Camera",
        fields=(
            FieldSchema("property_images", "Property Images", FieldType.FILE_UPLOAD, required=True,
                        icon="Image",
                        file_config=FileConfig(
                            max_files=20,
                            max_size_mb=5,
                            allowed_types=("image/jpeg", "image/png", "image/webp"),
                        )),
            FieldSchema("youtube_video_url", "YouTube Video URL", FieldType.TEXT, icon="Video",
                        placeholder="https://www.youtube.com/watch?v=...",
                        validation=ValidationRules(
                            regex=r"https?://(www\.)?(youtube\.com/watch\?v=|youtu\.be/)[\w-]+.*"
                        )),
        ),
    )


def default_sections() -> tuple[SectionSchema, ...]:
    """Build a fresh copy of the default sections."""
    return (_basic_info(), _property_details(), _amenities(), _media_upload())


def build_default_template(seller_type: SellerType) -> FormTemplate:
    """Build the default draft template for a seller type."""
    return FormTemplate(
        name=f"{seller_type.value.capitalize()} Property Listing Form",
        seller_type=seller_type,
        sections=default_sections(),
        allow_save_draft=True,
        show_preview_before_submit=True,
        terms_text=DEFAULT_TERMS_TEXT,
    )
