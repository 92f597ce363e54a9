"""
Indian States and Cities - Static Location Reference Table

The state_master option source and the state -> city linked lookup both read
from this table. It covers all 28 states and 8 union territories with the
major cities of each.

The table is fixed: no network round trip is needed to read it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final, Optional


# =============================================================================
# Enums
# =============================================================================


class RegionType(Enum):
    """Whether a region is a state or a union territory."""

    STATE = "state"
    UNION_TERRITORY = "ut"


# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True)
class State:
    """A state or union territory."""

    code: str
    name: str
    type: RegionType

    def to_dict(self) -> dict:
        """Convert to dictionary for serialisation."""
        return {"code": self.code, "name": self.name, "type": self.type.value}

    @classmethod
    def from_dict(cls, data: dict) -> "State":
        """Create State from dictionary."""
        return cls(code=data["code"], name=data["name"], type=RegionType(data["type"]))


@dataclass(frozen=True)
class City:
    """A city and the code of the state it belongs to."""

    name: str
    state_code: str


# =============================================================================
# Tables
# =============================================================================

INDIAN_STATES: Final[tuple[State, ...]] = (
    # States (28)
    State("AP", "Andhra Pradesh", RegionType.STATE),
    State("AR", "Arunachal Pradesh", RegionType.STATE),
    State("AS", "Assam", RegionType.STATE),
    State("BR", "Bihar", RegionType.STATE),
    State("CG", "Chhattisgarh", RegionType.STATE),
    State("GA", "Goa", RegionType.STATE),
    State("GJ", "Gujarat", RegionType.STATE),
    State("HR", "Haryana", RegionType.STATE),
    State("HP", "Himachal Pradesh", RegionType.STATE),
    State("JH", "Jharkhand", RegionType.STATE),
    State("KA", "Karnataka", RegionType.STATE),
    State("KL", "Kerala", RegionType.STATE),
    State("MP", "Madhya Pradesh", RegionType.STATE),
    State("MH", "Maharashtra", RegionType.STATE),
    State("MN", "Manipur", RegionType.STATE),
    State("ML", "Meghalaya", RegionType.STATE),
    State("MZ", "Mizoram", RegionType.STATE),
    State("NL", "Nagaland", RegionType.STATE),
    State("OD", "Odisha", RegionType.STATE),
    State("PB", "Punjab", RegionType.STATE),
    State("RJ", "Rajasthan", RegionType.STATE),
    State("SK", "Sikkim", RegionType.STATE),
    State("TN", "Tamil Nadu", RegionType.STATE),
    State("TS", "Telangana", RegionType.STATE),
    State("TR", "Tripura", RegionType.STATE),
    State("UK", "Uttarakhand", RegionType.STATE),
    State("UP", "Uttar Pradesh", RegionType.STATE),
    State("WB", "West Bengal", RegionType.STATE),
    # Union Territories (8)
    State("AN", "Andaman and Nicobar Islands", RegionType.UNION_TERRITORY),
    State("CH", "Chandigarh", RegionType.UNION_TERRITORY),
    State("DN", "Dadra and Nagar Haveli and Daman and Diu", RegionType.UNION_TERRITORY),
    State("DL", "Delhi", RegionType.UNION_TERRITORY),
    State("JK", "Jammu and Kashmir", RegionType.UNION_TERRITORY),
    State("LA", "Ladakh", RegionType.UNION_TERRITORY),
    State("LD", "Lakshadweep", RegionType.UNION_TERRITORY),
    State("PY", "Puducherry", RegionType.UNION_TERRITORY),
)

# Major cities keyed by state code, in display order
CITIES_BY_STATE: Final[dict[str, tuple[str, ...]]] = {
    "AP": (
        "Visakhapatnam", "Vijayawada", "Guntur", "Nellore", "Kurnool", "Tirupati",
        "Rajahmundry", "Kakinada", "Kadapa", "Anantapur",
    ),
    "AR": (
        "Itanagar", "Naharlagun", "Pasighat", "Tawang",
    ),
    "AS": (
        "Guwahati", "Silchar", "Dibrugarh", "Jorhat", "Nagaon", "Tinsukia", "Tezpur",
    ),
    "BR": (
        "Patna", "Gaya", "Bhagalpur", "Muzaffarpur", "Darbhanga", "Bihar Sharif",
        "Purnia", "Arrah", "Begusarai",
    ),
    "CG": (
        "Raipur", "Bhilai", "Bilaspur", "Korba", "Durg", "Rajnandgaon", "Raigarh",
    ),
    "GA": (
        "Panaji", "Margao", "Vasco da Gama", "Mapusa", "Ponda",
    ),
    "GJ": (
        "Ahmedabad", "Surat", "Vadodara", "Rajkot", "Bhavnagar", "Jamnagar", "Junagadh",
        "Gandhinagar", "Anand", "Nadiad", "Morbi", "Mehsana", "Bharuch", "Vapi",
        "Navsari",
    ),
    "HR": (
        "Faridabad", "Gurgaon", "Panipat", "Ambala", "Yamunanagar", "Rohtak", "Hisar",
        "Karnal", "Sonipat", "Panchkula",
    ),
    "HP": (
        "Shimla", "Dharamshala", "Solan", "Mandi", "Kullu", "Manali", "Palampur",
    ),
    "JH": (
        "Ranchi", "Jamshedpur", "Dhanbad", "Bokaro", "Hazaribagh", "Deoghar", "Giridih",
    ),
    "KA": (
        "Bengaluru", "Mysuru", "Mangaluru", "Hubli", "Dharwad", "Belgaum", "Gulbarga",
        "Davangere", "Bellary", "Shimoga", "Tumkur", "Udupi",
    ),
    "KL": (
        "Thiruvananthapuram", "Kochi", "Kozhikode", "Thrissur", "Kollam", "Kannur",
        "Alappuzha", "Palakkad", "Kottayam", "Malappuram",
    ),
    "MP": (
        "Bhopal", "Indore", "Jabalpur", "Gwalior", "Ujjain", "Sagar", "Satna", "Dewas",
        "Ratlam", "Rewa", "Katni", "Singrauli",
    ),
    "MH": (
        "Mumbai", "Pune", "Nagpur", "Thane", "Nashik", "Aurangabad", "Solapur",
        "Kolhapur", "Amravati", "Navi Mumbai", "Sangli", "Akola", "Jalgaon", "Latur",
        "Dhule", "Ahmednagar", "Chandrapur", "Parbhani", "Nanded", "Panvel",
    ),
    "MN": (
        "Imphal", "Thoubal", "Bishnupur",
    ),
    "ML": (
        "Shillong", "Tura", "Jowai",
    ),
    "MZ": (
        "Aizawl", "Lunglei", "Champhai",
    ),
    "NL": (
        "Kohima", "Dimapur", "Mokokchung",
    ),
    "OD": (
        "Bhubaneswar", "Cuttack", "Rourkela", "Brahmapur", "Sambalpur", "Puri",
        "Balasore", "Bhadrak",
    ),
    "PB": (
        "Ludhiana", "Amritsar", "Jalandhar", "Patiala", "Bathinda", "Mohali",
        "Pathankot", "Hoshiarpur", "Moga",
    ),
    "RJ": (
        "Jaipur", "Jodhpur", "Kota", "Bikaner", "Ajmer", "Udaipur", "Bhilwara", "Alwar",
        "Bharatpur", "Sikar", "Sri Ganganagar", "Pali",
    ),
    "SK": (
        "Gangtok", "Namchi", "Pelling",
    ),
    "TN": (
        "Chennai", "Coimbatore", "Madurai", "Tiruchirappalli", "Salem", "Tirunelveli",
        "Tiruppur", "Vellore", "Erode", "Thoothukudi", "Dindigul", "Thanjavur",
        "Nagercoil", "Kanchipuram",
    ),
    "TS": (
        "Hyderabad", "Warangal", "Nizamabad", "Karimnagar", "Khammam", "Ramagundam",
        "Mahbubnagar", "Nalgonda", "Adilabad", "Secunderabad",
    ),
    "TR": (
        "Agartala", "Udaipur", "Dharmanagar",
    ),
    "UK": (
        "Dehradun", "Haridwar", "Roorkee", "Haldwani", "Kashipur", "Rudrapur",
        "Rishikesh", "Nainital", "Mussoorie",
    ),
    "UP": (
        "Lucknow", "Kanpur", "Ghaziabad", "Agra", "Varanasi", "Meerut", "Prayagraj",
        "Bareilly", "Aligarh", "Moradabad", "Saharanpur", "Gorakhpur", "Noida",
        "Greater Noida", "Firozabad", "Jhansi", "Mathura", "Muzaffarnagar",
        "Shahjahanpur", "Rampur", "Ayodhya",
    ),
    "WB": (
        "Kolkata", "Howrah", "Durgapur", "Asansol", "Siliguri", "Bardhaman", "Malda",
        "Kharagpur", "Haldia", "Darjeeling", "Jalpaiguri",
    ),
    "AN": ("Port Blair",),
    "CH": ("Chandigarh",),
    "DN": (
        "Silvassa", "Daman", "Diu",
    ),
    "DL": (
        "New Delhi", "Delhi", "Dwarka", "Rohini", "Saket", "Vasant Kunj",
    ),
    "JK": (
        "Srinagar", "Jammu", "Anantnag", "Baramulla", "Udhampur",
    ),
    "LA": (
        "Leh", "Kargil",
    ),
    "LD": ("Kavaratti",),
    "PY": (
        "Puducherry", "Karaikal", "Mahe", "Yanam",
    ),
}

INDIAN_CITIES: Final[tuple[City, ...]] = tuple(
    City(name=name, state_code=code)
    for code, names in CITIES_BY_STATE.items()
    for name in names
)


# =============================================================================
# Lookups
# =============================================================================


def get_state_by_code(code: str) -> Optional[State]:
    """Get state by its two-letter code."""
    normalised = code.strip().upper()
    for state in INDIAN_STATES:
        if state.code == normalised:
            return state
    return None


def get_state_by_name(name: str) -> Optional[State]:
    """Get state by display name (case-insensitive)."""
    normalised = name.strip().lower()
    for state in INDIAN_STATES:
        if state.name.lower() == normalised:
            return state
    return None


def find_state(value: str) -> Optional[State]:
    """Get state by display name, falling back to code."""
    return get_state_by_name(value) or get_state_by_code(value)


def get_cities_by_state(state_code: str) -> list[City]:
    """Get the cities of a state, in table order."""
    names = CITIES_BY_STATE.get(state_code.strip().upper(), ())
    return [City(name=name, state_code=state_code.upper()) for name in names]


def city_exists_in_state(city_name: str, state_code: str) -> bool:
    """Check if a city is listed under the given state."""
    wanted = city_name.strip().lower()
    return any(city.name.lower() == wanted for city in get_cities_by_state(state_code))
