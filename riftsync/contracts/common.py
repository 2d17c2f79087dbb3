"""
Common data types and base models for riftsync.
All models use Pydantic V2.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Region(str, Enum):
    """Riot API regional routing values."""

    AMERICAS = "americas"
    EUROPE = "europe"
    ASIA = "asia"
    SEA = "sea"


class Platform(str, Enum):
    """Riot API Platforms (game servers)."""

    BR1 = "br1"  # Brazil
    EUN1 = "eun1"  # Europe Nordic & East
    EUW1 = "euw1"  # Europe West
    JP1 = "jp1"  # Japan
    KR = "kr"  # Korea
    LA1 = "la1"  # Latin America North
    LA2 = "la2"  # Latin America South
    ME1 = "me1"  # Middle East
    NA1 = "na1"  # North America
    OC1 = "oc1"  # Oceania
    PH2 = "ph2"  # Philippines
    RU = "ru"  # Russia
    SG2 = "sg2"  # Singapore
    TH2 = "th2"  # Thailand
    TR1 = "tr1"  # Turkey
    TW2 = "tw2"  # Taiwan
    VN2 = "vn2"  # Vietnam


_PLATFORM_REGIONS: dict[Platform, Region] = {
    Platform.NA1: Region.AMERICAS,
    Platform.BR1: Region.AMERICAS,
    Platform.LA1: Region.AMERICAS,
    Platform.LA2: Region.AMERICAS,
    Platform.EUW1: Region.EUROPE,
    Platform.EUN1: Region.EUROPE,
    Platform.TR1: Region.EUROPE,
    Platform.RU: Region.EUROPE,
    Platform.ME1: Region.EUROPE,
    Platform.KR: Region.ASIA,
    Platform.JP1: Region.ASIA,
    Platform.OC1: Region.SEA,
    Platform.PH2: Region.SEA,
    Platform.SG2: Region.SEA,
    Platform.TH2: Region.SEA,
    Platform.TW2: Region.SEA,
    Platform.VN2: Region.SEA,
}


def regional_routing(platform: str) -> Region:
    """Map a platform id (``na1``, ``euw1``...) to its Match-V5 regional host.

    Raises:
        ValueError: the platform id is not a known Riot platform
    """
    return _PLATFORM_REGIONS[Platform(platform.strip().lower())]


class Role(str, Enum):
    """Normalized lane/role vocabulary for projected matches."""

    TOP = "TOP"
    JUNGLE = "JUNGLE"
    MID = "MID"
    ADC = "ADC"
    SUPPORT = "SUPPORT"
    UNKNOWN = "UNKNOWN"


class BaseContract(BaseModel):
    """Base model for all data contracts with common configuration."""

    model_config = ConfigDict(
        # Validate data on assignment
        validate_assignment=True,
        # Use enum values in JSON
        use_enum_values=True,
        # Accept both python names and camelCase aliases
        populate_by_name=True,
        # Cached documents may carry fields from newer writers
        extra="ignore",
    )
