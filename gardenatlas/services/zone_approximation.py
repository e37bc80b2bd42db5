"""
Deterministic hardiness zone approximation from coordinates.

Used by the zone resolver when every zone lookup provider has failed. This is a
coarse regional model, not a geodetic one: the US is split into longitude /
latitude boxes, each with a descending latitude ladder. Boxes overlap in places
and REGION_RULES is evaluated in order, first match wins. Points outside every
box fall through to the Eastern/Central ladder, so approximate_zone() is total.
"""
from dataclasses import dataclass
from typing import Callable

# (minimum latitude, zone) pairs, highest latitude first. A point matches the
# first step whose threshold it is >= to.
Ladder = tuple[tuple[float, str], ...]


@dataclass(frozen=True)
class RegionRule:
    name: str
    contains: Callable[[float, float], bool]
    ladder: Ladder
    fallback: str

    def zone_for(self, lat: float) -> str:
        for min_lat, zone in self.ladder:
            if lat >= min_lat:
                return zone
        return self.fallback


REGION_RULES: tuple[RegionRule, ...] = (
    # Pacific moderating effect keeps the coast warm well into the north
    RegionRule(
        name="coastal_california",
        contains=lambda lat, lng: -124 <= lng <= -114,
        ladder=(
            (41, "8b"),
            (39, "9a"),
            (37, "9b"),
            (35, "9b"),   # Bay Area, Central Valley
            (34, "10a"),  # Los Angeles basin
            (33, "10b"),  # Orange County
            (32, "10b"),  # San Diego
        ),
        fallback="11a",   # Imperial Valley
    ),
    RegionRule(
        name="pacific_northwest",
        contains=lambda lat, lng: lng < -114 and lat >= 42,
        ladder=(
            (48, "8a"),
            (45, "8b"),
            (42, "9a"),
        ),
        fallback="9a",
    ),
    RegionRule(
        name="desert_southwest",
        contains=lambda lat, lng: -115 <= lng <= -103 and 31 <= lat <= 37,
        ladder=(
            (36, "7a"),
            (34, "8a"),
            (32, "9a"),
        ),
        fallback="9b",
    ),
    # Elevation makes the Rockies colder than their latitude suggests
    RegionRule(
        name="mountain",
        contains=lambda lat, lng: -111 <= lng <= -104 and lat >= 37,
        ladder=(
            (45, "4a"),
            (43, "5a"),
            (41, "5b"),
            (39, "6a"),
        ),
        fallback="6b",
    ),
    RegionRule(
        name="deep_south",
        contains=lambda lat, lng: lat <= 35 and lng >= -106,
        ladder=(
            (32, "8b"),
            (30, "9a"),
            (28, "9b"),
            (26, "10a"),
            (24, "10b"),
        ),
        fallback="11a",
    ),
    RegionRule(
        name="southeast",
        contains=lambda lat, lng: lat <= 37 and lng >= -90,
        ladder=(
            (36, "7b"),
            (34, "8a"),
            (32, "8b"),
        ),
        fallback="9a",
    ),
)

DEFAULT_RULE = RegionRule(
    name="eastern_central",
    contains=lambda lat, lng: True,
    ladder=(
        (48, "3a"),
        (46, "4a"),
        (44, "4b"),
        (42, "5a"),
        (40, "5b"),
        (38, "6a"),
        (36, "6b"),
        (34, "7a"),
    ),
    fallback="7b",
)


def match_region(lat: float, lng: float) -> RegionRule:
    """Return the first rule whose box contains the point, or DEFAULT_RULE."""
    for rule in REGION_RULES:
        if rule.contains(lat, lng):
            return rule
    return DEFAULT_RULE


def approximate_zone(lat: float, lng: float) -> str:
    """Approximate the hardiness zone for (lat, lng). Never fails."""
    return match_region(lat, lng).zone_for(lat)
