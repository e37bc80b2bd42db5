"""
Normalization of raw Trefle plant payloads into catalog fields.

Trefle returns the same data in different shapes depending on the endpoint
(list page vs. detail vs. search) and on how complete the species record is:

Distributions
  BY_ESTABLISHMENT  {"distributions": {"native": [...], "introduced": [...]}}
                    entries are ints, numeric strings, {"tdwg_code": ...} / {"code": ...}
                    objects, or a dict keyed by code
  ZONE_LIST         {"distribution_zones": [{"tdwg_code": 12, "establishment": "native"}, ...]}
                    missing/unknown establishment counts as native

Hardiness zones
  explicit          main_species.growth.hardiness_zones / specifications.hardiness_zones
                    / hardiness_zones → {"min": "5a", "max": "8b"}
  temperature       main_species.growth.minimum_temperature.deg_f → min zone only

Growth
  main_species.growth (or growth) → light, atmospheric_humidity, soil_ph_minimum/maximum,
                    minimum_height/maximum_height {"cm": ...}

The shape is detected first; field access only happens inside the branch for
that shape. Records with neither a common nor a scientific name are rejected.
"""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

# (minimum °F, zone), coldest-hardy last
TEMPERATURE_ZONE_LADDER: tuple[tuple[float, str], ...] = (
    (40, "10a"),
    (30, "9a"),
    (20, "8a"),
    (10, "7a"),
    (0, "6a"),
    (-10, "5a"),
    (-20, "4a"),
    (-30, "3a"),
    (-40, "2a"),
)
COLDEST_ZONE = "1a"

_ZONE_RE = re.compile(r"^\s*(\d{1,2})\s*([ab])?\s*$", re.IGNORECASE)


class ValidationRejected(Exception):
    """Raised for a raw record that has no usable name and must not be persisted."""


class DistributionShape(str, Enum):
    BY_ESTABLISHMENT = "by_establishment"
    ZONE_LIST = "zone_list"
    BOTH = "both"
    NONE = "none"


@dataclass
class Distributions:
    native: list[int] = field(default_factory=list)
    introduced: list[int] = field(default_factory=list)
    raw: Any = None


@dataclass
class NormalizedRecord:
    provider_id: int
    name: str
    slug: Optional[str] = None
    scientific_name: Optional[str] = None
    common_names: list[str] = field(default_factory=list)
    family: Optional[str] = None
    genus: Optional[str] = None
    min_zone: Optional[str] = None
    max_zone: Optional[str] = None
    native_distributions: list[int] = field(default_factory=list)
    introduced_distributions: list[int] = field(default_factory=list)
    distribution_raw: Any = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    is_edible: Optional[bool] = None
    plant_type: Optional[str] = None
    sun_requirement: list[str] = field(default_factory=list)
    water_needs: Optional[str] = None
    soil_ph_min: Optional[float] = None
    soil_ph_max: Optional[float] = None
    mature_height_min: Optional[float] = None  # cm
    mature_height_max: Optional[float] = None  # cm


# ── Zone codes ────────────────────────────────────────────────────────────────

def zone_sort_key(zone: Optional[str]) -> Optional[tuple[int, int]]:
    """"7b" → (7, 1). A bare band ("7") sorts as its "a" half. None if unparseable."""
    if not zone:
        return None
    match = _ZONE_RE.match(str(zone))
    if not match:
        return None
    band, sub = match.groups()
    return int(band), 1 if sub and sub.lower() == "b" else 0


def zone_rank(zone: Optional[str]) -> Optional[int]:
    """Integer form of zone_sort_key for SQL range filters: "1a" → 2, "7b" → 15."""
    key = zone_sort_key(zone)
    if key is None:
        return None
    band, sub = key
    return band * 2 + sub


def temperature_to_zone(deg_f: float) -> str:
    for min_temp, zone in TEMPERATURE_ZONE_LADDER:
        if deg_f >= min_temp:
            return zone
    return COLDEST_ZONE


def _clean_zone(value: Any) -> Optional[str]:
    if value is None:
        return None
    zone = str(value).strip().lower()
    return zone or None


def _dig(data: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def extract_zones(raw: dict) -> tuple[Optional[str], Optional[str]]:
    """Return (min_zone, max_zone). Missing zone data is (None, None), not an error."""
    for path in (
        ("main_species", "growth", "hardiness_zones"),
        ("specifications", "hardiness_zones"),
        ("hardiness_zones",),
    ):
        zones = _dig(raw, *path)
        if isinstance(zones, dict):
            return _clean_zone(zones.get("min")), _clean_zone(zones.get("max"))

    for path in (
        ("main_species", "growth", "minimum_temperature", "deg_f"),
        ("growth", "minimum_temperature", "deg_f"),
        ("minimum_temperature", "deg_f"),
    ):
        deg_f = _dig(raw, *path)
        if deg_f is None or isinstance(deg_f, bool):
            continue
        try:
            return temperature_to_zone(float(deg_f)), None
        except (TypeError, ValueError):
            continue

    return None, None


# ── Distributions ─────────────────────────────────────────────────────────────

def detect_distribution_shape(raw: dict) -> DistributionShape:
    by_establishment = isinstance(raw.get("distributions"), dict)
    zone_list = isinstance(raw.get("distribution_zones"), list)
    if by_establishment and zone_list:
        return DistributionShape.BOTH
    if by_establishment:
        return DistributionShape.BY_ESTABLISHMENT
    if zone_list:
        return DistributionShape.ZONE_LIST
    return DistributionShape.NONE


def _parse_code(value: Any) -> Optional[int]:
    if isinstance(value, dict):
        value = next(
            (value[key] for key in ("tdwg_code", "code", "id") if value.get(key) is not None),
            None,
        )
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _codes(entries: Any) -> list[int]:
    if isinstance(entries, dict):
        entries = list(entries.keys())
    if not isinstance(entries, list):
        return []
    codes = []
    for entry in entries:
        code = _parse_code(entry)
        if code is not None:
            codes.append(code)
    return codes


def extract_distributions(raw: dict) -> Distributions:
    """Native/introduced TDWG codes as sorted, de-duplicated lists plus the verbatim payload."""
    shape = detect_distribution_shape(raw)
    native: set[int] = set()
    introduced: set[int] = set()
    payload = None

    if shape in (DistributionShape.BY_ESTABLISHMENT, DistributionShape.BOTH):
        payload = raw["distributions"]
        native.update(_codes(payload.get("native")))
        introduced.update(_codes(payload.get("introduced")))

    if shape in (DistributionShape.ZONE_LIST, DistributionShape.BOTH):
        payload = raw["distribution_zones"]
        for zone in payload:
            code = _parse_code(zone)
            if code is None:
                continue
            establishment = zone.get("establishment") if isinstance(zone, dict) else None
            if establishment == "introduced":
                introduced.add(code)
            else:
                native.add(code)

    return Distributions(native=sorted(native), introduced=sorted(introduced), raw=payload)


# ── Names and display fields ──────────────────────────────────────────────────

def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _name(value: Any) -> Optional[str]:
    # Detail payloads nest family/genus as objects
    if isinstance(value, dict):
        value = value.get("common_name") or value.get("name")
    return _text(value)


def _common_names(raw: dict) -> list[str]:
    names: list[str] = []
    for key in ("common_names", "synonyms"):
        values = raw.get(key)
        if isinstance(values, dict):
            # Trefle detail groups common names by language: {"en": [...], "fr": [...]}
            values = [name for group in values.values() if isinstance(group, list) for name in group]
        if not isinstance(values, list):
            continue
        for value in values:
            name = _text(value.get("name") if isinstance(value, dict) else value)
            if name and name not in names:
                names.append(name)
    return names


def _description(raw: dict) -> Optional[str]:
    return _text(
        _dig(raw, "main_species", "growth", "description")
        or _dig(raw, "main_species", "specifications", "description")
        or raw.get("description")
    )


def _is_edible(raw: dict) -> Optional[bool]:
    edible = raw.get("edible")
    if edible is None:
        edible = _dig(raw, "main_species", "edible")
    if isinstance(edible, bool):
        return edible
    edible_part = raw.get("edible_part")
    if edible_part is None:
        edible_part = _dig(raw, "main_species", "edible_part")
    if isinstance(edible_part, list):
        return len(edible_part) > 0
    return None


# ── Growth attributes ─────────────────────────────────────────────────────────

def _number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _height_cm(growth: dict, key: str) -> Optional[float]:
    # Detail payloads nest {"cm": 30}; some list payloads flatten to minimum_height_cm
    nested = growth.get(key)
    if isinstance(nested, dict):
        return _number(nested.get("cm"))
    return _number(growth.get(f"{key}_cm"))


def _growth(raw: dict) -> dict:
    growth = _dig(raw, "main_species", "growth")
    if not isinstance(growth, dict):
        growth = raw.get("growth")
    return growth if isinstance(growth, dict) else {}


def extract_growth(raw: dict) -> dict[str, Any]:
    """
    Cultivation attributes from the growth block. Trefle scores light and
    atmospheric humidity on a 0-10 scale; the scores are kept as text.
    """
    growth = _growth(raw)
    light = _text(growth.get("light"))
    return {
        "plant_type": _text(_dig(raw, "main_species", "type") or raw.get("type")),
        "sun_requirement": [light] if light else [],
        "water_needs": _text(growth.get("atmospheric_humidity")),
        "soil_ph_min": _number(growth.get("soil_ph_minimum")),
        "soil_ph_max": _number(growth.get("soil_ph_maximum")),
        "mature_height_min": _height_cm(growth, "minimum_height"),
        "mature_height_max": _height_cm(growth, "maximum_height"),
    }


def extract_record(raw: dict) -> NormalizedRecord:
    """
    Normalize one raw Trefle record.

    Raises ValidationRejected when the record has neither a common nor a
    scientific name, and ValueError when it carries no usable provider id.
    """
    common_name = _text(raw.get("common_name"))
    scientific_name = _text(raw.get("scientific_name"))
    if not common_name and not scientific_name:
        raise ValidationRejected(f"record {raw.get('id')!r} has no common or scientific name")

    provider_id = _parse_code(raw.get("id"))
    if provider_id is None:
        raise ValueError(f"record {raw.get('id')!r} has no numeric id")

    min_zone, max_zone = extract_zones(raw)
    distributions = extract_distributions(raw)

    return NormalizedRecord(
        provider_id=provider_id,
        name=common_name or scientific_name,
        slug=_text(raw.get("slug")),
        scientific_name=scientific_name,
        common_names=_common_names(raw),
        family=_text(raw.get("family_common_name")) or _name(raw.get("family")),
        genus=_name(raw.get("genus")),
        min_zone=min_zone,
        max_zone=max_zone,
        native_distributions=distributions.native,
        introduced_distributions=distributions.introduced,
        distribution_raw=distributions.raw,
        description=_description(raw),
        image_url=_text(raw.get("image_url")),
        is_edible=_is_edible(raw),
        **extract_growth(raw),
    )
