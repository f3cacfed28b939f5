"""
Ideal Customer Profile (ICP) for LeadForge.

An ICP says which industries, regions and company sizes are worth points.
Industries and locations come in two shapes:

- weighted: {"technology": 30, "healthcare": 20} - points per key
- legacy:   ["Software", "Consulting"]          - flat 30 on any match

Both are parsed once, in ``IdealCustomerProfile.from_dict``, into
``WeightedTargets`` or ``LegacyTargets``. Scoring dispatches on that type
instead of re-checking raw config shapes.
"""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional, Sequence, Tuple, Union

from .logging_setup import get_logger

logger = get_logger("icp")

# Points awarded by the legacy list format, regardless of which term matched
LEGACY_MATCH_POINTS = 30

# Keyword fallback for mapping a free-text category onto a canonical industry.
# Order matters: first industry with a matching keyword wins.
INDUSTRY_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "technology": ("software", "tech", "it ", "computer", "digital", "saas", "app"),
    "professional_services": ("consulting", "legal", "accounting", "financial", "advisory"),
    "healthcare": ("medical", "health", "clinic", "hospital", "doctor", "dental"),
    "manufacturing": ("manufacturing", "factory", "industrial", "production"),
    "retail": ("store", "shop", "retail", "boutique", "market"),
}

REGION_NORTH_AMERICA = "North America"
REGION_EUROPE = "Europe"
REGION_APAC = "APAC"
REGION_OTHER = "Other"

US_STATE_CODES = (
    "al", "ak", "az", "ar", "ca", "co", "ct", "de", "fl", "ga",
    "hi", "id", "il", "in", "ia", "ks", "ky", "la", "me", "md",
    "ma", "mi", "mn", "ms", "mo", "mt", "ne", "nv", "nh", "nj",
    "nm", "ny", "nc", "nd", "oh", "ok", "or", "pa", "ri", "sc",
    "sd", "tn", "tx", "ut", "vt", "va", "wa", "wv", "wi", "wy",
)

US_STATE_PATTERN = re.compile(r"\b(?:" + "|".join(US_STATE_CODES) + r")\b")

# Checked in order; the first region with a matching keyword wins
REGION_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (REGION_NORTH_AMERICA, ("usa", "united states", "canada")),
    (REGION_EUROPE, ("uk", "united kingdom", "europe", "germany", "france", "spain", "italy")),
    (REGION_APAC, ("asia", "china", "japan", "india", "singapore", "australia")),
)

# (inclusive upper bound, label); anything larger falls into "500+"
EMPLOYEE_BUCKETS: Tuple[Tuple[int, str], ...] = (
    (10, "1-10"),
    (50, "11-50"),
    (200, "51-200"),
    (500, "201-500"),
)
EMPLOYEE_BUCKET_MAX = "500+"

DEFAULT_INDUSTRY_WEIGHTS = {
    "technology": 30,
    "professional_services": 25,
    "healthcare": 20,
    "manufacturing": 15,
    "retail": 10,
}

DEFAULT_LOCATION_WEIGHTS = {
    REGION_NORTH_AMERICA: 30,
    REGION_EUROPE: 25,
    REGION_APAC: 20,
    REGION_OTHER: 10,
}


class ICPError(Exception):
    """ICP file could not be read or decoded."""
    pass


@dataclass(frozen=True)
class WeightedTargets:
    """Mapping format: canonical key -> points."""
    weights: Mapping[str, float]


@dataclass(frozen=True)
class LegacyTargets:
    """List format: any case-insensitive substring match earns a flat score."""
    terms: Tuple[str, ...]


Targets = Union[WeightedTargets, LegacyTargets]


def match_points(
    targets: Optional[Targets],
    text: Optional[str],
    resolve_key: Callable[[str, Mapping[str, float]], Optional[str]],
) -> float:
    """
    Points earned by ``text`` against ``targets``.

    ``resolve_key`` maps the text onto a key of a weighted mapping; it is only
    consulted for the weighted format.
    """
    if targets is None or not isinstance(text, str) or not text:
        return 0

    if isinstance(targets, LegacyTargets):
        text_lower = text.lower()
        if any(term.lower() in text_lower for term in targets.terms):
            return LEGACY_MATCH_POINTS
        return 0

    key = resolve_key(text, targets.weights)
    if key is None:
        return 0
    return targets.weights.get(key) or 0


def find_closest_industry(category: Optional[str], industries: Mapping[str, float]) -> Optional[str]:
    """Resolve a free-text category to an industry key."""
    if not isinstance(category, str) or not category:
        return None

    category_lower = category.lower()

    # Direct match on the configured keys
    for industry in industries:
        if industry.lower() in category_lower:
            return industry

    for industry, keywords in INDUSTRY_KEYWORDS.items():
        if any(keyword in category_lower for keyword in keywords):
            return industry

    return None


def determine_region(address: Optional[str]) -> str:
    """Classify an address into North America, Europe, APAC or Other."""
    if not isinstance(address, str) or not address:
        return REGION_OTHER

    address_lower = address.lower()

    for region, keywords in REGION_KEYWORDS:
        if any(keyword in address_lower for keyword in keywords):
            return region
        if region == REGION_NORTH_AMERICA and US_STATE_PATTERN.search(address_lower):
            return region

    return REGION_OTHER


def region_key(address: str, locations: Mapping[str, float]) -> Optional[str]:
    """Adapter so ``determine_region`` fits ``match_points``."""
    return determine_region(address)


def employee_range(count: int) -> str:
    """Bucket label for an employee count."""
    for upper, label in EMPLOYEE_BUCKETS:
        if count <= upper:
            return label
    return EMPLOYEE_BUCKET_MAX


def _parse_targets(value) -> Optional[Targets]:
    """Single point where list vs mapping is decided."""
    if isinstance(value, Mapping):
        weights = {}
        for key, points in value.items():
            try:
                weights[str(key)] = float(points)
            except (TypeError, ValueError):
                logger.warning(f"Ignoring non-numeric ICP weight {key!r}: {points!r}")
        return WeightedTargets(weights=weights)
    if isinstance(value, (list, tuple)):
        return LegacyTargets(terms=tuple(str(term) for term in value if term))
    return None


@dataclass(frozen=True)
class IdealCustomerProfile:
    """Scoring configuration. Absent dimensions award no points."""
    industries: Optional[Targets] = None
    locations: Optional[Targets] = None
    employee_ranges: Mapping[str, float] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Mapping]) -> "IdealCustomerProfile":
        """Build from a config object; unknown fields are ignored."""
        if not isinstance(data, Mapping):
            return cls()

        employee_ranges = _parse_targets(data.get("employeeRanges"))
        return cls(
            industries=_parse_targets(data.get("industries")),
            locations=_parse_targets(data.get("locations")),
            employee_ranges=(
                employee_ranges.weights if isinstance(employee_ranges, WeightedTargets) else {}
            ),
        )


def default_icp() -> IdealCustomerProfile:
    return IdealCustomerProfile.from_dict({
        "industries": DEFAULT_INDUSTRY_WEIGHTS,
        "locations": DEFAULT_LOCATION_WEIGHTS,
    })


def icp_from_target_industries(target_industries: Sequence[str]) -> IdealCustomerProfile:
    """
    Build an ICP from a ranked list of industries.

    The first industry is worth 30 points and each later one 5 less, e.g.
    ["software", "consulting"] -> {"software": 30, "consulting": 25}.
    Locations use the default regional weights.
    """
    industries = {
        industry: LEGACY_MATCH_POINTS - index * 5
        for index, industry in enumerate(target_industries)
    }
    if not industries:
        return default_icp()
    return IdealCustomerProfile.from_dict({
        "industries": industries,
        "locations": DEFAULT_LOCATION_WEIGHTS,
    })


def load_icp(path: Union[str, Path]) -> IdealCustomerProfile:
    """Load an ICP from a JSON file."""
    file_path = Path(path)
    if not file_path.exists():
        raise ICPError(f"ICP file '{file_path}' was not found")
    try:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ICPError(f"ICP file '{file_path}' is not valid JSON: {e}") from e

    # Accept either the bare profile or {"idealCustomerProfile": {...}}
    if isinstance(data, dict) and "idealCustomerProfile" in data:
        data = data["idealCustomerProfile"]
    if not isinstance(data, dict):
        raise ICPError(f"ICP file '{file_path}' must contain a JSON object")

    icp = IdealCustomerProfile.from_dict(data)
    logger.info(
        f"Loaded ICP from {file_path}: industries={type(icp.industries).__name__}, "
        f"locations={type(icp.locations).__name__}"
    )
    return icp
