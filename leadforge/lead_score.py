"""
Lead scoring module for LeadForge.
Rates a lead 0-100 against an Ideal Customer Profile.

Scoring philosophy:
- Data quality (35 pts): can we actually reach this business?
- Engagement (25 pts): rating, review volume, social presence
- Firmographic fit (40 pts): industry, region and size vs the ICP

Grade thresholds are generous on purpose: a B2B lead with working email,
phone and website should land in A/A+.
"""

import math
from typing import Any, Optional, Tuple

from .icp import (
    IdealCustomerProfile,
    employee_range,
    find_closest_industry,
    match_points,
    region_key,
)
from .logging_setup import get_logger
from .models import Lead, ScoreResult

logger = get_logger("lead_score")

DATA_QUALITY_MAX = 35
ENGAGEMENT_MAX = 25
FIRMOGRAPHIC_MAX = 40

# Raw totals top out at 95 when no social links exist
MAX_SCORE_WITHOUT_SOCIAL = 95

POINTS_EMAIL = 10
POINTS_EMAIL_VALID = 5
POINTS_PHONE = 7
POINTS_PHONE_VALID = 3
POINTS_WEBSITE = 5
POINTS_CLAIMED = 5

# (minimum, points) - first band the value reaches wins
RATING_BANDS: Tuple[Tuple[float, int], ...] = (
    (4.8, 10),
    (4.5, 8),
    (4.0, 5),
    (3.5, 2),
)

REVIEW_COUNT_BANDS: Tuple[Tuple[int, int], ...] = (
    (100, 10),
    (50, 8),
    (20, 5),
    (10, 3),
)

POINTS_PER_SOCIAL_LINK = 1.25
SOCIAL_POINTS_MAX = 5

GRADE_THRESHOLDS: Tuple[Tuple[int, str], ...] = (
    (85, "A+"),
    (75, "A"),
    (65, "B"),
    (55, "C"),
    (45, "D"),
)
GRADE_FLOOR = "F"

HIGH_QUALITY_GRADES = frozenset({"A+", "A"})


def _as_number(value: Any) -> Optional[float]:
    """Coerce rating/count-like values; None for anything unusable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _band_points(value: Optional[float], bands) -> int:
    if value is None:
        return 0
    for minimum, points in bands:
        if value >= minimum:
            return points
    return 0


def grade_for_score(score: int) -> str:
    """Letter grade for a 0-100 score."""
    for minimum, grade in GRADE_THRESHOLDS:
        if score >= minimum:
            return grade
    return GRADE_FLOOR


def _data_quality(lead: Lead) -> int:
    score = 0

    if lead.email:
        score += POINTS_EMAIL
        if lead.email_valid is True:
            score += POINTS_EMAIL_VALID

    if lead.phone:
        score += POINTS_PHONE
        if lead.phone_valid is True:
            score += POINTS_PHONE_VALID

    if lead.website:
        score += POINTS_WEBSITE

    if lead.claimed is True:
        score += POINTS_CLAIMED

    return score


def _engagement(lead: Lead) -> Tuple[float, bool]:
    """Returns (points, has_social_links)."""
    score: float = 0
    score += _band_points(_as_number(lead.rating), RATING_BANDS)
    score += _band_points(_as_number(lead.review_count), REVIEW_COUNT_BANDS)

    social_count = lead.social_links.count() if lead.social_links else 0
    has_social_links = social_count > 0
    if has_social_links:
        score += min(social_count * POINTS_PER_SOCIAL_LINK, SOCIAL_POINTS_MAX)

    return score, has_social_links


def _firmographic(lead: Lead, icp: IdealCustomerProfile) -> float:
    score: float = 0

    score += match_points(icp.industries, lead.category, find_closest_industry)
    score += match_points(icp.locations, lead.address, region_key)

    employees = _as_number(lead.employee_count)
    if employees is not None and icp.employee_ranges:
        score += icp.employee_ranges.get(employee_range(employees)) or 0

    # Industry + location alone can reach 60
    return min(score, FIRMOGRAPHIC_MAX)


def score_lead(lead: Lead, icp: Optional[IdealCustomerProfile] = None) -> ScoreResult:
    """
    Score a lead against an ICP.

    Pure and deterministic: the lead is not modified and missing fields just
    contribute nothing. When the lead has no social links at all the raw
    total (max 95) is rescaled to 100 so those leads aren't penalized.
    """
    icp = icp or IdealCustomerProfile()

    data_quality = _data_quality(lead)
    engagement, has_social_links = _engagement(lead)
    firmographic = _firmographic(lead, icp)

    total = data_quality + engagement + firmographic
    if has_social_links:
        normalized = total
    else:
        normalized = (total / MAX_SCORE_WITHOUT_SOCIAL) * 100

    score = _round_half_up(min(normalized, 100))

    return ScoreResult(
        score=score,
        grade=grade_for_score(score),
        breakdown={
            "dataQuality": data_quality,
            "engagement": _round_half_up(engagement),
            "firmographic": _round_half_up(firmographic),
        },
    )


def score_with_isolation(lead: Lead, icp: Optional[IdealCustomerProfile] = None) -> Optional[ScoreResult]:
    """
    Score with full error isolation.
    Never raises exceptions to caller; None means scoring was impossible.
    """
    try:
        return score_lead(lead, icp)
    except Exception as e:
        logger.error(f"Unexpected error scoring {lead.business_name!r}: {e}")
        return None


def is_high_quality(grade: Optional[str]) -> bool:
    return grade in HIGH_QUALITY_GRADES
