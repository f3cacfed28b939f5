"""
Lead utility helpers for filtering, contact validation and enrichment merges.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional

from .config import FilterConfig
from .models import ContactResult, Lead


EMAIL_FORMAT = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

MIN_PHONE_DIGITS = 7
MAX_PHONE_DIGITS = 15  # E.164


def validate_email_format(email: Optional[str]) -> bool:
    return bool(email) and EMAIL_FORMAT.match(email) is not None


def validate_phone_format(phone: Optional[str]) -> bool:
    """Loose check: a plausible count of digits, any punctuation allowed."""
    if not phone:
        return False
    digits = re.sub(r"\D", "", phone)
    return MIN_PHONE_DIGITS <= len(digits) <= MAX_PHONE_DIGITS


def apply_contact_validation(lead: Lead) -> None:
    if lead.email:
        lead.email_valid = validate_email_format(lead.email)
    if lead.phone:
        lead.phone_valid = validate_phone_format(lead.phone)


def merge_contact(lead: Lead, result: ContactResult) -> None:
    """Copy a resolver result onto a lead; website links win over listing links."""
    email = result.email.strip() if isinstance(result.email, str) else None
    lead.email = email or None
    lead.social_links = result.social_links.merged_over(lead.social_links)


def filter_reason(lead: Lead, filters: FilterConfig) -> Optional[str]:
    """
    Return why a lead fails the discovery filters, or None if it passes.

    Rating/review filters only apply when the lead has a value for them.
    """
    if filters.min_rating and lead.rating is not None and lead.rating < filters.min_rating:
        return f"rating_below_{filters.min_rating}"
    if filters.min_reviews and lead.review_count is not None and lead.review_count < filters.min_reviews:
        return f"reviews_below_{filters.min_reviews}"
    if filters.has_website and not lead.website:
        return "no_website"
    if filters.claimed_listing and not lead.claimed:
        return "unclaimed"
    if filters.has_social_media and lead.social_links.count() == 0:
        return "no_social_links"
    return None


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()
