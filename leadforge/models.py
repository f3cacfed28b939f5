"""
Lead records for LeadForge.

Records arrive from the discovery step as camelCase JSON objects and leave in
the same shape, with score fields attached. Python code works with the
snake_case dataclasses below; ``Lead.from_dict`` / ``Lead.to_dict`` are the
only place the two spellings meet.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

SOCIAL_PLATFORMS = ("linkedin", "facebook", "twitter", "instagram")


@dataclass
class SocialLinks:
    """Social profile URLs. All four platforms are always present."""
    linkedin: Optional[str] = None
    facebook: Optional[str] = None
    twitter: Optional[str] = None
    instagram: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SocialLinks":
        if not isinstance(data, dict):
            return cls()
        return cls(**{
            platform: (str(data[platform]) if data.get(platform) else None)
            for platform in SOCIAL_PLATFORMS
        })

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {platform: getattr(self, platform) for platform in SOCIAL_PLATFORMS}

    def count(self) -> int:
        """Number of platforms with a link."""
        return sum(1 for platform in SOCIAL_PLATFORMS if getattr(self, platform) is not None)

    def merged_over(self, base: "SocialLinks") -> "SocialLinks":
        """Prefer links from self, fall back to base per platform."""
        return SocialLinks(**{
            platform: getattr(self, platform) or getattr(base, platform)
            for platform in SOCIAL_PLATFORMS
        })


@dataclass
class Review:
    """A single customer review."""
    rating: Optional[float] = None
    text: Optional[str] = None
    author: Optional[str] = None
    date: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Review":
        return cls(
            rating=data.get("rating"),
            text=data.get("text"),
            author=data.get("author"),
            date=data.get("date"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"rating": self.rating, "text": self.text, "author": self.author, "date": self.date}


@dataclass
class ScoreResult:
    """Result of lead scoring."""
    score: int
    grade: str
    breakdown: Dict[str, int]


@dataclass
class ContactResult:
    """Best contact email plus social links found on a website."""
    email: Optional[str] = None
    social_links: SocialLinks = field(default_factory=SocialLinks)

    @classmethod
    def empty(cls) -> "ContactResult":
        return cls()


@dataclass
class Lead:
    """Represents one discovered business."""
    business_name: str
    email: Optional[str] = None
    email_valid: Optional[bool] = None
    phone: Optional[str] = None
    phone_valid: Optional[bool] = None
    website: Optional[str] = None
    address: Optional[str] = None
    category: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    claimed: bool = False
    social_links: SocialLinks = field(default_factory=SocialLinks)
    reviews: List[Review] = field(default_factory=list)

    # Discovery extras
    google_maps_url: Optional[str] = None
    description: Optional[str] = None
    hours: Optional[str] = None
    employee_count: Optional[int] = None

    # Pipeline metadata
    scraped_at: Optional[str] = None
    search_query: Optional[str] = None
    enrichment_error: Optional[str] = None

    # Score fields
    lead_score: Optional[int] = None
    lead_grade: Optional[str] = None
    score_breakdown: Optional[Dict[str, int]] = None

    # Keys we don't model, passed through untouched
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Lead":
        """Build a Lead from a camelCase record."""
        known = {}
        extra = {}
        for key, value in data.items():
            attr = _CAMEL_TO_ATTR.get(key)
            if attr is None:
                extra[key] = value
            else:
                known[attr] = value

        known["business_name"] = known.get("business_name") or ""
        known["claimed"] = bool(known.get("claimed"))
        known["social_links"] = SocialLinks.from_dict(known.get("social_links"))
        known["reviews"] = [
            Review.from_dict(review) for review in (known.get("reviews") or [])
            if isinstance(review, dict)
        ]
        return cls(extra=extra, **known)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to the camelCase record shape."""
        record: Dict[str, Any] = dict(self.extra)
        for attr, key in _ATTR_TO_CAMEL.items():
            value = getattr(self, attr)
            if attr == "social_links":
                value = value.to_dict()
            elif attr == "reviews":
                if not value:
                    continue
                value = [review.to_dict() for review in value]
            elif value is None and attr in _OMIT_WHEN_NONE:
                continue
            record[key] = value
        return record

    def apply_score(self, result: ScoreResult) -> None:
        self.lead_score = result.score
        self.lead_grade = result.grade
        self.score_breakdown = dict(result.breakdown)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


_ATTR_TO_CAMEL = {
    f.name: _camel(f.name) for f in fields(Lead) if f.name != "extra"
}
_CAMEL_TO_ATTR = {camel: attr for attr, camel in _ATTR_TO_CAMEL.items()}

# Optional metadata that is left out of output records until it has a value
_OMIT_WHEN_NONE = {
    "google_maps_url",
    "description",
    "hours",
    "employee_count",
    "search_query",
    "enrichment_error",
    "lead_score",
    "lead_grade",
    "score_breakdown",
}
