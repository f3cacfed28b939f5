"""
Contact finder for LeadForge.
Extracts the best contact email and social profile links from a business
website, visiting the homepage and at most one contact/about/team page.

Resolution is best-effort: failures and timeouts downgrade to "no email"
and never raise to the caller.
"""

import re
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from typing import Callable, Iterable, List, Optional, Sequence
from urllib.parse import urlparse

from .config import ResolverConfig
from .fetcher import HttpPageFetcher, PageFetcher, normalize_url, same_domain
from .logging_setup import get_logger
from .models import ContactResult, SocialLinks

logger = get_logger("contact_finder")

# Local part starts with a letter. The TLD is all lower or all upper case and
# stops at the first non-letter or where a capitalized word begins:
# "info@acme.comCopyright" and "info@acme.com.Visit" both give "info@acme.com"
EMAIL_PATTERN = re.compile(
    r"[a-zA-Z][a-zA-Z0-9._%+-]*@[a-zA-Z0-9.-]+\.(?:[a-z]{2,}?|[A-Z]{2,}?)(?=[^a-zA-Z]|[A-Z][a-z]|$)"
)

# Phone digits, punctuation or whitespace glued to the front of an address
LEADING_JUNK = re.compile(r"^[^a-zA-Z]+")

IMAGE_DENSITY_MARKERS = ("@2x", "@3x")

ASSET_EXTENSIONS = (
    ".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".pdf", ".doc", ".docx",
)

# Domains (and substrings) that produce false positive emails
BLACKLISTED_DOMAINS = (
    # Placeholders and test domains
    "example.com",
    "domain.com",
    "yourdomain.com",
    "yoursite.com",
    "email.com",
    "test.com",
    "sample.com",
    # Site builders
    "wix.com",
    "wordpress.com",
    "squarespace.com",
    "weebly.com",
    # Infrastructure and tracking
    "sentry.io",
    "gravatar.com",
    "w3.org",
    "schema.org",
    # Generic placeholders
    "placeholder.com",
    "yourcompany.com",
    "companyname.com",
    # Catch-alls
    "javascript:",
    "mailto:",
    ".png",
    ".jpg",
    ".gif",
    ".svg",
)

# Earlier prefixes win over later ones regardless of page order
PRIORITY_PREFIXES = (
    "info@",
    "contact@",
    "sales@",
    "hello@",
    "support@",
    "admin@",
    "office@",
)

MAX_LOCAL_PART_LENGTH = 64
MAX_DOMAIN_LENGTH = 255

SECONDARY_PAGE_KEYWORDS = ("contact", "about", "team")

# Host suffix -> platform
SOCIAL_DOMAINS = (
    ("linkedin.com", "linkedin"),
    ("facebook.com", "facebook"),
    ("fb.com", "facebook"),
    ("twitter.com", "twitter"),
    ("x.com", "twitter"),
    ("instagram.com", "instagram"),
)


def social_platform(url: Optional[str]) -> Optional[str]:
    """Platform name for a social profile URL, or None."""
    if not url:
        return None
    host = (urlparse(url).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    for domain, platform in SOCIAL_DOMAINS:
        if host == domain or host.endswith(f".{domain}"):
            return platform
    return None


class SocialLinkAccumulator:
    """Collects the first link seen for each platform across pages."""

    def __init__(self):
        self._found = {}

    def scan(self, links: Iterable[str]) -> None:
        for link in links:
            platform = social_platform(link)
            if platform and platform not in self._found:
                self._found[platform] = link

    @property
    def social_links(self) -> SocialLinks:
        return SocialLinks(**self._found)


def _looks_like_asset(candidate: str) -> bool:
    lowered = candidate.lower()
    if any(marker in lowered for marker in IMAGE_DENSITY_MARKERS):
        return True
    return lowered.endswith(ASSET_EXTENSIONS)


def _clean_email(candidate: str) -> Optional[str]:
    """Strip leading junk and re-extract the bounded address."""
    stripped = LEADING_JUNK.sub("", candidate.strip())
    match = EMAIL_PATTERN.search(stripped)
    return match.group(0) if match else None


def extract_email_candidates(text: str) -> List[str]:
    """Cleaned email candidates from page text, in document order."""
    if not text:
        return []

    candidates = []
    for match in EMAIL_PATTERN.finditer(text):
        raw = match.group(0)
        if _looks_like_asset(raw):
            continue
        cleaned = _clean_email(raw)
        if cleaned:
            candidates.append(cleaned)
    return candidates


def is_valid_email(email: str, blacklist: Sequence[str] = BLACKLISTED_DOMAINS) -> bool:
    """Check structure and reject blacklisted domains."""
    parts = email.split("@")
    if len(parts) != 2:
        return False

    local_part, domain = parts
    if not local_part or len(local_part) > MAX_LOCAL_PART_LENGTH:
        return False
    if not domain or len(domain) > MAX_DOMAIN_LENGTH:
        return False

    domain_lower = domain.lower()
    return not any(entry in domain_lower for entry in blacklist)


def select_best_email(candidates: Sequence[str]) -> Optional[str]:
    """Prefer role addresses (info@, contact@, ...) in prefix order."""
    if not candidates:
        return None
    lowered = [candidate.lower() for candidate in candidates]
    for prefix in PRIORITY_PREFIXES:
        for candidate, candidate_lower in zip(candidates, lowered):
            if candidate_lower.startswith(prefix):
                return candidate
    return candidates[0]


def find_best_email(text: str, blacklist: Sequence[str] = BLACKLISTED_DOMAINS) -> Optional[str]:
    """Best contact email in a block of page text, or None."""
    valid = [
        candidate for candidate in extract_email_candidates(text)
        if is_valid_email(candidate, blacklist)
    ]
    return select_best_email(valid)


def find_secondary_page(links: Iterable[str], base_url: str, visited: Sequence[str]) -> Optional[str]:
    """
    First same-domain contact/about/team link not yet visited.

    Keywords are matched against the link's path, query and fragment only,
    so a host like teamworks.com doesn't make every link qualify.
    """
    for href in links:
        if href.startswith("#") or href.lower().startswith("mailto:"):
            continue
        parsed = urlparse(href)
        target = f"{parsed.path}?{parsed.query}#{parsed.fragment}".lower()
        if not any(keyword in target for keyword in SECONDARY_PAGE_KEYWORDS):
            continue
        if href in visited or not same_domain(href, base_url):
            continue
        return href
    return None


class _Budget:
    """Wall-clock allowance for one resolution."""

    def __init__(self, seconds: float, clock: Callable[[], float]):
        self._clock = clock
        self._deadline = clock() + seconds

    def remaining(self) -> float:
        return self._deadline - self._clock()

    def expired(self) -> bool:
        return self.remaining() <= 0


class ContactResolver:
    """
    Resolve a website to its best contact email and social links.

    Visits the homepage and, only if it has no usable email, one same-domain
    contact/about/team page. Every call gets its own budget, visited list and
    social accumulator; nothing is cached between calls.
    """

    def __init__(
        self,
        fetcher: PageFetcher = None,
        config: ResolverConfig = None,
        blacklist: Sequence[str] = BLACKLISTED_DOMAINS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or ResolverConfig()
        self.fetcher = fetcher or HttpPageFetcher(self.config)
        self.blacklist = tuple(blacklist)
        self.clock = clock

    def resolve(self, website_url: Optional[str]) -> ContactResult:
        """Never raises; failures return whatever was found so far."""
        if not website_url:
            return ContactResult.empty()

        base_url = normalize_url(website_url)
        budget = _Budget(self.config.timeout_seconds, self.clock)
        social = SocialLinkAccumulator()
        visited: List[str] = []
        next_url: Optional[str] = base_url

        try:
            while next_url and len(visited) < self.config.max_pages:
                if budget.expired():
                    logger.debug(f"Budget exhausted before fetching {next_url}")
                    break

                visited.append(next_url)
                timeout = max(0.0, min(self.config.request_timeout_seconds, budget.remaining()))
                try:
                    page = self.fetcher.fetch(next_url, timeout=timeout)
                except Exception as e:
                    logger.debug(f"Fetch failed for {next_url}: {e}")
                    break

                if budget.expired():
                    logger.debug(f"Discarding {next_url}: fetched after budget ran out")
                    break

                social.scan(page.links)

                email = find_best_email(page.text, self.blacklist)
                if email:
                    logger.debug(f"Found email {email} on {next_url}")
                    return ContactResult(email=email, social_links=social.social_links)

                next_url = None
                if len(visited) == 1:
                    next_url = find_secondary_page(page.links, base_url, visited)

        except Exception as e:
            logger.warning(f"Contact resolution error for {website_url}: {e}")

        logger.debug(f"No contact email found for {website_url}")
        return ContactResult(email=None, social_links=social.social_links)


def resolve_with_timeout(
    resolver: ContactResolver,
    website_url: Optional[str],
    timeout: float = None,
) -> ContactResult:
    """
    Race a resolution against a timer.

    If the timer wins the resolution is abandoned: the worker may keep running
    until its current fetch returns, but its result is discarded.
    """
    if not website_url:
        return ContactResult.empty()

    timeout = resolver.config.timeout_seconds if timeout is None else timeout
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="contact-resolve")
    future = executor.submit(resolver.resolve, website_url)
    try:
        return future.result(timeout=timeout)
    except FuturesTimeout:
        future.cancel()
        logger.warning(f"Contact resolution timed out after {timeout}s for {website_url}")
        return ContactResult.empty()
    except Exception as e:
        logger.error(f"Contact resolution isolation caught error for {website_url}: {e}")
        return ContactResult.empty()
    finally:
        executor.shutdown(wait=False)
