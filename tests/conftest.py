"""
Shared pytest fixtures for LeadForge tests.
"""

import logging
from typing import Callable, Dict, List, Optional, Union

import pytest

from leadforge.config import (
    Config,
    FilterConfig,
    OutputConfig,
    PipelineConfig,
    ResolverConfig,
    RetryConfig,
)
from leadforge.fetcher import Page, PageFetchError
from leadforge.icp import IdealCustomerProfile
from leadforge.logging_setup import RunContext
from leadforge.models import Lead, SocialLinks


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFetcher:
    """
    Serves canned pages by URL.

    A value may be a Page or an Exception to raise. ``delays`` advances the
    given clock by that many seconds during the fetch of a URL, which is how
    tests simulate a slow site without sleeping.
    """

    def __init__(
        self,
        pages: Dict[str, Union[Page, Exception]],
        clock: Optional[FakeClock] = None,
        delays: Optional[Dict[str, float]] = None,
    ):
        self.pages = pages
        self.clock = clock
        self.delays = delays or {}
        self.calls: List[str] = []
        self.timeouts: List[float] = []

    def fetch(self, url: str, timeout: float = None) -> Page:
        self.calls.append(url)
        self.timeouts.append(timeout)
        if self.clock is not None and url in self.delays:
            self.clock.advance(self.delays[url])
        result = self.pages.get(url)
        if result is None:
            raise PageFetchError(f"{url}: 404")
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_fetcher() -> Callable[..., FakeFetcher]:
    return FakeFetcher


@pytest.fixture
def resolver_config() -> ResolverConfig:
    """Default 45s budget, explicit so env overrides don't leak in."""
    return ResolverConfig(timeout_seconds=45.0, request_timeout_seconds=15.0, max_pages=2)


@pytest.fixture
def retry_config() -> RetryConfig:
    """No retries, no waiting."""
    return RetryConfig(
        max_retries=0,
        base_delay_seconds=0.0,
        max_delay_seconds=0.0,
        jitter=False,
    )


@pytest.fixture
def mock_config(tmp_path, resolver_config: ResolverConfig, retry_config: RetryConfig) -> Config:
    """Full configuration for tests, writing into tmp_path."""
    return Config(
        resolver=resolver_config,
        retry=retry_config,
        pipeline=PipelineConfig(
            performance_preset="balanced",
            max_concurrency=2,
            extract_emails=True,
            validate_contacts=True,
            enable_scoring=True,
        ),
        filters=FilterConfig(),
        output=OutputConfig(output_dir=tmp_path, webhook_url=""),
        search_query="software companies in Austin, TX",
    )


@pytest.fixture
def run_ctx() -> RunContext:
    return RunContext(logging.getLogger("leadforge.tests"))


@pytest.fixture
def empty_icp() -> IdealCustomerProfile:
    return IdealCustomerProfile()


@pytest.fixture
def weighted_icp() -> IdealCustomerProfile:
    return IdealCustomerProfile.from_dict({
        "industries": {"technology": 30, "healthcare": 20, "retail": 10},
        "locations": {"North America": 30, "Europe": 25, "APAC": 20, "Other": 10},
        "employeeRanges": {"11-50": 10, "51-200": 5},
    })


@pytest.fixture
def legacy_icp() -> IdealCustomerProfile:
    return IdealCustomerProfile.from_dict({
        "industries": ["Software", "Consulting"],
        "locations": ["Austin", "Denver"],
    })


@pytest.fixture
def complete_lead() -> Lead:
    """Every data-quality field present and validated."""
    return Lead(
        business_name="Acme Software",
        email="info@acmesoftware.io",
        email_valid=True,
        phone="+1 512-555-0100",
        phone_valid=True,
        website="https://acmesoftware.io",
        address="100 Congress Ave, Austin, TX 78701",
        category="Software company",
        rating=4.9,
        review_count=150,
        claimed=True,
        social_links=SocialLinks(
            linkedin="https://linkedin.com/company/acme",
            facebook="https://facebook.com/acme",
            twitter="https://x.com/acme",
            instagram="https://instagram.com/acme",
        ),
    )


@pytest.fixture
def bare_lead() -> Lead:
    """Nothing but a name."""
    return Lead(business_name="Mystery Business")


@pytest.fixture
def discovered_record() -> dict:
    """A camelCase record as produced by the discovery step."""
    return {
        "businessName": "Acme Software",
        "googleMapsUrl": "https://www.google.com/maps/place/acme",
        "website": "https://acmesoftware.io",
        "phone": "+1 512-555-0100",
        "address": "100 Congress Ave, Austin, TX 78701",
        "category": "Software company",
        "rating": 4.9,
        "reviewCount": 120,
        "claimed": True,
        "socialLinks": {"linkedin": None, "facebook": None, "twitter": None, "instagram": None},
        "placeId": "ChIJ-acme",
    }


@pytest.fixture
def homepage_html() -> str:
    return """
    <!DOCTYPE html>
    <html>
    <head>
        <title>Acme Plumbing</title>
        <script>var dsn = "https://abc@sentry.io/123"; var x = "hidden@acme.com";</script>
    </head>
    <body>
        <nav>
            <a href="/">Home</a>
            <a href="/services">Services</a>
            <a href="/contact-us">Contact</a>
            <a href="#top">Top</a>
            <a href="mailto:info@acme.com">Email us</a>
        </nav>
        <main>
            <h1>Acme Plumbing</h1>
            <p>Call 206-2832 today.</p>
        </main>
        <footer>
            <a href="https://www.facebook.com/acmeplumbing">Facebook</a>
            <a href="https://instagram.com/acmeplumbing">Instagram</a>
        </footer>
    </body>
    </html>
    """
