"""
Page fetching for LeadForge.

The contact resolver only needs a page's visible text and its links, so
fetchers return a small ``Page`` record instead of raw HTTP responses. Tests
swap in their own ``PageFetcher``.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup
from requests.exceptions import ConnectionError, RequestException, Timeout

from .config import ResolverConfig, RetryConfig
from .logging_setup import get_logger
from .retry import call_with_retries

logger = get_logger("fetcher")

# Floor for a retried request's timeout once the budget is nearly spent
MIN_ATTEMPT_TIMEOUT = 1.0


class PageFetchError(Exception):
    """Page could not be fetched or parsed."""
    pass


@dataclass
class Page:
    """Parsed page content."""
    url: str
    text: str
    links: List[str] = field(default_factory=list)


class PageFetcher(Protocol):
    def fetch(self, url: str, timeout: float) -> Page:
        """Return the page at url, or raise PageFetchError."""
        ...


def normalize_url(url: str) -> str:
    """Ensure URL has a scheme."""
    if not url:
        return url
    if not url.startswith(("http://", "https://")):
        return f"https://{url}"
    return url


def same_domain(url: str, other: str) -> bool:
    """True when both URLs share a hostname, ignoring a leading www."""
    def host(value: str) -> str:
        netloc = (urlparse(value).hostname or "").lower()
        return netloc[4:] if netloc.startswith("www.") else netloc

    return bool(host(url)) and host(url) == host(other)


def parse_page(url: str, html: str) -> Page:
    """Extract body text and absolute anchor hrefs from HTML."""
    soup = BeautifulSoup(html, "html.parser")

    # Scripts and styles carry no visible text
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()

    body = soup.body or soup
    text = body.get_text(" ", strip=True)

    links = []
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href:
            continue
        if href.startswith("#") or href.lower().startswith(("mailto:", "tel:", "javascript:")):
            links.append(href)
        else:
            links.append(urljoin(url, href))

    return Page(url=url, text=text, links=links)


class HttpPageFetcher:
    """
    Fetches pages with requests and parses them with BeautifulSoup.

    One session is shared across worker threads; requests.Session is safe for
    concurrent GETs that don't mutate session state.
    """

    def __init__(
        self,
        config: ResolverConfig = None,
        retry_config: RetryConfig = None,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or ResolverConfig()
        self.retry_config = retry_config or RetryConfig()
        self._session = session
        self.clock = clock
        self.sleep = sleep
        self._lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        with self._lock:
            if self._session is None:
                session = requests.Session()
                session.headers.update({
                    "User-Agent": self.config.user_agent,
                    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                    "Accept-Language": "en-US,en;q=0.5",
                })
                self._session = session
            return self._session

    def fetch(self, url: str, timeout: float = None) -> Page:
        """
        Fetch and parse url within ``timeout`` seconds.

        The timeout covers every attempt and the waits between them. Retries
        only happen on connection errors and timeouts, and a retry gets
        whatever time is left.
        """
        url = normalize_url(url)
        timeout = timeout or self.config.request_timeout_seconds
        deadline = self.clock() + timeout

        def time_left() -> float:
            return deadline - self.clock()

        def do_fetch() -> requests.Response:
            attempt_timeout = max(time_left(), min(timeout, MIN_ATTEMPT_TIMEOUT))
            return self.session.get(url, timeout=attempt_timeout, allow_redirects=True)

        try:
            response = call_with_retries(
                do_fetch,
                self.retry_config,
                retry_on=(ConnectionError, Timeout),
                logger=logger,
                label=f"fetch {urlparse(url).netloc}",
                time_left=time_left,
                sleep=self.sleep,
            )
            response.raise_for_status()
        except RequestException as e:
            raise PageFetchError(f"{url}: {type(e).__name__}: {e}") from e

        try:
            return parse_page(response.url or url, response.text)
        except Exception as e:
            raise PageFetchError(f"{url}: parse failed: {e}") from e
