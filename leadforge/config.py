"""
Configuration management for LeadForge.
Loads from environment variables with sensible defaults.
"""

import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import List, Optional

# Base paths
PROJECT_ROOT = Path(__file__).parent.parent.resolve()
LOG_DIR = PROJECT_ROOT / "logs"
OUTPUT_DIR = PROJECT_ROOT / "output"

# Concurrency presets (main resolution workers)
PERFORMANCE_PRESETS = {
    "balanced": 3,
    "fast": 5,
    "turbo": 8,
}

# Above this, enriched runs tend to overload the host and hit timeouts
RECOMMENDED_MAX_CONCURRENCY = 5


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class ResolverConfig:
    """Website contact resolution settings."""
    timeout_seconds: float = field(
        default_factory=lambda: _env_float("LEADFORGE_RESOLVER_TIMEOUT", 45.0)
    )
    request_timeout_seconds: float = 15.0
    max_pages: int = 2
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )


@dataclass
class RetryConfig:
    """Retry and backoff configuration."""
    max_retries: int = 2
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 10.0
    exponential_base: float = 2.0
    jitter: bool = True


@dataclass
class FilterConfig:
    """Discovery filters applied before enrichment."""
    min_rating: float = 0.0
    min_reviews: int = 0
    has_website: bool = True
    claimed_listing: bool = False
    has_social_media: bool = False


@dataclass
class PipelineConfig:
    """Enrichment and scoring switches."""
    performance_preset: str = field(
        default_factory=lambda: os.environ.get("LEADFORGE_PERFORMANCE_PRESET", "balanced")
    )
    max_concurrency: Optional[int] = field(
        default_factory=lambda: _env_int("LEADFORGE_MAX_CONCURRENCY", 0) or None
    )
    extract_emails: bool = True
    validate_contacts: bool = False
    enable_scoring: bool = True

    @property
    def concurrency(self) -> int:
        """Effective worker count: explicit value wins over the preset."""
        if self.max_concurrency:
            return self.max_concurrency
        return PERFORMANCE_PRESETS.get(self.performance_preset, PERFORMANCE_PRESETS["balanced"])


@dataclass
class OutputConfig:
    """Output sink and notification configuration."""
    output_dir: Path = field(default_factory=lambda: OUTPUT_DIR)
    write_csv: bool = False
    webhook_url: str = field(default_factory=lambda: os.environ.get("LEADFORGE_WEBHOOK_URL", ""))
    webhook_timeout_seconds: int = 15


@dataclass
class Config:
    """Main configuration container."""
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    filters: FilterConfig = field(default_factory=FilterConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    # Free-text search label stamped on each record
    search_query: str = "software companies in San Francisco, CA"


def load_config() -> Config:
    """Load configuration from environment variables."""
    config = Config()

    # Ensure directories exist
    for directory in [LOG_DIR, config.output.output_dir]:
        directory.mkdir(parents=True, exist_ok=True)

    return config


def validate_config(config: Config) -> List[str]:
    """Validate configuration and return list of errors."""
    errors = []

    if config.pipeline.performance_preset not in PERFORMANCE_PRESETS:
        errors.append(
            f"Unknown performance preset '{config.pipeline.performance_preset}' "
            f"(expected one of {sorted(PERFORMANCE_PRESETS)})"
        )
    if config.pipeline.concurrency < 1:
        errors.append("max_concurrency must be at least 1")
    if config.resolver.timeout_seconds <= 0:
        errors.append("LEADFORGE_RESOLVER_TIMEOUT must be positive")
    if config.resolver.max_pages < 1:
        errors.append("resolver max_pages must be at least 1")
    if config.filters.min_rating < 0 or config.filters.min_rating > 5:
        errors.append("min_rating must be between 0 and 5")
    if config.filters.min_reviews < 0:
        errors.append("min_reviews cannot be negative")
    if config.output.webhook_url and not config.output.webhook_url.startswith(("http://", "https://")):
        errors.append("LEADFORGE_WEBHOOK_URL must be an http(s) URL")

    return errors
