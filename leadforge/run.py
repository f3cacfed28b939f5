"""
Command-line entry point for LeadForge.

Reads discovered businesses, enriches them with website contact data,
scores them against the ICP, and writes the results incrementally.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

from .config import Config, PERFORMANCE_PRESETS, load_config, validate_config
from .contact_finder import ContactResolver
from .export import JsonLinesSink, LeadInputError, default_output_path, load_records, write_csv
from .icp import ICPError, IdealCustomerProfile, default_icp, icp_from_target_industries, load_icp
from .logging_setup import RunContext, get_logger, setup_logging
from .pipeline import run_pipeline
from .webhook import build_run_summary, notify_with_isolation

logger = get_logger("run")


class GracefulShutdown:
    """Handle graceful shutdown on SIGTERM/SIGINT."""

    def __init__(self):
        self.shutdown_requested = False
        signal.signal(signal.SIGTERM, self._handler)
        signal.signal(signal.SIGINT, self._handler)

    def _handler(self, signum, frame):
        logger.warning(f"Shutdown requested (signal {signum})")
        self.shutdown_requested = True

    def check(self) -> bool:
        return self.shutdown_requested


def run(
    config: Config,
    records: List[dict],
    icp: IdealCustomerProfile,
    output_path: Path = None,
    resolver: Optional[ContactResolver] = None,
    shutdown: Optional[GracefulShutdown] = None,
) -> tuple[List[dict], RunContext]:
    """
    Run the full pipeline over already-loaded records.
    Returns (emitted_records, run_context).
    """
    output_path = output_path or default_output_path("jsonl", config.output.output_dir)
    run_logger = get_logger("pipeline")

    with RunContext(run_logger) as run_ctx:
        logger.info(
            f"Email extraction: {config.pipeline.extract_emails} | "
            f"Lead scoring: {config.pipeline.enable_scoring} | "
            f"Workers: {config.pipeline.concurrency}"
        )

        with JsonLinesSink(output_path) as sink:
            emitted = run_pipeline(
                records,
                config=config,
                sink=sink,
                run_ctx=run_ctx,
                icp=icp,
                resolver=resolver,
                should_stop=shutdown.check if shutdown else (lambda: False),
            )

        if config.output.write_csv:
            write_csv(emitted, output_path.with_suffix(".csv"))

    logger.info(
        f"Generated {run_ctx.stats.total_leads} leads "
        f"({run_ctx.stats.high_quality_leads} high-quality)"
    )

    summary = build_run_summary(run_ctx.summary(), emitted, output_path=str(output_path))
    notify_with_isolation(config.output, summary, config.retry)

    return emitted, run_ctx


def _resolve_icp(args: argparse.Namespace) -> IdealCustomerProfile:
    if args.icp:
        return load_icp(args.icp)
    if args.target_industries:
        return icp_from_target_industries(args.target_industries)
    return default_icp()


def _apply_args(config: Config, args: argparse.Namespace) -> None:
    config.pipeline.performance_preset = args.preset or config.pipeline.performance_preset
    if args.max_concurrency is not None:
        config.pipeline.max_concurrency = args.max_concurrency
    config.pipeline.extract_emails = not args.no_emails
    config.pipeline.enable_scoring = not args.no_scoring
    config.pipeline.validate_contacts = args.validate_contacts

    config.filters.min_rating = args.min_rating
    config.filters.min_reviews = args.min_reviews
    config.filters.has_website = args.require_website
    config.filters.claimed_listing = args.claimed_only
    config.filters.has_social_media = args.require_social

    if args.output_dir:
        config.output.output_dir = Path(args.output_dir)
    config.output.write_csv = args.csv
    if args.webhook_url:
        config.output.webhook_url = args.webhook_url
    if args.search_query:
        config.search_query = args.search_query


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="LeadForge lead enrichment and scoring",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m leadforge.run --input leads.json                   # Enrich + score with default ICP
  python -m leadforge.run --input leads.json --icp icp.json    # Custom ICP
  python -m leadforge.run --input leads.jsonl --no-emails      # Score only, no website crawl
  python -m leadforge.run --input leads.json --csv --preset fast
  python -m leadforge.run --input leads.json --target-industries software consulting
  python -m leadforge.run --validate                           # Check configuration
        """
    )

    parser.add_argument("--input", help="Discovered leads (JSON array, {\"leads\": [...]}, or JSON lines)")
    parser.add_argument("--icp", help="ICP JSON file")
    parser.add_argument(
        "--target-industries",
        nargs="+",
        help="Ranked industries; first is worth 30 points, each next 5 less",
    )
    parser.add_argument("--output-dir", help="Directory for output files")
    parser.add_argument("--csv", action="store_true", help="Also write a CSV next to the JSON-lines output")
    parser.add_argument("--search-query", help="Label stamped on each record as searchQuery")
    parser.add_argument("--preset", choices=sorted(PERFORMANCE_PRESETS), help="Concurrency preset")
    parser.add_argument("--max-concurrency", type=int, help="Override preset worker count")
    parser.add_argument("--no-emails", action="store_true", help="Skip website email extraction")
    parser.add_argument("--no-scoring", action="store_true", help="Skip lead scoring")
    parser.add_argument("--validate-contacts", action="store_true", help="Set emailValid/phoneValid")
    parser.add_argument("--webhook-url", help="POST a run summary here when done")
    parser.add_argument("--min-rating", type=float, default=0.0, help="Drop leads rated below this")
    parser.add_argument("--min-reviews", type=int, default=0, help="Drop leads with fewer reviews")
    parser.add_argument(
        "--require-website",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Drop leads without a website (default: on)",
    )
    parser.add_argument("--claimed-only", action="store_true", help="Drop unclaimed listings")
    parser.add_argument("--require-social", action="store_true", help="Drop leads without social links")
    parser.add_argument("--validate", action="store_true", help="Validate configuration and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    config = load_config()
    _apply_args(config, args)

    errors = validate_config(config)
    if args.validate:
        if errors:
            print("Configuration errors:")
            for error in errors:
                print(f"  - {error}")
            return 1
        print("Configuration valid")
        return 0

    if errors:
        for error in errors:
            logger.error(f"Configuration error: {error}")
        return 1

    if not args.input:
        logger.error("--input is required unless --validate is given")
        return 2

    try:
        records = load_records(Path(args.input))
        icp = _resolve_icp(args)
    except (LeadInputError, ICPError) as e:
        logger.error(str(e))
        return 1

    run(config, records, icp, shutdown=GracefulShutdown())
    return 0


if __name__ == "__main__":
    sys.exit(main())
