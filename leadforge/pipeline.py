"""
Lead enrichment pipeline for LeadForge.

For each discovered business: filter -> resolve contact email and social
links from its website -> validate contacts -> score against the ICP ->
hand the finished record to the sink. Leads are processed concurrently,
and every record is emitted as soon as it is done.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, Iterable, List, Optional

from .config import Config, RECOMMENDED_MAX_CONCURRENCY
from .contact_finder import ContactResolver, resolve_with_timeout
from .fetcher import HttpPageFetcher
from .icp import IdealCustomerProfile, default_icp
from .lead_score import is_high_quality, score_lead
from .lead_utils import apply_contact_validation, filter_reason, merge_contact, utc_timestamp
from .logging_setup import RunContext, get_logger
from .models import Lead

logger = get_logger("pipeline")

Record = Dict[str, Any]
Sink = Callable[[Record], None]


def build_resolver(config: Config) -> ContactResolver:
    fetcher = HttpPageFetcher(config.resolver, config.retry)
    return ContactResolver(fetcher=fetcher, config=config.resolver)


def enrich_lead(
    lead: Lead,
    config: Config,
    resolver: Optional[ContactResolver],
    icp: IdealCustomerProfile,
) -> Lead:
    """Resolve contacts and score a lead in place. May raise; see process_lead."""
    if config.pipeline.extract_emails and lead.website and resolver is not None:
        logger.debug(f"Extracting email and social links from {lead.website}")
        result = resolve_with_timeout(resolver, lead.website, config.resolver.timeout_seconds)
        merge_contact(lead, result)
    else:
        # Emails only ever come from the website crawl
        lead.email = None

    if config.pipeline.validate_contacts:
        apply_contact_validation(lead)

    if config.pipeline.enable_scoring:
        lead.apply_score(score_lead(lead, icp))

    return lead


def process_lead(
    record: Record,
    config: Config,
    resolver: Optional[ContactResolver],
    icp: IdealCustomerProfile,
    run_ctx: RunContext,
) -> Optional[Record]:
    """
    Process a single discovered business.
    Returns the finished record, or None if it fails the discovery filters.
    Fully isolated - never raises exceptions.
    """
    name = record.get("businessName") or "(unnamed)"
    try:
        lead = Lead.from_dict(record)

        reason = filter_reason(lead, config.filters)
        if reason:
            logger.debug(f"Skipping {name}: {reason}")
            run_ctx.increment("filtered_out")
            return None

        lead.scraped_at = utc_timestamp()
        lead.search_query = lead.search_query or config.search_query

        enrich_lead(lead, config, resolver, icp)

        if lead.email:
            run_ctx.increment("emails_found")
        if is_high_quality(lead.lead_grade):
            run_ctx.increment("high_quality_leads")
        run_ctx.increment("enriched_leads")

        return lead.to_dict()

    except Exception as e:
        logger.error(f"Failed to enrich lead {name}: {e}")
        run_ctx.increment("errors")
        # Still emit the raw lead, flagged
        return {
            **record,
            "enrichmentError": str(e),
            "scrapedAt": utc_timestamp(),
        }


def run_pipeline(
    records: Iterable[Record],
    config: Config,
    sink: Sink,
    run_ctx: RunContext,
    icp: Optional[IdealCustomerProfile] = None,
    resolver: Optional[ContactResolver] = None,
    should_stop: Callable[[], bool] = lambda: False,
) -> List[Record]:
    """
    Enrich and score records with bounded concurrency.

    Each finished record goes to ``sink`` as soon as it completes; the full
    list is also returned. Order follows completion, not input.
    """
    icp = icp or default_icp()
    if resolver is None and config.pipeline.extract_emails:
        resolver = build_resolver(config)

    workers = config.pipeline.concurrency
    if config.pipeline.extract_emails and workers > RECOMMENDED_MAX_CONCURRENCY:
        logger.warning(
            f"High concurrency ({workers}) may cause timeouts with email extraction; "
            f"{RECOMMENDED_MAX_CONCURRENCY} or fewer is recommended"
        )

    emitted: List[Record] = []
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="lead") as executor:
        futures = [
            executor.submit(process_lead, record, config, resolver, icp, run_ctx)
            for record in records
        ]
        logger.info(f"Processing {len(futures)} leads with {workers} workers")

        for future in as_completed(futures):
            if should_stop():
                logger.warning("Shutdown requested, cancelling pending leads")
                for pending in futures:
                    pending.cancel()
                break

            result = future.result()
            if result is None:
                continue

            try:
                sink(result)
            except Exception as e:
                logger.error(f"Sink failed for {result.get('businessName')}: {e}")
                run_ctx.increment("errors")
                continue

            emitted.append(result)
            run_ctx.increment("total_leads")
            logger.info(f"Saved lead #{len(emitted)}: {result.get('businessName')}")

    return emitted
