"""
Webhook notification for LeadForge.
Posts a run summary once a pipeline run finishes.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

import requests
from requests.exceptions import RequestException

from .config import OutputConfig, RetryConfig
from .lead_score import is_high_quality
from .logging_setup import get_logger
from .retry import call_with_retries

logger = get_logger("webhook")


class WebhookError(Exception):
    """Webhook delivery failed."""
    pass


def build_run_summary(
    stats: Dict[str, Any],
    records: Iterable[Dict[str, Any]],
    output_path: Optional[str] = None,
    status: str = "completed",
) -> Dict[str, Any]:
    """Payload describing a finished run."""
    records = list(records)
    return {
        "status": status,
        "stats": stats,
        "totalLeads": len(records),
        "highQualityLeads": sum(1 for record in records if is_high_quality(record.get("leadGrade"))),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "outputPath": output_path,
    }


def send_webhook(
    url: str,
    payload: Dict[str, Any],
    timeout: int = 15,
    retry_config: RetryConfig = None,
    session: Optional[requests.Session] = None,
) -> int:
    """POST payload as JSON. Returns the HTTP status; raises WebhookError."""
    post = session.post if session is not None else requests.post

    def do_post() -> requests.Response:
        resp = post(url, json=payload, timeout=timeout)
        resp.raise_for_status()
        return resp

    try:
        response = call_with_retries(
            do_post,
            retry_config or RetryConfig(),
            retry_on=(RequestException,),
            logger=logger,
            label="webhook POST",
        )
    except RequestException as e:
        raise WebhookError(f"Webhook POST to {url} failed: {e}") from e

    return response.status_code


def notify_with_isolation(
    config: OutputConfig,
    payload: Dict[str, Any],
    retry_config: RetryConfig = None,
) -> tuple[bool, Optional[str]]:
    """
    Send the run summary if a webhook is configured.
    Returns (sent, error_message). Never raises exceptions.
    """
    if not config.webhook_url:
        return False, None

    try:
        status = send_webhook(
            config.webhook_url,
            payload,
            timeout=config.webhook_timeout_seconds,
            retry_config=retry_config,
        )
        logger.info(f"Webhook notification sent (HTTP {status})")
        return True, None
    except Exception as e:
        logger.error(f"Failed to send webhook: {e}")
        return False, str(e)
