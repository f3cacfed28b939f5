"""
Tests for run summary webhook delivery.
"""

from unittest.mock import Mock, patch

import pytest
import requests

from leadforge.config import OutputConfig
from leadforge.webhook import (
    WebhookError,
    build_run_summary,
    notify_with_isolation,
    send_webhook,
)


def _ok_response(status=200):
    response = Mock()
    response.status_code = status
    response.raise_for_status = Mock()
    return response


class TestBuildRunSummary:

    def test_counts_high_quality(self):
        records = [
            {"businessName": "A", "leadGrade": "A+"},
            {"businessName": "B", "leadGrade": "A"},
            {"businessName": "C", "leadGrade": "C"},
            {"businessName": "D"},
        ]
        summary = build_run_summary({"total_leads": 4}, records, output_path="/tmp/leads.jsonl")

        assert summary["status"] == "completed"
        assert summary["totalLeads"] == 4
        assert summary["highQualityLeads"] == 2
        assert summary["stats"] == {"total_leads": 4}
        assert summary["outputPath"] == "/tmp/leads.jsonl"
        assert summary["timestamp"]

    def test_accepts_generator(self):
        summary = build_run_summary({}, (r for r in [{"leadGrade": "A"}]))
        assert summary["totalLeads"] == 1


class TestSendWebhook:

    def test_posts_json(self, retry_config):
        with patch("leadforge.webhook.requests.post", return_value=_ok_response(202)) as post:
            status = send_webhook("https://hooks.test/run", {"a": 1}, timeout=5, retry_config=retry_config)

        assert status == 202
        post.assert_called_once_with("https://hooks.test/run", json={"a": 1}, timeout=5)

    def test_uses_given_session(self, retry_config):
        session = Mock()
        session.post.return_value = _ok_response()
        send_webhook("https://hooks.test/run", {}, retry_config=retry_config, session=session)
        session.post.assert_called_once()

    def test_http_error_raises_webhook_error(self, retry_config):
        response = _ok_response(500)
        response.raise_for_status.side_effect = requests.HTTPError("500 Server Error")
        with patch("leadforge.webhook.requests.post", return_value=response):
            with pytest.raises(WebhookError, match="500 Server Error"):
                send_webhook("https://hooks.test/run", {}, retry_config=retry_config)

    def test_retries_before_giving_up(self, retry_config):
        retry_config.max_retries = 2
        with patch("leadforge.webhook.requests.post", side_effect=requests.ConnectionError("down")) as post:
            with pytest.raises(WebhookError):
                send_webhook("https://hooks.test/run", {}, retry_config=retry_config)
        assert post.call_count == 3


class TestNotifyWithIsolation:

    def test_not_configured(self, retry_config):
        assert notify_with_isolation(OutputConfig(webhook_url=""), {}, retry_config) == (False, None)

    def test_sent(self, retry_config):
        with patch("leadforge.webhook.requests.post", return_value=_ok_response()):
            sent, error = notify_with_isolation(
                OutputConfig(webhook_url="https://hooks.test/run"), {}, retry_config
            )
        assert sent is True
        assert error is None

    def test_failure_never_raises(self, retry_config):
        with patch("leadforge.webhook.requests.post", side_effect=requests.Timeout("slow")):
            sent, error = notify_with_isolation(
                OutputConfig(webhook_url="https://hooks.test/run"), {}, retry_config
            )
        assert sent is False
        assert "slow" in error
