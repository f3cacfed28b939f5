"""
Tests for the run entry point and CLI.
"""

import json

import pytest

from leadforge import run as run_module
from leadforge.config import ResolverConfig
from leadforge.export import read_jsonl
from leadforge.icp import default_icp
from leadforge.models import ContactResult, SocialLinks
from leadforge.run import build_parser, main, run


class FixedResolver:
    """Resolver that always returns the same result."""

    def __init__(self, result=None):
        self.config = ResolverConfig(timeout_seconds=5.0)
        self.result = result or ContactResult.empty()

    def resolve(self, website_url):
        return self.result


class NoSignals:
    """Stands in for GracefulShutdown so tests don't replace signal handlers."""

    def check(self) -> bool:
        return False


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Point config dirs at tmp_path and keep env overrides out."""
    for name in (
        "LEADFORGE_WEBHOOK_URL",
        "LEADFORGE_MAX_CONCURRENCY",
        "LEADFORGE_PERFORMANCE_PRESET",
        "LEADFORGE_RESOLVER_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("leadforge.config.LOG_DIR", tmp_path / "logs")
    monkeypatch.setattr("leadforge.config.OUTPUT_DIR", tmp_path / "output")
    monkeypatch.setattr(run_module, "setup_logging", lambda *args, **kwargs: None)
    monkeypatch.setattr(run_module, "GracefulShutdown", NoSignals)
    return tmp_path


class TestRun:

    def test_writes_jsonl_and_csv(self, discovered_record, mock_config, tmp_path):
        mock_config.output.write_csv = True
        resolver = FixedResolver(ContactResult(
            email="info@acmesoftware.io",
            social_links=SocialLinks(linkedin="https://linkedin.com/company/acme"),
        ))
        output_path = tmp_path / "leads.jsonl"

        emitted, run_ctx = run(
            mock_config, [discovered_record], default_icp(),
            output_path=output_path, resolver=resolver,
        )

        assert len(emitted) == 1
        assert read_jsonl(output_path) == emitted
        assert (tmp_path / "leads.csv").exists()
        assert run_ctx.stats.total_leads == 1
        assert run_ctx.stats.high_quality_leads == 1
        assert run_ctx.summary()["duration_seconds"] is not None

    def test_webhook_receives_summary(self, discovered_record, mock_config, tmp_path, monkeypatch):
        mock_config.output.webhook_url = "https://hooks.test/run"
        sent = []
        monkeypatch.setattr(
            run_module, "notify_with_isolation",
            lambda config, payload, retry_config: sent.append(payload) or (True, None),
        )

        run(mock_config, [discovered_record], default_icp(),
            output_path=tmp_path / "leads.jsonl", resolver=FixedResolver())

        assert sent[0]["totalLeads"] == 1
        assert sent[0]["outputPath"] == str(tmp_path / "leads.jsonl")
        assert sent[0]["stats"]["total_leads"] == 1
        assert "duration_seconds" in sent[0]["stats"]


class TestParser:

    def test_defaults(self):
        args = build_parser().parse_args(["--input", "leads.json"])
        assert args.require_website is True
        assert args.no_emails is False
        assert args.min_rating == 0.0

    def test_no_require_website(self):
        args = build_parser().parse_args(["--no-require-website"])
        assert args.require_website is False

    def test_verbose_flag(self):
        assert build_parser().parse_args(["-v"]).verbose is True
        assert build_parser().parse_args([]).verbose is False

    def test_target_industries(self):
        args = build_parser().parse_args(["--target-industries", "software", "consulting"])
        assert args.target_industries == ["software", "consulting"]


class TestMain:

    def test_validate_ok(self, cli_env, capsys):
        assert main(["--validate"]) == 0
        assert "Configuration valid" in capsys.readouterr().out

    def test_validate_reports_errors(self, cli_env, capsys):
        assert main(["--validate", "--min-rating", "7"]) == 1
        assert "min_rating must be between 0 and 5" in capsys.readouterr().out

    def test_input_required(self, cli_env):
        assert main([]) == 2

    def test_missing_input_file(self, cli_env):
        assert main(["--input", str(cli_env / "missing.json")]) == 1

    def test_bad_icp_file(self, cli_env):
        leads = cli_env / "leads.json"
        leads.write_text("[]")
        icp = cli_env / "icp.json"
        icp.write_text("{oops")
        assert main(["--input", str(leads), "--icp", str(icp)]) == 1

    def test_end_to_end_without_crawling(self, cli_env, discovered_record):
        leads = cli_env / "leads.json"
        leads.write_text(json.dumps({"leads": [discovered_record]}))
        icp = cli_env / "icp.json"
        icp.write_text(json.dumps({"industries": ["Software"], "locations": ["Austin"]}))
        out_dir = cli_env / "results"

        code = main([
            "--input", str(leads),
            "--icp", str(icp),
            "--output-dir", str(out_dir),
            "--no-emails",
            "--validate-contacts",
            "--csv",
            "--search-query", "software in Austin",
        ])

        assert code == 0
        jsonl_files = list(out_dir.glob("leads_*.jsonl"))
        assert len(jsonl_files) == 1
        assert len(list(out_dir.glob("leads_*.csv"))) == 1

        record = read_jsonl(jsonl_files[0])[0]
        assert record["email"] is None
        assert record["searchQuery"] == "software in Austin"
        assert record["scoreBreakdown"]["firmographic"] == 40
        assert record["leadGrade"] == "A"
