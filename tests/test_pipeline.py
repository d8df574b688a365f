import json
from unittest import mock

import pytest
from rich.console import Console

from sentryagent import pipeline
from sentryagent.audit.report import build_report
from sentryagent.report_display import render_report
from sentryagent.utils.config import AuditSettings
from sentryagent.utils.exceptions import WorkflowClientError
from sentryagent.workflow.audit_workflow import build_audit_workflow
from sentryagent.workflow.schemas import LanguageBucket, VulnerabilityFinding
from tests.fakes import FakeFetcher, FakeGenerator, finding, reply_with

REPO = "https://github.com/acme/vault"


@pytest.fixture
def patched_pipeline(monkeypatch, sample_files):
    """Run the CLI pipeline against fakes instead of gitingest and an LLM."""
    generator = FakeGenerator({"reentrancyAgent": reply_with(finding())})
    fetcher = FakeFetcher(sample_files)

    monkeypatch.setattr(pipeline, "validate_and_exit_on_error", lambda: None)
    monkeypatch.setattr(pipeline, "load_audit_settings", lambda: AuditSettings())
    monkeypatch.setattr(pipeline, "build_generator", lambda settings: generator)
    monkeypatch.setattr(
        pipeline,
        "build_audit_workflow",
        lambda gen, settings: build_audit_workflow(gen, settings, fetcher=fetcher),
    )
    return generator, fetcher


class TestAnalyzePipeline:

    def test_json_output(self, patched_pipeline, capsys):
        code = pipeline.analyze_pipeline(REPO, scan_id="cli-1", as_json=True)

        assert code == 0
        out = capsys.readouterr().out
        report, _ = json.JSONDecoder().raw_decode(out[out.index("{"):])
        assert report["scanId"] == "cli-1"
        assert report["counts"]["vulnerabilities"] == 1

    def test_failed_run_exit_code(self, patched_pipeline):
        _, fetcher = patched_pipeline
        fetcher.error = RuntimeError("ingest down")
        assert pipeline.analyze_pipeline(REPO) == 1

    def test_main_analyze_flags(self, patched_pipeline, monkeypatch):
        generator, _ = patched_pipeline
        monkeypatch.setattr("sys.argv", ["sentryagent", REPO, "--no-security", "--json"])

        with pytest.raises(SystemExit) as exc_info:
            pipeline.main_analyze()

        assert exc_info.value.code == 0
        assert generator.calls == []


class TestMainClient:

    def test_failure_exits_1(self, monkeypatch):
        monkeypatch.setattr("sys.argv", ["sentryagent-client", "--repo", REPO])
        with mock.patch.object(pipeline.WorkflowClient, "run_audit", side_effect=WorkflowClientError("refused")):
            with pytest.raises(SystemExit) as exc_info:
                pipeline.main_client()
        assert exc_info.value.code == 1


class TestRenderReport:

    def test_renders_sections(self, sample_files):
        issue = VulnerabilityFinding.model_validate(finding())
        report = build_report(
            "1", REPO, sample_files,
            [LanguageBucket(name="Solidity", file_count=2), LanguageBucket(name="Markdown", file_count=1)],
            [issue],
        ).to_wire()
        console = Console(record=True, width=160)

        render_report(report, console=console)
        text = console.export_text()

        assert REPO in text
        assert "Reentrancy in withdraw" in text
        assert "contracts/Vault.sol:12" in text
        assert "Solidity (2)" in text
        assert "Recommendations" in text

    def test_no_issues(self, sample_files):
        report = build_report("1", REPO, sample_files, [], []).to_wire()
        console = Console(record=True, width=120)
        render_report(report, console=console)
        assert "No vulnerabilities found." in console.export_text()

    def test_issue_details_include_problem_and_code(self, sample_files):
        issue = VulnerabilityFinding.model_validate(finding())
        report = build_report("1", REPO, sample_files, [], [issue]).to_wire()
        console = Console(record=True, width=160)

        render_report(report, console=console)
        text = console.export_text()

        assert "Problem: Balance is zeroed after the call" in text
        assert 'Code: msg.sender.call{value: amount}("")' in text
        assert "Fix: Apply checks-effects-interactions" in text
