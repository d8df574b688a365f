import asyncio

import pytest

from sentryagent.utils.config import AuditSettings
from sentryagent.utils.exceptions import IngestError, WorkflowNotFoundError
from sentryagent.workflow.audit_workflow import (
    WORKFLOW_ID,
    WORKFLOW_KEY,
    WorkflowRegistry,
    build_audit_workflow,
)
from sentryagent.workflow.engine import RunStatus
from sentryagent.workflow.schemas import FileRecord
from tests.fakes import FakeFetcher, FakeGenerator, finding, reply_with

REPO = "https://github.com/acme/vault"


def run(workflow, **input_data):
    return asyncio.run(workflow.execute({"repoUrl": REPO, **input_data}))


class TestAuditWorkflow:

    def test_end_to_end_report(self, sample_files):
        generator = FakeGenerator({"reentrancyAgent": reply_with(finding())})
        fetcher = FakeFetcher(sample_files)
        workflow = build_audit_workflow(generator, fetcher=fetcher)

        result = run(workflow, scanId="scan-1")

        assert result.status == RunStatus.COMPLETED
        report = result.result.to_wire()
        assert report["scanId"] == "scan-1"
        assert report["repoUrl"] == REPO
        assert report["counts"] == {
            "filesScanned": 3,
            "solidityFiles": 2,
            "vulnerabilities": 1,
            "bySeverity": {"critical": 1, "high": 0, "medium": 0, "low": 0},
        }
        assert report["languages"] == [{"name": "Solidity", "fileCount": 2}, {"name": "Markdown", "fileCount": 1}]
        assert report["issues"][0]["title"] == "Reentrancy in withdraw"
        assert report["recommendations"]

    def test_step_order(self, sample_files):
        workflow = build_audit_workflow(FakeGenerator(), fetcher=FakeFetcher(sample_files))
        assert [step.id for step in workflow.steps] == ["fetch-code", "analyze-structure", "analyze-vulns", "build-report"]
        assert workflow.id == WORKFLOW_ID

    def test_token_and_settings_reach_fetcher(self, sample_files):
        fetcher = FakeFetcher(sample_files)
        settings = AuditSettings(ingest_url="http://ingest.local/api", max_file_size_mb=5)
        workflow = build_audit_workflow(FakeGenerator(), settings=settings, fetcher=fetcher)

        run(workflow, token="secret")

        repo_url, config = fetcher.calls[0]
        assert repo_url == REPO
        assert config.token == "secret"
        assert config.ingest_url == "http://ingest.local/api"
        assert config.max_file_size_mb == 5

    def test_security_analysis_disabled_skips_agents(self, sample_files):
        generator = FakeGenerator({"reentrancyAgent": reply_with(finding())})
        workflow = build_audit_workflow(generator, fetcher=FakeFetcher(sample_files))

        result = run(workflow, includeSecurityAnalysis=False)

        assert result.status == RunStatus.COMPLETED
        assert result.result.counts.vulnerabilities == 0
        assert generator.calls == []

    def test_no_contract_files(self):
        generator = FakeGenerator()
        files = [FileRecord(path="README.md", content="# docs")]
        result = run(build_audit_workflow(generator, fetcher=FakeFetcher(files)))

        assert result.status == RunStatus.COMPLETED
        assert result.result.counts.solidity_files == 0
        assert result.result.issues == []
        assert generator.calls == []

    def test_model_override_reaches_agents(self, sample_files):
        generator = FakeGenerator()
        run(build_audit_workflow(generator, fetcher=FakeFetcher(sample_files)), model="groq/llama")
        assert generator.calls
        assert all(call[2] == "groq/llama" for call in generator.calls)

    def test_custom_recommendations(self, sample_files):
        settings = AuditSettings(recommendations=("Use a timelock.",))
        result = run(build_audit_workflow(FakeGenerator(), settings=settings, fetcher=FakeFetcher(sample_files)))
        assert result.result.recommendations == ["Use a timelock."]

    def test_ingest_error_fails_run(self):
        fetcher = FakeFetcher([], error=IngestError("gitingest error: 500 boom", status_code=500))
        result = run(build_audit_workflow(FakeGenerator(), fetcher=fetcher))

        assert result.status == RunStatus.FAILED
        assert "gitingest error: 500" in result.error

    def test_invalid_repo_url_fails_run(self, sample_files):
        workflow = build_audit_workflow(FakeGenerator(), fetcher=FakeFetcher(sample_files))
        result = asyncio.run(workflow.execute({"repoUrl": "not-a-url"}))

        assert result.status == RunStatus.FAILED
        assert "fetch-code" in result.error

    def test_agent_failures_do_not_fail_run(self, sample_files):
        generator = FakeGenerator({
            "reentrancyAgent": RuntimeError("down"),
            "accessControlAgent": RuntimeError("down"),
            "oracleManipulationAgent": RuntimeError("down"),
            "SolidityVulnAgent": RuntimeError("down"),
        })
        result = run(build_audit_workflow(generator, fetcher=FakeFetcher(sample_files)))

        assert result.status == RunStatus.COMPLETED
        assert result.result.issues == []


class TestWorkflowRegistry:

    def test_lookup_by_key_or_id(self, sample_files):
        registry = WorkflowRegistry()
        workflow = build_audit_workflow(FakeGenerator(), fetcher=FakeFetcher(sample_files))
        registry.register(WORKFLOW_KEY, workflow)

        assert registry.get(WORKFLOW_KEY) is workflow
        assert registry.get(WORKFLOW_ID) is workflow
        assert registry.keys() == [WORKFLOW_KEY]

    def test_unknown_workflow(self):
        with pytest.raises(WorkflowNotFoundError):
            WorkflowRegistry().get("nope")
