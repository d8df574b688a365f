#!/usr/bin/env python3
"""
The four-stage web3 audit workflow.

    fetch-code -> analyze-structure -> analyze-vulns -> build-report

Dependencies (ingestion fetcher, text generator, settings) are injected by
`build_audit_workflow()` so the same workflow runs in the CLI, behind the
HTTP API and in tests.
"""

import asyncio
from typing import Callable, Dict, Optional

from sentryagent.audit.aggregator import FindingAggregator
from sentryagent.audit.report import build_report
from sentryagent.ingest.classifier import classify_files
from sentryagent.ingest.gitingest_client import IngestConfig, IngestResult, fetch_repository
from sentryagent.llm.agents import TextGenerator
from sentryagent.utils.config import AuditSettings
from sentryagent.utils.exceptions import WorkflowNotFoundError
from sentryagent.utils.logger import get_logger
from sentryagent.workflow.engine import Step, Workflow
from sentryagent.workflow.schemas import (
    AnalyzeOutput,
    AuditReport,
    ClassifyOutput,
    FetchOutput,
    ScanRequest,
)

logger = get_logger(__name__)

WORKFLOW_KEY = "web3AuditWorkflow"
WORKFLOW_ID = "web3-audit-workflow"

Fetcher = Callable[[str, IngestConfig], IngestResult]


def build_audit_workflow(
    generator: TextGenerator,
    settings: Optional[AuditSettings] = None,
    fetcher: Fetcher = fetch_repository,
) -> Workflow:
    """
    Wire the audit stages to their dependencies.

    Args:
        generator: Text generator used by the analysis agents.
        settings: Audit settings. Defaults to AuditSettings().
        fetcher: Blocking ingestion function; runs in a worker thread.

    Returns:
        Workflow: The audit workflow.
    """
    settings = settings or AuditSettings()
    aggregator = FindingAggregator(generator, max_contract_files=settings.max_contract_files)

    async def fetch_code(request: ScanRequest) -> FetchOutput:
        config = IngestConfig(
            ingest_url=settings.ingest_url,
            token=request.token or "",
            max_file_size_mb=settings.max_file_size_mb,
            include_pattern=settings.include_pattern,
            timeout=settings.request_timeout,
        )
        ingested = await asyncio.to_thread(fetcher, request.repo_url, config)
        return FetchOutput(
            scan_id=request.scan_id,
            repo_url=request.repo_url,
            include_security_analysis=request.include_security_analysis,
            model=request.model,
            files=ingested.files,
            summary=ingested.summary,
            digest_url=ingested.digest_url,
        )

    async def analyze_structure(fetched: FetchOutput) -> ClassifyOutput:
        classification = classify_files(fetched.files)
        for bucket in classification.languages:
            logger.info("  %s: %d files", bucket.name, bucket.file_count)
        return ClassifyOutput(
            scan_id=fetched.scan_id,
            repo_url=fetched.repo_url,
            include_security_analysis=fetched.include_security_analysis,
            model=fetched.model,
            files=fetched.files,
            languages=classification.languages,
            solidity_files=classification.contract_files,
        )

    async def analyze_vulns(classified: ClassifyOutput) -> AnalyzeOutput:
        if classified.include_security_analysis:
            findings = await aggregator.aggregate(classified.solidity_files, model=classified.model)
        else:
            logger.info("Security analysis disabled for this scan")
            findings = []
        logger.info("[+] %d findings", len(findings))
        return AnalyzeOutput(
            scan_id=classified.scan_id,
            repo_url=classified.repo_url,
            files=classified.files,
            languages=classified.languages,
            findings=findings,
        )

    async def report(analyzed: AnalyzeOutput) -> AuditReport:
        return build_report(
            scan_id=analyzed.scan_id,
            repo_url=analyzed.repo_url,
            files=analyzed.files,
            languages=analyzed.languages,
            findings=analyzed.findings,
            recommendations=settings.recommendations,
        )

    return Workflow(
        id=WORKFLOW_ID,
        description="Web3 security audit of a repository",
        steps=[
            Step("fetch-code", "Fetch repository via gitingest", ScanRequest, FetchOutput, fetch_code),
            Step("analyze-structure", "Detect languages and contract files", FetchOutput, ClassifyOutput, analyze_structure),
            Step("analyze-vulns", "Scan Solidity for common web3 vulnerabilities", ClassifyOutput, AnalyzeOutput, analyze_vulns),
            Step("build-report", "Assemble structured report", AnalyzeOutput, AuditReport, report),
        ],
    )


class WorkflowRegistry:
    """Workflows addressable by key or by id."""

    def __init__(self) -> None:
        self._workflows: Dict[str, Workflow] = {}

    def register(self, key: str, workflow: Workflow) -> None:
        self._workflows[key] = workflow

    def get(self, workflow_id: str) -> Workflow:
        if workflow_id in self._workflows:
            return self._workflows[workflow_id]
        for workflow in self._workflows.values():
            if workflow.id == workflow_id:
                return workflow
        raise WorkflowNotFoundError(f"Workflow not found: {workflow_id}")

    def keys(self):
        return list(self._workflows)
