"""
Reduce findings into the final AuditReport.

The recommendations attached to a report are a static checklist supplied
by configuration; they do not depend on which issues were found.
"""

from typing import Sequence

from sentryagent.ingest.classifier import CONTRACT_LANGUAGE
from sentryagent.utils.config import DEFAULT_RECOMMENDATIONS
from sentryagent.workflow.schemas import (
    AuditReport,
    FileRecord,
    LanguageBucket,
    ReportCounts,
    SeverityCounts,
    VulnerabilityFinding,
)

SUMMARY_TEMPLATE = (
    "Scanned {files} files ({solidity} Solidity).\n"
    "Found {total} vulnerabilities (crit:{critical}, high:{high}, med:{medium}, low:{low})."
)


def count_by_severity(findings: Sequence[VulnerabilityFinding]) -> SeverityCounts:
    tally = {"critical": 0, "high": 0, "medium": 0, "low": 0}
    for finding in findings:
        tally[finding.severity.value] += 1
    return SeverityCounts(**tally)


def contract_file_count(languages: Sequence[LanguageBucket]) -> int:
    for bucket in languages:
        if bucket.name == CONTRACT_LANGUAGE:
            return bucket.file_count
    return 0


def build_report(
    scan_id: str,
    repo_url: str,
    files: Sequence[FileRecord],
    languages: Sequence[LanguageBucket],
    findings: Sequence[VulnerabilityFinding],
    recommendations: Sequence[str] = DEFAULT_RECOMMENDATIONS,
) -> AuditReport:
    """
    Assemble the AuditReport for one run.

    Args:
        scan_id: Id of the run.
        repo_url: Audited repository.
        files: Every ingested file.
        languages: Language buckets from the classifier.
        findings: Merged agent findings.
        recommendations: Static remediation checklist (must not be empty).

    Returns:
        AuditReport: Report whose counts agree with its issues.
    """
    by_severity = count_by_severity(findings)
    solidity_files = contract_file_count(languages)

    summary = SUMMARY_TEMPLATE.format(
        files=len(files),
        solidity=solidity_files,
        total=len(findings),
        critical=by_severity.critical,
        high=by_severity.high,
        medium=by_severity.medium,
        low=by_severity.low,
    )

    return AuditReport(
        scan_id=scan_id,
        repo_url=repo_url,
        summary=summary,
        counts=ReportCounts(
            files_scanned=len(files),
            solidity_files=solidity_files,
            vulnerabilities=len(findings),
            by_severity=by_severity,
        ),
        languages=list(languages),
        issues=list(findings),
        recommendations=list(recommendations),
    )
