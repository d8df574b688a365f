"""
Data model of the audit workflow.

Every model accepts snake_case or camelCase keys and serializes camelCase,
which is the wire format of both HTTP surfaces. The per-stage models are the
declared input/output schemas validated at each workflow step boundary.
"""

from __future__ import annotations

import hashlib
import time
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


SEVERITY_ORDER = [Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW]


class WireModel(BaseModel):
    """Base for payloads exchanged between stages and over HTTP."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        """Serialize with camelCase keys, dropping unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def _default_scan_id() -> str:
    return str(int(time.time() * 1000))


class ScanRequest(WireModel):
    """Input of one audit run. Immutable once the run starts."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    scan_id: str = Field(default_factory=_default_scan_id)
    repo_url: str
    token: Optional[str] = None
    model: Optional[str] = None
    include_security_analysis: bool = True

    @field_validator("repo_url")
    @classmethod
    def _check_repo_url(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"repoUrl must be an http(s) URL, got {value!r}")
        return value


class FileRecord(WireModel):
    path: str
    content: str


class LanguageBucket(WireModel):
    name: str
    file_count: int = Field(ge=0)


class VulnerabilityFinding(BaseModel):
    """
    One vulnerability reported by an analysis agent.

    Agent replies are loose JSON, so input is normalized before validation:
    severity is lower-cased, `remediation` fills `recommendation` and a
    missing id is derived from the finding's location.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    type: str = "general"
    severity: Severity
    title: str
    description: str = ""
    file: str
    line: Optional[int] = None
    snippet: Optional[str] = None
    problem: str = ""
    recommendation: str = ""
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        severity = data.get("severity")
        if isinstance(severity, str):
            data["severity"] = severity.strip().lower()
        if not data.get("recommendation") and data.get("remediation"):
            data["recommendation"] = data["remediation"]
        data.pop("remediation", None)
        if not data.get("id"):
            id_source = f"{data.get('file', '')}:{data.get('title', '')}:{data.get('line', '')}"
            data["id"] = hashlib.md5(id_source.encode(), usedforsecurity=False).hexdigest()[:16]
        elif not isinstance(data["id"], str):
            data["id"] = str(data["id"])
        return data

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class SeverityCounts(WireModel):
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0

    def total(self) -> int:
        return self.critical + self.high + self.medium + self.low


class ReportCounts(WireModel):
    files_scanned: int
    solidity_files: int
    vulnerabilities: int
    by_severity: SeverityCounts


class AuditReport(WireModel):
    """Terminal artifact of one audit run."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    scan_id: str
    repo_url: str
    summary: str
    counts: ReportCounts
    languages: List[LanguageBucket]
    issues: List[VulnerabilityFinding]
    recommendations: List[str] = Field(min_length=1)

    @model_validator(mode="after")
    def _check_counts(self) -> "AuditReport":
        if self.counts.vulnerabilities != len(self.issues):
            raise ValueError("counts.vulnerabilities does not match the number of issues")
        if self.counts.by_severity.total() != len(self.issues):
            raise ValueError("counts.bySeverity does not add up to the number of issues")
        solidity = next((b.file_count for b in self.languages if b.name == "Solidity"), 0)
        if self.counts.solidity_files != solidity:
            raise ValueError("counts.solidityFiles does not match the Solidity language bucket")
        return self


# ---------------------------------------------------------------------------
# Stage boundary schemas
# ---------------------------------------------------------------------------

class FetchOutput(WireModel):
    scan_id: str
    repo_url: str
    include_security_analysis: bool = True
    model: Optional[str] = None
    files: List[FileRecord]
    summary: Optional[str] = None
    digest_url: Optional[str] = None


class ClassifyOutput(WireModel):
    scan_id: str
    repo_url: str
    include_security_analysis: bool = True
    model: Optional[str] = None
    files: List[FileRecord]
    languages: List[LanguageBucket]
    solidity_files: List[FileRecord]


class AnalyzeOutput(WireModel):
    scan_id: str
    repo_url: str
    files: List[FileRecord]
    languages: List[LanguageBucket]
    findings: List[VulnerabilityFinding]
