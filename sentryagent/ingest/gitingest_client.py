#!/usr/bin/env python3
"""
Fetch repository contents through a gitingest-compatible ingestion service.

This module handles:
- Posting a repository URL to the ingestion service
- Following the digest URL when the content is not returned inline
- Splitting the delimiter-formatted digest text into file records

Digest text layout (v1):
    ================================================
    FILE: contracts/Vault.sol
    ================================================
    <content>

Example CLI usage:
    python -m sentryagent.ingest.gitingest_client https://github.com/owner/repo
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from sentryagent.utils.config import DEFAULT_INCLUDE_PATTERN, DEFAULT_INGEST_URL
from sentryagent.utils.exceptions import IngestError
from sentryagent.utils.logger import get_logger
from sentryagent.workflow.schemas import FileRecord

logger = get_logger(__name__)

FILES_ANALYZED_RE = re.compile(r"Files analyzed:\s*(\d+)")


@dataclass(frozen=True)
class DigestFormat:
    """Delimiter convention of the digest text."""

    version: str = "v1"
    separator: str = "=" * 48
    header_prefix: str = "FILE: "

    @property
    def block_start(self) -> str:
        return f"{self.separator}\n{self.header_prefix}"

    @property
    def header_end(self) -> str:
        return f"\n{self.separator}\n"

    def matches(self, text: str) -> bool:
        """Whether the text contains at least one file header in this format."""
        return f"{self.separator}\n{self.header_prefix.rstrip()}" in text


DIGEST_FORMAT_V1 = DigestFormat()


@dataclass
class IngestConfig:
    """Configuration for one ingestion request."""

    # Ingestion service endpoint
    ingest_url: str = DEFAULT_INGEST_URL

    # Access token for private repositories ("" = public)
    token: str = ""

    # Maximum per-file size, in MB
    max_file_size_mb: int = 50

    # Comma-separated include glob list
    include_pattern: str = DEFAULT_INCLUDE_PATTERN

    # Timeout in seconds for each HTTP request
    timeout: int = 30

    digest_format: DigestFormat = field(default_factory=DigestFormat)


@dataclass
class IngestResult:
    """Files returned by the ingestion service plus optional metadata."""

    repo_url: str
    files: List[FileRecord] = field(default_factory=list)
    summary: Optional[str] = None
    digest_url: Optional[str] = None


def parse_digest(raw: str, digest_format: DigestFormat = DIGEST_FORMAT_V1) -> List[FileRecord]:
    """
    Split digest text into file records.

    The text before the first header is a preamble and is discarded. Each
    block's header line is the path, everything until the next header is
    the content. Separator lines inside a file's content are not escaped by
    the service, so such a file is cut short at that line.

    Args:
        raw: Digest text.
        digest_format: Delimiter convention of the text.

    Returns:
        List[FileRecord]: One record per block with a path and a terminated
            content section. An empty file yields a record with empty content.
    """
    files: List[FileRecord] = []
    blocks = raw.split(digest_format.block_start)

    for block in blocks[1:]:
        header, *rest = block.split(digest_format.header_end)
        path = header.strip()
        raw_content = digest_format.header_end.join(rest)
        if not (path and raw_content):
            logger.debug("Skipping truncated digest block: %r", path)
            continue
        # Drop the block terminator
        content = raw_content[:-1] if raw_content.endswith("\n") else raw_content
        files.append(FileRecord(path=path, content=content))

    return files


def expected_file_count(summary: Optional[str]) -> Optional[int]:
    """Read the 'Files analyzed: N' header from an ingestion summary, if present."""
    if not summary:
        return None
    match = FILES_ANALYZED_RE.search(summary)
    return int(match.group(1)) if match else None


def _raise_for_status(response: requests.Response, what: str) -> None:
    if not 200 <= response.status_code < 300:
        raise IngestError(
            f"{what} error: {response.status_code} {response.text}",
            status_code=response.status_code,
            body=response.text,
        )


def fetch_repository(repo_url: str, config: Optional[IngestConfig] = None) -> IngestResult:
    """
    Ingest a repository into a flat list of file records.

    Args:
        repo_url: Repository URL (e.g. 'https://github.com/owner/repo').
        config: Ingestion settings. Defaults to IngestConfig().

    Returns:
        IngestResult: Parsed files plus the service's summary and digest URL.

    Raises:
        IngestError: If the service or the digest URL cannot be reached or
            answers with a non-2xx status.
    """
    config = config or IngestConfig()
    payload = {
        "input_text": repo_url,
        "token": config.token,
        "max_file_size": config.max_file_size_mb,
        "pattern_type": "include",
        "pattern": config.include_pattern,
    }

    logger.info("Ingesting repository: %s", repo_url)

    try:
        response = requests.post(config.ingest_url, json=payload, timeout=config.timeout)
    except requests.RequestException as e:
        raise IngestError(f"Failed to reach ingestion service {config.ingest_url}: {e}", cause=e) from e

    _raise_for_status(response, "gitingest")

    try:
        data: Dict[str, Any] = response.json()
    except ValueError as e:
        raise IngestError(f"Ingestion service returned invalid JSON: {e}", body=response.text) from e

    summary = data.get("summary")
    digest_url = data.get("digest_url")
    content = data.get("content")
    files: List[FileRecord] = []

    if content and config.digest_format.matches(content):
        files = parse_digest(content, config.digest_format)
    elif digest_url:
        logger.debug("Following digest URL: %s", digest_url)
        try:
            digest = requests.get(digest_url, timeout=config.timeout)
        except requests.RequestException as e:
            raise IngestError(f"Failed to fetch digest {digest_url}: {e}", cause=e) from e
        _raise_for_status(digest, "digest")
        files = parse_digest(digest.text, config.digest_format)
    else:
        logger.warning("Ingestion response for %s carried no parsable content", repo_url)

    expected = expected_file_count(summary)
    if expected is not None and expected != len(files):
        logger.warning(
            "Digest block count mismatch for %s: summary reports %d files, parsed %d",
            repo_url, expected, len(files)
        )

    logger.info("[+] Ingested %d files", len(files))
    return IngestResult(repo_url=repo_url, files=files, summary=summary, digest_url=digest_url)


if __name__ == "__main__":
    import sys
    from sentryagent.utils.logger import setup_logging

    setup_logging()

    if len(sys.argv) < 2:
        print("Usage: python -m sentryagent.ingest.gitingest_client <repo-url>")
        sys.exit(1)

    result = fetch_repository(sys.argv[1])
    for record in result.files:
        print(f"{record.path} ({len(record.content)} chars)")
