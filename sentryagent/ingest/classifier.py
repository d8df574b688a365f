"""
Classify ingested files by extension.

Pure function of the file paths: no filesystem access, no content inspection.
"""

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from sentryagent.workflow.schemas import FileRecord, LanguageBucket

CONTRACT_EXTENSION = ".sol"
CONTRACT_LANGUAGE = "Solidity"
OTHER_LANGUAGE = "Other"

# Checked in order; first matching suffix wins
LANGUAGE_BY_EXTENSION: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    ((CONTRACT_EXTENSION,), CONTRACT_LANGUAGE),
    ((".ts", ".tsx"), "TypeScript"),
    ((".js", ".jsx"), "JavaScript"),
    ((".md",), "Markdown"),
)


@dataclass(frozen=True)
class Classification:
    languages: List[LanguageBucket]
    contract_files: List[FileRecord]


def detect_language(path: str) -> str:
    """Map a file path to a language name ('Other' when no extension matches)."""
    for extensions, language in LANGUAGE_BY_EXTENSION:
        if path.endswith(extensions):
            return language
    return OTHER_LANGUAGE


def is_contract_file(path: str) -> bool:
    return path.endswith(CONTRACT_EXTENSION)


def classify_files(files: Sequence[FileRecord]) -> Classification:
    """
    Count files per language and isolate contract sources in a single pass.

    Buckets keep the order in which each language was first seen.
    """
    counts: Dict[str, int] = {}
    contract_files: List[FileRecord] = []

    for record in files:
        language = detect_language(record.path)
        counts[language] = counts.get(language, 0) + 1
        if is_contract_file(record.path):
            contract_files.append(record)

    languages = [LanguageBucket(name=name, file_count=count) for name, count in counts.items()]
    return Classification(languages=languages, contract_files=contract_files)
