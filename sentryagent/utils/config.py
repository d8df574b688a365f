"""
Configuration loading for SentryAgent.

LLM settings and audit settings are read from a `.env` file (if present) and
the process environment. Nothing here talks to the network.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from dotenv import load_dotenv

DEFAULT_PROVIDER = "cerebras"
DEFAULT_MODEL = "qwen-3-coder-480b"

DEFAULT_INGEST_URL = "https://gitingest.com/api/ingest"
DEFAULT_INCLUDE_PATTERN = "*.sol,*.vy,*.js,*.ts,*.json,*.toml,*.yaml,*.yml,*.md,*.txt,*.env"

# Static remediation checklist attached to every report
DEFAULT_RECOMMENDATIONS: Tuple[str, ...] = (
    "Add ReentrancyGuard and follow CEI (checks-effects-interactions).",
    "Replace tx.origin-based auth with msg.sender + Ownable/AccessControl.",
    "Restrict delegatecall/strategy setters with onlyOwner and validation.",
    "Remove selfdestruct or gate behind timelock/multisig with clear policy.",
    "Avoid timestamp randomness; use Chainlink VRF or commit-reveal.",
    "Avoid balance-based accounting susceptible to flash loans.",
)

# Providers whose model names litellm expects without a "<provider>/" prefix
UNPREFIXED_PROVIDERS = {"openai"}


def get_model_name(provider: str, model: str) -> str:
    """
    Format a model name for LiteLLM.

    Args:
        provider: Provider name (e.g. 'cerebras', 'openai', 'anthropic').
        model: Model name, with or without a provider prefix.

    Returns:
        str: '<provider>/<model>' unless the model already carries a prefix
            or the provider is addressed without one.
    """
    if "/" in model or provider in UNPREFIXED_PROVIDERS:
        return model
    return f"{provider}/{model}"


def load_llm_config(env_file: Optional[str] = None) -> Dict[str, Any]:
    """
    Load LLM configuration from a .env file and the environment.

    Args:
        env_file: Optional path to a .env file. Defaults to `.env` lookup.

    Returns:
        Dict with provider, model (LiteLLM formatted), api_key, endpoint and api_version.
    """
    load_dotenv(env_file)

    provider = os.environ.get("LLM_PROVIDER", DEFAULT_PROVIDER).strip().lower()
    model = (
        os.environ.get("LLM_MODEL")
        or os.environ.get("AI_MODEL_ID")
        or DEFAULT_MODEL
    ).strip()

    return {
        "provider": provider,
        "model": get_model_name(provider, model),
        "api_key": os.environ.get("LLM_API_KEY", ""),
        "endpoint": os.environ.get("LLM_ENDPOINT", ""),
        "api_version": os.environ.get("LLM_API_VERSION", ""),
    }


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def load_recommendations(path: Optional[str]) -> Tuple[str, ...]:
    """
    Read the recommendation checklist, one entry per non-empty line.

    Falls back to the built-in checklist when no path is given.
    """
    if not path:
        return DEFAULT_RECOMMENDATIONS
    lines = Path(path).read_text(encoding="utf-8").splitlines()
    recommendations = tuple(line.strip() for line in lines if line.strip())
    if not recommendations:
        raise ValueError(f"Recommendations file is empty: {path}")
    return recommendations


@dataclass(frozen=True)
class AuditSettings:
    """Settings shared by the audit workflow stages."""

    # Ingestion service
    ingest_url: str = DEFAULT_INGEST_URL
    max_file_size_mb: int = 50
    include_pattern: str = DEFAULT_INCLUDE_PATTERN

    # Outbound HTTP timeout in seconds
    request_timeout: int = 30

    # Number of contract files sent to the agents
    max_contract_files: int = 20

    # LLM call settings
    llm_timeout: int = 120
    llm_temperature: float = 0.1

    recommendations: Tuple[str, ...] = field(default=DEFAULT_RECOMMENDATIONS)


def load_audit_settings(env_file: Optional[str] = None) -> AuditSettings:
    """
    Build AuditSettings from SENTRYAGENT_* environment variables.

    Raises:
        ValueError: If a numeric variable cannot be parsed or the
            recommendations file is empty.
    """
    load_dotenv(env_file)
    defaults = AuditSettings()
    return AuditSettings(
        ingest_url=os.environ.get("SENTRYAGENT_INGEST_URL", defaults.ingest_url),
        max_file_size_mb=_env_int("SENTRYAGENT_MAX_FILE_SIZE_MB", defaults.max_file_size_mb),
        include_pattern=os.environ.get("SENTRYAGENT_INCLUDE_PATTERN", defaults.include_pattern),
        request_timeout=_env_int("SENTRYAGENT_REQUEST_TIMEOUT", defaults.request_timeout),
        max_contract_files=_env_int("SENTRYAGENT_MAX_CONTRACT_FILES", defaults.max_contract_files),
        llm_timeout=_env_int("SENTRYAGENT_LLM_TIMEOUT", defaults.llm_timeout),
        llm_temperature=_env_float("SENTRYAGENT_LLM_TEMPERATURE", defaults.llm_temperature),
        recommendations=load_recommendations(os.environ.get("SENTRYAGENT_RECOMMENDATIONS_FILE")),
    )
