"""
Validation of LLM and audit configuration.

Validation runs before a pipeline starts so that a missing API key fails
fast instead of surfacing as three swallowed agent errors.
"""

import sys
from typing import Any, Dict, List, Optional, Tuple

from sentryagent.utils.config import load_audit_settings, load_llm_config
from sentryagent.utils.logger import get_logger

logger = get_logger(__name__)

# Providers that authenticate without an API key
KEYLESS_PROVIDERS = {"ollama", "vertex_ai", "bedrock"}


def validate_llm_config_dict(config: Dict[str, Any]) -> None:
    """
    Validate an LLM configuration dictionary.

    Args:
        config: Dict with at least 'provider' and 'model'.

    Raises:
        ValueError: If a required field is missing.
    """
    if not isinstance(config, dict):
        raise ValueError("LLM configuration must be a dictionary")

    provider = config.get("provider")
    if not provider:
        raise ValueError("LLM provider is not set (LLM_PROVIDER)")

    if not config.get("model"):
        raise ValueError("LLM model is not set (LLM_MODEL)")

    if provider not in KEYLESS_PROVIDERS and not config.get("api_key"):
        raise ValueError(f"Provider '{provider}' requires an API key (LLM_API_KEY)")

    if provider == "azure" and not config.get("endpoint"):
        raise ValueError("Provider 'azure' requires an endpoint (LLM_ENDPOINT)")


def validate_all_config(env_file: Optional[str] = None) -> Tuple[bool, List[str]]:
    """
    Validate every configuration section.

    Returns:
        Tuple of (is_valid, list of error messages).
    """
    errors: List[str] = []

    try:
        validate_llm_config_dict(load_llm_config(env_file))
    except ValueError as e:
        errors.append(f"[-] LLM configuration: {e}")

    try:
        settings = load_audit_settings(env_file)
        if settings.max_contract_files <= 0:
            errors.append("[-] Audit configuration: SENTRYAGENT_MAX_CONTRACT_FILES must be positive")
        if settings.request_timeout <= 0:
            errors.append("[-] Audit configuration: SENTRYAGENT_REQUEST_TIMEOUT must be positive")
    except (ValueError, OSError) as e:
        errors.append(f"[-] Audit configuration: {e}")

    return not errors, errors


def validate_and_exit_on_error(env_file: Optional[str] = None) -> None:
    """
    Validate configuration and exit with code 1 if it is invalid.
    """
    is_valid, errors = validate_all_config(env_file)
    if is_valid:
        return
    for error in errors:
        logger.error(error)
    logger.error("Please fix the configuration errors above and try again.")
    sys.exit(1)

