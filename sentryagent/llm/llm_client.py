#!/usr/bin/env python3
"""
Text generation through LiteLLM.

`LLMClient` owns the provider configuration and exposes a single coroutine,
`generate()`, used by every analysis agent. Provider errors are mapped onto
the SentryAgent exception hierarchy so callers only handle `LLMApiError`.
"""

import os
from typing import Any, Dict, List, Optional

import litellm

from sentryagent.utils.config import get_model_name, load_llm_config
from sentryagent.utils.config_validator import validate_llm_config_dict
from sentryagent.utils.exceptions import LLMApiError, LLMConfigError
from sentryagent.utils.logger import get_logger

logger = get_logger(__name__)

# Providers that only need an API key exported for LiteLLM
API_KEY_ENV_VARS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "cerebras": "CEREBRAS_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "gemini": "GOOGLE_API_KEY",
}


class LLMClient:
    """
    Thin async wrapper around `litellm.acompletion`.

    Args:
        timeout: Per-call timeout in seconds.
        temperature: Sampling temperature.
    """

    def __init__(self, timeout: int = 120, temperature: float = 0.1) -> None:
        self.config: Optional[Dict[str, Any]] = None
        self.model: Optional[str] = None
        self.timeout = timeout
        self.temperature = temperature

    def init_llm_client(self, config: Optional[Dict[str, Any]] = None) -> "LLMClient":
        """
        Initialize the LLM configuration for LiteLLM.

        Args:
            config: Configuration dictionary. If not provided, loads from the .env file.

        Returns:
            The client itself, for chaining.

        Raises:
            LLMConfigError: If configuration is invalid or cannot be loaded.
        """
        try:
            if config:
                validate_llm_config_dict(config)
                provider = config.get("provider", "cerebras")
                self.model = get_model_name(provider, config.get("model", ""))
            else:
                config = load_llm_config()
                validate_llm_config_dict(config)
                # Already formatted by load_llm_config()
                self.model = config["model"]
        except ValueError as e:
            raise LLMConfigError(f"Invalid LLM configuration: {e}") from e
        except OSError as e:
            raise LLMConfigError(f"Failed to load LLM configuration: {e}") from e

        self.config = config
        logger.info("Using model: %s", self.model)
        self.setup_litellm_env()
        return self

    def setup_litellm_env(self) -> None:
        """
        Export provider credentials as the environment variables LiteLLM reads.
        """
        if not self.config:
            return

        provider = self.config.get("provider", "cerebras")
        api_key = self.config.get("api_key")

        if provider in API_KEY_ENV_VARS:
            if api_key:
                os.environ[API_KEY_ENV_VARS[provider]] = api_key

        elif provider == "azure":
            if api_key:
                os.environ["AZURE_API_KEY"] = api_key
            if self.config.get("endpoint"):
                os.environ["AZURE_API_BASE"] = self.config["endpoint"]
            if self.config.get("api_version"):
                os.environ["AZURE_API_VERSION"] = self.config["api_version"]

        elif provider == "ollama":
            if self.config.get("endpoint"):
                os.environ["OLLAMA_BASE_URL"] = self.config["endpoint"]

        # Standard LiteLLM convention for anything else: {PROVIDER}_API_KEY
        elif api_key:
            os.environ[f"{provider.upper()}_API_KEY"] = api_key

    async def generate(self, prompt: str, system: Optional[str] = None, model: Optional[str] = None) -> str:
        """
        Run one completion and return the reply text.

        Args:
            prompt: User prompt.
            system: Optional system instructions.
            model: Optional model override for this call (provider-prefixed
                or resolved against the configured provider).

        Returns:
            str: Reply text ("" when the model returned no content).

        Raises:
            RuntimeError: If the client was not initialized.
            LLMApiError: If the LLM API call fails.
        """
        if not self.model:
            raise RuntimeError("LLM model not initialized. Call init_llm_client() first.")

        if model and self.config:
            model_name = get_model_name(self.config.get("provider", "cerebras"), model)
        else:
            model_name = model or self.model

        messages: List[Dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await litellm.acompletion(
                model=model_name,
                messages=messages,
                temperature=self.temperature,
                timeout=self.timeout,
            )
        except litellm.RateLimitError as e:
            raise LLMApiError(f"Rate limit exceeded for LLM API: {e}", model=model_name, cause=e) from e
        except litellm.Timeout as e:
            raise LLMApiError(f"LLM API request timed out: {e}", model=model_name, cause=e) from e
        except litellm.AuthenticationError as e:
            raise LLMApiError(f"LLM API authentication failed: {e}", model=model_name, cause=e) from e
        except litellm.APIError as e:
            raise LLMApiError(f"LLM API error: {e}", model=model_name, cause=e) from e
        except Exception as e:
            # Catch any other unexpected errors from LiteLLM
            raise LLMApiError(f"Unexpected error during LLM API call: {e}", model=model_name, cause=e) from e

        if not response.choices:
            raise LLMApiError(f"LLM API response is empty: {response}", model=model_name)

        return response.choices[0].message.content or ""
