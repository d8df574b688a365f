import pytest

from sentryagent.utils import config_validator
from sentryagent.utils.config import (
    DEFAULT_RECOMMENDATIONS,
    get_model_name,
    load_audit_settings,
    load_llm_config,
    load_recommendations,
)
from sentryagent.utils.config_validator import validate_all_config, validate_llm_config_dict

ENV_VARS = [
    "LLM_PROVIDER", "LLM_MODEL", "AI_MODEL_ID", "LLM_API_KEY", "LLM_ENDPOINT", "LLM_API_VERSION",
    "SENTRYAGENT_INGEST_URL", "SENTRYAGENT_MAX_FILE_SIZE_MB", "SENTRYAGENT_INCLUDE_PATTERN",
    "SENTRYAGENT_REQUEST_TIMEOUT", "SENTRYAGENT_MAX_CONTRACT_FILES", "SENTRYAGENT_LLM_TIMEOUT",
    "SENTRYAGENT_LLM_TEMPERATURE", "SENTRYAGENT_RECOMMENDATIONS_FILE",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        # Registered first so values loaded from .env files are removed on teardown
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    # Keep a developer's .env out of the tests
    env_file = tmp_path / ".env"
    env_file.write_text("")
    return str(env_file)


class TestModelName:

    def test_prefixes_provider(self):
        assert get_model_name("cerebras", "qwen-3-coder-480b") == "cerebras/qwen-3-coder-480b"

    def test_keeps_existing_prefix(self):
        assert get_model_name("cerebras", "groq/llama3") == "groq/llama3"

    def test_openai_is_unprefixed(self):
        assert get_model_name("openai", "gpt-4o") == "gpt-4o"


class TestLoadLLMConfig:

    def test_defaults(self, clean_env):
        config = load_llm_config(clean_env)
        assert config["provider"] == "cerebras"
        assert config["model"] == "cerebras/qwen-3-coder-480b"
        assert config["api_key"] == ""

    def test_ai_model_id_fallback(self, clean_env, monkeypatch):
        monkeypatch.setenv("AI_MODEL_ID", "llama-4")
        assert load_llm_config(clean_env)["model"] == "cerebras/llama-4"

    def test_llm_model_wins(self, clean_env, monkeypatch):
        monkeypatch.setenv("AI_MODEL_ID", "llama-4")
        monkeypatch.setenv("LLM_MODEL", "qwen")
        monkeypatch.setenv("LLM_PROVIDER", "Groq")
        assert load_llm_config(clean_env)["model"] == "groq/qwen"

    def test_env_file_is_read(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("LLM_PROVIDER=openai\nLLM_MODEL=gpt-4o\nLLM_API_KEY=sk-test\n")

        config = load_llm_config(str(env_file))

        assert config["model"] == "gpt-4o"
        assert config["api_key"] == "sk-test"


class TestAuditSettings:

    def test_defaults(self, clean_env):
        settings = load_audit_settings(clean_env)
        assert settings.max_contract_files == 20
        assert settings.request_timeout == 30
        assert settings.recommendations == DEFAULT_RECOMMENDATIONS

    def test_overrides(self, clean_env, monkeypatch):
        monkeypatch.setenv("SENTRYAGENT_MAX_CONTRACT_FILES", "5")
        monkeypatch.setenv("SENTRYAGENT_LLM_TEMPERATURE", "0.7")
        monkeypatch.setenv("SENTRYAGENT_INGEST_URL", "http://localhost:8000/api/ingest")
        settings = load_audit_settings(clean_env)
        assert settings.max_contract_files == 5
        assert settings.llm_temperature == 0.7
        assert settings.ingest_url == "http://localhost:8000/api/ingest"

    def test_bad_integer(self, clean_env, monkeypatch):
        monkeypatch.setenv("SENTRYAGENT_REQUEST_TIMEOUT", "soon")
        with pytest.raises(ValueError, match="SENTRYAGENT_REQUEST_TIMEOUT"):
            load_audit_settings(clean_env)

    def test_recommendations_file(self, tmp_path):
        path = tmp_path / "recs.txt"
        path.write_text("Use a timelock.\n\nAdd pausability.\n")
        assert load_recommendations(str(path)) == ("Use a timelock.", "Add pausability.")

    def test_empty_recommendations_file(self, tmp_path):
        path = tmp_path / "recs.txt"
        path.write_text("\n")
        with pytest.raises(ValueError):
            load_recommendations(str(path))


class TestValidator:

    def test_missing_api_key(self):
        with pytest.raises(ValueError, match="API key"):
            validate_llm_config_dict({"provider": "cerebras", "model": "cerebras/x"})

    def test_keyless_provider(self):
        validate_llm_config_dict({"provider": "ollama", "model": "ollama/llama3"})

    def test_azure_requires_endpoint(self):
        with pytest.raises(ValueError, match="endpoint"):
            validate_llm_config_dict({"provider": "azure", "model": "azure/gpt", "api_key": "k"})

    def test_validate_all(self, clean_env, monkeypatch):
        is_valid, errors = validate_all_config(clean_env)
        assert not is_valid
        assert any("LLM configuration" in error for error in errors)

        monkeypatch.setenv("LLM_API_KEY", "csk-test")
        assert validate_all_config(clean_env) == (True, [])

    def test_non_positive_contract_cap(self, clean_env, monkeypatch):
        monkeypatch.setenv("LLM_API_KEY", "csk-test")
        monkeypatch.setenv("SENTRYAGENT_MAX_CONTRACT_FILES", "0")
        is_valid, errors = validate_all_config(clean_env)
        assert not is_valid
        assert "SENTRYAGENT_MAX_CONTRACT_FILES" in errors[0]

    def test_exit_on_error(self, clean_env):
        with pytest.raises(SystemExit) as exc_info:
            config_validator.validate_and_exit_on_error(clean_env)
        assert exc_info.value.code == 1
