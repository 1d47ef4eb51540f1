"""Unit tests for environment helpers, settings and startup validation."""

from pathlib import Path

import pytest

from common.config.env import get_env_secret, is_placeholder
from common.config.sanity import (
    MissingConfigurationError,
    collect_configuration_issues,
    validate_startup_configuration,
)
from contrakt.config import AgentSettings


def _clear_keys(monkeypatch, keys: list[str]) -> None:
    for key in keys:
        monkeypatch.delenv(key, raising=False)


class TestSecrets:
    """Tests for placeholder-aware secret lookup."""

    @pytest.mark.parametrize("value", [None, "", "  ", "<REPLACE_ME>", "changeme", "<your key>"])
    def test_placeholders(self, value):
        """Unset, blank and example values are placeholders."""
        assert is_placeholder(value)

    def test_real_value_is_not_placeholder(self):
        """Ordinary secrets pass."""
        assert not is_placeholder("gsk_live_123")

    def test_first_real_secret_wins(self, monkeypatch):
        """Fallback names are consulted in order."""
        monkeypatch.setenv("EMBEDDINGS_API_KEY", "<REPLACE_ME>")
        monkeypatch.setenv("OPENAI_API_KEY", " sk-fallback ")
        assert get_env_secret("EMBEDDINGS_API_KEY", "OPENAI_API_KEY") == "sk-fallback"


class TestAgentSettings:
    """Tests for AgentSettings.from_env."""

    def test_defaults(self, monkeypatch):
        """Unset variables fall back to defaults."""
        _clear_keys(
            monkeypatch,
            [
                "LLM_TEMPERATURE",
                "LLM_CONTRACT_TEMPERATURE",
                "RETRIEVAL_K",
                "CONTRIBUTIONS_DIR",
                "AGENT_RUN_TIMEOUT_SECONDS",
            ],
        )
        settings = AgentSettings.from_env()

        assert settings.provider == "groq"
        assert settings.temperature == 0.7
        assert settings.contract_temperature == 0.4
        assert settings.retrieval_k == 4
        assert settings.contributions_dir == Path("contributions")
        assert settings.run_timeout_seconds == 60.0

    def test_invalid_number_falls_back(self, monkeypatch, caplog):
        """Unparseable numbers log a warning and use the default."""
        monkeypatch.setenv("RETRIEVAL_K", "many")
        settings = AgentSettings.from_env()

        assert settings.retrieval_k == 4
        assert "RETRIEVAL_K" in caplog.text

    def test_contract_temperature_clamped_below_classifier(self, monkeypatch):
        """Drafting temperature must stay below the classifier temperature."""
        monkeypatch.setenv("LLM_TEMPERATURE", "0.5")
        monkeypatch.setenv("LLM_CONTRACT_TEMPERATURE", "0.9")
        settings = AgentSettings.from_env()

        assert settings.temperature == 0.5
        assert settings.contract_temperature == pytest.approx(0.2)

    def test_zero_classifier_temperature_forces_zero_drafting(self, monkeypatch):
        """A deterministic classifier leaves no room above zero for drafting."""
        monkeypatch.setenv("LLM_TEMPERATURE", "0")
        monkeypatch.delenv("LLM_CONTRACT_TEMPERATURE", raising=False)
        settings = AgentSettings.from_env()

        assert settings.temperature == 0.0
        assert settings.contract_temperature == 0.0

    def test_equal_temperatures_are_clamped(self, monkeypatch):
        """Equal non-zero temperatures lower the drafting temperature."""
        monkeypatch.setenv("LLM_TEMPERATURE", "0.4")
        monkeypatch.setenv("LLM_CONTRACT_TEMPERATURE", "0.4")
        settings = AgentSettings.from_env()

        assert settings.contract_temperature == pytest.approx(0.1)

    def test_overrides(self, monkeypatch, tmp_path):
        """Explicit values are honored."""
        monkeypatch.setenv("LLM_PROVIDER", "OpenAI")
        monkeypatch.setenv("LLM_CONTRACT_MODEL", "gpt-4o")
        monkeypatch.setenv("CONTRIBUTIONS_DIR", str(tmp_path))
        settings = AgentSettings.from_env()

        assert settings.provider == "openai"
        assert settings.contract_model == "gpt-4o"
        assert settings.contributions_dir == tmp_path


class TestStartupValidation:
    """Tests for validate_startup_configuration."""

    def test_allows_complete_configuration(self):
        """Credentials from the unit environment pass validation."""
        validate_startup_configuration()

    def test_missing_provider_key(self, monkeypatch):
        """The selected provider's key is required."""
        monkeypatch.setenv("GROQ_API_KEY", "<REPLACE_ME>")

        with pytest.raises(MissingConfigurationError) as exc_info:
            validate_startup_configuration()

        assert "GROQ_API_KEY" in str(exc_info.value)

    def test_unsupported_provider(self, monkeypatch):
        """Unknown providers are reported."""
        monkeypatch.setenv("LLM_PROVIDER", "cohere")
        issues = collect_configuration_issues()
        assert any("LLM_PROVIDER" in issue for issue in issues)

    def test_retrieval_credentials_required(self, monkeypatch):
        """Retrieval needs a database password and an embedding key."""
        _clear_keys(monkeypatch, ["VECTOR_DB_PASSWORD", "EMBEDDINGS_API_KEY", "OPENAI_API_KEY"])

        issues = collect_configuration_issues()

        assert any("VECTOR_DB_PASSWORD" in issue for issue in issues)
        assert any("EMBEDDINGS_API_KEY" in issue for issue in issues)
        assert collect_configuration_issues(require_retrieval=False) == []

    def test_rejects_non_positive_retrieval_k(self, monkeypatch):
        """Numeric settings are range checked."""
        monkeypatch.setenv("RETRIEVAL_K", "0")

        with pytest.raises(RuntimeError) as exc_info:
            validate_startup_configuration()

        assert "RETRIEVAL_K must be >= 1" in str(exc_info.value)
