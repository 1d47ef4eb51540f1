"""Startup-time configuration checks for the Contrakt agent."""

from __future__ import annotations

from common.config.env import get_env_float, get_env_int, get_env_secret, get_env_str

# Credential variables per generation provider.
PROVIDER_CREDENTIALS = {
    "groq": ("GROQ_API_KEY",),
    "openai": ("OPENAI_API_KEY",),
    "anthropic": ("ANTHROPIC_API_KEY",),
}


class MissingConfigurationError(RuntimeError):
    """Raised at startup when required configuration is absent or invalid."""


def _validate_number(name: str, *, minimum: float, issues: list[str], integer: bool) -> None:
    if get_env_str(name, None) is None:
        return
    try:
        parsed = get_env_int(name, None) if integer else get_env_float(name, None)
    except ValueError as exc:
        issues.append(str(exc))
        return
    if parsed is not None and parsed < minimum:
        issues.append(f"{name} must be >= {minimum}, got {parsed}.")


def collect_configuration_issues(*, require_retrieval: bool = True) -> list[str]:
    """Return every configuration problem found in the environment."""
    issues: list[str] = []

    provider = (get_env_str("LLM_PROVIDER", "groq") or "groq").strip().lower()
    credential_names = PROVIDER_CREDENTIALS.get(provider)
    if credential_names is None:
        issues.append(
            f"LLM_PROVIDER must be one of {sorted(PROVIDER_CREDENTIALS)}, got '{provider}'."
        )
    elif get_env_secret(*credential_names) is None:
        issues.append(
            f"{credential_names[0]} is missing or set to a placeholder value "
            f"(required for LLM_PROVIDER={provider})."
        )

    if require_retrieval:
        if get_env_secret("VECTOR_DB_PASSWORD") is None:
            issues.append("VECTOR_DB_PASSWORD is missing or set to a placeholder value.")
        if get_env_secret("EMBEDDINGS_API_KEY", "OPENAI_API_KEY") is None:
            issues.append(
                "EMBEDDINGS_API_KEY (or OPENAI_API_KEY) is missing or set to a placeholder value."
            )

    _validate_number("LLM_TEMPERATURE", minimum=0.0, issues=issues, integer=False)
    _validate_number("LLM_CONTRACT_TEMPERATURE", minimum=0.0, issues=issues, integer=False)
    _validate_number("RETRIEVAL_K", minimum=1, issues=issues, integer=True)
    _validate_number("VECTOR_DB_PORT", minimum=1, issues=issues, integer=True)
    _validate_number("AGENT_RUN_TIMEOUT_SECONDS", minimum=1, issues=issues, integer=False)

    return issues


def validate_startup_configuration(*, require_retrieval: bool = True) -> None:
    """Validate process configuration before serving any request.

    Raises:
        MissingConfigurationError: when one or more problems are detected.
    """
    issues = collect_configuration_issues(require_retrieval=require_retrieval)
    if issues:
        error_lines = "\n".join(f"- {issue}" for issue in issues)
        raise MissingConfigurationError(f"Invalid startup configuration:\n{error_lines}")
