"""Agent configuration helpers."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from common.config.env import get_env_float, get_env_int, get_env_str

logger = logging.getLogger(__name__)

_DEFAULT_TEMPERATURE = 0.7
_DEFAULT_CONTRACT_TEMPERATURE = 0.4
_DEFAULT_RETRIEVAL_K = 4
_DEFAULT_RUN_TIMEOUT_SECONDS = 60.0

# Increment when changing prompt templates in nodes.
PROMPT_VERSION = "1.0.0"


def _read_float(name: str, default: float) -> float:
    try:
        value = get_env_float(name, None)
    except ValueError as exc:
        logger.warning("Invalid %s: %s", name, exc)
        return default
    return default if value is None else float(value)


def _read_int(name: str, default: int) -> int:
    try:
        value = get_env_int(name, None)
    except ValueError as exc:
        logger.warning("Invalid %s: %s", name, exc)
        return default
    return default if value is None else int(value)


@dataclass(frozen=True)
class AgentSettings:
    """Runtime knobs for the orchestrator."""

    provider: str = "groq"
    model: Optional[str] = None
    contract_model: Optional[str] = None
    temperature: float = _DEFAULT_TEMPERATURE
    contract_temperature: float = _DEFAULT_CONTRACT_TEMPERATURE
    retrieval_k: int = _DEFAULT_RETRIEVAL_K
    contributions_dir: Path = Path("contributions")
    run_timeout_seconds: float = _DEFAULT_RUN_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls) -> "AgentSettings":
        """Read settings from the environment, falling back to defaults."""
        temperature = max(0.0, _read_float("LLM_TEMPERATURE", _DEFAULT_TEMPERATURE))
        contract_temperature = max(
            0.0, _read_float("LLM_CONTRACT_TEMPERATURE", _DEFAULT_CONTRACT_TEMPERATURE)
        )
        if contract_temperature > temperature or (contract_temperature == temperature > 0.0):
            clamped = max(0.0, round(temperature - 0.3, 2))
            logger.warning(
                "LLM_CONTRACT_TEMPERATURE=%s is not below LLM_TEMPERATURE=%s; using %s",
                contract_temperature,
                temperature,
                clamped,
            )
            contract_temperature = clamped

        return cls(
            provider=(get_env_str("LLM_PROVIDER", "groq") or "groq").strip().lower(),
            model=get_env_str("LLM_MODEL") or None,
            contract_model=get_env_str("LLM_CONTRACT_MODEL") or None,
            temperature=temperature,
            contract_temperature=contract_temperature,
            retrieval_k=max(1, _read_int("RETRIEVAL_K", _DEFAULT_RETRIEVAL_K)),
            contributions_dir=Path(get_env_str("CONTRIBUTIONS_DIR", "contributions")),
            run_timeout_seconds=max(
                1.0, _read_float("AGENT_RUN_TIMEOUT_SECONDS", _DEFAULT_RUN_TIMEOUT_SECONDS)
            ),
        )
