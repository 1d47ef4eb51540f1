"""Typed environment variable parsing helpers."""

import os
from typing import Optional

# Values shipped in example .env files that must never reach a backend.
PLACEHOLDER_VALUES = {"<REPLACE_ME>", "changeme", "your_api_key_here"}


def get_env_str(name: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    """Get an environment variable as a string."""
    value = os.getenv(name)
    if value is None:
        if required:
            raise KeyError(f"Environment variable '{name}' is required but not set.")
        return default
    return value


def get_env_int(name: str, default: Optional[int] = None, required: bool = False) -> Optional[int]:
    """Get an environment variable as an integer."""
    value = os.getenv(name)
    if value is None:
        if required:
            raise KeyError(f"Environment variable '{name}' is required but not set.")
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable '{name}' must be an integer, got '{value}'.")


def get_env_float(
    name: str, default: Optional[float] = None, required: bool = False
) -> Optional[float]:
    """Get an environment variable as a float."""
    value = os.getenv(name)
    if value is None:
        if required:
            raise KeyError(f"Environment variable '{name}' is required but not set.")
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable '{name}' must be a float, got '{value}'.")


def is_placeholder(value: Optional[str]) -> bool:
    """Return True when a secret is unset, blank, or an example placeholder."""
    if value is None:
        return True
    stripped = value.strip()
    return not stripped or stripped in PLACEHOLDER_VALUES or stripped.startswith("<")


def get_env_secret(*names: str) -> Optional[str]:
    """Return the first non-placeholder secret among ``names``, or None."""
    for name in names:
        value = os.getenv(name)
        if not is_placeholder(value):
            return value.strip()
    return None
