"""Unit test environment helpers."""

import os

import pytest

from contrakt.telemetry import InMemoryTelemetryBackend, telemetry

_PLACEHOLDERS = {"<REPLACE_ME>", "changeme", "your_api_key_here"}


def _is_unset(value):
    return not value or value.strip() in _PLACEHOLDERS or value.startswith("<")


@pytest.fixture(autouse=True)
def _minimal_env(monkeypatch):
    """Set minimal env defaults for unit tests without external deps."""
    for name, fallback in (
        ("GROQ_API_KEY", "test-groq-key"),
        ("OPENAI_API_KEY", "test-key"),
        ("VECTOR_DB_PASSWORD", "test-db-password"),
    ):
        if _is_unset(os.getenv(name)):
            monkeypatch.setenv(name, fallback)
    monkeypatch.delenv("LLM_PROVIDER", raising=False)
    monkeypatch.delenv("LLM_MODEL", raising=False)
    monkeypatch.delenv("LLM_CONTRACT_MODEL", raising=False)
    monkeypatch.setenv("OTEL_TRACES_EXPORTER", "none")
    yield


@pytest.fixture(autouse=True)
def telemetry_backend():
    """Record spans in memory and restore the previous backend afterwards."""
    original = telemetry.backend
    backend = InMemoryTelemetryBackend()
    telemetry.set_backend(backend)
    yield backend
    telemetry.set_backend(original)
