"""Telemetry attribute contract for agent spans.

Span kinds and attribute keys used by the graph nodes and the generation
adapter, plus payload helpers that redact secrets and bound attribute size.
"""

import hashlib
import json
from enum import Enum
from typing import Any, Optional, Tuple


class SpanKind(str, Enum):
    """Semantic span kinds emitted by the agent."""

    WORKFLOW = "agent.workflow"
    AGENT_NODE = "agent.node"
    LLM_CALL = "llm.call"
    RETRIEVER = "retriever.call"
    SINK = "sink.write"


class TelemetryKeys(str, Enum):
    """Standardized telemetry attribute keys."""

    EVENT_TYPE = "event.type"
    EVENT_NAME = "event.name"

    INPUTS = "telemetry.inputs_json"
    OUTPUTS = "telemetry.outputs_json"
    ERROR = "telemetry.error_json"

    OPERATION = "contrakt.operation"
    TEMPLATE_SELECTION = "contrakt.template_selection"
    ARTIFACT_EXTRACTED = "contrakt.artifact_extracted"
    PASSAGE_COUNT = "contrakt.passage_count"
    PROMPT_VERSION = "contrakt.prompt_version"
    RECORD_ID = "contrakt.contribution_id"

    LLM_MODEL = "llm.model"
    LLM_TEMPERATURE = "llm.temperature"
    LLM_PROMPT_SYSTEM = "llm.prompt.system"
    LLM_PROMPT_USER = "llm.prompt.user"
    LLM_RESPONSE_TEXT = "llm.response.text"

    PAYLOAD_TRUNCATED = "telemetry.payload_truncated"


MAX_PAYLOAD_SIZE = 16 * 1024
SENSITIVE_KEYS = {"api_key", "password", "secret", "token", "credential", "auth"}


def redact_secrets(obj: Any) -> Any:
    """Recursively redact sensitive keys in dictionaries."""
    if isinstance(obj, dict):
        return {
            k: "[REDACTED]" if any(s in str(k).lower() for s in SENSITIVE_KEYS) else redact_secrets(v)
            for k, v in obj.items()
        }
    if isinstance(obj, list):
        return [redact_secrets(item) for item in obj]
    return obj


def truncate_json(
    obj: Any, max_len: int = MAX_PAYLOAD_SIZE
) -> Tuple[str, bool, int, Optional[str]]:
    """
    Serialize and truncate a payload for use as a span attribute.

    Returns:
        Tuple(serialized_str, was_truncated, size_bytes, sha256_hash)
    """
    clean_obj = redact_secrets(obj)
    try:
        json_str = json.dumps(clean_obj, sort_keys=True, default=str)
    except (TypeError, ValueError):
        json_str = str(clean_obj)

    encoded = json_str.encode("utf-8")
    sha256 = hashlib.sha256(encoded).hexdigest()
    if len(encoded) > max_len:
        return json_str[:max_len] + "... [TRUNCATED]", True, len(encoded), sha256
    return json_str, False, len(encoded), sha256
