"""Informational reply node."""

import logging
from typing import Optional

from contrakt.ports import GenerationPort
from contrakt.state import ConversationState, InfoOutcome, apply_outcome
from contrakt.telemetry import telemetry
from contrakt.telemetry_schema import SpanKind

logger = logging.getLogger(__name__)

INFO_SYSTEM_PROMPT = """You are Contrakt's educational AI assistant. Provide clear, concise \
explanations about:
- Basic contract concepts and terminology
- How Contrakt works
- The benefits of blockchain-based contracts
- Our supported contract types (NDAs, rent agreements, freelance contracts, etc.)

Keep responses informative but brief and user-friendly."""

INFO_FAILURE_REPLY = (
    "I'm sorry, I couldn't answer that right now. Please try again in a moment."
)


def info_node(
    state: ConversationState,
    *,
    generator: GenerationPort,
    temperature: float,
    model: Optional[str] = None,
) -> dict:
    """Answer a general question about contracts or the platform."""
    with telemetry.start_span(name="info", span_type=SpanKind.AGENT_NODE) as span:
        span.set_inputs({"input": state.get("input", "")})
        try:
            raw = generator.generate(
                INFO_SYSTEM_PROMPT,
                state.get("input", ""),
                history=state.get("history") or [],
                temperature=temperature,
                model=model,
            )
        except Exception as exc:
            logger.exception("Info reply generation failed")
            span.set_outputs({"error": str(exc)})
            return apply_outcome(
                InfoOutcome(reply=INFO_FAILURE_REPLY, raw="Error generating info reply")
            )

        span.set_outputs({"response_length": len(raw)})
        return apply_outcome(InfoOutcome(reply=raw, raw=raw))
