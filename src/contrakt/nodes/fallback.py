"""Conversational fallback node for off-topic or unclassified requests."""

import logging
from typing import Optional

from contrakt.ports import GenerationPort
from contrakt.state import ConversationState, FallbackOutcome, apply_outcome
from contrakt.telemetry import telemetry
from contrakt.telemetry_schema import SpanKind

logger = logging.getLogger(__name__)

CONVERSATIONAL_SYSTEM_PROMPT = """You are an AI assistant for Contrakt, a Web3 platform \
specializing in legal contract creation and NFT minting. Your role is to help users understand \
our services and guide them towards the most appropriate solutions.

Key Features:
- Legal Contract Creation: We specialize in creating various types of legal contracts including \
NDAs, rent agreements, freelance contracts, and project collaboration agreements
- NFT Integration: All contracts can be minted as NFTs on the blockchain for enhanced security \
and authenticity
- User-Friendly Interface: We make contract creation and management accessible to everyone, \
regardless of their technical background
- Smart Contract Security: All contracts are built with security and compliance in mind

If the user's request is unrelated to our services, politely explain that we focus on legal \
contract creation and NFT minting, and suggest one of our core services that might be helpful \
to them. Always maintain a friendly and helpful tone, and keep responses concise and in markdown \
format."""

FALLBACK_FAILURE_REPLY = (
    "I'm sorry, something went wrong on our side. I can help you draft NDAs, rent sublet, "
    "freelance and collaboration agreements. Please try again in a moment."
)


def fallback_node(
    state: ConversationState,
    *,
    generator: GenerationPort,
    temperature: float,
    model: Optional[str] = None,
) -> dict:
    """Reply conversationally and steer the user toward supported services."""
    with telemetry.start_span(name="fallback", span_type=SpanKind.AGENT_NODE) as span:
        span.set_inputs({"input": state.get("input", "")})
        try:
            raw = generator.generate(
                CONVERSATIONAL_SYSTEM_PROMPT,
                state.get("input", ""),
                history=state.get("history") or [],
                temperature=temperature,
                model=model,
            )
        except Exception as exc:
            logger.exception("Fallback reply generation failed")
            span.set_outputs({"error": str(exc)})
            return apply_outcome(
                FallbackOutcome(
                    reply=FALLBACK_FAILURE_REPLY, raw="Error generating fallback reply"
                )
            )

        span.set_outputs({"response_length": len(raw)})
        return apply_outcome(FallbackOutcome(reply=raw, raw=raw))
