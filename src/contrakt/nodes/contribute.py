"""Contribution intake node for error reports and feature suggestions."""

import logging
from typing import Optional

from contrakt.contributions import parse_contribution
from contrakt.ports import ContributionSink, GenerationPort
from contrakt.state import ContributionOutcome, ConversationState, apply_outcome
from contrakt.telemetry import telemetry
from contrakt.telemetry_schema import SpanKind

logger = logging.getLogger(__name__)

CONTRIBUTE_SYSTEM_PROMPT = """You are an AI assistant for Contrakt, tasked with processing user \
contributions and error reports. Your job is to analyze the user's input and create a structured \
JSON response containing the following fields:

- type: Either "error_report" or "feature_suggestion"
- description: A brief summary of the error or suggestion
- details: More detailed information
- impact: Potential impact on the platform
- priority: Suggested priority (low, medium, high)

Respond ONLY with this JSON structure:
{{
    "type": "error_report" or "feature_suggestion",
    "description": "...",
    "details": "...",
    "impact": "...",
    "priority": "low" or "medium" or "high"
}}

Be concise but informative."""

CONTRIBUTION_ACK_REPLY = (
    "Thank you for your contribution. Your feedback has been received and will be reviewed "
    "by our team."
)
CONTRIBUTION_FAILURE_REPLY = (
    "There was an error processing your contribution. Please try again later."
)


def contribute_node(
    state: ConversationState,
    *,
    generator: GenerationPort,
    sink: ContributionSink,
    temperature: float,
    model: Optional[str] = None,
) -> dict:
    """
    Node: Contribute.

    Structures the user's report with one generation call and stores it.
    Never raises: parse and storage failures produce the fixed failure reply
    and keep the raw attempt in ``messages``.
    """
    with telemetry.start_span(name="contribute", span_type=SpanKind.AGENT_NODE) as span:
        span.set_inputs({"input": state.get("input", "")})
        raw = None
        try:
            raw = generator.generate(
                CONTRIBUTE_SYSTEM_PROMPT,
                state.get("input", ""),
                history=state.get("history") or [],
                temperature=temperature,
                model=model,
            )
            record = parse_contribution(raw)
            record_id = sink.persist(record)
        except Exception as exc:
            span.set_outputs({"error": str(exc)})
            if raw is None:
                logger.exception("Contribution structuring call failed")
                diagnostic = "Error processing contribution"
            else:
                logger.warning(
                    "Could not parse or store contribution (%s): %s", exc, raw[:500]
                )
                diagnostic = raw
            return apply_outcome(
                ContributionOutcome(reply=CONTRIBUTION_FAILURE_REPLY, raw=diagnostic)
            )

        span.set_outputs({"record_id": record_id, "type": record.type})
        return apply_outcome(
            ContributionOutcome(reply=CONTRIBUTION_ACK_REPLY, raw=raw, record_id=record_id)
        )
