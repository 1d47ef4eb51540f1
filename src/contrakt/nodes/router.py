"""Router node for intent classification.

Entry point of the workflow. Asks the model for a single routing token and
normalizes it into an Operation; the conditional edge in ``contrakt.graph``
then picks exactly one terminal node.
"""

import logging
from typing import Optional

from contrakt.classification import normalize_intent
from contrakt.ports import GenerationPort
from contrakt.state import ConversationState
from contrakt.telemetry import telemetry
from contrakt.telemetry_schema import SpanKind, TelemetryKeys

logger = logging.getLogger(__name__)


ROUTER_SYSTEM_PROMPT = """You are an AI agent representing Contrakt, a Web3 platform specializing in \
legal contract creation and NFT minting. Your task is to analyze user messages and route them \
appropriately.

Based on the user's input, respond with ONLY ONE of the following words:
- "contribute" if the user wants to report errors or contribute to the project
- "create" if the user wants to create a legal contract (especially for rent subletting, NDAs, \
freelance gigs, project collaboration)
- "info" if the user is asking general questions about contracts, the platform, or needs basic \
information
- "unknown" for unrelated queries

Respond strictly with ONLY ONE of these words. No additional text."""


def router_node(
    state: ConversationState,
    *,
    generator: GenerationPort,
    temperature: float,
    model: Optional[str] = None,
) -> dict:
    """
    Node: Router.

    Classifies the latest user input into contribute, create, info or unknown.

    Args:
        state: Current conversation state with input and history
        generator: Generation port used for classification
        temperature: Sampling temperature for the classifier
        model: Optional model override

    Returns:
        dict: ``operation`` plus the raw classifier output in ``messages``,
        or an empty dict when no classification could be produced
    """
    with telemetry.start_span(name="router", span_type=SpanKind.AGENT_NODE) as span:
        user_input = (state.get("input") or "").strip()
        span.set_inputs({"input": user_input, "history_length": len(state.get("history") or [])})

        if not user_input:
            span.set_outputs({"error": "No input to route"})
            logger.warning("Router received empty input")
            return {}

        try:
            raw = generator.generate(
                ROUTER_SYSTEM_PROMPT,
                user_input,
                history=state.get("history") or [],
                temperature=temperature,
                model=model,
            )
        except Exception as exc:
            logger.exception("Intent classification failed")
            span.set_outputs({"error": str(exc)})
            return {}

        operation = normalize_intent(raw)
        span.set_attribute(TelemetryKeys.OPERATION, operation.value)
        span.set_outputs({"operation": operation.value, "raw": raw})

        return {"messages": [raw], "operation": operation}
