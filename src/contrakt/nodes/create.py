"""Contract drafting node.

Selects a template, retrieves reference passages, drafts the contract with
a lower-temperature model and extracts the fenced contract block from the
reply.
"""

import logging
from typing import Optional

from contrakt.classification import parse_template_selection
from contrakt.extraction import extract_contract
from contrakt.models import ContractArtifact
from contrakt.ports import GenerationPort, RetrievalPort
from contrakt.retriever import combine_context
from contrakt.state import ContractOutcome, ConversationState, apply_outcome
from contrakt.telemetry import telemetry
from contrakt.telemetry_schema import SpanKind, TelemetryKeys
from contrakt.templates import TemplateIndex, TemplateLookupError

logger = logging.getLogger(__name__)

TEMPLATE_SELECTION_PROMPT = """You select the contract template that best fits a user's request.

Available templates:
{menu}

Respond with ONLY the number of the best matching template. If none of them fits, respond with \
ONLY a short name for the kind of contract the user needs. No additional text."""

CONTRACT_SYSTEM_PROMPT = """You are Contrakt's legal drafting assistant. You write clear, \
enforceable legal contracts for individuals and small teams: rent subletting, NDAs, freelance \
gigs, project collaboration and service agreements.

Instructions:
- Use the contract template and reference documents provided as additional context as your \
starting point. Adapt every clause to the user's situation.
- Fill in details the user has given. Keep placeholders in [SQUARE_BRACKETS] for anything unknown.
- If essential information is missing (for example the parties or the subject matter), ask a \
short clarifying question instead of drafting.
- When you draft, put the complete contract text inside a single fenced block that starts with \
```contract on its own line and ends with ``` on its own line.
- Outside the fenced block, add at most a few sentences summarizing the contract and pointing out \
clauses the user should review.
- You are not a lawyer; remind the user to have important contracts reviewed by a professional."""

CONTRACT_FAILURE_REPLY = (
    "I apologize, but there was an error generating your legal contract. Please try again or "
    "provide more specific details about your requirements."
)


def template_selection_prompt(templates: TemplateIndex) -> str:
    """System prompt listing the catalog by position."""
    return TEMPLATE_SELECTION_PROMPT.replace("{menu}", templates.selection_menu())


def create_node(
    state: ConversationState,
    *,
    generator: GenerationPort,
    retriever: RetrievalPort,
    templates: TemplateIndex,
    temperature: float,
    contract_temperature: float,
    model: Optional[str] = None,
    contract_model: Optional[str] = None,
) -> dict:
    """
    Node: Create.

    Args:
        state: Current conversation state
        generator: Generation port for template selection and drafting
        retriever: Retrieval port for reference passages
        templates: Template catalog
        temperature: Classifier temperature for template selection
        contract_temperature: Drafting temperature, lower than ``temperature``
        model: Optional classifier model override
        contract_model: Optional drafting model override

    Returns:
        dict: ``result``, ``messages`` and, when a fenced block was found,
        ``contract_artifact``

    Raises:
        TemplateLookupError: if the selector names a position outside the catalog
    """
    with telemetry.start_span(name="create", span_type=SpanKind.AGENT_NODE) as span:
        user_input = state.get("input", "")
        history = state.get("history") or []
        span.set_inputs({"input": user_input})

        try:
            selection_raw = generator.generate(
                template_selection_prompt(templates),
                user_input,
                temperature=temperature,
                model=model,
            )
            selection = parse_template_selection(selection_raw)
            span.set_attribute(TelemetryKeys.TEMPLATE_SELECTION, str(selection))
            template_text = templates.resolve(selection)

            passages = retriever.retrieve(user_input)
            span.set_attribute(TelemetryKeys.PASSAGE_COUNT, len(passages))

            raw = generator.generate(
                CONTRACT_SYSTEM_PROMPT,
                user_input,
                history=history,
                variables={"context": combine_context(passages, template_text)},
                temperature=contract_temperature,
                model=contract_model,
            )
        except TemplateLookupError:
            span.set_outputs({"error": "template position out of range"})
            raise
        except Exception as exc:
            logger.exception("Contract generation failed")
            span.set_outputs({"error": str(exc)})
            return apply_outcome(
                ContractOutcome(reply=CONTRACT_FAILURE_REPLY, raw=CONTRACT_FAILURE_REPLY)
            )

        cleaned_text, content = extract_contract(raw)
        artifact = ContractArtifact.draft(content) if content is not None else None
        span.set_attribute(TelemetryKeys.ARTIFACT_EXTRACTED, artifact is not None)
        span.set_outputs({"response_length": len(raw), "artifact": artifact is not None})

        reply = cleaned_text if artifact is not None else raw
        return apply_outcome(ContractOutcome(reply=reply, raw=raw, artifact=artifact))
