"""LangGraph workflow definition for the Contrakt agent."""

import asyncio
import logging
from dataclasses import replace
from functools import partial
from typing import Any, Dict, Iterable, Optional

from langgraph.graph import END, StateGraph

from common.config.sanity import validate_startup_configuration
from contrakt.config import PROMPT_VERSION, AgentSettings
from contrakt.contributions import FileContributionSink
from contrakt.history import to_chat_messages
from contrakt.llm_client import DEFAULT_MODELS, LangChainGenerator
from contrakt.nodes.contribute import contribute_node
from contrakt.nodes.create import create_node
from contrakt.nodes.fallback import fallback_node
from contrakt.nodes.info import info_node
from contrakt.nodes.router import router_node
from contrakt.ports import ContributionSink, GenerationPort, RetrievalPort
from contrakt.retriever import VectorStoreRetriever
from contrakt.state import ConversationState, Operation, initial_state
from contrakt.telemetry import telemetry
from contrakt.telemetry_schema import SpanKind, TelemetryKeys
from contrakt.templates import TemplateIndex, get_template_index

logger = logging.getLogger(__name__)

TIMEOUT_REPLY = (
    "I'm sorry, your request took too long to process. Please try again in a moment."
)

# Routing table for the conditional edge after the router.
_OPERATION_ROUTES = {
    Operation.CONTRIBUTE: "contribute",
    Operation.CREATE: "create",
    Operation.INFO: "info",
}


def with_telemetry_context(node_func):
    """Wrap a node function to restore the workflow span context.

    Nodes may run on executor threads under ``ainvoke``; the captured context
    keeps their spans parented to the workflow span.
    """

    def wrapped_node(state: ConversationState):
        ctx = state.get("telemetry_context")
        if ctx:
            with telemetry.use_context(ctx):
                return node_func(state)
        return node_func(state)

    wrapped_node.__name__ = getattr(node_func, "func", node_func).__name__
    return wrapped_node


def route_after_router(state: ConversationState) -> str:
    """
    Conditional edge logic after the router node.

    Routes to the handler for the classified operation; anything that is not
    contribute, create or info falls back to the conversational node. A router
    that produced no output ends the run without a result.

    Args:
        state: Current conversation state

    Returns:
        str: Next node name
    """
    if not state.get("messages"):
        logger.error("No messages in state")
        return "end"
    return _OPERATION_ROUTES.get(state.get("operation"), "fallback")


def create_workflow(
    generator: GenerationPort,
    retriever: RetrievalPort,
    sink: ContributionSink,
    templates: TemplateIndex,
    settings: Optional[AgentSettings] = None,
) -> StateGraph:
    """
    Create and configure the LangGraph workflow.

    Flow:
    router → contribute | create | info | fallback → END
    router → END (no classification produced)

    Returns:
        StateGraph: Configured workflow graph (not compiled)
    """
    settings = settings or AgentSettings()
    workflow = StateGraph(ConversationState)

    workflow.add_node(
        "router",
        with_telemetry_context(
            partial(
                router_node,
                generator=generator,
                temperature=settings.temperature,
                model=settings.model,
            )
        ),
    )
    workflow.add_node(
        "contribute",
        with_telemetry_context(
            partial(
                contribute_node,
                generator=generator,
                sink=sink,
                temperature=settings.temperature,
                model=settings.model,
            )
        ),
    )
    workflow.add_node(
        "create",
        with_telemetry_context(
            partial(
                create_node,
                generator=generator,
                retriever=retriever,
                templates=templates,
                temperature=settings.temperature,
                contract_temperature=settings.contract_temperature,
                model=settings.model,
                contract_model=settings.contract_model,
            )
        ),
    )
    workflow.add_node(
        "info",
        with_telemetry_context(
            partial(
                info_node,
                generator=generator,
                temperature=settings.temperature,
                model=settings.model,
            )
        ),
    )
    workflow.add_node(
        "fallback",
        with_telemetry_context(
            partial(
                fallback_node,
                generator=generator,
                temperature=settings.temperature,
                model=settings.model,
            )
        ),
    )

    workflow.set_entry_point("router")

    workflow.add_conditional_edges(
        "router",
        route_after_router,
        {
            "contribute": "contribute",
            "create": "create",
            "info": "info",
            "fallback": "fallback",
            "end": END,
        },
    )

    # Every handler is terminal
    for node in ("contribute", "create", "info", "fallback"):
        workflow.add_edge(node, END)

    return workflow


def timeout_state(user_input: str, history: Iterable[Any] = ()) -> Dict[str, Any]:
    """Final state reported when a run exceeds its time budget."""
    state = dict(initial_state(user_input, to_chat_messages(history)))
    state["result"] = TIMEOUT_REPLY
    state.pop("telemetry_context", None)
    return state


class ContraktAgent:
    """Orchestrator: one compiled workflow shared by all invocations.

    Each call builds its own state; the ports and the template index are the
    only objects shared between concurrent runs.
    """

    def __init__(
        self,
        generator: GenerationPort,
        retriever: RetrievalPort,
        sink: ContributionSink,
        templates: Optional[TemplateIndex] = None,
        settings: Optional[AgentSettings] = None,
    ):
        self.generator = generator
        self.retriever = retriever
        self.sink = sink
        self.templates = templates if templates is not None else get_template_index()
        self.settings = settings or AgentSettings()
        self.app = create_workflow(
            generator, retriever, sink, self.templates, self.settings
        ).compile()

    @classmethod
    def from_env(cls, *, validate: bool = True) -> "ContraktAgent":
        """Build an agent wired to the configured LLM provider and vector store.

        Raises:
            MissingConfigurationError: if a required credential is missing.
        """
        if validate:
            validate_startup_configuration()
        settings = AgentSettings.from_env()
        if settings.contract_model is None:
            provider_models = DEFAULT_MODELS.get(settings.provider)
            if provider_models is not None:
                settings = replace(settings, contract_model=provider_models[1])

        generator = LangChainGenerator(
            provider=settings.provider,
            default_model=settings.model,
            default_temperature=settings.temperature,
        )
        return cls(
            generator=generator,
            retriever=VectorStoreRetriever(k=settings.retrieval_k),
            sink=FileContributionSink(settings.contributions_dir),
            settings=settings,
        )

    def _inputs(self, user_input: str, history: Iterable[Any]) -> ConversationState:
        return initial_state(
            user_input,
            to_chat_messages(history),
            telemetry_context=telemetry.capture_context(),
        )

    @staticmethod
    def _finish(span, final_state: Dict[str, Any]) -> Dict[str, Any]:
        final_state.pop("telemetry_context", None)
        operation = final_state.get("operation")
        if operation is not None:
            span.set_attribute(TelemetryKeys.OPERATION, operation.value)
        span.set_outputs(
            {
                "completed": final_state.get("result") is not None,
                "artifact": final_state.get("contract_artifact") is not None,
            }
        )
        return final_state

    def run(self, user_input: str, history: Iterable[Any] = ()) -> Dict[str, Any]:
        """
        Process one user turn end-to-end.

        Args:
            user_input: Latest user utterance
            history: Prior ``(role, text)`` turns or chat messages

        Returns:
            dict: Final state; ``result`` is None when the run was incomplete

        Raises:
            TemplateLookupError: if template selection named an invalid position
            ValueError: if the history is malformed
        """
        with telemetry.start_span(
            "agent_workflow",
            span_type=SpanKind.WORKFLOW,
            inputs={"input": user_input},
            attributes={TelemetryKeys.PROMPT_VERSION.value: PROMPT_VERSION},
        ) as span:
            final_state = self.app.invoke(self._inputs(user_input, history))
            return self._finish(span, final_state)

    async def arun(
        self,
        user_input: str,
        history: Iterable[Any] = (),
        timeout_seconds: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Async variant of ``run`` with an optional time budget.

        A run that exceeds ``timeout_seconds`` is reported like a port
        failure: the fixed timeout reply and no contract artifact.
        """
        history = list(history)
        with telemetry.start_span(
            "agent_workflow",
            span_type=SpanKind.WORKFLOW,
            inputs={"input": user_input},
            attributes={TelemetryKeys.PROMPT_VERSION.value: PROMPT_VERSION},
        ) as span:
            inputs = self._inputs(user_input, history)
            try:
                if timeout_seconds is None:
                    final_state = await self.app.ainvoke(inputs)
                else:
                    final_state = await asyncio.wait_for(
                        self.app.ainvoke(inputs), timeout=timeout_seconds
                    )
            except asyncio.TimeoutError:
                logger.error("Agent run exceeded %ss", timeout_seconds)
                span.set_attribute(TelemetryKeys.ERROR, "timeout")
                final_state = timeout_state(user_input, history)
            return self._finish(span, final_state)
