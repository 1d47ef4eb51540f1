"""Conversation state definition for the LangGraph workflow."""

import operator
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional, TypedDict, Union

from langchain_core.messages import BaseMessage

from contrakt.models import ContractArtifact


class Operation(str, Enum):
    """Routing decision produced by the router node."""

    CONTRIBUTE = "contribute"
    CREATE = "create"
    INFO = "info"
    UNKNOWN = "unknown"


def _write_once(current: Optional[Any], update: Optional[Any]) -> Optional[Any]:
    """Reducer for fields that may be set at most once per run."""
    if current is None:
        return update
    if update is not None and update != current:
        raise ValueError(f"Field already set to {current!r}; refusing {update!r}")
    return current


class ConversationState(TypedDict, total=False):
    """
    State for one user turn through the Contrakt workflow.

    A fresh state is built per invocation; only ``history`` is carried into
    the next turn by the caller.
    """

    # Latest user utterance
    input: str

    # Prior turns, read-only inside the graph
    history: List[BaseMessage]

    # Raw generation outputs of this run; nodes append, never replace
    messages: Annotated[List[str], operator.add]

    # Router decision, write-once
    operation: Annotated[Optional[Operation], _write_once]

    # Final user-facing reply, written by exactly one terminal node
    result: Annotated[Optional[str], _write_once]

    # Present only when the contract node extracted a fenced block
    contract_artifact: Optional[ContractArtifact]

    # Tagged outcome of the terminal node
    outcome: Annotated[Optional["HandlerOutcome"], _write_once]

    # Span context of the enclosing workflow span, restored inside nodes
    telemetry_context: Optional[Any]


@dataclass(frozen=True)
class InfoOutcome:
    """Reply of the informational node."""

    reply: str
    raw: str


@dataclass(frozen=True)
class FallbackOutcome:
    """Reply of the conversational fallback node."""

    reply: str
    raw: str


@dataclass(frozen=True)
class ContributionOutcome:
    """Result of contribution intake."""

    reply: str
    raw: str
    record_id: Optional[str] = None

    @property
    def persisted(self) -> bool:
        return self.record_id is not None


@dataclass(frozen=True)
class ContractOutcome:
    """Result of contract drafting."""

    reply: str
    raw: str
    artifact: Optional[ContractArtifact] = None
    contract_type: str = "legal"


HandlerOutcome = Union[InfoOutcome, FallbackOutcome, ContributionOutcome, ContractOutcome]


def apply_outcome(outcome: HandlerOutcome) -> Dict[str, Any]:
    """Translate a terminal node outcome into a state update.

    Every outcome writes ``result`` and appends its raw text to ``messages``;
    only a contract outcome carries ``contract_artifact``.
    """
    update: Dict[str, Any] = {
        "result": outcome.reply,
        "messages": [outcome.raw],
        "outcome": outcome,
    }
    if isinstance(outcome, ContractOutcome) and outcome.artifact is not None:
        update["contract_artifact"] = outcome.artifact
    return update


def initial_state(
    user_input: str,
    history: Optional[List[BaseMessage]] = None,
    telemetry_context: Optional[Any] = None,
) -> ConversationState:
    """Build the starting state for one invocation."""
    return ConversationState(
        input=user_input,
        history=list(history or []),
        messages=[],
        operation=None,
        result=None,
        contract_artifact=None,
        outcome=None,
        telemetry_context=telemetry_context,
    )
