"""Capability interfaces the orchestrator depends on.

Concrete backends live in ``contrakt.llm_client``, ``contrakt.retriever`` and
``contrakt.contributions``; tests substitute scripted doubles.
"""

from typing import Any, Mapping, Optional, Protocol, Sequence, runtime_checkable

from langchain_core.messages import BaseMessage

from contrakt.models import ContributionRecord


class GenerationError(RuntimeError):
    """The generation backend failed; an empty reply is not an error."""


class RetrievalError(RuntimeError):
    """The retrieval backend failed."""


@runtime_checkable
class GenerationPort(Protocol):
    """Produces text from role-tagged messages."""

    def generate(
        self,
        system_prompt: str,
        user_input: str,
        history: Sequence[BaseMessage] = (),
        variables: Optional[Mapping[str, Any]] = None,
        temperature: Optional[float] = None,
        model: Optional[str] = None,
    ) -> str:
        """Return generated text or raise GenerationError."""
        ...


@runtime_checkable
class RetrievalPort(Protocol):
    """Looks up reference passages for a free-text query."""

    def retrieve(self, query: str) -> list[str]:
        """Return passages in relevance order; an empty list is a valid answer."""
        ...


@runtime_checkable
class ContributionSink(Protocol):
    """Persists contribution records."""

    def persist(self, record: ContributionRecord) -> str:
        """Write one record and return its identifier."""
        ...

    def load(self, identifier: str) -> Optional[ContributionRecord]:
        """Read a record back by identifier."""
        ...
