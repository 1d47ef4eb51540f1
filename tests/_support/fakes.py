"""Scripted port doubles for agent tests."""

from __future__ import annotations

from collections import deque
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, Union

from contrakt.ports import GenerationError, RetrievalError

Reply = Union[str, BaseException, Callable[..., str]]


class ScriptedGenerator:
    """Generation port that replays queued replies and records every call.

    A queued exception is raised instead of returned; a callable is invoked
    with the call's keyword arguments.
    """

    def __init__(self, replies: Iterable[Reply] = ()):
        self._replies = deque(replies)
        self.calls: list[dict[str, Any]] = []

    def queue(self, *replies: Reply) -> "ScriptedGenerator":
        self._replies.extend(replies)
        return self

    def generate(
        self,
        system_prompt: str,
        user_input: str,
        history: Sequence[Any] = (),
        variables: Optional[Mapping[str, Any]] = None,
        temperature: Optional[float] = None,
        model: Optional[str] = None,
    ) -> str:
        call = {
            "system_prompt": system_prompt,
            "user_input": user_input,
            "history": list(history),
            "variables": dict(variables or {}),
            "temperature": temperature,
            "model": model,
        }
        self.calls.append(call)
        if not self._replies:
            raise AssertionError(f"Unexpected generation call: {system_prompt[:60]!r}")
        reply = self._replies.popleft()
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            return reply(**call)
        return reply


class FailingGenerator(ScriptedGenerator):
    """Generation port whose backend is down."""

    def __init__(self, message: str = "backend unavailable"):
        super().__init__()
        self.message = message

    def generate(self, system_prompt, user_input, **kwargs) -> str:
        self.calls.append({"system_prompt": system_prompt, "user_input": user_input, **kwargs})
        raise GenerationError(self.message)


class StaticRetriever:
    """Retrieval port returning fixed passages."""

    def __init__(self, passages: Iterable[str] = ()):
        self.passages = list(passages)
        self.queries: list[str] = []

    def retrieve(self, query: str) -> list[str]:
        self.queries.append(query)
        return list(self.passages)


class FailingRetriever(StaticRetriever):
    """Retrieval port whose backend is down."""

    def retrieve(self, query: str) -> list[str]:
        self.queries.append(query)
        raise RetrievalError("vector store unreachable")
