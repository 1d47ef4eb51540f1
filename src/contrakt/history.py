"""Conversion of caller chat history into LangChain messages."""

from typing import Iterable, List, Sequence, Tuple, Union

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

HistoryTurn = Tuple[str, str]

_ROLE_TO_MESSAGE = {
    "human": HumanMessage,
    "user": HumanMessage,
    "ai": AIMessage,
    "assistant": AIMessage,
    "system": SystemMessage,
}

# Seed shown to a caller opening a new chat.
DEFAULT_HISTORY: List[HistoryTurn] = [
    ("human", "Hello!"),
    ("ai", "Welcome to Contrakt! How can I assist you today?"),
]


def to_chat_messages(history: Iterable[Union[HistoryTurn, Sequence[str], BaseMessage]]) -> List[BaseMessage]:
    """Convert ``(role, text)`` turns into chat messages.

    Already-built messages pass through unchanged.

    Raises:
        ValueError: if a turn is malformed or uses an unknown role.
    """
    messages: List[BaseMessage] = []
    for turn in history or ():
        if isinstance(turn, BaseMessage):
            messages.append(turn)
            continue
        if isinstance(turn, str) or len(turn) != 2:
            raise ValueError(f"History turns must be (role, text) pairs, got {turn!r}")
        role, text = turn
        message_cls = _ROLE_TO_MESSAGE.get(str(role).strip().lower())
        if message_cls is None:
            raise ValueError(
                f"Unsupported history role '{role}'. Supported: {sorted(_ROLE_TO_MESSAGE)}"
            )
        messages.append(message_cls(content=str(text)))
    return messages
