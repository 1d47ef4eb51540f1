"""LLM client factory and the LangChain-backed generation port.

Supports Groq, OpenAI and Anthropic chat models with runtime model selection.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from dotenv import load_dotenv
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder

from common.config.env import get_env_secret, get_env_str
from common.config.sanity import PROVIDER_CREDENTIALS, MissingConfigurationError
from contrakt.ports import GenerationError
from contrakt.telemetry import telemetry
from contrakt.telemetry_schema import SpanKind, TelemetryKeys, truncate_json

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "groq"

# (conversational model, drafting model) per provider
DEFAULT_MODELS = {
    "groq": ("llama3-8b-8192", "llama3-70b-8192"),
    "openai": ("gpt-4o-mini", "gpt-4o"),
    "anthropic": ("claude-3-5-haiku-latest", "claude-3-5-sonnet-latest"),
}

CONTEXT_MESSAGE = "Additional Context:\n{context}"


def resolve_provider(provider: Optional[str] = None) -> str:
    """Resolve and validate the provider name."""
    resolved = (provider or get_env_str("LLM_PROVIDER", DEFAULT_PROVIDER) or DEFAULT_PROVIDER).lower()
    if resolved not in DEFAULT_MODELS:
        raise ValueError(
            f"Unsupported provider: {resolved}. Supported: {list(DEFAULT_MODELS.keys())}"
        )
    return resolved


def get_llm_client(
    provider: Optional[str] = None,
    model: Optional[str] = None,
    temperature: float = 0.7,
) -> BaseChatModel:
    """Get a chat model for the specified provider.

    Args:
        provider: 'groq', 'openai' or 'anthropic'. Defaults to LLM_PROVIDER or 'groq'.
        model: Model name. Defaults to LLM_MODEL or the provider's default.
        temperature: Sampling temperature.

    Returns:
        BaseChatModel: LangChain chat model instance.

    Raises:
        ValueError: If provider is not supported.
        MissingConfigurationError: If the provider credential is missing.
    """
    resolved_provider = resolve_provider(provider)
    resolved_model = model or get_env_str("LLM_MODEL") or DEFAULT_MODELS[resolved_provider][0]

    credential_name = PROVIDER_CREDENTIALS[resolved_provider][0]
    api_key = get_env_secret(credential_name)
    if api_key is None:
        raise MissingConfigurationError(
            f"{credential_name} is missing or set to a placeholder value (<REPLACE_ME>). "
            "Please update your .env file with a valid key."
        )

    if resolved_provider == "groq":
        from langchain_groq import ChatGroq

        return ChatGroq(model=resolved_model, temperature=temperature, api_key=api_key)

    if resolved_provider == "openai":
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(model=resolved_model, temperature=temperature, api_key=api_key)

    from langchain_anthropic import ChatAnthropic

    return ChatAnthropic(model=resolved_model, temperature=temperature, api_key=api_key)


_LLM_CACHE: Dict[Tuple[Optional[str], Optional[str], float], BaseChatModel] = {}


def get_llm(
    provider: Optional[str] = None,
    model: Optional[str] = None,
    temperature: float = 0.7,
) -> BaseChatModel:
    """
    Lazy accessor for chat models.

    Clients with the same configuration are built once and shared; chat
    models are stateless between calls.
    """
    key = (provider, model, temperature)
    if key not in _LLM_CACHE:
        _LLM_CACHE[key] = get_llm_client(provider=provider, model=model, temperature=temperature)
    return _LLM_CACHE[key]


def _content_text(response: Any) -> str:
    """Flatten a chat model response into plain text."""
    content = getattr(response, "content", response)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(str(part.get("text", "")))
        return "".join(parts)
    return "" if content is None else str(content)


def build_prompt(system_prompt: str, with_context: bool = False) -> ChatPromptTemplate:
    """System instructions, optional history, the user turn, then optional context."""
    messages = [
        ("system", system_prompt),
        MessagesPlaceholder(variable_name="chat_history", optional=True),
        ("human", "{input}"),
    ]
    if with_context:
        messages.append(("system", CONTEXT_MESSAGE))
    return ChatPromptTemplate.from_messages(messages)


class LangChainGenerator:
    """Generation port backed by LangChain chat models.

    System prompts are prompt templates: literal braces must be doubled.
    A ``context`` variable is rendered as a trailing system message.
    """

    def __init__(
        self,
        provider: Optional[str] = None,
        default_model: Optional[str] = None,
        default_temperature: float = 0.7,
        llm_factory=get_llm,
    ):
        self.provider = resolve_provider(provider)
        self.default_model = default_model
        self.default_temperature = default_temperature
        self._llm_factory = llm_factory

    def generate(
        self,
        system_prompt: str,
        user_input: str,
        history: Sequence[BaseMessage] = (),
        variables: Optional[Mapping[str, Any]] = None,
        temperature: Optional[float] = None,
        model: Optional[str] = None,
    ) -> str:
        resolved_temperature = self.default_temperature if temperature is None else temperature
        resolved_model = model or self.default_model
        bound = dict(variables or {})

        with telemetry.start_span(name="llm.call", span_type=SpanKind.LLM_CALL) as span:
            span.set_attribute(TelemetryKeys.LLM_MODEL, resolved_model or "default")
            span.set_attribute(TelemetryKeys.LLM_TEMPERATURE, resolved_temperature)
            span.set_attribute(TelemetryKeys.LLM_PROMPT_SYSTEM, truncate_json(system_prompt)[0])
            span.set_attribute(TelemetryKeys.LLM_PROMPT_USER, truncate_json(user_input)[0])

            try:
                llm = self._llm_factory(
                    provider=self.provider, model=resolved_model, temperature=resolved_temperature
                )
                chain = build_prompt(system_prompt, with_context="context" in bound) | llm
                response = chain.invoke(
                    {"input": user_input, "chat_history": list(history), **bound}
                )
            except MissingConfigurationError:
                raise
            except Exception as exc:
                error_info = {"error": str(exc), "type": type(exc).__name__}
                span.set_attribute(TelemetryKeys.ERROR, truncate_json(error_info)[0])
                span.set_outputs({"error": str(exc)})
                raise GenerationError(f"Generation backend failed: {exc}") from exc

            text = _content_text(response)
            out_trunc, truncated, _, _ = truncate_json(text)
            span.set_attribute(TelemetryKeys.LLM_RESPONSE_TEXT, out_trunc)
            if truncated:
                span.set_attribute(TelemetryKeys.PAYLOAD_TRUNCATED, True)
            return text
