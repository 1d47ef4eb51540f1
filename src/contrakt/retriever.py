"""Vector store retrieval of reference passages for contract drafting."""

import logging
from typing import Iterable, List, Optional
from urllib.parse import quote_plus

from dotenv import load_dotenv
from langchain_openai import OpenAIEmbeddings
from langchain_postgres import PGVector

from common.config.env import get_env_secret, get_env_str
from common.config.sanity import MissingConfigurationError
from contrakt.ports import RetrievalError
from contrakt.telemetry import telemetry
from contrakt.telemetry_schema import SpanKind, TelemetryKeys

load_dotenv()

logger = logging.getLogger(__name__)


def get_vector_store():
    """
    Initialize the PGVector store holding contract reference documents.

    Works against any PostgreSQL with pgvector, including a Supabase project.

    Returns:
        PGVector: Configured vector store instance

    Raises:
        MissingConfigurationError: if the database or embedding credential is missing.
    """
    db_password = get_env_secret("VECTOR_DB_PASSWORD")
    if db_password is None:
        raise MissingConfigurationError("VECTOR_DB_PASSWORD is missing or set to a placeholder.")
    embeddings_key = get_env_secret("EMBEDDINGS_API_KEY", "OPENAI_API_KEY")
    if embeddings_key is None:
        raise MissingConfigurationError(
            "EMBEDDINGS_API_KEY (or OPENAI_API_KEY) is missing or set to a placeholder."
        )

    db_host = get_env_str("VECTOR_DB_HOST", "localhost")
    db_port = get_env_str("VECTOR_DB_PORT", "5432")
    db_name = get_env_str("VECTOR_DB_NAME", "postgres")
    db_user = get_env_str("VECTOR_DB_USER", "postgres")

    connection_string = (
        f"postgresql+psycopg://{quote_plus(db_user)}:{quote_plus(db_password)}"
        f"@{db_host}:{db_port}/{db_name}"
    )

    return PGVector(
        embeddings=OpenAIEmbeddings(
            model=get_env_str("EMBEDDINGS_MODEL", "text-embedding-3-small"),
            api_key=embeddings_key,
        ),
        collection_name=get_env_str("VECTOR_COLLECTION", "documents"),
        connection=connection_string,
        use_jsonb=True,
    )


def format_passages(passages: Iterable[str]) -> str:
    """Wrap each passage in ``<doc>`` tags, one block per line group."""
    return "\n".join(f"<doc>\n{passage}\n</doc>" for passage in passages)


class VectorStoreRetriever:
    """Retrieval port over a LangChain vector store."""

    def __init__(self, vector_store=None, k: int = 4):
        self._vector_store = vector_store
        self.k = k

    @property
    def vector_store(self):
        if self._vector_store is None:
            self._vector_store = get_vector_store()
        return self._vector_store

    def retrieve(self, query: str) -> List[str]:
        with telemetry.start_span(
            name="retrieve_passages", span_type=SpanKind.RETRIEVER, inputs={"query": query}
        ) as span:
            try:
                documents = self.vector_store.similarity_search(query, k=self.k)
            except MissingConfigurationError:
                raise
            except Exception as exc:
                span.set_outputs({"error": str(exc)})
                raise RetrievalError(f"Retrieval backend failed: {exc}") from exc

            passages = [doc.page_content for doc in documents if doc.page_content]
            span.set_attribute(TelemetryKeys.PASSAGE_COUNT, len(passages))
            return passages


def combine_context(passages: List[str], template_text: Optional[str]) -> str:
    """Retrieved passages first, then the selected template."""
    return f"{format_passages(passages)}\n\nContract Template:\n{template_text or ''}"
