"""
Jarvis - Generation Client
===========================
Thin async wrapper around the Gemini embedding and chat models
(LangChain ``langchain-google-genai`` integrations).

``GenerationClient``
    ``embed(text)``  → one embedding vector for *text*.
    ``complete(system_prompt, conversation_context, user_message)``
        → generated reply text.

Both calls raise ``UpstreamError`` when the provider fails or hands
back an unusable payload.  Nothing is retried.

The embedder and the chat model are injected; ``build_generation_client``
creates the production pair from ``settings``.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from jarvis.config.prompt_templates import CHAT_PROMPT_TEMPLATE
from jarvis.config.settings import Settings, settings
from jarvis.src.core.errors import UpstreamError
from jarvis.src.utils.logger import get_logger

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  PROVIDER PROTOCOLS
# ══════════════════════════════════════════════════════════════════════


@runtime_checkable
class AsyncEmbedder(Protocol):
    """Anything that can embed a query asynchronously (LangChain ``Embeddings``)."""

    async def aembed_query(self, text: str) -> list[float]: ...


@runtime_checkable
class AsyncChatModel(Protocol):
    """Anything that answers a message list asynchronously (LangChain chat models)."""

    async def ainvoke(self, input: list[BaseMessage]) -> object: ...


# ══════════════════════════════════════════════════════════════════════
#  GENERATION CLIENT
# ══════════════════════════════════════════════════════════════════════


class GenerationClient:
    """
    Embedding + completion facade over the injected provider objects.

    Parameters
    ----------
    embedder
        An ``AsyncEmbedder`` (e.g. ``GoogleGenerativeAIEmbeddings``).
    llm
        An ``AsyncChatModel`` already configured with the token cap and
        temperature (e.g. ``ChatGoogleGenerativeAI``).
    """

    __slots__ = ("_embedder", "_llm")

    def __init__(self, embedder: AsyncEmbedder, llm: AsyncChatModel) -> None:
        self._embedder = embedder
        self._llm = llm


    async def embed(self, text: str) -> list[float]:
        """Return the embedding vector for *text*."""
        try:
            vector = await self._embedder.aembed_query(text)
        except Exception as exc:
            logger.error("[GEN] Embedding request failed: %s", exc)
            raise UpstreamError("Embedding provider request failed") from exc

        if not vector or not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in vector):
            raise UpstreamError("Embedding provider returned a malformed vector")
        return [float(v) for v in vector]


    async def complete(self, system_prompt: str, conversation_context: str, user_message: str) -> str:
        """
        Ask the chat model for a reply.

        The request is a system instruction followed by one user turn that
        carries the rendered history block and the new message.
        """
        messages: list[BaseMessage] = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=CHAT_PROMPT_TEMPLATE.format(context=conversation_context, message=user_message)),
        ]

        try:
            response = await self._llm.ainvoke(messages)
        except Exception as exc:
            logger.error("[GEN] Completion request failed: %s", exc)
            raise UpstreamError("Completion provider request failed") from exc

        reply = _message_text(response).strip()
        if not reply:
            raise UpstreamError("Completion provider returned an empty reply")
        return reply


def _message_text(response: object) -> str:
    """Extract plain text from a LangChain message (string or content parts)."""
    content = getattr(response, "content", response)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(str(part.get("text", "")))
        return "".join(parts)
    return ""


def build_generation_client(config: Settings = settings) -> GenerationClient:
    """Create the Gemini-backed ``GenerationClient`` from *config*."""
    from langchain_google_genai import ChatGoogleGenerativeAI, GoogleGenerativeAIEmbeddings

    api_key = config.GOOGLE_API_KEY.get_secret_value()
    embedder = GoogleGenerativeAIEmbeddings(model=config.EMBEDDING_MODEL, google_api_key=api_key)
    llm = ChatGoogleGenerativeAI(model=config.LLM_MODEL, temperature=config.LLM_TEMPERATURE, max_output_tokens=config.LLM_MAX_TOKENS, google_api_key=api_key)
    logger.info("[GEN] Models initialised: embedding=%s, llm=%s (temperature=%.1f, max_tokens=%d)", config.EMBEDDING_MODEL, config.LLM_MODEL, config.LLM_TEMPERATURE, config.LLM_MAX_TOKENS)
    return GenerationClient(embedder=embedder, llm=llm)
