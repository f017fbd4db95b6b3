"""
Jarvis - Chat Engine
=====================
Orchestrates one chat turn and the recent-history read.

``ChatEngine.respond`` flow:
    1. Validate   → message must be a non-empty string
    2. Embed      → Gemini embedding of the message
    3. Retrieve   → ``$vectorSearch`` over past exchanges (top 50 of 10000)
    4. Render     → "User: …\\nAssistant: …" blocks, store order kept
    5. Generate   → Gemini chat completion
    6. Save       → persist the new exchange with its embedding
    7. Return     → reply text

The save is the last step, so a failure anywhere before it leaves no
trace in the store.

Usage:
    engine = ChatEngine(store, generator)
    reply = await engine.respond("Hello")
    history = await engine.recent_history()
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Protocol

from jarvis.config.prompt_templates import EXCHANGE_SEPARATOR, EXCHANGE_TEMPLATE, SYSTEM_PROMPT
from jarvis.config.settings import settings
from jarvis.src.core.errors import ValidationError
from jarvis.src.utils.logger import get_logger

logger = get_logger(__name__)


class ExchangeRepository(Protocol):
    """The subset of ``ExchangeStore`` the engine relies on."""

    async def query_by_similarity(self, query_vector: list[float], k: int, num_candidates: int) -> list[dict]: ...

    async def query_recent_exchanges(self, limit: int) -> list[dict]: ...

    async def insert_exchange(self, user_message: str, assistant_reply: str, embedding: list[float], timestamp: datetime) -> str: ...


class Generator(Protocol):
    """The subset of ``GenerationClient`` the engine relies on."""

    async def embed(self, text: str) -> list[float]: ...

    async def complete(self, system_prompt: str, conversation_context: str, user_message: str) -> str: ...


def format_context(exchanges: list[dict]) -> str:
    """Render retrieved exchanges as blank-line separated User/Assistant pairs."""
    return EXCHANGE_SEPARATOR.join(EXCHANGE_TEMPLATE.format(user=ex.get("user", ""), assistant=ex.get("assistant", "")) for ex in exchanges)


class ChatEngine:
    """
    Stateless request orchestrator; safe to share between concurrent requests.

    Parameters
    ----------
    store
        An ``ExchangeRepository`` (normally ``ExchangeStore``).
    generator
        A ``Generator`` (normally ``GenerationClient``).
    similarity_limit / similarity_candidates / history_limit
        Retrieval policy.  Default to the values in ``settings``.
    system_prompt
        Fixed system instruction.  Defaults to ``SYSTEM_PROMPT``.
    """

    __slots__ = ("_store", "_generator", "_similarity_limit", "_similarity_candidates", "_history_limit", "_system_prompt")

    def __init__(self, store: ExchangeRepository, generator: Generator, similarity_limit: int | None = None, similarity_candidates: int | None = None, history_limit: int | None = None, system_prompt: str = SYSTEM_PROMPT) -> None:
        self._store = store
        self._generator = generator
        self._similarity_limit = similarity_limit or settings.SIMILARITY_LIMIT
        self._similarity_candidates = similarity_candidates or settings.SIMILARITY_CANDIDATES
        self._history_limit = history_limit or settings.HISTORY_LIMIT
        self._system_prompt = system_prompt


    async def respond(self, message: object) -> str:
        """Run one chat turn for *message* and return the generated reply."""
        if not isinstance(message, str) or not message:
            raise ValidationError("'message' must be a non-empty string")

        t_start = time.perf_counter()

        # ── 1. Embed ──────────────────────────────────────────────────
        embedding = await self._generator.embed(message)
        embed_ms = (time.perf_counter() - t_start) * 1000

        # ── 2. Retrieve similar exchanges ─────────────────────────────
        logger.info("[CHAT] Searching for similar conversations...")
        t_search = time.perf_counter()
        similar = await self._store.query_by_similarity(embedding, k=self._similarity_limit, num_candidates=self._similarity_candidates)
        search_ms = (time.perf_counter() - t_search) * 1000

        # ── 3. Generate ───────────────────────────────────────────────
        logger.info("[CHAT] Generating response...")
        t_llm = time.perf_counter()
        context = format_context(similar)
        reply = await self._generator.complete(self._system_prompt, context, message)
        llm_ms = (time.perf_counter() - t_llm) * 1000

        # ── 4. Save ───────────────────────────────────────────────────
        logger.info("[CHAT] Saving conversation...")
        await self._store.insert_exchange(message, reply, embedding, datetime.now(timezone.utc))

        total_ms = (time.perf_counter() - t_start) * 1000
        logger.info("[CHAT] Response generated and saved: %.1fms (embed=%.1f, search=%.1f, llm=%.1f, context=%d exchanges)", total_ms, embed_ms, search_ms, llm_ms, len(similar))
        return reply


    async def recent_history(self) -> list[dict]:
        """Return the most recent exchanges, oldest first."""
        return await self._store.query_recent_exchanges(self._history_limit)
