"""Chat turn: query → retrieval → (web fallback) → prompt → streamed generation.

Runs once per user message.  Steps:

1. Resolve session → assistant → attached knowledge bases.
2. Embed the message with the first knowledge base's embedding model and
   search every attached collection.  Any retrieval failure degrades to
   the "No relevant context found." placeholder.
3. When retrieval found fewer than ``web_search_threshold`` hits, search
   the web with the message's keywords.  Failures degrade to no results.
4. Build the prompt from system prompt, context, web results, recent
   history and the new message.
5. Persist the retrieved context once per session as an assistant
   message ``[Context]\\n...`` (skipped when already among the recent turns).
6. Stream the completion, relaying each chunk as
   ``chat-stream-chunk-{sessionId}``.
7. Persist the user turn, then the assistant turn.

Failures outside the degradable steps emit ``chat-stream-error-{sessionId}``
and are re-raised.  A cancelled turn persists nothing.
"""

from __future__ import annotations

import uuid

import structlog

from src.config.settings import Settings
from src.interfaces.event_sink import IEventSink, chat_chunk_event, chat_error_event
from src.interfaces.storage_provider import IStorageProvider
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.interfaces.web_search_provider import SearchResult
from src.models.knowledge import Assistant, ChatMessage, KnowledgeBase, utc_now
from src.models.pipeline import ChatTurnResult
from src.models.rag import RetrievedChunk
from src.pipeline.prompt_builder import (
    NO_CONTEXT,
    build_prompt,
    extract_keywords,
    format_context_message,
    has_context,
)
from src.providers.llm.factory import LLMClientFactory
from src.services.ingestion.embedding_batcher import EmbeddingBatcher
from src.services.web_search_service import WebSearchService
from src.utils.cancellation import CancellationToken, ChatStream
from src.utils.concurrency import KeyedGuard
from src.utils.errors import OperationCancelledError, RecordNotFoundError

logger = structlog.get_logger(logger_name=__name__)

USER_FACING_ERROR = "An error occurred while processing your request. Please try again."


class RetrievalPipeline:
    """Answers one chat message with retrieval-augmented, streamed generation.

    Parameters
    ----------
    storage:
        Relational store for sessions, assistants, knowledge bases and messages.
    vector_store:
        Vector index searched for context.
    embedder:
        Embeds the user message.
    client_factory:
        Resolves the chat client for the assistant's model.
    events:
        Sink for streamed chunks and errors.
    settings:
        Defaults for temperature, max tokens and retrieval limits.
    web_search:
        Optional web search fallback.
    """

    def __init__(
        self,
        storage: IStorageProvider,
        vector_store: IVectorStoreProvider,
        embedder: EmbeddingBatcher,
        client_factory: LLMClientFactory,
        events: IEventSink,
        settings: Settings,
        web_search: WebSearchService | None = None,
    ) -> None:
        self._storage = storage
        self._vector_store = vector_store
        self._embedder = embedder
        self._factory = client_factory
        self._events = events
        self._settings = settings
        self._web_search = web_search
        self._guard = KeyedGuard("generation")
        self._streams: dict[str, ChatStream] = {}
        self._tokens: dict[str, CancellationToken] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(
        self,
        session_id: str,
        user_message: str,
        cancel_token: CancellationToken | None = None,
    ) -> ChatTurnResult:
        """Answer *user_message* in *session_id*.

        Raises
        ------
        ResourceBusyError
            If a generation is already running for the session.
        RagDeskError
            Any non-degradable failure, after the error event was emitted.
        """
        token = cancel_token or CancellationToken()
        async with self._guard.hold(session_id):
            self._tokens[session_id] = token
            try:
                return await self._run(session_id, user_message, token)
            except Exception as exc:
                logger.error("chat_turn_failed", session_id=session_id, error=str(exc))
                await self._events.emit(chat_error_event(session_id), {"error": USER_FACING_ERROR})
                raise
            finally:
                self._tokens.pop(session_id, None)
                self._streams.pop(session_id, None)

    def cancel(self, session_id: str) -> bool:
        """Interrupt the in-flight generation for *session_id*.

        Returns ``False`` when nothing is running for it.
        """
        token = self._tokens.get(session_id)
        if token is None:
            return False
        stream = self._streams.get(session_id)
        if stream is not None:
            stream.cancel()
        else:
            token.cancel("Generation cancelled")
        return True

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _run(
        self, session_id: str, user_message: str, token: CancellationToken
    ) -> ChatTurnResult:
        session = await self._storage.get_chat_session(session_id)
        if session is None:
            raise RecordNotFoundError(f"Chat session {session_id} not found")
        assistant = await self._storage.get_assistant(session.assistant_id)
        if assistant is None:
            raise RecordNotFoundError(f"Assistant {session.assistant_id} not found")
        knowledge_bases = await self._load_knowledge_bases(assistant)
        token.raise_if_cancelled()

        # -- Retrieval (degradable) ------------------------------------
        context, hits = await self._retrieve(user_message, knowledge_bases)
        token.raise_if_cancelled()

        # -- Web fallback (degradable) ---------------------------------
        web_results: list[SearchResult] = []
        if not has_context(context) or len(hits) < self._settings.web_search_threshold:
            web_results = await self._search_web(user_message)
        token.raise_if_cancelled()

        # -- Prompt ----------------------------------------------------
        history = await self._storage.get_messages_for_session(session_id)
        prompt = build_prompt(
            system_prompt=assistant.system_prompt,
            history=history,
            user_message=user_message,
            context=context,
            web_results=web_results,
            history_window=self._settings.history_window,
        )

        if has_context(context):
            await self._record_context(session_id, context, history)

        # -- Generation ------------------------------------------------
        client = self._factory.get_client_for_model(assistant.model)
        temperature = (
            assistant.temperature
            if assistant.temperature is not None
            else self._settings.temperature
        )
        max_tokens = assistant.max_tokens or self._settings.max_tokens
        stream = ChatStream(
            client.stream_chat(prompt, assistant.model, temperature, max_tokens), token
        )
        self._streams[session_id] = stream

        pieces: list[str] = []
        async for chunk in stream:
            if not chunk.content:
                continue
            pieces.append(chunk.content)
            await self._events.emit(chat_chunk_event(session_id), {"content": chunk.content})
        token.raise_if_cancelled()

        # -- Persistence -----------------------------------------------
        user_turn = await self._storage.save_message(
            ChatMessage(
                id=str(uuid.uuid4()),
                session_id=session_id,
                role="user",
                content=user_message,
                created_at=utc_now(),
            )
        )
        assistant_turn = await self._storage.save_message(
            ChatMessage(
                id=str(uuid.uuid4()),
                session_id=session_id,
                role="assistant",
                content="".join(pieces),
                created_at=utc_now(),
            )
        )

        logger.info(
            "chat_turn_complete",
            session_id=session_id,
            model=assistant.model,
            hits=len(hits),
            web_results=len(web_results),
            response_chars=len(assistant_turn.content),
        )
        return ChatTurnResult(
            user_message=user_turn,
            assistant_message=assistant_turn,
            context_used=has_context(context),
            retrieved_count=len(hits),
            web_result_count=len(web_results),
        )

    async def _load_knowledge_bases(self, assistant: Assistant) -> list[KnowledgeBase]:
        knowledge_bases: list[KnowledgeBase] = []
        for kb_id in assistant.knowledge_base_ids:
            knowledge_base = await self._storage.get_knowledge_base(kb_id)
            if knowledge_base is None:
                raise RecordNotFoundError(f"Knowledge base {kb_id} not found")
            knowledge_bases.append(knowledge_base)
        return knowledge_bases

    async def _retrieve(
        self, query: str, knowledge_bases: list[KnowledgeBase]
    ) -> tuple[str, list[RetrievedChunk]]:
        if not knowledge_bases:
            return "", []
        # All attached knowledge bases are searched with the first one's model.
        model = knowledge_bases[0].embedding_model
        try:
            query_vector = await self._embedder.embed_query(query, model)
            hits = await self._vector_store.search(
                [kb.collection_name for kb in knowledge_bases],
                query_vector,
                limit=self._settings.search_limit,
            )
        except OperationCancelledError:
            raise
        except Exception as exc:
            logger.warning("retrieval_degraded", model=model, error=str(exc))
            return NO_CONTEXT, []

        context = "\n\n".join(hit.content for hit in hits if hit.content)
        return (context or NO_CONTEXT), hits

    async def _search_web(self, query: str) -> list[SearchResult]:
        if self._web_search is None:
            return []
        keywords = extract_keywords(query)
        if not keywords:
            return []
        try:
            return await self._web_search.search(
                keywords, max_results=self._settings.web_search_max_results
            )
        except Exception as exc:
            logger.warning("web_search_degraded", error=str(exc))
            return []

    async def _record_context(
        self, session_id: str, context: str, history: list[ChatMessage]
    ) -> None:
        content = format_context_message(context)
        window = history[-self._settings.context_dedup_window :]
        if any(m.role == "assistant" and m.content == content for m in window):
            return
        await self._storage.save_message(
            ChatMessage(
                id=str(uuid.uuid4()),
                session_id=session_id,
                role="assistant",
                content=content,
                created_at=utc_now(),
            )
        )
