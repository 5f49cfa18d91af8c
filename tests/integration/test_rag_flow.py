"""End-to-end flow through the composition root.

Everything is built by :func:`src.main.build_services`; only the network
is replaced.  An ``httpx.MockTransport`` plays both Qdrant's REST API and
a local Ollama server, so the real vector store adapter, LLM factory,
Ollama provider, pipelines and SQLite storage all run unmodified.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx
import pytest

from src.config.settings import Settings
from src.interfaces.event_sink import FILE_PROGRESS_EVENT, chat_chunk_event
from src.main import build_services, close_services
from src.models.knowledge import Assistant, ChatSession, IngestionStatus

QDRANT_URL = "http://qdrant.test:6333"
OLLAMA_URL = "http://ollama.test:11434"
EMBEDDING_MODEL = "nomic-embed-text-ollama"
CHAT_MODEL = "llama3"


class _FakeBackends:
    """Minimal in-memory stand-in for the Qdrant and Ollama HTTP APIs."""

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, Any]] = {}
        self.chat_prompts: list[str] = []
        self.embedded_texts: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "ollama.test":
            return self._ollama(request)
        return self._qdrant(request)

    # -- Ollama ---------------------------------------------------------

    def _ollama(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/api/tags":
            return httpx.Response(
                200, json={"models": [{"name": CHAT_MODEL}, {"name": EMBEDDING_MODEL}]}
            )
        body = json.loads(request.content)
        if path == "/api/embed":
            self.embedded_texts.extend(body["input"])
            vectors = [[0.5] * 1536 for _ in body["input"]]
            return httpx.Response(200, json={"embeddings": vectors})
        if path == "/api/chat":
            self.chat_prompts.append(body["messages"][0]["content"])
            lines = [
                {"message": {"content": "Qdrant stores "}, "done": False},
                {"message": {"content": "vectors."}, "done": False},
                {"message": {"content": ""}, "done": True, "done_reason": "stop"},
            ]
            return httpx.Response(200, content="\n".join(json.dumps(x) for x in lines).encode())
        return httpx.Response(404)

    # -- Qdrant ---------------------------------------------------------

    def _qdrant(self, request: httpx.Request) -> httpx.Response:
        parts = request.url.path.strip("/").split("/")
        if parts == ["collections"]:
            names = [{"name": name} for name in self.collections]
            return httpx.Response(200, json={"result": {"collections": names}})

        name = parts[1]
        if len(parts) == 2:
            return self._collection(request.method, name, request)
        if name not in self.collections:
            return httpx.Response(404, json={"status": {"error": "Not found"}})

        points: list[dict[str, Any]] = self.collections[name]["points"]
        body = json.loads(request.content)
        action = "/".join(parts[2:])
        if action == "points" and request.method == "PUT":
            points.extend(body["points"])
            return httpx.Response(200, json={"result": {"status": "completed"}})
        if action == "points/search":
            hits = [{"id": p["id"], "score": 0.9, "payload": p["payload"]} for p in points]
            return httpx.Response(200, json={"result": hits[: body["limit"]]})
        if action == "points/delete":
            file_id = body["filter"]["must"][0]["match"]["value"]
            self.collections[name]["points"] = [
                p for p in points if p["payload"]["file_id"] != file_id
            ]
            return httpx.Response(200, json={"result": {"status": "completed"}})
        return httpx.Response(400)

    def _collection(self, method: str, name: str, request: httpx.Request) -> httpx.Response:
        if method == "PUT":
            size = json.loads(request.content)["vectors"]["size"]
            self.collections[name] = {"size": size, "points": []}
            return httpx.Response(200, json={"result": True})
        if name not in self.collections:
            return httpx.Response(404, json={"status": {"error": "Not found"}})
        if method == "DELETE":
            del self.collections[name]
            return httpx.Response(200, json={"result": True})
        info = {"points_count": len(self.collections[name]["points"])}
        return httpx.Response(200, json={"result": info})


@pytest.fixture
def backends() -> _FakeBackends:
    return _FakeBackends()


@pytest.fixture
def services(tmp_path: Path, backends: _FakeBackends):
    app_settings = Settings(
        _env_file=None,
        database_path=str(tmp_path / "ragdesk.db"),
        qdrant_url=QDRANT_URL,
        ollama_base_url=OLLAMA_URL,
        default_chat_model=CHAT_MODEL,
        default_embedding_model=EMBEDDING_MODEL,
        chunk_size=60,
        chunk_overlap=0,
        embedding_batch_delay=0.0,
        upsert_batch_delay=0.0,
        vector_retry_base_delay=0.0,
        web_search_threshold=0,
    )
    client = httpx.AsyncClient(transport=httpx.MockTransport(backends))
    return build_services(app_settings, http_client=client)


@pytest.mark.asyncio
async def test_ingest_then_chat_then_clean_up(
    services: dict[str, Any], backends: _FakeBackends, text_file: Path
) -> None:
    storage = services["storage"]
    events = services["events"]
    knowledge = services["knowledge_service"]
    await storage.initialize()

    # -- Knowledge base ---------------------------------------------------
    kb = await knowledge.create_knowledge_base("Docs", EMBEDDING_MODEL)
    assert backends.collections[kb.collection_name]["size"] == 1536

    # -- Ingestion ----------------------------------------------------------
    progress: list[int] = []
    events.subscribe(
        FILE_PROGRESS_EVENT, lambda name, payload: progress.append(payload["progress"])
    )
    managed = await knowledge.register_file(text_file)
    result = await knowledge.add_file_to_knowledge_base(kb.id, managed.id)

    assert result.chunk_count == 3
    assert progress[0] == 0 and progress[-1] == 100
    assert (await storage.get_file(managed.id)).status is IngestionStatus.INDEXED
    assert events.get_file_progress(managed.id)["status"] == "COMPLETED"
    stored = backends.collections[kb.collection_name]["points"]
    assert [p["payload"]["chunk_index"] for p in stored] == [0, 1, 2]

    # -- Chat -----------------------------------------------------------------
    assistant = Assistant(
        id="asst-int",
        name="Docs helper",
        model=CHAT_MODEL,
        system_prompt="Answer from the documents.",
        knowledge_base_ids=(kb.id,),
    )
    await storage.create_assistant(assistant)
    await storage.create_chat_session(ChatSession(id="chat-1", assistant_id=assistant.id))

    streamed: list[str] = []
    events.subscribe(
        chat_chunk_event("chat-1"), lambda name, payload: streamed.append(payload["content"])
    )
    turn = await services["retrieval"].run("chat-1", "What does Qdrant store?")

    assert streamed == ["Qdrant stores ", "vectors."]
    assert turn.assistant_message.content == "Qdrant stores vectors."
    assert turn.retrieved_count == 3
    prompt = backends.chat_prompts[0]
    assert prompt.startswith("Answer from the documents.\n\nContext:\n")
    assert "Each knowledge base owns exactly one collection." in prompt
    assert backends.embedded_texts[-1] == "What does Qdrant store?"

    messages = await storage.get_messages_for_session("chat-1")
    assert [m.role for m in messages] == ["assistant", "user", "assistant"]
    assert messages[0].content.startswith("[Context]\n")

    # -- Providers ------------------------------------------------------------
    provider_service = services["provider_service"]
    assert await provider_service.test_connection("ollama") is True
    models = await provider_service.list_available_models("ollama")
    assert {m.id: m.type for m in models} == {CHAT_MODEL: "chat", EMBEDDING_MODEL: "embedding"}

    # -- Clean-up -------------------------------------------------------------
    await knowledge.remove_file_from_knowledge_base(kb.id, managed.id)
    assert backends.collections[kb.collection_name]["points"] == []
    assert await storage.list_files_for_knowledge_base(kb.id) == []

    await knowledge.delete_knowledge_base(kb.id)
    assert kb.collection_name not in backends.collections
    assert await storage.get_knowledge_base(kb.id) is None

    await close_services(services)


@pytest.mark.asyncio
async def test_reingesting_a_file_does_not_duplicate_points(
    services: dict[str, Any], backends: _FakeBackends, text_file: Path
) -> None:
    await services["storage"].initialize()
    knowledge = services["knowledge_service"]
    kb = await knowledge.create_knowledge_base("Docs", EMBEDDING_MODEL)
    managed = await knowledge.register_file(text_file)

    await knowledge.add_file_to_knowledge_base(kb.id, managed.id)
    await knowledge.add_file_to_knowledge_base(kb.id, managed.id)

    assert len(backends.collections[kb.collection_name]["points"]) == 3
    await close_services(services)
