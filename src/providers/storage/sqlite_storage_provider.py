"""SQLite-backed relational store.

Persists files, knowledge bases, assistants, chat sessions and chat
messages to a local SQLite database (``data/ragdesk.db`` by default).  Uses
``aiosqlite`` for async I/O with one short-lived connection per operation.

Timestamps are stored as ISO-8601 strings.  Messages are returned ordered
by ``created_at`` with the insertion ``rowid`` as tie-breaker, so two turns
saved within the same clock tick keep their order.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from src.interfaces.storage_provider import IStorageProvider
from src.models.knowledge import (
    Assistant,
    ChatMessage,
    ChatSession,
    IngestionStatus,
    KnowledgeBase,
    ManagedFile,
)

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/ragdesk.db")

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS files (
    id          TEXT PRIMARY KEY,
    name        TEXT    NOT NULL,
    path        TEXT    NOT NULL,
    size        INTEGER NOT NULL DEFAULT 0,
    mime_type   TEXT    NOT NULL,
    status      TEXT    NOT NULL,
    created_at  TEXT    NOT NULL
);""",
    """\
CREATE TABLE IF NOT EXISTS knowledge_bases (
    id               TEXT PRIMARY KEY,
    name             TEXT    NOT NULL,
    description      TEXT    NOT NULL DEFAULT '',
    embedding_model  TEXT    NOT NULL,
    vector_size      INTEGER NOT NULL,
    created_at       TEXT    NOT NULL
);""",
    """\
CREATE TABLE IF NOT EXISTS knowledge_base_files (
    knowledge_base_id  TEXT NOT NULL REFERENCES knowledge_bases(id) ON DELETE CASCADE,
    file_id            TEXT NOT NULL REFERENCES files(id) ON DELETE CASCADE,
    PRIMARY KEY (knowledge_base_id, file_id)
);""",
    """\
CREATE TABLE IF NOT EXISTS assistants (
    id             TEXT PRIMARY KEY,
    name           TEXT    NOT NULL,
    description    TEXT    NOT NULL DEFAULT '',
    model          TEXT    NOT NULL,
    system_prompt  TEXT    NOT NULL DEFAULT '',
    temperature    REAL,
    max_tokens     INTEGER,
    created_at     TEXT    NOT NULL
);""",
    """\
CREATE TABLE IF NOT EXISTS assistant_knowledge_bases (
    assistant_id       TEXT    NOT NULL REFERENCES assistants(id) ON DELETE CASCADE,
    knowledge_base_id  TEXT    NOT NULL REFERENCES knowledge_bases(id) ON DELETE CASCADE,
    position           INTEGER NOT NULL,
    PRIMARY KEY (assistant_id, knowledge_base_id)
);""",
    """\
CREATE TABLE IF NOT EXISTS chat_sessions (
    id            TEXT PRIMARY KEY,
    assistant_id  TEXT NOT NULL REFERENCES assistants(id),
    title         TEXT NOT NULL,
    created_at    TEXT NOT NULL
);""",
    """\
CREATE TABLE IF NOT EXISTS chat_messages (
    id          TEXT PRIMARY KEY,
    session_id  TEXT NOT NULL REFERENCES chat_sessions(id) ON DELETE CASCADE,
    role        TEXT NOT NULL,
    content     TEXT NOT NULL,
    created_at  TEXT NOT NULL
);""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_messages_session ON chat_messages(session_id, created_at);",
    "CREATE INDEX IF NOT EXISTS idx_kb_files_file ON knowledge_base_files(file_id);",
]


class SQLiteStorageProvider(IStorageProvider):
    """SQLite-backed :class:`IStorageProvider`."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create all tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with self._connect() as db:
            for sql in _CREATE_TABLES_SQL:
                await db.execute(sql)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("storage_db_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    async def create_file(self, file: ManagedFile) -> ManagedFile:
        await self._execute(
            "INSERT INTO files (id, name, path, size, mime_type, status, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                file.id,
                file.name,
                file.path,
                file.size,
                file.mime_type,
                file.status.value,
                file.created_at.isoformat(),
            ),
        )
        return file

    async def get_file(self, file_id: str) -> ManagedFile | None:
        row = await self._fetch_one("SELECT * FROM files WHERE id = ?", (file_id,))
        return _file_from_row(row) if row else None

    async def update_file_status(self, file_id: str, status: IngestionStatus) -> None:
        await self._execute("UPDATE files SET status = ? WHERE id = ?", (status.value, file_id))
        logger.debug("file_status_updated", file_id=file_id, status=status.value)

    async def list_files_for_knowledge_base(self, knowledge_base_id: str) -> list[ManagedFile]:
        rows = await self._fetch_all(
            "SELECT f.* FROM files f "
            "JOIN knowledge_base_files kf ON kf.file_id = f.id "
            "WHERE kf.knowledge_base_id = ? ORDER BY f.created_at, f.rowid",
            (knowledge_base_id,),
        )
        return [_file_from_row(r) for r in rows]

    # ------------------------------------------------------------------
    # Knowledge bases
    # ------------------------------------------------------------------

    async def create_knowledge_base(self, knowledge_base: KnowledgeBase) -> KnowledgeBase:
        await self._execute(
            "INSERT INTO knowledge_bases "
            "(id, name, description, embedding_model, vector_size, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                knowledge_base.id,
                knowledge_base.name,
                knowledge_base.description,
                knowledge_base.embedding_model,
                knowledge_base.vector_size,
                knowledge_base.created_at.isoformat(),
            ),
        )
        return knowledge_base

    async def get_knowledge_base(self, knowledge_base_id: str) -> KnowledgeBase | None:
        row = await self._fetch_one(
            "SELECT * FROM knowledge_bases WHERE id = ?", (knowledge_base_id,)
        )
        return _knowledge_base_from_row(row) if row else None

    async def list_knowledge_bases(self) -> list[KnowledgeBase]:
        rows = await self._fetch_all(
            "SELECT * FROM knowledge_bases ORDER BY created_at, rowid", ()
        )
        return [_knowledge_base_from_row(r) for r in rows]

    async def delete_knowledge_base(self, knowledge_base_id: str) -> None:
        async with self._connect() as db:
            await db.execute(
                "DELETE FROM knowledge_base_files WHERE knowledge_base_id = ?",
                (knowledge_base_id,),
            )
            await db.execute(
                "DELETE FROM assistant_knowledge_bases WHERE knowledge_base_id = ?",
                (knowledge_base_id,),
            )
            await db.execute("DELETE FROM knowledge_bases WHERE id = ?", (knowledge_base_id,))
            await db.commit()
        logger.info("knowledge_base_record_deleted", knowledge_base_id=knowledge_base_id)

    async def add_file_to_knowledge_base(self, knowledge_base_id: str, file_id: str) -> None:
        await self._execute(
            "INSERT OR IGNORE INTO knowledge_base_files (knowledge_base_id, file_id) "
            "VALUES (?, ?)",
            (knowledge_base_id, file_id),
        )

    async def remove_file_from_knowledge_base(self, knowledge_base_id: str, file_id: str) -> None:
        await self._execute(
            "DELETE FROM knowledge_base_files WHERE knowledge_base_id = ? AND file_id = ?",
            (knowledge_base_id, file_id),
        )

    # ------------------------------------------------------------------
    # Assistants
    # ------------------------------------------------------------------

    async def create_assistant(self, assistant: Assistant) -> Assistant:
        async with self._connect() as db:
            await db.execute(
                "INSERT INTO assistants "
                "(id, name, description, model, system_prompt, temperature, max_tokens, "
                "created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    assistant.id,
                    assistant.name,
                    assistant.description,
                    assistant.model,
                    assistant.system_prompt,
                    assistant.temperature,
                    assistant.max_tokens,
                    assistant.created_at.isoformat(),
                ),
            )
            await db.executemany(
                "INSERT INTO assistant_knowledge_bases "
                "(assistant_id, knowledge_base_id, position) VALUES (?, ?, ?)",
                [
                    (assistant.id, kb_id, position)
                    for position, kb_id in enumerate(assistant.knowledge_base_ids)
                ],
            )
            await db.commit()
        return assistant

    async def get_assistant(self, assistant_id: str) -> Assistant | None:
        row = await self._fetch_one("SELECT * FROM assistants WHERE id = ?", (assistant_id,))
        if row is None:
            return None
        kb_rows = await self._fetch_all(
            "SELECT knowledge_base_id FROM assistant_knowledge_bases "
            "WHERE assistant_id = ? ORDER BY position",
            (assistant_id,),
        )
        return Assistant(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            model=row["model"],
            system_prompt=row["system_prompt"],
            temperature=row["temperature"],
            max_tokens=row["max_tokens"],
            knowledge_base_ids=tuple(r["knowledge_base_id"] for r in kb_rows),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    # ------------------------------------------------------------------
    # Chat sessions and messages
    # ------------------------------------------------------------------

    async def create_chat_session(self, session: ChatSession) -> ChatSession:
        await self._execute(
            "INSERT INTO chat_sessions (id, assistant_id, title, created_at) VALUES (?, ?, ?, ?)",
            (session.id, session.assistant_id, session.title, session.created_at.isoformat()),
        )
        return session

    async def get_chat_session(self, session_id: str) -> ChatSession | None:
        row = await self._fetch_one("SELECT * FROM chat_sessions WHERE id = ?", (session_id,))
        if row is None:
            return None
        return ChatSession(
            id=row["id"],
            assistant_id=row["assistant_id"],
            title=row["title"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    async def get_messages_for_session(self, session_id: str) -> list[ChatMessage]:
        rows = await self._fetch_all(
            "SELECT * FROM chat_messages WHERE session_id = ? ORDER BY created_at, rowid",
            (session_id,),
        )
        return [
            ChatMessage(
                id=r["id"],
                session_id=r["session_id"],
                role=r["role"],
                content=r["content"],
                created_at=datetime.fromisoformat(r["created_at"]),
            )
            for r in rows
        ]

    async def save_message(self, message: ChatMessage) -> ChatMessage:
        await self._execute(
            "INSERT INTO chat_messages (id, session_id, role, content, created_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (
                message.id,
                message.session_id,
                message.role,
                message.content,
                message.created_at.isoformat(),
            ),
        )
        return message

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _connect(self) -> aiosqlite.Connection:
        return aiosqlite.connect(str(self._db_path))

    async def _execute(self, sql: str, params: tuple[Any, ...]) -> None:
        async with self._connect() as db:
            await db.execute(sql, params)
            await db.commit()

    async def _fetch_one(self, sql: str, params: tuple[Any, ...]) -> aiosqlite.Row | None:
        async with self._connect() as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(sql, params)
            return await cursor.fetchone()

    async def _fetch_all(self, sql: str, params: tuple[Any, ...]) -> list[aiosqlite.Row]:
        async with self._connect() as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(sql, params)
            return list(await cursor.fetchall())


def _file_from_row(row: aiosqlite.Row) -> ManagedFile:
    return ManagedFile(
        id=row["id"],
        name=row["name"],
        path=row["path"],
        size=row["size"],
        mime_type=row["mime_type"],
        status=IngestionStatus(row["status"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def _knowledge_base_from_row(row: aiosqlite.Row) -> KnowledgeBase:
    return KnowledgeBase(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        embedding_model=row["embedding_model"],
        vector_size=row["vector_size"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )
