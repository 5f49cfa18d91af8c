"""Prompt assembly for the retrieval pipeline.

The prompt is one flat string so every provider (chat or completion
style) receives the same thing:

    {system prompt}

    Context:
    {retrieved context}

    Web Search Results:
    1. {title}
       {snippet}
       Source: {url}

    {role}: {content}        <- up to the last 10 history messages
    user: {message}
    assistant:

Empty sections are omitted.  Also home to the keyword extraction used to
turn a chat message into a web search query.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from src.interfaces.web_search_provider import SearchResult
from src.models.knowledge import ChatMessage

NO_CONTEXT = "No relevant context found."
CONTEXT_MESSAGE_PREFIX = "[Context]\n"

STOP_WORDS: frozenset[str] = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "is", "are", "was", "were", "be", "been", "have",
        "has", "had", "do", "does", "did", "will", "would", "could", "should",
        "may", "might", "must", "i", "you", "he", "she", "it", "we", "they",
        "me", "him", "her", "us", "them",
    }
)

_PUNCTUATION = re.compile(r"[^\w\s]")


def extract_keywords(query: str) -> str:
    """Lower-case, strip punctuation, drop stop-words and words of <= 2 chars.

    >>> extract_keywords("What is the capital of France?")
    'what capital france'
    """
    words = _PUNCTUATION.sub("", query.lower()).split()
    return " ".join(w for w in words if len(w) > 2 and w not in STOP_WORDS)


def has_context(context: str) -> bool:
    """``True`` when *context* holds retrieved text rather than the placeholder."""
    return bool(context.strip()) and context != NO_CONTEXT


def format_context_message(context: str) -> str:
    """Content of the synthetic assistant message that records retrieved context."""
    return f"{CONTEXT_MESSAGE_PREFIX}{context}"


def build_prompt(
    system_prompt: str,
    history: Sequence[ChatMessage],
    user_message: str,
    context: str = "",
    web_results: Sequence[SearchResult] = (),
    history_window: int = 10,
) -> str:
    """Assemble the full prompt string.

    Parameters
    ----------
    system_prompt:
        The assistant's instructions; omitted when empty.
    history:
        Prior messages of the session, oldest first.
    user_message:
        The new user turn.
    context:
        Retrieved knowledge-base text; omitted when empty or the placeholder.
    web_results:
        Web search hits, numbered from 1.
    history_window:
        How many of the most recent history messages to include.
    """
    parts: list[str] = []
    if system_prompt:
        parts.append(f"{system_prompt}\n\n")

    if has_context(context):
        parts.append(f"Context:\n{context}\n\n")

    if web_results:
        parts.append("Web Search Results:\n")
        for i, result in enumerate(web_results, start=1):
            parts.append(f"{i}. {result.title}\n   {result.snippet}\n   Source: {result.url}\n\n")
        parts.append("\n")

    recent = list(history)[-history_window:] if history_window > 0 else []
    for message in recent:
        parts.append(f"{message.role}: {message.content}\n")

    parts.append(f"user: {user_message}\nassistant: ")
    return "".join(parts)
