"""Recursive separator-based text chunking with overlap.

Splits document text into chunks of at most ``chunk_size`` characters,
preferring the coarsest boundary available: paragraphs (``"\\n\\n"``), then
lines, then words, then single characters.

The algorithm has two phases:

1. **Recursive split** -- split on the highest-priority separator present in
   the text, keeping each separator attached to the *start* of the piece
   that follows it, and greedily pack pieces into chunks.  A piece that is
   still too long on its own is split again with the remaining,
   finer-grained separators.  Because no character is dropped, joining the
   raw chunks reproduces the input exactly.

2. **Overlap stitching** -- every chunk after the first is prefixed with up
   to ``chunk_overlap`` characters from the end of the previous raw chunk,
   moved forward to a separator boundary when one falls inside the window,
   so concepts that straddle a boundary appear intact in one chunk.

The chunker is pure: same input and parameters, same output.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from src.models.rag import Chunk

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_SEPARATORS: tuple[str, ...] = ("\n\n", "\n", " ", "")


class TextChunker:
    """Splits text into overlapping, size-bounded chunks.

    Parameters
    ----------
    chunk_size:
        Maximum characters per chunk before overlap is added (default 1000).
    chunk_overlap:
        Maximum characters carried over from the previous chunk (default 200).
    separators:
        Boundaries to split on, highest priority first.  ``""`` means
        character level.
    """

    def __init__(
        self,
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
        separators: Sequence[str] = DEFAULT_SEPARATORS,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if chunk_overlap < 0 or chunk_overlap >= chunk_size:
            raise ValueError(
                f"chunk_overlap must be in [0, chunk_size), got {chunk_overlap}"
            )
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap
        self._separators = tuple(separators)
        self._boundaries = tuple(s for s in self._separators if s)

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def chunk_overlap(self) -> int:
        return self._chunk_overlap

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def split(self, text: str) -> list[str]:
        """Split *text* into overlapping chunks.

        Returns an empty list for empty text and ``[text]`` when the whole
        text fits in one chunk.
        """
        return self._stitch(self.split_raw(text))

    def split_raw(self, text: str) -> list[str]:
        """Split *text* without overlap.  ``"".join(result) == text``."""
        if not text:
            return []
        return self._split_recursive(text, self._separators)

    def chunk(self, text: str) -> list[Chunk]:
        """Like :meth:`split`, wrapped as indexed :class:`Chunk` models."""
        chunks = [Chunk(text=piece, index=i) for i, piece in enumerate(self.split(text))]
        logger.debug(
            "text_chunked",
            text_length=len(text),
            chunk_count=len(chunks),
            chunk_size=self._chunk_size,
            chunk_overlap=self._chunk_overlap,
        )
        return chunks

    # ------------------------------------------------------------------
    # Phase 1: recursive split
    # ------------------------------------------------------------------

    def _split_recursive(self, text: str, separators: Sequence[str]) -> list[str]:
        if len(text) <= self._chunk_size:
            return [text]

        sep_index = self._pick_separator(text, separators)
        if sep_index is None:
            return self._hard_split(text)

        separator = separators[sep_index]
        finer = separators[sep_index + 1 :]

        chunks: list[str] = []
        current = ""
        for piece in _split_keeping_separator(text, separator):
            if len(current) + len(piece) <= self._chunk_size:
                current += piece
                continue
            if current:
                chunks.append(current)
                current = ""
            if len(piece) > self._chunk_size:
                chunks.extend(self._split_recursive(piece, finer))
            else:
                current = piece
        if current:
            chunks.append(current)
        return chunks

    @staticmethod
    def _pick_separator(text: str, separators: Sequence[str]) -> int | None:
        for i, separator in enumerate(separators):
            if separator == "" or separator in text:
                return i
        return None

    def _hard_split(self, text: str) -> list[str]:
        size = self._chunk_size
        return [text[i : i + size] for i in range(0, len(text), size)]

    # ------------------------------------------------------------------
    # Phase 2: overlap stitching
    # ------------------------------------------------------------------

    def _stitch(self, raw_chunks: list[str]) -> list[str]:
        if self._chunk_overlap == 0 or len(raw_chunks) < 2:
            return list(raw_chunks)
        stitched = [raw_chunks[0]]
        for previous, current in zip(raw_chunks, raw_chunks[1:]):
            stitched.append(self._overlap_tail(previous) + current)
        return stitched

    def _overlap_tail(self, previous: str) -> str:
        """Return a suffix of *previous*, at most ``chunk_overlap`` long."""
        window = min(self._chunk_overlap, len(previous))
        if window == 0:
            return ""
        tail = previous[-window:]
        preceding = previous[: len(previous) - window]
        if not preceding or self._at_boundary(preceding, tail):
            return tail
        # The window starts mid-token: move forward to the first boundary.
        for separator in self._boundaries:
            position = tail.find(separator)
            if position > 0:
                return tail[position:]
        return tail

    def _at_boundary(self, preceding: str, tail: str) -> bool:
        return any(
            tail.startswith(separator) or preceding.endswith(separator)
            for separator in self._boundaries
        )


def _split_keeping_separator(text: str, separator: str) -> list[str]:
    """Split *text* on *separator*, prefixing each later piece with it."""
    if separator == "":
        return list(text)
    head, *rest = text.split(separator)
    pieces = [head, *(separator + part for part in rest)]
    return [piece for piece in pieces if piece]
