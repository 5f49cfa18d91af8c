"""Unit tests for the TextChunker -- recursive separator splitting with overlap."""

from __future__ import annotations

import pytest

from src.services.ingestion.chunker import TextChunker

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_PARAGRAPHS = "\n\n".join(
    f"Paragraph {i} talks about vector search and chunk boundaries in some detail."
    for i in range(12)
)


def _make_chunker(chunk_size: int = 200, overlap: int = 40, **kwargs) -> TextChunker:
    return TextChunker(chunk_size=chunk_size, chunk_overlap=overlap, **kwargs)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_rejects_non_positive_size(self) -> None:
        with pytest.raises(ValueError, match="chunk_size"):
            TextChunker(chunk_size=0)

    def test_rejects_overlap_not_smaller_than_size(self) -> None:
        with pytest.raises(ValueError, match="chunk_overlap"):
            TextChunker(chunk_size=100, chunk_overlap=100)

    def test_rejects_negative_overlap(self) -> None:
        with pytest.raises(ValueError):
            TextChunker(chunk_size=100, chunk_overlap=-1)

    def test_defaults(self) -> None:
        chunker = TextChunker()
        assert chunker.chunk_size == 1000
        assert chunker.chunk_overlap == 200


class TestSmallInputs:
    def test_empty_text_yields_no_chunks(self) -> None:
        assert _make_chunker().split("") == []

    def test_text_that_fits_is_one_chunk(self) -> None:
        assert _make_chunker().split("short text") == ["short text"]


class TestRawSplit:
    def test_raw_chunks_reassemble_to_input(self) -> None:
        chunker = _make_chunker(chunk_size=120, overlap=20)
        raw = chunker.split_raw(_PARAGRAPHS)
        assert len(raw) > 1
        assert "".join(raw) == _PARAGRAPHS

    def test_raw_chunks_respect_size(self) -> None:
        chunker = _make_chunker(chunk_size=120, overlap=20)
        assert all(len(c) <= 120 for c in chunker.split_raw(_PARAGRAPHS))

    def test_paragraph_boundaries_preferred(self) -> None:
        chunker = _make_chunker(chunk_size=200, overlap=0)
        raw = chunker.split_raw(_PARAGRAPHS)
        # Every chunk after the first starts on a paragraph separator.
        assert all(chunk.startswith("\n\n") for chunk in raw[1:])

    def test_oversized_paragraph_falls_back_to_words(self) -> None:
        long_paragraph = " ".join(["word"] * 60)
        chunker = _make_chunker(chunk_size=50, overlap=0)
        raw = chunker.split_raw(long_paragraph)
        assert "".join(raw) == long_paragraph
        assert all(len(c) <= 50 for c in raw)
        assert all(c.startswith(" ") for c in raw[1:])

    def test_unbreakable_text_is_hard_cut(self) -> None:
        chunker = _make_chunker(chunk_size=10, overlap=0, separators=("\n\n",))
        assert chunker.split_raw("x" * 25) == ["x" * 10, "x" * 10, "x" * 5]

    def test_character_level_separator(self) -> None:
        chunker = _make_chunker(chunk_size=4, overlap=0, separators=("",))
        assert chunker.split_raw("abcdefghij") == ["abcd", "efgh", "ij"]


class TestOverlap:
    def test_documented_example(self) -> None:
        chunker = TextChunker(chunk_size=6, chunk_overlap=2, separators=("\n\n",))
        assert chunker.split("AAAA\n\nBBBB\n\nCCCC") == [
            "AAAA",
            "AA\n\nBBBB",
            "BB\n\nCCCC",
        ]

    def test_overlap_never_exceeds_limit(self) -> None:
        chunker = _make_chunker(chunk_size=120, overlap=30)
        raw = chunker.split_raw(_PARAGRAPHS)
        stitched = chunker.split(_PARAGRAPHS)
        assert len(raw) == len(stitched)
        for raw_chunk, final in zip(raw[1:], stitched[1:]):
            assert final.endswith(raw_chunk)
            assert len(final) - len(raw_chunk) <= 30

    @pytest.mark.parametrize(
        ("text", "chunk_size", "overlap", "separators"),
        [
            (_PARAGRAPHS, 120, 30, ("\n\n", "\n", " ", "")),
            ("alpha bravo charlie delta echo foxtrot golf hotel india", 20, 8, ("\n\n", " ", "")),
            ("x" * 53, 10, 3, ("\n\n",)),
        ],
        ids=["paragraphs", "words", "hard-cut"],
    )
    def test_prefix_is_suffix_of_previous_raw_chunk(
        self, text: str, chunk_size: int, overlap: int, separators: tuple[str, ...]
    ) -> None:
        chunker = TextChunker(chunk_size=chunk_size, chunk_overlap=overlap, separators=separators)
        raw = chunker.split_raw(text)
        stitched = chunker.split(text)

        assert len(raw) > 1
        assert len(stitched) == len(raw)
        assert stitched[0] == raw[0]
        for i in range(1, len(raw)):
            prefix = stitched[i][: len(stitched[i]) - len(raw[i])]
            assert stitched[i].endswith(raw[i])
            assert raw[i - 1].endswith(prefix)
            assert len(prefix) <= overlap
        assert all(len(chunk) <= chunk_size + overlap for chunk in stitched)

    def test_overlap_snaps_to_word_boundary(self) -> None:
        chunker = TextChunker(chunk_size=20, chunk_overlap=8, separators=("\n\n", " ", ""))
        text = "alpha bravo charlie delta echo foxtrot"
        raw = chunker.split_raw(text)
        stitched = chunker.split(text)
        for raw_chunk, final in zip(raw[1:], stitched[1:]):
            prefix = final[: len(final) - len(raw_chunk)]
            # The carried-over tail never begins mid-word.
            assert prefix == "" or prefix.startswith(" ")

    def test_zero_overlap_returns_raw_chunks(self) -> None:
        chunker = _make_chunker(chunk_size=120, overlap=0)
        assert chunker.split(_PARAGRAPHS) == chunker.split_raw(_PARAGRAPHS)

    def test_deterministic(self) -> None:
        chunker = _make_chunker()
        assert chunker.split(_PARAGRAPHS) == chunker.split(_PARAGRAPHS)


class TestChunkModels:
    def test_chunks_are_indexed_in_order(self) -> None:
        chunker = _make_chunker(chunk_size=120, overlap=20)
        chunks = chunker.chunk(_PARAGRAPHS)
        assert [c.index for c in chunks] == list(range(len(chunks)))
        assert [c.text for c in chunks] == chunker.split(_PARAGRAPHS)
