"""Tests for text cleaning and chunking."""

from hypertroq.rag.chunking import (
    ChunkingOptions,
    TextChunk,
    calculate_chunk_overlap,
    chunk_fitness_content,
    chunk_text,
    clean_text,
    estimate_chunk_count,
    html_to_text,
    split_into_sentences,
    validate_chunks,
)


def _long_text(sentences: int = 30) -> str:
    return " ".join(
        f"Sentence number {i:02d} talks about progressive overload work." for i in range(sentences)
    )


class TestCleanText:
    """Tests for clean_text and html_to_text."""

    def test_empty(self):
        assert clean_text("") == ""

    def test_space_before_punctuation_and_glued_sentence(self):
        assert clean_text("Train hard .Then rest") == "Train hard. Then rest"

    def test_glued_words(self):
        assert clean_text("Progressive overloadIs key") == "Progressive overload Is key"

    def test_whitespace_normalized(self):
        assert clean_text("Sets\tand   reps\r\nmatter") == "Sets and reps\nmatter"

    def test_html_to_text(self):
        html = (
            "<script>var x = 1;</script><p>Hello &amp; welcome</p>"
            "<ul><li>One</li><li>Two</li></ul>"
        )
        assert html_to_text(html) == "Hello & welcome\n\n• One\n• Two"

    def test_clean_text_strips_html(self):
        assert clean_text("<p>Volume drives growth.</p>") == "Volume drives growth."


class TestSplitIntoSentences:
    """Tests for split_into_sentences."""

    def test_abbreviation_not_a_boundary(self):
        text = "Dr. Smith recommends training to failure. Aim for 10 sets per week."
        assert split_into_sentences(text) == [
            "Dr. Smith recommends training to failure.",
            "Aim for 10 sets per week.",
        ]

    def test_units_protected(self):
        assert split_into_sentences("He squatted 140 kg. for a double today.") == [
            "He squatted 140 kg. for a double today."
        ]

    def test_short_fragments_dropped(self):
        assert split_into_sentences("Yes. This sentence is long enough.") == [
            "This sentence is long enough."
        ]

    def test_trailing_text_without_punctuation(self):
        assert split_into_sentences("First sentence here. and a trailing clause") == [
            "First sentence here.",
            "and a trailing clause",
        ]


class TestChunkText:
    """Tests for chunk_text."""

    def test_short_text_single_chunk(self):
        chunks = chunk_text("Short note.")
        assert len(chunks) == 1
        assert chunks[0].content == "Short note."
        assert chunks[0].start_char == 0

    def test_long_text_multiple_chunks(self):
        chunks = chunk_fitness_content(_long_text())
        assert len(chunks) > 1
        assert [c.index for c in chunks] == list(range(len(chunks)))
        assert all(len(c.content) <= 512 for c in chunks)

    def test_chunks_overlap(self):
        chunks = chunk_fitness_content(_long_text())
        assert chunks[1].content.startswith(chunks[0].content[-100:].strip())
        assert calculate_chunk_overlap(chunks[0], chunks[1]) > 0

    def test_no_overlap_option(self):
        chunks = chunk_text(_long_text(), ChunkingOptions(chunk_overlap=0))
        assert len(chunks) > 1
        assert calculate_chunk_overlap(chunks[0], chunks[1]) == 0.0

    def test_character_fallback(self):
        """Only tiny sentences: falls back to character chunking."""
        chunks = chunk_text("Go now. " * 20)
        assert len(chunks) == 1
        assert chunks[0].content.startswith("Go now.")

    def test_character_fallback_breaks_at_sentences(self):
        opts = ChunkingOptions(chunk_size=100, chunk_overlap=20, min_chunk_size=10)
        chunks = chunk_text("Go now. " * 40, opts)
        assert len(chunks) > 1
        assert all(len(c.content) <= 100 for c in chunks)
        assert all(c.content.endswith(".") for c in chunks)
        assert all(a.start_char < b.start_char for a, b in zip(chunks, chunks[1:]))

    def test_chunks_validate(self):
        validation = validate_chunks(chunk_fitness_content(_long_text()))
        assert validation.is_valid
        assert validation.warnings == []


class TestChunkHelpers:
    """Tests for overlap, estimate and validation helpers."""

    def test_overlap_fraction(self):
        first = TextChunk("a", 0, 0, 100)
        second = TextChunk("b", 1, 50, 250)
        assert calculate_chunk_overlap(first, second) == 0.5

    def test_no_overlap(self):
        assert calculate_chunk_overlap(TextChunk("a", 0, 0, 10), TextChunk("b", 1, 10, 20)) == 0.0

    def test_estimate_chunk_count(self):
        assert estimate_chunk_count("x" * 1000) == 3
        assert estimate_chunk_count("short") == 1

    def test_validate_small_chunk(self):
        validation = validate_chunks([TextChunk("tiny", 0, 0, 4)])
        assert not validation.is_valid
        assert validation.warnings == ["1 chunks are very small (<50 characters)"]

    def test_validate_gap(self):
        body = "x" * 60
        validation = validate_chunks([TextChunk(body, 0, 0, 100), TextChunk(body, 1, 200, 300)])
        assert validation.warnings == ["Gap detected between chunks 0 and 1"]
