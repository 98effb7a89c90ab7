"""Text chunking for vector embeddings.

Documents are cleaned, split into sentences and packed into overlapping
chunks small enough to carry one focused idea each. When sentence packing
yields nothing usable, a character-based splitter takes over and breaks at
paragraph, sentence or word boundaries where it can.
"""

import math
import re
from dataclasses import dataclass

_HTML_TAG = re.compile(r"<[^>]*>")
_SENTENCE_END = re.compile(r"[.!?]+(?:\s+|$)")
_ABBREVIATIONS = re.compile(
    r"\b(?:Dr|Mr|Mrs|Ms|vs|etc|i\.e|e\.g|rep|reps|max|min|kg|lb|cm|ft|in|sec|vol|no|fig|ref|al|pp)\.",
    re.IGNORECASE,
)
_PLACEHOLDER = "\x00"

MIN_SENTENCE_LENGTH = 10


@dataclass
class TextChunk:
    content: str
    index: int
    start_char: int
    end_char: int


@dataclass
class ChunkingOptions:
    chunk_size: int = 512
    chunk_overlap: int = 100
    preserve_sentences: bool = True
    preserve_paragraphs: bool = True
    min_chunk_size: int = 50


@dataclass
class ChunkValidation:
    is_valid: bool
    warnings: list[str]
    suggestions: list[str]


def html_to_text(html: str) -> str:
    """Strip markup, keeping paragraph and list structure as newlines."""
    text = re.sub(r"<script[^>]*>[\s\S]*?</script>", "", html, flags=re.IGNORECASE)
    text = re.sub(r"<style[^>]*>[\s\S]*?</style>", "", text, flags=re.IGNORECASE)
    text = re.sub(r"<br\s*/?>", "\n", text, flags=re.IGNORECASE)
    text = re.sub(r"</p>", "\n\n", text, flags=re.IGNORECASE)
    text = re.sub(r"</div>", "\n", text, flags=re.IGNORECASE)
    text = re.sub(r"</h[1-6]>", "\n\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<li[^>]*>", "• ", text, flags=re.IGNORECASE)
    text = re.sub(r"</li>", "\n", text, flags=re.IGNORECASE)
    text = _HTML_TAG.sub("", text)
    for entity, char in (
        ("&nbsp;", " "),
        ("&lt;", "<"),
        ("&gt;", ">"),
        ("&quot;", '"'),
        ("&#39;", "'"),
        ("&amp;", "&"),
    ):
        text = text.replace(entity, char)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def clean_text(text: str) -> str:
    """Normalize whitespace and repair common PDF extraction artifacts."""
    if not text:
        return ""

    cleaned = html_to_text(text) if _HTML_TAG.search(text) else text

    cleaned = cleaned.replace("\r\n", "\n").replace("\r", "\n").replace("\t", " ")
    cleaned = re.sub(r" +", " ", cleaned)

    # Glued words from PDF text layers
    cleaned = re.sub(r"([a-z])([A-Z])", r"\1 \2", cleaned)
    cleaned = re.sub(r"([.!?])([A-Z])", r"\1 \2", cleaned)
    cleaned = re.sub(r"(\d+)([A-Z])", r"\1 \2", cleaned)

    cleaned = re.sub(r"\s+([.!?,;:])", r"\1", cleaned)
    cleaned = re.sub(r"([.!?])\s*\n\s*", r"\1\n\n", cleaned)
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)
    return cleaned.strip()


def split_into_sentences(text: str) -> list[str]:
    """Split text into sentences without breaking on common abbreviations.

    Fragments of 10 characters or fewer are dropped.
    """
    protected = _ABBREVIATIONS.sub(lambda m: m.group(0).replace(".", _PLACEHOLDER), text)

    sentences = []
    last_index = 0
    for match in _SENTENCE_END.finditer(protected):
        if match.end() == last_index:
            continue
        sentence = protected[last_index : match.end()].replace(_PLACEHOLDER, ".").strip()
        if len(sentence) > MIN_SENTENCE_LENGTH:
            sentences.append(sentence)
        last_index = match.end()

    if last_index < len(protected):
        remaining = protected[last_index:].replace(_PLACEHOLDER, ".").strip()
        if len(remaining) > MIN_SENTENCE_LENGTH:
            sentences.append(remaining)

    return sentences


def _find_break_point(text: str, start: int, end: int, opts: ChunkingOptions) -> int:
    region = text[start:end]

    if opts.preserve_paragraphs:
        paragraph_break = region.rfind("\n\n")
        if paragraph_break > len(region) * 0.5:
            return start + paragraph_break + 2

    if opts.preserve_sentences:
        last_sentence_end = -1
        for match in re.finditer(r"[.!?]\s+", region):
            if match.start() > len(region) * 0.3:
                last_sentence_end = start + match.end()
        if last_sentence_end > start:
            return last_sentence_end

    space = region.rfind(" ")
    if space > len(region) * 0.5:
        return start + space

    return end


def _character_chunks(text: str, opts: ChunkingOptions) -> list[TextChunk]:
    chunks: list[TextChunk] = []
    position = 0

    while position < len(text):
        end = min(position + opts.chunk_size, len(text))
        chunk_end = _find_break_point(text, position, end, opts) if end < len(text) else end

        content = text[position:chunk_end].strip()
        if len(content) >= opts.min_chunk_size:
            chunks.append(TextChunk(content, len(chunks), position, chunk_end))

        if chunk_end >= len(text):
            break
        next_position = max(chunk_end - opts.chunk_overlap, position + 1)
        if next_position >= chunk_end:
            break
        position = next_position

    return chunks


def chunk_text(text: str, options: ChunkingOptions | None = None) -> list[TextChunk]:
    """Split text into overlapping chunks for embedding.

    Text shorter than ``min_chunk_size`` after cleaning yields a single chunk.
    """
    opts = options or ChunkingOptions()
    cleaned = clean_text(text)

    if len(cleaned.strip()) < opts.min_chunk_size:
        return [TextChunk(cleaned.strip(), 0, 0, len(cleaned))]

    chunks: list[TextChunk] = []
    current = ""
    current_start = 0

    for sentence in split_into_sentences(cleaned):
        candidate = f"{current} {sentence}" if current else sentence

        if len(candidate) > opts.chunk_size and len(current) >= opts.min_chunk_size:
            chunks.append(
                TextChunk(current.strip(), len(chunks), current_start, current_start + len(current))
            )
            if 0 < opts.chunk_overlap < len(current):
                overlap = current[-opts.chunk_overlap :]
                current_start = current_start + len(current) - len(overlap)
                current = f"{overlap} {sentence}"
            else:
                current_start = current_start + len(current) + 1
                current = sentence
        else:
            current = candidate

    if len(current.strip()) >= opts.min_chunk_size:
        chunks.append(
            TextChunk(current.strip(), len(chunks), current_start, current_start + len(current))
        )

    if not chunks:
        return _character_chunks(cleaned, opts)
    return chunks


def chunk_fitness_content(text: str) -> list[TextChunk]:
    """Chunk with the settings tuned for training literature."""
    return chunk_text(
        text,
        ChunkingOptions(
            chunk_size=512,
            chunk_overlap=100,
            preserve_sentences=True,
            preserve_paragraphs=True,
            min_chunk_size=50,
        ),
    )


def calculate_chunk_overlap(first: TextChunk, second: TextChunk) -> float:
    """Overlap as a fraction (0-1) of the shorter chunk's span."""
    overlap_start = max(first.start_char, second.start_char)
    overlap_end = min(first.end_char, second.end_char)
    if overlap_start >= overlap_end:
        return 0.0
    shortest = min(first.end_char - first.start_char, second.end_char - second.start_char)
    return (overlap_end - overlap_start) / shortest


def estimate_chunk_count(text: str, options: ChunkingOptions | None = None) -> int:
    opts = options or ChunkingOptions()
    if not text or len(text) < opts.min_chunk_size:
        return 1
    effective = max(1, opts.chunk_size - opts.chunk_overlap)
    return math.ceil(len(text) / effective)


def validate_chunks(chunks: list[TextChunk]) -> ChunkValidation:
    """Flag undersized or oversized chunks and gaps in coverage."""
    warnings: list[str] = []
    suggestions: list[str] = []

    small = [c for c in chunks if len(c.content) < 50]
    if small:
        warnings.append(f"{len(small)} chunks are very small (<50 characters)")
        suggestions.append("Consider increasing minimum chunk size or merging small chunks")

    large = [c for c in chunks if len(c.content) > 2000]
    if large:
        warnings.append(f"{len(large)} chunks are very large (>2000 characters)")
        suggestions.append("Consider reducing chunk size for better semantic granularity")

    for i in range(1, len(chunks)):
        if chunks[i].start_char - chunks[i - 1].end_char > 10:
            warnings.append(f"Gap detected between chunks {i - 1} and {i}")
            suggestions.append("Review text processing to ensure complete coverage")
            break

    return ChunkValidation(is_valid=not warnings, warnings=warnings, suggestions=suggestions)
