"""Chunker - splits source documents into retrieval units."""

import logging
import re

from ..models.document import Chunk, SourceDocument

logger = logging.getLogger(__name__)

# Searched in order; the first marker found past the window midpoint wins.
BREAK_POINTS = ("\n\n", ".\n", ". ", "!\n", "! ", "?\n", "? ", "\n")

# Terminal punctuation followed by whitespace or end of text, so "3.14"
# and "example.com" stay inside one segment.
_SENTENCE_END = re.compile(r"[.!?]+(?:\s+|$)")

WINDOW = "window"
SEMANTIC = "semantic"


class DocumentChunker:
    """Overlapping-window or sentence-merging chunker."""

    def __init__(
        self,
        chunk_size: int = 500,
        chunk_overlap: int = 100,
        strategy: str = WINDOW,
        target_size: int | None = None,
    ):
        """Initialize chunker.

        Args:
            chunk_size: Window size in characters.
            chunk_overlap: Overlap between consecutive windows.
            strategy: "window" or "semantic".
            target_size: Target chunk size for the semantic strategy
                (defaults to ``chunk_size``).
        """
        if strategy not in (WINDOW, SEMANTIC):
            raise ValueError(f"Unknown chunking strategy: {strategy}")
        if chunk_size < 1:
            raise ValueError("chunk_size must be positive")

        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap
        self._strategy = strategy
        self._target_size = target_size or chunk_size

    @property
    def step(self) -> int:
        step = self._chunk_size - self._chunk_overlap
        if step <= 0:
            step = self._chunk_size // 2
        return max(step, 1)

    def chunk(self, document: SourceDocument) -> list[Chunk]:
        """Split a document into ordered chunks.

        Args:
            document: Source document.

        Returns:
            Chunks with dense 0-based ``chunk_index``; empty for blank input.
        """
        if not document.content or not document.content.strip():
            logger.warning(f"Document {document.file_name} has no content to chunk")
            return []

        if self._strategy == SEMANTIC:
            spans = self._semantic_spans(document.content)
        else:
            spans = self._window_spans(document.content)

        chunks = [
            Chunk(
                content=text,
                source_document_id=document.id,
                source_file_name=document.file_name,
                chunk_index=i,
                start_offset=start,
                end_offset=end,
            )
            for i, (text, start, end) in enumerate(spans)
        ]

        logger.info(
            f"Chunked document {document.file_name} into {len(chunks)} chunks "
            f"(strategy: {self._strategy}, size: {self._chunk_size}, "
            f"overlap: {self._chunk_overlap})"
        )
        return chunks

    def _window_spans(self, content: str) -> list[tuple[str, int, int]]:
        spans = []
        position = 0

        while position < len(content):
            end = min(position + self._chunk_size, len(content))
            window = content[position:end]

            if end < len(content):
                window = self._adjust_boundary(window)

            if window.strip():
                spans.append((window.strip(), position, position + len(window)))

            # A boundary cut shorter than the step would leave a gap.
            position += min(self.step, len(window))

        return spans

    def _adjust_boundary(self, window: str) -> str:
        """Cut at the last sentence/paragraph break past the midpoint."""
        for marker in BREAK_POINTS:
            last_break = window.rfind(marker)
            if last_break > self._chunk_size // 2:
                return window[: last_break + len(marker)]
        return window

    @staticmethod
    def split_sentences(content: str) -> list[tuple[int, int]]:
        """Sentence-like segments as (start, end) offsets covering the text."""
        segments = []
        start = 0
        for match in _SENTENCE_END.finditer(content):
            if match.end() > start:
                segments.append((start, match.end()))
                start = match.end()
        if start < len(content):
            segments.append((start, len(content)))
        return segments

    def _semantic_spans(self, content: str) -> list[tuple[str, int, int]]:
        limit = self._target_size * 1.3
        spans = []
        current: tuple[int, int] | None = None

        for seg_start, seg_end in self.split_sentences(content):
            if current is None:
                current = (seg_start, seg_end)
                continue

            current_len = current[1] - current[0]
            merged_len = seg_end - current[0]
            if merged_len > limit and current_len >= self._target_size:
                spans.append(current)
                current = (seg_start, seg_end)
            else:
                current = (current[0], seg_end)

        if current is not None:
            spans.append(current)

        trimmed = []
        for start, end in spans:
            text = content[start:end]
            stripped = text.strip()
            if not stripped:
                continue
            lead = len(text) - len(text.lstrip())
            new_start = start + lead
            trimmed.append((stripped, new_start, new_start + len(stripped)))
        return trimmed
