"""Token-bounded text chunking with overlap and paragraph-aware boundaries.

Splits a narration into :class:`~dreamembed.models.embedding.TextChunk`
objects sized for the embedder (~750 tokens each, 100-token overlap, never
more than 1000 tokens).

Token counts are estimated from character length (``chars_per_token``,
4 by default) rather than with a tokenizer: the estimate only has to keep
chunks under the embedder's hard input limit, and a pure function of the
text keeps chunking deterministic across machines.

Boundary preference when cutting a chunk, searched inside a tolerance
window around the target size:

1. **Paragraph break** (blank line) closest to the target.
2. **Sentence end**, skipping abbreviations such as "Dr." or "etc.".
3. **Whitespace**, so no word is severed.
4. **Hard cut** at the target size when the window holds none of the above.

Each following chunk starts ``overlap_tokens`` before the previous cut,
snapped forward to the next word, so the tail of one chunk is textually the
head of the next.
"""

from __future__ import annotations

import math
import re

import structlog

from dreamembed.models.embedding import TextChunk

logger = structlog.get_logger(logger_name=__name__)

# Common abbreviations that should NOT count as a sentence end.
_ABBREVIATIONS = frozenset(
    {
        "Dr",
        "Mr",
        "Mrs",
        "Ms",
        "Prof",
        "Jr",
        "Sr",
        "St",
        "Mt",
        "No",
        "vs",
        "etc",
        "approx",
        "e.g",
        "i.e",
    }
)

_PARAGRAPH_BREAK = re.compile(r"\n[ \t]*\n")
_SENTENCE_END = re.compile(r"[.!?]+[\"')\]]*(?=\s|$)")
_WHITESPACE = re.compile(r"\s")
_WHITESPACE_RUN = re.compile(r"\s+")
_TRAILING_WORD = re.compile(r"([\w.]+)$")


class TextChunker:
    """Splits narration text into overlapping, token-bounded chunks.

    Parameters
    ----------
    max_tokens_per_chunk:
        Embedder hard limit; no chunk ever exceeds it.  Texts at or under
        this size become a single chunk.
    target_chunk_tokens:
        Preferred chunk size when a text must be split.
    overlap_tokens:
        Tokens repeated between consecutive chunks.
    min_tokens_to_chunk:
        Floor below which a text is not embedded at all.
    boundary_tolerance_tokens:
        Half-width of the window around the target in which a natural
        boundary is preferred over an exact cut.
    chars_per_token:
        Characters per estimated token.
    """

    def __init__(
        self,
        max_tokens_per_chunk: int = 1000,
        target_chunk_tokens: int = 750,
        overlap_tokens: int = 100,
        min_tokens_to_chunk: int = 10,
        boundary_tolerance_tokens: int = 50,
        chars_per_token: int = 4,
    ) -> None:
        if chars_per_token < 1:
            raise ValueError("chars_per_token must be >= 1")
        if not 0 < target_chunk_tokens <= max_tokens_per_chunk:
            raise ValueError("target_chunk_tokens must be in (0, max_tokens_per_chunk]")
        if overlap_tokens < 0 or boundary_tolerance_tokens < 0:
            raise ValueError("overlap and tolerance must be non-negative")
        if overlap_tokens + boundary_tolerance_tokens >= target_chunk_tokens:
            raise ValueError("overlap_tokens + boundary_tolerance_tokens must be < target_chunk_tokens")

        self._max_tokens = max_tokens_per_chunk
        self._target_tokens = target_chunk_tokens
        self._overlap_tokens = overlap_tokens
        self._min_tokens = min_tokens_to_chunk
        self._tolerance_tokens = boundary_tolerance_tokens
        self._cpt = chars_per_token

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def estimate_tokens(self, text: str) -> int:
        """Return the estimated token count of *text* (``ceil(len / chars_per_token)``)."""
        return math.ceil(len(text) / self._cpt)

    def meets_floor(self, text: str | None) -> bool:
        """Return ``True`` if *text* is long enough to be embedded."""
        if text is None:
            return False
        stripped = text.strip()
        return bool(stripped) and self.estimate_tokens(stripped) >= self._min_tokens

    def chunk(self, text: str | None) -> list[TextChunk]:
        """Split *text* into ordered, overlapping chunks.

        Returns an empty list when the text is absent, blank, or below the
        chunking floor; callers treat that as "do not embed".  Character
        offsets refer to the whitespace-trimmed text.
        """
        if not self.meets_floor(text):
            return []

        source = text.strip()  # type: ignore[union-attr]
        if self.estimate_tokens(source) <= self._max_tokens:
            spans = [(0, len(source))]
        else:
            spans = self._split(source)

        chunks: list[TextChunk] = []
        prev_end = 0
        for index, (start, end) in enumerate(spans):
            raw = source[start:end]
            body = raw.strip()
            body_start = start + (len(raw) - len(raw.lstrip()))
            body_end = body_start + len(body)
            chunks.append(
                TextChunk(
                    index=index,
                    text=body,
                    token_count=self.estimate_tokens(body),
                    start_char=body_start,
                    end_char=body_end,
                    overlap_with_previous=max(0, prev_end - body_start) if index else 0,
                    total_chunks=len(spans),
                )
            )
            prev_end = body_end

        logger.debug(
            "chunking_complete",
            num_chunks=len(chunks),
            total_tokens=self.estimate_tokens(source),
            max_chunk_tokens=max(c.token_count for c in chunks),
        )
        return chunks

    # ------------------------------------------------------------------
    # Window splitting
    # ------------------------------------------------------------------

    def _split(self, source: str) -> list[tuple[int, int]]:
        """Return ``(start, end)`` character spans covering *source*."""
        cpt = self._cpt
        n = len(source)
        spans: list[tuple[int, int]] = []
        start = 0

        while start < n:
            if self.estimate_tokens(source[start:]) <= self._target_tokens:
                spans.append((start, n))
                break

            ideal = start + self._target_tokens * cpt
            lo = ideal - self._tolerance_tokens * cpt
            hi = min(ideal + self._tolerance_tokens * cpt, start + self._max_tokens * cpt, n)
            cut = self._find_boundary(source, ideal, lo, hi)
            spans.append((start, cut))

            start = self._next_start(source, start, cut)

        return spans

    def _find_boundary(self, source: str, ideal: int, lo: int, hi: int) -> int:
        """Pick the cut position in ``[lo, hi]`` by boundary preference."""
        for candidates in (
            (m.start() for m in _PARAGRAPH_BREAK.finditer(source, lo, hi + 2)),
            self._sentence_ends(source, lo, hi),
            (m.start() for m in _WHITESPACE.finditer(source, lo, hi + 1)),
        ):
            best = _closest(candidates, ideal, lo, hi)
            if best is not None:
                return best
        # No natural boundary within tolerance: hard cut at the target.
        return min(ideal, hi)

    @staticmethod
    def _sentence_ends(source: str, lo: int, hi: int):
        for match in _SENTENCE_END.finditer(source, max(lo - 1, 0), hi + 1):
            end = match.end()
            if match.group().startswith("."):
                preceding = _TRAILING_WORD.search(source, max(match.start() - 16, 0), match.start())
                if preceding and preceding.group(1) in _ABBREVIATIONS:
                    continue
            yield end

    def _next_start(self, source: str, start: int, cut: int) -> int:
        """Back off ``overlap_tokens`` from *cut* and snap to the next word start."""
        candidate = max(cut - self._overlap_tokens * self._cpt, start + 1)
        if candidate >= cut:
            return cut
        if source[candidate - 1].isspace():
            return candidate
        gap = _WHITESPACE_RUN.search(source, candidate, cut)
        if gap is None:
            # The overlap region is one unbroken token; keep the raw offset.
            return candidate
        return gap.end()


def _closest(positions, ideal: int, lo: int, hi: int) -> int | None:
    """Return the position in ``[lo, hi]`` nearest *ideal* (earliest on ties)."""
    best: int | None = None
    for pos in positions:
        if pos < lo or pos > hi:
            continue
        if best is None or abs(pos - ideal) < abs(best - ideal):
            best = pos
    return best
