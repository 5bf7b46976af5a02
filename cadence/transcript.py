"""
cadence.transcript - Time-aligned transcript input.

Parses the Transcription Provider's JSON (a flat ``words`` list or
Whisper-style ``segments[].words``) into an ordered, immutable word list
and offers nearest-by-timestamp lookups used for pause and filler context.
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from dataclasses import dataclass, field
from typing import Any

from cadence.exceptions import TranscriptMismatchError


@dataclass(frozen=True)
class TranscriptWord:
    """A single recognized token with its time span in seconds."""

    word: str
    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass(frozen=True)
class Transcript:
    """Ordered words plus the recording's language code."""

    words: tuple[TranscriptWord, ...]
    language: str = ""
    text: str = ""
    _starts: tuple[float, ...] = field(init=False, repr=False, compare=False)
    _by_end: tuple[TranscriptWord, ...] = field(init=False, repr=False, compare=False)
    _ends: tuple[float, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        ordered = tuple(sorted(self.words, key=lambda w: (w.start, w.end)))
        object.__setattr__(self, "words", ordered)
        object.__setattr__(self, "_starts", tuple(w.start for w in ordered))
        # overlapping words make end order differ from start order
        by_end = tuple(sorted(ordered, key=lambda w: (w.end, w.start)))
        object.__setattr__(self, "_by_end", by_end)
        object.__setattr__(self, "_ends", tuple(w.end for w in by_end))

    @classmethod
    def from_words(cls, words: list[dict[str, Any]], language: str = "") -> Transcript:
        """Build a transcript from ``{word, start, end}`` dicts."""
        parsed = [_parse_word(w) for w in words]
        return cls(words=tuple(w for w in parsed if w is not None), language=language)

    @classmethod
    def from_dict(cls, data: dict[str, Any], language: str | None = None) -> Transcript:
        """Parse a provider transcript.

        Accepts either a top-level ``words`` list or Whisper-style
        ``segments`` each carrying ``words``. Segments without word
        timestamps are split on whitespace and spread evenly over the
        segment's span.

        Args:
            data: Transcript dict
            language: Overrides the transcript's own ``language`` field
        """
        lang = language or data.get("language") or ""
        text = data.get("text", "")

        if data.get("words"):
            transcript = cls.from_words(data["words"], language=lang)
            return cls(words=transcript.words, language=lang, text=text)

        words: list[TranscriptWord] = []
        segment_texts = []
        for seg in data.get("segments", []):
            segment_texts.append(seg.get("text", "").strip())
            if seg.get("words"):
                words.extend(w for w in (_parse_word(w) for w in seg["words"]) if w is not None)
            else:
                words.extend(_spread_segment_words(seg))

        return cls(words=tuple(words), language=lang, text=text or " ".join(segment_texts))

    def __len__(self) -> int:
        return len(self.words)

    @property
    def word_count(self) -> int:
        return len(self.words)

    @property
    def last_end(self) -> float:
        return self._ends[-1] if self._ends else 0.0

    def validate_against(self, duration: float, tolerance: float) -> None:
        """Check the transcript fits inside an audio recording.

        Raises:
            TranscriptMismatchError: If a word has a negative span or ends more
                than ``tolerance`` seconds after the audio
        """
        for w in self.words:
            if w.end < w.start or w.start < 0:
                raise TranscriptMismatchError(
                    f"Word {w.word!r} has an invalid time span ({w.start:.3f}s-{w.end:.3f}s)"
                )
        if self.words and self.last_end > duration + tolerance:
            raise TranscriptMismatchError(
                f"Transcript ends at {self.last_end:.2f}s but audio lasts {duration:.2f}s"
            )

    def words_before(self, t: float, count: int) -> list[TranscriptWord]:
        """Up to ``count`` words ending at or before ``t``, in order."""
        idx = bisect_right(self._ends, t)
        return list(self._by_end[max(0, idx - count) : idx])

    def words_after(self, t: float, count: int) -> list[TranscriptWord]:
        """Up to ``count`` words starting at or after ``t``, in order."""
        idx = bisect_left(self._starts, t)
        return list(self.words[idx : idx + count])

    def words_between(self, start: float, end: float) -> int:
        """Number of words whose start falls in ``[start, end)``."""
        return bisect_left(self._starts, end) - bisect_left(self._starts, start)


def _parse_word(raw: dict[str, Any]) -> TranscriptWord | None:
    token = str(raw.get("word", raw.get("text", ""))).strip()
    if not token:
        return None
    start = float(raw.get("start", raw.get("startTime", 0.0)))
    end = float(raw.get("end", raw.get("endTime", start)))
    return TranscriptWord(word=token, start=start, end=end)


def _spread_segment_words(seg: dict[str, Any]) -> list[TranscriptWord]:
    tokens = seg.get("text", "").split()
    if not tokens:
        return []
    start = float(seg.get("start", 0.0))
    end = float(seg.get("end", start))
    step = (end - start) / len(tokens)
    return [
        TranscriptWord(word=token, start=start + i * step, end=start + (i + 1) * step)
        for i, token in enumerate(tokens)
    ]
