"""
cadence.analyze.fillers - Filler word detection.

Scans transcript tokens against the language's filler lexicon. Each match
gets a confidence that combines how well the token matched (exact,
elongated, or buried in a hyphenated compound) with timing cues: a short
token with silence on both sides is far more likely to be a real
disfluency than a discourse marker in fluent speech.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from cadence.analyze.results import StageResult
from cadence.cancel import CancellationToken, check
from cadence.config import FillerConfig, normalize_language
from cadence.lexicon import FillerKind, FillerLexicon, normalize_token
from cadence.logging import get_logger
from cadence.models import (
    DetectedFiller,
    FillerQuality,
    FillerWordsAnalysis,
    Stage,
    WarningCode,
)
from cadence.transcript import Transcript, TranscriptWord

log = get_logger("analyze.fillers")

_COMPOUND_SPLIT = re.compile(r"[-‐‑'’]+")

RECOMMENDATIONS: dict[FillerQuality, str] = {
    FillerQuality.EXCELLENT: "Excellent! Very few filler words. Your speech is fluent and clear.",
    FillerQuality.GOOD: (
        "Good control of filler words. Keep practising to reduce them even further."
    ),
    FillerQuality.FAIR: (
        "Moderate use of filler words. Try replacing them with short, deliberate pauses."
    ),
    FillerQuality.POOR: (
        "Frequent filler words. Practise the talk aloud and pause silently instead of "
        "filling the gap."
    ),
}


@dataclass(frozen=True)
class FillerMatch:
    """A lexicon hit before confidence scoring."""

    entry: str
    kind: FillerKind
    strength: float
    first: int
    last: int


def match_tokens(tokens: list[str], lexicon: FillerLexicon, config: FillerConfig) -> list[FillerMatch]:
    """Find lexicon matches in normalized tokens, left to right.

    Multi-word phrases are tried first (longest first) and consume their
    tokens, so 'you know' is never also counted as a bare 'know'.
    """
    matches = []
    i = 0
    n = len(tokens)
    while i < n:
        phrase = next(
            (p for p in lexicon.phrases if tuple(tokens[i : i + len(p)]) == p),
            None,
        )
        if phrase is not None:
            matches.append(FillerMatch(" ".join(phrase), FillerKind.PHRASE, 1.0, i, i + len(phrase) - 1))
            i += len(phrase)
            continue

        token = tokens[i]
        kind = lexicon.kind_of(token)
        elongated = lexicon.elongated_match(token) if kind is None else None
        if kind is not None:
            matches.append(FillerMatch(token, kind, 1.0, i, i))
        elif elongated is not None:
            matches.append(FillerMatch(elongated[0], elongated[1], config.elongated_strength, i, i))
        else:
            parts = _COMPOUND_SPLIT.split(token)
            for part in parts if len(parts) > 1 else []:
                part_kind = lexicon.kind_of(part)
                if part_kind is not None:
                    matches.append(FillerMatch(part, part_kind, config.embedded_strength, i, i))
                    break
        i += 1
    return matches


def _kind_weight(kind: FillerKind, config: FillerConfig) -> float:
    return {
        FillerKind.HESITATION: config.hesitation_weight,
        FillerKind.MARKER: config.marker_weight,
        FillerKind.PHRASE: config.phrase_weight,
    }[kind]


def score_confidence(
    match: FillerMatch,
    words: tuple[TranscriptWord, ...],
    config: FillerConfig,
    unknown_language: bool,
) -> float:
    """Combine lexical match strength with surrounding-silence cues."""
    first = words[match.first]
    last = words[match.last]

    gap_before = first.start - words[match.first - 1].end if match.first > 0 else first.start
    gap_after = words[match.last + 1].start - last.end if match.last + 1 < len(words) else float("inf")
    isolated_before = gap_before >= config.isolation_gap_sec
    isolated_after = gap_after >= config.isolation_gap_sec

    confidence = match.strength * _kind_weight(match.kind, config)

    if match.kind is not FillerKind.HESITATION and not (isolated_before or isolated_after):
        confidence -= config.base_discount
    confidence += config.isolation_bonus * (int(isolated_before) + int(isolated_after))
    if isolated_before and isolated_after and (last.end - first.start) <= config.short_token_sec:
        confidence += config.short_isolated_bonus
    confidence = min(1.0, max(0.0, confidence))

    # applied after clamping so it lowers every match, certain ones included
    if unknown_language:
        confidence = max(0.0, confidence - config.unknown_language_penalty)

    return round(confidence, 3)


def classify_filler_rate(rate: float, config: FillerConfig) -> FillerQuality:
    if rate < config.excellent_below:
        return FillerQuality.EXCELLENT
    if rate < config.good_below:
        return FillerQuality.GOOD
    if rate <= config.fair_max:
        return FillerQuality.FAIR
    return FillerQuality.POOR


def _context(words: tuple[TranscriptWord, ...], first: int, last: int, count: int) -> str:
    before = [w.word for w in words[max(0, first - count) : first]]
    hit = [w.word for w in words[first : last + 1]]
    after = [w.word for w in words[last + 1 : last + 1 + count]]
    return " ".join(before + hit + after)


def empty_filler_analysis(language: str = "", lexicon_language: str = "") -> FillerWordsAnalysis:
    """Zero-count report used when the filler stage cannot run."""
    return FillerWordsAnalysis(
        total_count=0,
        filler_rate=0.0,
        detected_fillers=[],
        by_type={},
        language=language,
        lexicon_language=lexicon_language,
        quality=FillerQuality.EXCELLENT,
        recommendation=RECOMMENDATIONS[FillerQuality.EXCELLENT],
    )


def detect_fillers(
    transcript: Transcript,
    lexicon: FillerLexicon,
    is_fallback: bool,
    config: FillerConfig,
    cancel: CancellationToken | None = None,
) -> StageResult[FillerWordsAnalysis]:
    """Detect and tally filler words.

    Args:
        transcript: Time-aligned transcript
        lexicon: Lexicon for the transcript's language (or the fallback)
        is_fallback: True when ``lexicon`` stands in for an unknown language
        config: Filler configuration
        cancel: Optional cancellation token

    Returns:
        StageResult wrapping FillerWordsAnalysis; degraded with
        UNKNOWN_LANGUAGE when the fallback lexicon was used
    """
    words = transcript.words
    language = normalize_language(transcript.language)
    tokens = [normalize_token(w.word) for w in words]

    check(cancel)
    matches = match_tokens(tokens, lexicon, config)

    detected = []
    for match in matches:
        check(cancel)
        confidence = score_confidence(match, words, config, is_fallback)
        if confidence < config.min_confidence:
            continue
        detected.append(
            DetectedFiller(
                word=match.entry,
                text=" ".join(w.word for w in words[match.first : match.last + 1]),
                timestamp=round(words[match.first].start, 3),
                confidence=confidence,
                context=_context(words, match.first, match.last, config.context_words),
            )
        )

    by_type: dict[str, int] = {}
    for filler in detected:
        by_type[filler.word] = by_type.get(filler.word, 0) + 1

    word_count = len(words)
    rate = len(detected) / word_count * 100.0 if word_count else 0.0
    quality = classify_filler_rate(rate, config)

    log.debug(
        "%d fillers in %d words (%.2f%%) using %s lexicon",
        len(detected),
        word_count,
        rate,
        lexicon.language,
    )

    analysis = FillerWordsAnalysis(
        total_count=len(detected),
        filler_rate=round(rate, 2),
        detected_fillers=detected,
        by_type=dict(sorted(by_type.items())),
        language=language,
        lexicon_language=lexicon.language,
        quality=quality,
        recommendation=RECOMMENDATIONS[quality],
    )

    if is_fallback:
        return StageResult.degraded(
            analysis,
            Stage.FILLERS,
            [
                (
                    WarningCode.UNKNOWN_LANGUAGE,
                    f"No filler lexicon for language '{language or 'unknown'}'; "
                    f"used '{lexicon.language}' with reduced confidence.",
                )
            ],
        )
    return StageResult.ok(analysis, Stage.FILLERS)
