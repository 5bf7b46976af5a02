"""
cadence.analyze.speech_rate - Pacing metrics from word timestamps.

Computes words per minute over the whole recording, articulation rate over
speaking time only (pauses excluded) and per-window rates, then buckets the
pace against language-specific WPM bands.
"""

from __future__ import annotations

import numpy as np

from cadence.analyze.results import StageResult
from cadence.cancel import CancellationToken, check
from cadence.config import SpeechRateConfig, WpmBands
from cadence.logging import get_logger
from cadence.models import (
    Articulation,
    RateWindow,
    SpeechRateMetrics,
    SpeechRateQuality,
    Stage,
    WarningCode,
)
from cadence.transcript import Transcript

log = get_logger("analyze.speech_rate")

RECOMMENDATIONS: dict[SpeechRateQuality, str] = {
    SpeechRateQuality.SLOW: (
        "Your pace is slow. Speed up slightly to keep the listener engaged."
    ),
    SpeechRateQuality.OPTIMAL: (
        "Your pace is in the optimal range. Keep this speed for clear, effective delivery."
    ),
    SpeechRateQuality.FAST: (
        "Your pace is a little fast. Slow down so every word comes across clearly."
    ),
    SpeechRateQuality.VERY_FAST: (
        "Your pace is much too fast. Slow down noticeably to stay understandable."
    ),
}

NO_SPEECH_RECOMMENDATION = (
    "No speech detected. Check that the microphone captured your voice and record again."
)


def classify_pace(words_per_minute: float, bands: WpmBands) -> SpeechRateQuality:
    if words_per_minute < bands.slow_below:
        return SpeechRateQuality.SLOW
    if words_per_minute <= bands.fast_above:
        return SpeechRateQuality.OPTIMAL
    if words_per_minute <= bands.very_fast_above:
        return SpeechRateQuality.FAST
    return SpeechRateQuality.VERY_FAST


def rate_windows(transcript: Transcript, duration: float, window_seconds: float) -> list[RateWindow]:
    """Words per minute in consecutive fixed-length windows.

    A word belongs to the window containing its start time. The last window
    is truncated at the recording's end.
    """
    windows = []
    start = 0.0
    while start < duration:
        end = min(start + window_seconds, duration)
        count = transcript.words_between(start, end if end < duration else float("inf"))
        span = end - start
        windows.append(
            RateWindow(
                window_start=round(start, 3),
                window_end=round(end, 3),
                word_count=count,
                words_per_minute=round(count / (span / 60.0), 1) if span > 0 else 0.0,
            )
        )
        start = end
    return windows


def pace_consistency(windows: list[RateWindow], window_seconds: float) -> float:
    """100 minus the coefficient of variation (in %) across full windows.

    Fewer than two full windows give 100: there is nothing to compare.
    """
    rates = [
        w.words_per_minute
        for w in windows
        if (w.window_end - w.window_start) >= window_seconds - 1e-6
    ]
    if len(rates) < 2:
        return 100.0
    mean = float(np.mean(rates))
    if mean <= 0:
        return 0.0
    cv = float(np.std(rates)) / mean * 100.0
    return round(float(np.clip(100.0 - cv, 0.0, 100.0)), 1)


def empty_speech_rate(recommendation: str = NO_SPEECH_RECOMMENDATION, word_count: int = 0) -> SpeechRateMetrics:
    """Zeroed report used when there is no speech to measure."""
    return SpeechRateMetrics(
        words_per_minute=0.0,
        word_count=word_count,
        speaking_time=0.0,
        articulation=Articulation(rate=0.0, quality=SpeechRateQuality.SLOW),
        windows=[],
        consistency=0.0,
        recommendation=recommendation,
    )


def analyze_speech_rate(
    transcript: Transcript,
    duration: float,
    pause_duration: float,
    bands: WpmBands,
    config: SpeechRateConfig,
    cancel: CancellationToken | None = None,
) -> StageResult[SpeechRateMetrics]:
    """Compute pacing metrics.

    Args:
        transcript: Time-aligned transcript
        duration: Total recording duration in seconds
        pause_duration: Total duration of detected pauses in seconds
        bands: WPM bands for the transcript's language
        config: Speech rate configuration
        cancel: Optional cancellation token

    Returns:
        StageResult wrapping SpeechRateMetrics; degraded with
        EMPTY_TRANSCRIPT when there are no words
    """
    word_count = transcript.word_count

    if word_count == 0 or duration <= 0:
        return StageResult.degraded(
            empty_speech_rate(),
            Stage.SPEECH_RATE,
            [(WarningCode.EMPTY_TRANSCRIPT, "The transcript contains no words.")],
        )

    words_per_minute = word_count / (duration / 60.0)
    speaking_time = max(0.0, duration - pause_duration)
    articulation_rate = word_count / (speaking_time / 60.0) if speaking_time > 0 else 0.0

    check(cancel)
    windows = rate_windows(transcript, duration, config.window_seconds)
    quality = classify_pace(words_per_minute, bands)

    log.debug(
        "%d words over %.1fs: %.1f wpm, articulation %.1f, quality %s",
        word_count,
        duration,
        words_per_minute,
        articulation_rate,
        quality.value,
    )

    return StageResult.ok(
        SpeechRateMetrics(
            words_per_minute=round(words_per_minute, 1),
            word_count=word_count,
            speaking_time=round(speaking_time, 3),
            articulation=Articulation(rate=round(articulation_rate, 1), quality=quality),
            windows=windows,
            consistency=pace_consistency(windows, config.window_seconds),
            recommendation=RECOMMENDATIONS[quality],
        ),
        Stage.SPEECH_RATE,
    )
