"""
cadence.analyze.pauses - Pause detection and classification.

Turns unvoiced stretches of the VAD timeline into communicative pauses,
summarizes them (count, durations, short/medium/long distribution) and
classifies the pause rate. Each pause carries the transcript words on
either side for human-readable context.
"""

from __future__ import annotations

from cadence.analyze.results import StageResult
from cadence.analyze.signal import VoiceActivityTimeline, VoiceSegment
from cadence.cancel import CancellationToken, check
from cadence.config import PauseConfig
from cadence.logging import get_logger
from cadence.models import (
    Pause,
    PauseAnalysis,
    PauseDistribution,
    PauseQuality,
    Stage,
    WarningCode,
)
from cadence.transcript import Transcript

log = get_logger("analyze.pauses")

RECOMMENDATIONS: dict[PauseQuality, str] = {
    PauseQuality.TOO_RARE: (
        "Few pauses detected. Add deliberate pauses to give the talk room to "
        "breathe and to emphasize key points."
    ),
    PauseQuality.OPTIMAL: (
        "Good use of pauses. They structure the speech and help hold the "
        "listener's attention."
    ),
    PauseQuality.TOO_FREQUENT: (
        "Pauses are very frequent. Reduce hesitations to keep a more natural flow."
    ),
    PauseQuality.UNDETERMINED: (
        "Pauses could not be assessed because the recording contains little or "
        "no audible speech."
    ),
}


def find_pause_intervals(timeline: VoiceActivityTimeline, config: PauseConfig) -> list[VoiceSegment]:
    """Unvoiced segments long enough to count as communicative pauses.

    Silence before the first and after the last voiced segment is ignored
    unless ``include_edge_silence`` is set. A timeline with no voice at all
    yields its single whole-recording silence.
    """
    segments = list(timeline.segments)
    if timeline.has_voice and not config.include_edge_silence:
        if not segments[0].voiced:
            segments = segments[1:]
        if segments and not segments[-1].voiced:
            segments = segments[:-1]

    return [
        s for s in segments if not s.voiced and round(s.duration, 3) > config.min_pause_duration
    ]


def classify_distribution(durations: list[float], config: PauseConfig) -> PauseDistribution:
    short = sum(1 for d in durations if d < config.short_below)
    long = sum(1 for d in durations if d > config.long_above)
    return PauseDistribution(short=short, medium=len(durations) - short - long, long=long)


def classify_pause_rate(pauses_per_minute: float, config: PauseConfig) -> PauseQuality:
    if pauses_per_minute < config.min_pauses_per_minute:
        return PauseQuality.TOO_RARE
    if pauses_per_minute > config.max_pauses_per_minute:
        return PauseQuality.TOO_FREQUENT
    return PauseQuality.OPTIMAL


def pause_context(
    transcript: Transcript | None,
    start: float,
    end: float,
    count: int,
) -> tuple[str | None, str | None]:
    """Words just before and just after a pause (None when there are none).

    Words are split at the pause midpoint so a word whose timestamps bleed
    into the silence still lands on the nearest side.
    """
    if transcript is None or not transcript.words:
        return None, None
    mid = (start + end) / 2.0
    before = transcript.words_before(mid, count)
    after = transcript.words_after(mid, count)
    return (
        " ".join(w.word for w in before) or None,
        " ".join(w.word for w in after) or None,
    )


def is_degraded_signal(
    timeline: VoiceActivityTimeline, intervals: list[VoiceSegment], config: PauseConfig
) -> bool:
    """True when pauses reflect missing audio rather than pacing."""
    if not timeline.has_voice:
        return True
    return len(intervals) == 1 and intervals[0].duration >= config.degraded_coverage * timeline.duration


def empty_pause_analysis(quality: PauseQuality = PauseQuality.UNDETERMINED) -> PauseAnalysis:
    """Neutral report used when the pause stage cannot run."""
    return PauseAnalysis(
        total_pauses=0,
        avg_pause_duration=0.0,
        max_pause_duration=0.0,
        min_pause_duration=0.0,
        total_pause_duration=0.0,
        pause_ratio=0.0,
        pauses_per_minute=0.0,
        pauses=[],
        pause_distribution=PauseDistribution(),
        quality=quality,
        recommendation=RECOMMENDATIONS[quality],
    )


def analyze_pauses(
    timeline: VoiceActivityTimeline,
    transcript: Transcript | None,
    config: PauseConfig,
    cancel: CancellationToken | None = None,
) -> StageResult[PauseAnalysis]:
    """Find, summarize and classify pauses.

    Args:
        timeline: Voice activity timeline from the preprocessor
        transcript: Transcript used for pause context (optional)
        config: Pause configuration
        cancel: Optional cancellation token

    Returns:
        StageResult wrapping PauseAnalysis; degraded with
        DEGRADED_PAUSE_SIGNAL when the audio has no usable speech
    """
    intervals = find_pause_intervals(timeline, config)

    pauses = []
    for interval in intervals:
        check(cancel)
        before, after = pause_context(transcript, interval.start, interval.end, config.context_words)
        pauses.append(
            Pause(
                start_time=round(interval.start, 3),
                end_time=round(interval.end, 3),
                duration=round(interval.duration, 3),
                context_before=before,
                context_after=after,
            )
        )

    durations = [interval.duration for interval in intervals]
    total = sum(durations)

    span = timeline.speaking_span
    span_minutes = (span[1] - span[0]) / 60.0 if span else 0.0
    pauses_per_minute = len(pauses) / span_minutes if span_minutes > 0 else 0.0

    degraded = is_degraded_signal(timeline, intervals, config)
    quality = PauseQuality.UNDETERMINED if degraded else classify_pause_rate(pauses_per_minute, config)

    analysis = PauseAnalysis(
        total_pauses=len(pauses),
        avg_pause_duration=round(total / len(durations), 3) if durations else 0.0,
        max_pause_duration=round(max(durations), 3) if durations else 0.0,
        min_pause_duration=round(min(durations), 3) if durations else 0.0,
        total_pause_duration=round(total, 3),
        pause_ratio=round(total / timeline.duration, 3) if timeline.duration > 0 else 0.0,
        pauses_per_minute=round(pauses_per_minute, 2),
        pauses=pauses,
        pause_distribution=classify_distribution(durations, config),
        quality=quality,
        recommendation=RECOMMENDATIONS[quality],
    )

    log.debug("Found %d pauses (%.2f/min), quality %s", len(pauses), pauses_per_minute, quality.value)

    if degraded:
        return StageResult.degraded(
            analysis,
            Stage.PAUSES,
            [
                (
                    WarningCode.DEGRADED_PAUSE_SIGNAL,
                    "Silence covers nearly the whole recording; pause pacing was not rated.",
                )
            ],
        )
    return StageResult.ok(analysis, Stage.PAUSES)
