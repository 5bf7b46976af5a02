"""
cadence.analyze.scoring - Composite performance score and report assembly.

Maps each analyzer's quality enum to a 0-100 sub-score through fixed
tables, combines the sub-scores with the configured weights, and derives
strengths, weaknesses and suggestions from per-quality tiers. All tables
are total over their enums, so every possible report scores.
"""

from __future__ import annotations

from enum import Enum

from cadence.analyze.quality import CLARITY_ADVICE, PITCH_ADVICE, VOLUME_ADVICE, pitch_available
from cadence.analyze.results import StageResult, StageStatus
from cadence.analyze.speech_rate import NO_SPEECH_RECOMMENDATION
from cadence.config import ScorerWeights
from cadence.models import (
    AudioMetrics,
    AudioQualityMetrics,
    ClarityQuality,
    ComparedToOptimal,
    Comparison,
    FillerQuality,
    FillerWordsAnalysis,
    PauseAnalysis,
    PauseQuality,
    PitchQuality,
    SpeakingPerformance,
    SpeechRateMetrics,
    SpeechRateQuality,
    Stage,
    VolumeQuality,
)


class Tier(str, Enum):
    STRENGTH = "strength"
    NEUTRAL = "neutral"
    WEAKNESS = "weakness"


SPEECH_RATE_SCORES = {
    SpeechRateQuality.SLOW: 70,
    SpeechRateQuality.OPTIMAL: 100,
    SpeechRateQuality.FAST: 70,
    SpeechRateQuality.VERY_FAST: 40,
}
PAUSE_SCORES = {
    PauseQuality.TOO_RARE: 60,
    PauseQuality.OPTIMAL: 100,
    PauseQuality.TOO_FREQUENT: 60,
    PauseQuality.UNDETERMINED: 40,
}
FILLER_SCORES = {
    FillerQuality.EXCELLENT: 100,
    FillerQuality.GOOD: 80,
    FillerQuality.FAIR: 60,
    FillerQuality.POOR: 30,
}
VOLUME_SCORES = {
    VolumeQuality.TOO_QUIET: 50,
    VolumeQuality.QUIET: 70,
    VolumeQuality.OPTIMAL: 100,
    VolumeQuality.LOUD: 70,
    VolumeQuality.TOO_LOUD: 50,
}
PITCH_SCORES = {
    PitchQuality.MONOTONE: 40,
    PitchQuality.LOW_VARIATION: 70,
    PitchQuality.OPTIMAL: 100,
    PitchQuality.HIGH_VARIATION: 70,
}
CLARITY_SCORES = {
    ClarityQuality.POOR: 30,
    ClarityQuality.FAIR: 60,
    ClarityQuality.GOOD: 85,
    ClarityQuality.EXCELLENT: 100,
}

SPEECH_RATE_COMPARISON = {
    SpeechRateQuality.SLOW: Comparison.BELOW,
    SpeechRateQuality.OPTIMAL: Comparison.OPTIMAL,
    SpeechRateQuality.FAST: Comparison.ABOVE,
    SpeechRateQuality.VERY_FAST: Comparison.ABOVE,
}
PAUSE_COMPARISON = {
    PauseQuality.TOO_RARE: Comparison.BELOW,
    PauseQuality.OPTIMAL: Comparison.OPTIMAL,
    PauseQuality.TOO_FREQUENT: Comparison.ABOVE,
    PauseQuality.UNDETERMINED: Comparison.BELOW,
}
FILLER_COMPARISON = {
    FillerQuality.EXCELLENT: Comparison.OPTIMAL,
    FillerQuality.GOOD: Comparison.OPTIMAL,
    FillerQuality.FAIR: Comparison.ABOVE,
    FillerQuality.POOR: Comparison.ABOVE,
}
VOLUME_COMPARISON = {
    VolumeQuality.TOO_QUIET: Comparison.BELOW,
    VolumeQuality.QUIET: Comparison.BELOW,
    VolumeQuality.OPTIMAL: Comparison.OPTIMAL,
    VolumeQuality.LOUD: Comparison.ABOVE,
    VolumeQuality.TOO_LOUD: Comparison.ABOVE,
}
PITCH_COMPARISON = {
    PitchQuality.MONOTONE: Comparison.BELOW,
    PitchQuality.LOW_VARIATION: Comparison.BELOW,
    PitchQuality.OPTIMAL: Comparison.OPTIMAL,
    PitchQuality.HIGH_VARIATION: Comparison.ABOVE,
}
CLARITY_COMPARISON = {
    ClarityQuality.POOR: Comparison.BELOW,
    ClarityQuality.FAIR: Comparison.BELOW,
    ClarityQuality.GOOD: Comparison.OPTIMAL,
    ClarityQuality.EXCELLENT: Comparison.OPTIMAL,
}

TIERS: dict[Enum, Tier] = {
    SpeechRateQuality.SLOW: Tier.NEUTRAL,
    SpeechRateQuality.OPTIMAL: Tier.STRENGTH,
    SpeechRateQuality.FAST: Tier.NEUTRAL,
    SpeechRateQuality.VERY_FAST: Tier.WEAKNESS,
    PauseQuality.TOO_RARE: Tier.NEUTRAL,
    PauseQuality.OPTIMAL: Tier.STRENGTH,
    PauseQuality.TOO_FREQUENT: Tier.NEUTRAL,
    PauseQuality.UNDETERMINED: Tier.NEUTRAL,
    FillerQuality.EXCELLENT: Tier.STRENGTH,
    FillerQuality.GOOD: Tier.STRENGTH,
    FillerQuality.FAIR: Tier.NEUTRAL,
    FillerQuality.POOR: Tier.WEAKNESS,
    VolumeQuality.TOO_QUIET: Tier.WEAKNESS,
    VolumeQuality.QUIET: Tier.NEUTRAL,
    VolumeQuality.OPTIMAL: Tier.STRENGTH,
    VolumeQuality.LOUD: Tier.NEUTRAL,
    VolumeQuality.TOO_LOUD: Tier.WEAKNESS,
    PitchQuality.MONOTONE: Tier.WEAKNESS,
    PitchQuality.LOW_VARIATION: Tier.NEUTRAL,
    PitchQuality.OPTIMAL: Tier.STRENGTH,
    PitchQuality.HIGH_VARIATION: Tier.NEUTRAL,
    ClarityQuality.POOR: Tier.WEAKNESS,
    ClarityQuality.FAIR: Tier.NEUTRAL,
    ClarityQuality.GOOD: Tier.STRENGTH,
    ClarityQuality.EXCELLENT: Tier.STRENGTH,
}

STRENGTHS = {
    "speech_rate": "Speaking pace is in the optimal range.",
    "pauses": "Pauses are well placed and structure the talk.",
    "fillers": "Very few filler words; the delivery sounds fluent.",
    "volume": "Volume is well judged and easy to listen to.",
    "pitch": "Intonation is lively and varied.",
    "clarity": "The recording is clean with little background noise.",
}

WEAKNESSES = {
    "speech_rate": "Speaking pace is much too fast.",
    "fillers": "Filler words are frequent and distracting.",
    "volume": "Volume is outside a comfortable listening range.",
    "pitch": "Intonation is monotone.",
    "clarity": "Background noise makes the speech hard to follow.",
}

NO_SPEECH_WEAKNESS = "No speech detected in the transcript."
# speech rate and fillers score as the worst case when nothing was said
NO_SPEECH_SCORE = 0

STAGE_ORDER = (
    Stage.PREPROCESS,
    Stage.PAUSES,
    Stage.SPEECH_RATE,
    Stage.FILLERS,
    Stage.AUDIO_QUALITY,
    Stage.SCORING,
)


def audio_quality_score(audio: AudioQualityMetrics) -> float:
    """Mean of the volume, pitch and clarity scores."""
    return (
        VOLUME_SCORES[audio.volume.quality]
        + PITCH_SCORES[audio.pitch.quality]
        + CLARITY_SCORES[audio.clarity.quality]
    ) / 3.0


def compute_overall_score(sub_scores: dict[str, float], weights: ScorerWeights) -> int:
    """Weighted sum of sub-scores; weights total 100 so no renormalizing."""
    total = (
        sub_scores["speechRate"] * weights.speech_rate
        + sub_scores["pauses"] * weights.pauses
        + sub_scores["fillers"] * weights.fillers
        + sub_scores["audioQuality"] * weights.audio_quality
    ) / 100.0
    return int(min(100, max(0, round(total))))


def compare_to_optimal(
    speech_rate: SpeechRateMetrics,
    pauses: PauseAnalysis,
    fillers: FillerWordsAnalysis,
    audio: AudioQualityMetrics,
) -> ComparedToOptimal:
    return ComparedToOptimal(
        speech_rate=SPEECH_RATE_COMPARISON[speech_rate.articulation.quality],
        pauses=PAUSE_COMPARISON[pauses.quality],
        filler_words=(
            FILLER_COMPARISON[fillers.quality] if speech_rate.word_count > 0 else Comparison.BELOW
        ),
        volume=VOLUME_COMPARISON[audio.volume.quality],
        pitch=PITCH_COMPARISON[audio.pitch.quality],
        clarity=CLARITY_COMPARISON[audio.clarity.quality],
    )


def _dedupe(items: list[str]) -> list[str]:
    return list(dict.fromkeys(item for item in items if item))


def generate_feedback(
    speech_rate: SpeechRateMetrics,
    pauses: PauseAnalysis,
    fillers: FillerWordsAnalysis,
    audio: AudioQualityMetrics,
) -> tuple[list[str], list[str], list[str]]:
    """Strengths, weaknesses and suggestions in fixed dimension order.

    Returns:
        Tuple of (strengths, weaknesses, suggestions)
    """
    strengths: list[str] = []
    weaknesses: list[str] = []
    suggestions: list[str] = []

    has_speech = speech_rate.word_count > 0
    if not has_speech:
        weaknesses.append(NO_SPEECH_WEAKNESS)
        suggestions.append(NO_SPEECH_RECOMMENDATION)

    dimensions: list[tuple[str, Enum, str]] = []
    if has_speech:
        dimensions.append(("speech_rate", speech_rate.articulation.quality, speech_rate.recommendation))
    dimensions.append(("pauses", pauses.quality, pauses.recommendation))
    if has_speech:
        dimensions.append(("fillers", fillers.quality, fillers.recommendation))
    dimensions.append(("volume", audio.volume.quality, VOLUME_ADVICE[audio.volume.quality]))
    if pitch_available(audio.pitch):
        dimensions.append(("pitch", audio.pitch.quality, PITCH_ADVICE[audio.pitch.quality]))
    dimensions.append(("clarity", audio.clarity.quality, CLARITY_ADVICE[audio.clarity.quality]))

    for name, quality, advice in dimensions:
        tier = TIERS[quality]
        if tier is Tier.STRENGTH:
            strengths.append(STRENGTHS[name])
            continue
        if tier is Tier.WEAKNESS:
            weaknesses.append(WEAKNESSES[name])
        suggestions.append(advice)

    return _dedupe(strengths), _dedupe(weaknesses), _dedupe(suggestions)


def score_performance(
    speech_rate: SpeechRateMetrics,
    pauses: PauseAnalysis,
    fillers: FillerWordsAnalysis,
    audio: AudioQualityMetrics,
    weights: ScorerWeights,
) -> SpeakingPerformance:
    """Combine the four analyzer reports into a SpeakingPerformance.

    Args:
        speech_rate: Speech rate report
        pauses: Pause report
        fillers: Filler word report
        audio: Audio quality report
        weights: Scorer weights (validated to total 100)

    Returns:
        SpeakingPerformance with overall and per-dimension scores
    """
    has_speech = speech_rate.word_count > 0
    sub_scores = {
        "speechRate": float(
            SPEECH_RATE_SCORES[speech_rate.articulation.quality] if has_speech else NO_SPEECH_SCORE
        ),
        "pauses": float(PAUSE_SCORES[pauses.quality]),
        "fillers": float(FILLER_SCORES[fillers.quality] if has_speech else NO_SPEECH_SCORE),
        "audioQuality": audio_quality_score(audio),
    }
    strengths, weaknesses, suggestions = generate_feedback(speech_rate, pauses, fillers, audio)

    return SpeakingPerformance(
        overall_score=compute_overall_score(sub_scores, weights),
        sub_scores={k: int(round(v)) for k, v in sub_scores.items()},
        strengths=strengths,
        weaknesses=weaknesses,
        suggestions=suggestions,
        compared_to_optimal=compare_to_optimal(speech_rate, pauses, fillers, audio),
    )


def assemble_metrics(
    speech_rate: StageResult[SpeechRateMetrics],
    pauses: StageResult[PauseAnalysis],
    fillers: StageResult[FillerWordsAnalysis],
    audio: StageResult[AudioQualityMetrics],
    weights: ScorerWeights,
    duration: float,
    language: str,
    preprocess: StageResult | None = None,
) -> AudioMetrics:
    """Score the four stage results and build the final AudioMetrics.

    Warnings from every stage are attached in pipeline order; the report is
    marked degraded when any stage was degraded or failed.
    """
    results = [r for r in (preprocess, pauses, speech_rate, fillers, audio) if r is not None]
    results.sort(key=lambda r: STAGE_ORDER.index(r.stage))

    performance = score_performance(
        speech_rate.value, pauses.value, fillers.value, audio.value, weights
    )

    return AudioMetrics(
        speech_rate=speech_rate.value,
        pause_analysis=pauses.value,
        filler_words=fillers.value,
        audio_quality=audio.value,
        speaking_performance=performance,
        language=language,
        duration_seconds=round(duration, 3),
        degraded=any(r.status is not StageStatus.OK for r in results),
        warnings=[w for r in results for w in r.warnings],
    )
