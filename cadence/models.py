"""
cadence.models - Report value objects and quality enums.

Everything here is a frozen pydantic model that serializes to the camelCase
JSON shape consumed by the report layer. Quality fields are closed enums so
consumers can branch on them reliably.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SpeechRateQuality(str, Enum):
    SLOW = "slow"
    OPTIMAL = "optimal"
    FAST = "fast"
    VERY_FAST = "very-fast"


class PauseQuality(str, Enum):
    TOO_RARE = "too-rare"
    OPTIMAL = "optimal"
    TOO_FREQUENT = "too-frequent"
    UNDETERMINED = "undetermined"


class FillerQuality(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class VolumeQuality(str, Enum):
    TOO_QUIET = "too-quiet"
    QUIET = "quiet"
    OPTIMAL = "optimal"
    LOUD = "loud"
    TOO_LOUD = "too-loud"


class PitchQuality(str, Enum):
    MONOTONE = "monotone"
    LOW_VARIATION = "low-variation"
    OPTIMAL = "optimal"
    HIGH_VARIATION = "high-variation"


class ClarityQuality(str, Enum):
    POOR = "poor"
    FAIR = "fair"
    GOOD = "good"
    EXCELLENT = "excellent"


class Comparison(str, Enum):
    BELOW = "below"
    OPTIMAL = "optimal"
    ABOVE = "above"


class Stage(str, Enum):
    PREPROCESS = "preprocess"
    PAUSES = "pauses"
    SPEECH_RATE = "speech-rate"
    FILLERS = "fillers"
    AUDIO_QUALITY = "audio-quality"
    SCORING = "scoring"


class WarningCode(str, Enum):
    EMPTY_OR_SILENT_AUDIO = "empty-or-silent-audio"
    NO_VOICED_AUDIO = "no-voiced-audio"
    DEGRADED_PAUSE_SIGNAL = "degraded-pause-signal"
    EMPTY_TRANSCRIPT = "empty-transcript"
    UNKNOWN_LANGUAGE = "unknown-language"
    PITCH_UNAVAILABLE = "pitch-unavailable"
    STAGE_FAILED = "stage-failed"


class ReportModel(BaseModel):
    """Base for report models: frozen, camelCase on the wire."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class AnalysisWarning(ReportModel):
    code: WarningCode
    stage: Stage
    message: str


class Pause(ReportModel):
    start_time: float
    end_time: float
    duration: float = Field(gt=0.0)
    context_before: str | None = None
    context_after: str | None = None


class PauseDistribution(ReportModel):
    short: int = 0
    medium: int = 0
    long: int = 0


class PauseAnalysis(ReportModel):
    total_pauses: int
    avg_pause_duration: float
    max_pause_duration: float
    min_pause_duration: float
    total_pause_duration: float
    pause_ratio: float
    pauses_per_minute: float
    pauses: list[Pause]
    pause_distribution: PauseDistribution
    quality: PauseQuality
    recommendation: str


class Articulation(ReportModel):
    rate: float
    quality: SpeechRateQuality


class RateWindow(ReportModel):
    window_start: float
    window_end: float
    word_count: int
    words_per_minute: float


class SpeechRateMetrics(ReportModel):
    words_per_minute: float
    word_count: int
    speaking_time: float
    articulation: Articulation
    windows: list[RateWindow] = Field(default_factory=list)
    consistency: float = 0.0
    recommendation: str


class DetectedFiller(ReportModel):
    word: str
    text: str
    timestamp: float
    confidence: float = Field(ge=0.0, le=1.0)
    context: str


class FillerWordsAnalysis(ReportModel):
    total_count: int
    filler_rate: float
    detected_fillers: list[DetectedFiller]
    by_type: dict[str, int]
    language: str
    lexicon_language: str
    quality: FillerQuality
    recommendation: str


class VolumeMetrics(ReportModel):
    avg_db: float
    min_db: float
    max_db: float
    consistency: float
    quality: VolumeQuality


class PitchMetrics(ReportModel):
    avg_hz: float
    min_hz: float
    max_hz: float
    variation: float
    monotone: bool
    quality: PitchQuality


class ClarityMetrics(ReportModel):
    snr: float
    quality: ClarityQuality


class AudioQualityMetrics(ReportModel):
    volume: VolumeMetrics
    pitch: PitchMetrics
    clarity: ClarityMetrics
    recommendation: str


class ComparedToOptimal(ReportModel):
    speech_rate: Comparison
    pauses: Comparison
    filler_words: Comparison
    volume: Comparison
    pitch: Comparison
    clarity: Comparison


class SpeakingPerformance(ReportModel):
    overall_score: int = Field(ge=0, le=100)
    sub_scores: dict[str, int]
    strengths: list[str]
    weaknesses: list[str]
    suggestions: list[str]
    compared_to_optimal: ComparedToOptimal


class AudioMetrics(ReportModel):
    """Terminal artifact of one analysis run."""

    speech_rate: SpeechRateMetrics
    pause_analysis: PauseAnalysis
    filler_words: FillerWordsAnalysis
    audio_quality: AudioQualityMetrics
    speaking_performance: SpeakingPerformance
    language: str
    duration_seconds: float
    degraded: bool = False
    warnings: list[AnalysisWarning] = Field(default_factory=list)

    def to_json(self, indent: int | None = 2) -> str:
        """Serialize deterministically (same report, same bytes)."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)
