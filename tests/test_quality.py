"""Tests for cadence.analyze.quality module."""

from __future__ import annotations

import numpy as np
import pytest
from conftest import SR, make_noise, make_speech_like, make_tone

from cadence.analyze.quality import (
    GOOD_QUALITY,
    NO_VOICE_RECOMMENDATION,
    analyze_audio_quality,
    classify_clarity,
    classify_pitch,
    classify_volume,
    combine_recommendation,
    measure_clarity,
    pitch_available,
    pitch_track,
    unavailable_pitch,
)
from cadence.analyze.results import StageStatus
from cadence.analyze.signal import AudioInput, preprocess
from cadence.config import AudioQualityConfig, PreprocessConfig
from cadence.models import (
    ClarityMetrics,
    ClarityQuality,
    PitchQuality,
    VolumeMetrics,
    VolumeQuality,
    WarningCode,
)


def prepared(samples: np.ndarray, sr: int = SR):
    return preprocess(AudioInput(samples, sr), PreprocessConfig()).value


class TestClassification:
    @pytest.mark.parametrize(
        "db,expected",
        [
            (-60.0, VolumeQuality.TOO_QUIET),
            (-35.0, VolumeQuality.QUIET),
            (-20.0, VolumeQuality.OPTIMAL),
            (-8.0, VolumeQuality.LOUD),
            (-2.0, VolumeQuality.TOO_LOUD),
        ],
    )
    def test_volume(self, db: float, expected: VolumeQuality) -> None:
        assert classify_volume(db, AudioQualityConfig()) is expected

    @pytest.mark.parametrize(
        "std,expected",
        [
            (5.0, PitchQuality.MONOTONE),
            (25.0, PitchQuality.LOW_VARIATION),
            (50.0, PitchQuality.OPTIMAL),
            (120.0, PitchQuality.HIGH_VARIATION),
        ],
    )
    def test_pitch(self, std: float, expected: PitchQuality) -> None:
        assert classify_pitch(std, AudioQualityConfig()) is expected

    @pytest.mark.parametrize(
        "snr,expected",
        [
            (5.0, ClarityQuality.POOR),
            (15.0, ClarityQuality.FAIR),
            (25.0, ClarityQuality.GOOD),
            (35.0, ClarityQuality.EXCELLENT),
        ],
    )
    def test_clarity(self, snr: float, expected: ClarityQuality) -> None:
        assert classify_clarity(snr, AudioQualityConfig()) is expected


class TestMeasurements:
    def test_volume_over_voiced_frames_only(self) -> None:
        signal = prepared(make_speech_like(6.0, [(2.0, 4.0)]))
        result = analyze_audio_quality(signal, AudioQualityConfig())
        volume = result.value.volume

        # a 0.1 amplitude sine sits at about -23 dBFS; silence must not drag it down
        assert volume.avg_db == pytest.approx(-23.0, abs=1.0)
        assert volume.min_db > -35.0
        assert volume.consistency > 80.0
        assert volume.quality is VolumeQuality.OPTIMAL

    def test_steady_tone_is_monotone(self) -> None:
        signal = prepared(make_tone(3.0, f0=200.0))
        f0 = pitch_track(signal, AudioQualityConfig())
        assert f0.size > 0
        assert float(np.median(f0)) == pytest.approx(200.0, abs=5.0)

        pitch = analyze_audio_quality(signal, AudioQualityConfig()).value.pitch
        assert pitch.monotone is True
        assert pitch.quality is PitchQuality.MONOTONE

    def test_pitch_within_search_range(self) -> None:
        signal = prepared(make_speech_like(6.0, [(2.0, 3.0)]))
        pitch = analyze_audio_quality(signal, AudioQualityConfig()).value.pitch
        assert 65.0 <= pitch.min_hz <= pitch.avg_hz <= pitch.max_hz <= 400.0

    def test_clarity_without_unvoiced_frames_uses_default_floor(self) -> None:
        signal = prepared(make_tone(3.0))
        assert signal.voiced.all()
        clarity = measure_clarity(signal, AudioQualityConfig())
        # -23 dB signal against the -50 dB default floor
        assert clarity.snr == pytest.approx(27.0, abs=1.0)
        assert clarity.quality is ClarityQuality.GOOD

    def test_clarity_from_noise_floor(self) -> None:
        signal = prepared(make_speech_like(6.0, [(2.0, 4.0)], noise=0.001))
        clarity = measure_clarity(signal, AudioQualityConfig())
        assert clarity.snr == pytest.approx(37.0, abs=2.0)
        assert clarity.quality is ClarityQuality.EXCELLENT

    def test_negligible_noise_uses_default_floor(self) -> None:
        samples = make_tone(4.0)
        samples[SR : 2 * SR] = 1e-7
        signal = prepared(samples)
        assert not signal.voiced.all()
        clarity = measure_clarity(signal, AudioQualityConfig())
        assert clarity.snr == pytest.approx(27.0, abs=1.0)

    def test_snr_is_clamped(self) -> None:
        signal = prepared(make_tone(3.0))
        config = AudioQualityConfig(snr_max_db=20.0, fair_snr_db=5.0, good_snr_db=10.0, excellent_snr_db=15.0)
        assert measure_clarity(signal, config).snr == 20.0


class TestAnalyzeAudioQuality:
    def test_no_voice_fails_soft(self) -> None:
        signal = prepared(np.zeros(2 * SR, dtype=np.float32))
        result = analyze_audio_quality(signal, AudioQualityConfig())

        assert result.status is StageStatus.DEGRADED
        assert result.warnings[0].code is WarningCode.NO_VOICED_AUDIO
        assert result.value.clarity.quality is ClarityQuality.POOR
        assert result.value.volume.quality is VolumeQuality.TOO_QUIET
        assert result.value.recommendation == NO_VOICE_RECOMMENDATION

    def test_faint_noise_fails_soft(self) -> None:
        signal = prepared(make_noise(3.0))
        result = analyze_audio_quality(signal, AudioQualityConfig())
        assert result.value.clarity.quality is ClarityQuality.POOR

    def test_recommendation_combines_advice(self) -> None:
        signal = prepared(make_tone(3.0, f0=200.0))
        metrics = analyze_audio_quality(signal, AudioQualityConfig()).value
        assert metrics.recommendation == combine_recommendation(
            metrics.volume, metrics.pitch, metrics.clarity
        )
        assert "pitch" in metrics.recommendation or "intonation" in metrics.recommendation

    def test_unavailable_pitch_adds_no_pitch_advice(self) -> None:
        pitch = unavailable_pitch()
        assert pitch_available(pitch) is False
        volume = VolumeMetrics(
            avg_db=-20.0, min_db=-28.0, max_db=-14.0, consistency=90.0, quality=VolumeQuality.OPTIMAL
        )
        clarity = ClarityMetrics(snr=32.0, quality=ClarityQuality.EXCELLENT)
        assert combine_recommendation(volume, pitch, clarity) == GOOD_QUALITY
