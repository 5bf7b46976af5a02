"""
cadence.analyze.quality - Volume, pitch and clarity measurements.

Volume and SNR come straight from the preprocessor's frame energies. Pitch
is estimated with librosa's YIN over voiced stretches only, with each YIN
frame centred on the matching VAD frame so the two tracks line up.
"""

from __future__ import annotations

import numpy as np

from cadence.analyze.results import StageResult
from cadence.analyze.signal import PreprocessedSignal, frame_runs
from cadence.cancel import CancellationToken, check
from cadence.config import AudioQualityConfig
from cadence.exceptions import AnalysisError
from cadence.logging import get_logger
from cadence.models import (
    AudioQualityMetrics,
    ClarityMetrics,
    ClarityQuality,
    PitchMetrics,
    PitchQuality,
    Stage,
    VolumeMetrics,
    VolumeQuality,
    WarningCode,
)

log = get_logger("analyze.quality")

VOLUME_ADVICE: dict[VolumeQuality, str] = {
    VolumeQuality.TOO_QUIET: "Your voice is far too quiet; speak up or move closer to the microphone.",
    VolumeQuality.QUIET: "Your voice is a little quiet; project a bit more.",
    VolumeQuality.OPTIMAL: "",
    VolumeQuality.LOUD: "Your voice is a little loud; ease off slightly.",
    VolumeQuality.TOO_LOUD: "Your voice is too loud or clipping; lower the input gain or step back.",
}

PITCH_ADVICE: dict[PitchQuality, str] = {
    PitchQuality.MONOTONE: "Your intonation is flat; vary your pitch to stress key ideas.",
    PitchQuality.LOW_VARIATION: "Add a little more pitch variation to sound more engaging.",
    PitchQuality.OPTIMAL: "",
    PitchQuality.HIGH_VARIATION: "Your pitch swings widely; aim for a steadier intonation.",
}

CLARITY_ADVICE: dict[ClarityQuality, str] = {
    ClarityQuality.POOR: "There is a lot of background noise; record in a quieter place.",
    ClarityQuality.FAIR: "Some background noise is audible; reduce it if you can.",
    ClarityQuality.GOOD: "",
    ClarityQuality.EXCELLENT: "",
}

GOOD_QUALITY = "Audio quality is good: steady volume, lively intonation and clean sound."
NO_VOICE_RECOMMENDATION = (
    "No voice was detected in the recording. Check the microphone and input "
    "level, then record again."
)


def classify_volume(avg_db: float, config: AudioQualityConfig) -> VolumeQuality:
    if avg_db < config.too_quiet_below_db:
        return VolumeQuality.TOO_QUIET
    if avg_db < config.quiet_below_db:
        return VolumeQuality.QUIET
    if avg_db > config.too_loud_above_db:
        return VolumeQuality.TOO_LOUD
    if avg_db > config.loud_above_db:
        return VolumeQuality.LOUD
    return VolumeQuality.OPTIMAL


def classify_pitch(variation: float, config: AudioQualityConfig) -> PitchQuality:
    if variation < config.monotone_floor_hz:
        return PitchQuality.MONOTONE
    if variation < config.low_variation_below_hz:
        return PitchQuality.LOW_VARIATION
    if variation > config.high_variation_above_hz:
        return PitchQuality.HIGH_VARIATION
    return PitchQuality.OPTIMAL


def classify_clarity(snr: float, config: AudioQualityConfig) -> ClarityQuality:
    if snr >= config.excellent_snr_db:
        return ClarityQuality.EXCELLENT
    if snr >= config.good_snr_db:
        return ClarityQuality.GOOD
    if snr >= config.fair_snr_db:
        return ClarityQuality.FAIR
    return ClarityQuality.POOR


def measure_volume(signal: PreprocessedSignal, config: AudioQualityConfig) -> VolumeMetrics:
    """dBFS statistics over voiced frames."""
    db = np.maximum(signal.db[signal.voiced], config.db_floor)
    avg = float(np.mean(db))
    consistency = 100.0 - float(np.std(db)) / config.consistency_span_db * 100.0
    return VolumeMetrics(
        avg_db=round(avg, 2),
        min_db=round(float(np.min(db)), 2),
        max_db=round(float(np.max(db)), 2),
        consistency=round(float(np.clip(consistency, 0.0, 100.0)), 1),
        quality=classify_volume(avg, config),
    )


def _padded_slice(samples: np.ndarray, start: int, stop: int) -> np.ndarray:
    left = max(0, -start)
    right = max(0, stop - samples.size)
    chunk = samples[max(0, start) : min(samples.size, stop)]
    if left or right:
        chunk = np.pad(chunk, (left, right))
    return chunk


def pitch_track(
    signal: PreprocessedSignal,
    config: AudioQualityConfig,
    cancel: CancellationToken | None = None,
) -> np.ndarray:
    """F0 estimates (Hz) for voiced frames, in frame order.

    Voiced runs are processed in blocks of ``pitch_block_frames`` so memory
    stays bounded on long recordings.

    Raises:
        AnalysisError: If librosa fails on the signal
    """
    import librosa

    hop = signal.hop_length
    frame_length = config.pitch_frame_length
    # YIN frame k starts here relative to VAD frame k so their centres coincide
    offset = signal.frame_length // 2 - frame_length // 2

    estimates = []
    for a, b, voiced in frame_runs(signal.voiced):
        if not voiced:
            continue
        for first in range(a, b, config.pitch_block_frames):
            check(cancel)
            last = min(first + config.pitch_block_frames, b)
            start = first * hop + offset
            stop = (last - 1) * hop + offset + frame_length
            chunk = _padded_slice(signal.samples, start, stop)
            try:
                f0 = librosa.yin(
                    chunk,
                    fmin=config.pitch_fmin,
                    fmax=config.pitch_fmax,
                    sr=signal.sample_rate,
                    frame_length=frame_length,
                    hop_length=hop,
                    center=False,
                )
            except Exception as e:
                raise AnalysisError(f"Pitch estimation failed: {e}") from e
            estimates.append(f0[: last - first])

    if not estimates:
        return np.empty(0)
    f0 = np.concatenate(estimates)
    return f0[np.isfinite(f0) & (f0 >= config.pitch_fmin) & (f0 <= config.pitch_fmax)]


def measure_pitch(f0: np.ndarray, config: AudioQualityConfig) -> PitchMetrics:
    if f0.size == 0:
        return unavailable_pitch()
    variation = float(np.std(f0))
    return PitchMetrics(
        avg_hz=round(float(np.mean(f0)), 1),
        min_hz=round(float(np.min(f0)), 1),
        max_hz=round(float(np.max(f0)), 1),
        variation=round(variation, 1),
        monotone=variation < config.monotone_floor_hz,
        quality=classify_pitch(variation, config),
    )


def unavailable_pitch() -> PitchMetrics:
    return PitchMetrics(
        avg_hz=0.0,
        min_hz=0.0,
        max_hz=0.0,
        variation=0.0,
        monotone=False,
        quality=PitchQuality.LOW_VARIATION,
    )


def pitch_available(pitch: PitchMetrics) -> bool:
    """False for the placeholder report used when no pitch could be estimated."""
    return pitch.max_hz > 0.0


def measure_clarity(signal: PreprocessedSignal, config: AudioQualityConfig) -> ClarityMetrics:
    """Signal-to-noise ratio from voiced vs unvoiced frame power."""
    power = signal.rms**2
    signal_power = float(np.mean(power[signal.voiced]))
    noise = power[~signal.voiced]
    noise_power = float(np.mean(noise)) if noise.size else 0.0

    if noise_power <= 1e-12:
        snr = 10.0 * np.log10(max(signal_power, 1e-20)) - config.default_noise_floor_db
    else:
        snr = 10.0 * np.log10(max(signal_power, 1e-20) / noise_power)

    snr = float(np.clip(snr, config.snr_min_db, config.snr_max_db))
    return ClarityMetrics(snr=round(snr, 2), quality=classify_clarity(snr, config))


def combine_recommendation(volume: VolumeMetrics, pitch: PitchMetrics, clarity: ClarityMetrics) -> str:
    advice = [
        VOLUME_ADVICE[volume.quality],
        PITCH_ADVICE[pitch.quality] if pitch_available(pitch) else "",
        CLARITY_ADVICE[clarity.quality],
    ]
    advice = [a for a in advice if a]
    return " ".join(advice) if advice else GOOD_QUALITY


def silent_audio_quality(
    config: AudioQualityConfig, recommendation: str = NO_VOICE_RECOMMENDATION
) -> AudioQualityMetrics:
    """Floor-valued report for a recording with no detected voice."""
    return AudioQualityMetrics(
        volume=VolumeMetrics(
            avg_db=config.db_floor,
            min_db=config.db_floor,
            max_db=config.db_floor,
            consistency=0.0,
            quality=VolumeQuality.TOO_QUIET,
        ),
        pitch=unavailable_pitch(),
        clarity=ClarityMetrics(snr=0.0, quality=ClarityQuality.POOR),
        recommendation=recommendation,
    )


def analyze_audio_quality(
    signal: PreprocessedSignal,
    config: AudioQualityConfig,
    cancel: CancellationToken | None = None,
) -> StageResult[AudioQualityMetrics]:
    """Measure volume, pitch and clarity of the voiced audio.

    Args:
        signal: Preprocessed signal with its voiced-frame mask
        config: Audio quality configuration
        cancel: Optional cancellation token

    Returns:
        StageResult wrapping AudioQualityMetrics; degraded with
        NO_VOICED_AUDIO or PITCH_UNAVAILABLE when measurements are missing
    """
    if not signal.voiced.any():
        return StageResult.degraded(
            silent_audio_quality(config),
            Stage.AUDIO_QUALITY,
            [(WarningCode.NO_VOICED_AUDIO, "No voiced frames; audio quality could not be measured.")],
        )

    volume = measure_volume(signal, config)
    clarity = measure_clarity(signal, config)
    check(cancel)
    f0 = pitch_track(signal, config, cancel)
    pitch = measure_pitch(f0, config)

    log.debug(
        "Volume %.1f dB (%s), pitch %.1f Hz +/- %.1f (%s), SNR %.1f dB (%s)",
        volume.avg_db,
        volume.quality.value,
        pitch.avg_hz,
        pitch.variation,
        pitch.quality.value,
        clarity.snr,
        clarity.quality.value,
    )

    metrics = AudioQualityMetrics(
        volume=volume,
        pitch=pitch,
        clarity=clarity,
        recommendation=combine_recommendation(volume, pitch, clarity),
    )

    if f0.size == 0:
        return StageResult.degraded(
            metrics,
            Stage.AUDIO_QUALITY,
            [(WarningCode.PITCH_UNAVAILABLE, "No reliable pitch estimate in the voiced audio.")],
        )
    return StageResult.ok(metrics, Stage.AUDIO_QUALITY)
