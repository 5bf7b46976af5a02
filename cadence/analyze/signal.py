"""
cadence.analyze.signal - Signal preprocessing and voice activity detection.

Validates decoded PCM, resamples it to the canonical rate with librosa,
frames it into overlapping windows, computes short-term energy and
classifies each frame voiced/unvoiced against a threshold adapted to the
recording's own noise floor.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np

from cadence.analyze.results import StageResult
from cadence.cancel import CancellationToken, check
from cadence.config import PreprocessConfig, VADConfig
from cadence.exceptions import (
    AnalysisError,
    CorruptAudioError,
    UnsupportedSampleRateError,
    ZeroLengthAudioError,
)
from cadence.logging import get_logger
from cadence.models import Stage, WarningCode

log = get_logger("analyze.signal")

_RMS_EPS = 1e-10
_TIME_EPS = 1e-9


@dataclass(frozen=True, eq=False)
class AudioInput:
    """Decoded mono PCM as delivered by the audio capture provider.

    Args:
        samples: 1-D array of float (-1..1) or integer PCM samples
        sample_rate: Samples per second
        duration: Nominal duration in seconds, if the provider reports one
    """

    samples: np.ndarray
    sample_rate: int
    duration: float | None = None

    @property
    def measured_duration(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return len(self.samples) / self.sample_rate


@dataclass(frozen=True, eq=False)
class WaveformFrame:
    """One analysis window (a read-only view into the canonical signal)."""

    index: int
    start: float
    samples: np.ndarray
    rms: float
    db: float


@dataclass(frozen=True)
class VoiceSegment:
    start: float
    end: float
    voiced: bool

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass(frozen=True)
class VoiceActivityTimeline:
    """Contiguous, sorted voiced/unvoiced segments covering the recording."""

    segments: tuple[VoiceSegment, ...]
    duration: float

    def __post_init__(self) -> None:
        if not self.segments:
            raise ValueError("timeline needs at least one segment")
        if abs(self.segments[0].start) > _TIME_EPS:
            raise ValueError("timeline must start at 0")
        if abs(self.segments[-1].end - self.duration) > _TIME_EPS:
            raise ValueError("timeline must end at the recording duration")
        for prev, cur in zip(self.segments, self.segments[1:]):
            if abs(cur.start - prev.end) > _TIME_EPS:
                raise ValueError(f"gap or overlap at {prev.end:.3f}s")
            if cur.voiced == prev.voiced:
                raise ValueError(f"adjacent segments share a label at {cur.start:.3f}s")
        if any(s.end <= s.start for s in self.segments):
            raise ValueError("segments must have positive duration")

    @classmethod
    def from_mask(cls, voiced: np.ndarray, hop_seconds: float, duration: float) -> VoiceActivityTimeline:
        """Build a timeline from per-frame flags; frame i spans [i*hop, (i+1)*hop)."""
        if voiced.size == 0:
            return cls(segments=(VoiceSegment(0.0, duration, False),), duration=duration)

        segments: list[VoiceSegment] = []
        n = voiced.size
        for a, b, flag in frame_runs(voiced):
            start = segments[-1].end if segments else 0.0
            end = duration if b >= n else min(b * hop_seconds, duration)
            if end - start <= _TIME_EPS:
                continue
            if segments and segments[-1].voiced == flag:
                segments[-1] = VoiceSegment(segments[-1].start, end, flag)
            else:
                segments.append(VoiceSegment(start, end, flag))

        if segments[-1].end < duration:
            last = segments[-1]
            segments[-1] = VoiceSegment(last.start, duration, last.voiced)

        return cls(segments=tuple(segments), duration=duration)

    def voiced_segments(self) -> list[VoiceSegment]:
        return [s for s in self.segments if s.voiced]

    def unvoiced_segments(self) -> list[VoiceSegment]:
        return [s for s in self.segments if not s.voiced]

    @property
    def has_voice(self) -> bool:
        return any(s.voiced for s in self.segments)

    @property
    def voiced_duration(self) -> float:
        return sum(s.duration for s in self.segments if s.voiced)

    @property
    def speaking_span(self) -> tuple[float, float] | None:
        """(first voiced start, last voiced end), or None without voice."""
        voiced = self.voiced_segments()
        if not voiced:
            return None
        return voiced[0].start, voiced[-1].end


@dataclass(frozen=True, eq=False)
class PreprocessedSignal:
    """Canonical-rate framed signal plus its voice activity classification."""

    samples: np.ndarray
    sample_rate: int
    frame_length: int
    hop_length: int
    rms: np.ndarray
    db: np.ndarray
    voiced: np.ndarray
    timeline: VoiceActivityTimeline
    noise_floor_db: float
    threshold_db: float
    duration: float

    @property
    def n_frames(self) -> int:
        return int(self.rms.size)

    @property
    def hop_seconds(self) -> float:
        return self.hop_length / self.sample_rate

    def frames(self) -> Iterator[WaveformFrame]:
        """Iterate frames as WaveformFrame views (no sample copies).

        Public per-frame view for callers that post-process the canonical
        signal frame by frame. The built-in analyzers read the vectorized
        ``rms``, ``db`` and ``voiced`` arrays instead.
        """
        import librosa

        windows = librosa.util.frame(
            self.samples, frame_length=self.frame_length, hop_length=self.hop_length, axis=0
        )
        for i in range(self.n_frames):
            yield WaveformFrame(
                index=i,
                start=i * self.hop_seconds,
                samples=windows[i],
                rms=float(self.rms[i]),
                db=float(self.db[i]),
            )


def validate_audio(audio: AudioInput, config: PreprocessConfig) -> np.ndarray:
    """Check decoded PCM and return it as mono float32 in [-1, 1].

    Raises:
        ZeroLengthAudioError: No samples, or a zero nominal duration
        UnsupportedSampleRateError: Sample rate below the configured floor
        CorruptAudioError: Wrong shape/dtype, non-finite samples, or a
            nominal duration that disagrees with the sample count
    """
    samples = np.asarray(audio.samples)

    if samples.ndim == 2 and 1 in samples.shape:
        samples = samples.reshape(-1)
    if samples.ndim != 1:
        raise CorruptAudioError(f"Expected mono PCM, got array with shape {samples.shape}")

    if samples.size == 0:
        raise ZeroLengthAudioError("Audio contains no samples")
    if audio.duration is not None and audio.duration <= 0:
        raise ZeroLengthAudioError(f"Audio declares a duration of {audio.duration}s")

    if audio.sample_rate <= 0:
        raise CorruptAudioError(f"Invalid sample rate: {audio.sample_rate}")
    if audio.sample_rate < config.min_sample_rate:
        raise UnsupportedSampleRateError(audio.sample_rate, config.min_sample_rate)

    if np.issubdtype(samples.dtype, np.integer):
        info = np.iinfo(samples.dtype)
        if info.min == 0:
            mid = (info.max + 1) / 2.0
            samples = (samples.astype(np.float64) - mid) / mid
        else:
            samples = samples.astype(np.float64) / float(-info.min)
    elif np.issubdtype(samples.dtype, np.floating):
        samples = samples.astype(np.float64)
    else:
        raise CorruptAudioError(f"Unsupported sample dtype: {samples.dtype}")

    if not np.all(np.isfinite(samples)):
        raise CorruptAudioError("Audio contains NaN or infinite samples")

    measured = samples.size / audio.sample_rate
    if audio.duration is not None and abs(audio.duration - measured) > config.duration_tolerance_sec:
        raise CorruptAudioError(
            f"Declared duration {audio.duration:.2f}s does not match "
            f"{measured:.2f}s of samples"
        )

    return np.clip(samples, -1.0, 1.0).astype(np.float32)


def resample(samples: np.ndarray, orig_sr: int, target_sr: int) -> np.ndarray:
    """Resample to the canonical rate with librosa (no-op when rates match)."""
    if orig_sr == target_sr:
        return samples
    import librosa

    try:
        return librosa.resample(samples, orig_sr=orig_sr, target_sr=target_sr).astype(np.float32)
    except Exception as e:
        raise AnalysisError(f"Failed to resample {orig_sr} Hz audio: {e}") from e


def frame_energy(
    samples: np.ndarray,
    frame_length: int,
    hop_length: int,
    block_frames: int = 8192,
    cancel: CancellationToken | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Compute per-frame RMS over overlapping windows.

    Energy is reduced block by block so long recordings never materialize
    a full float64 copy of every window at once.

    Returns:
        Tuple of (padded_samples, rms) where padded_samples is at least one
        frame long
    """
    import librosa

    if samples.size < frame_length:
        samples = np.pad(samples, (0, frame_length - samples.size))
    samples = np.ascontiguousarray(samples)

    windows = librosa.util.frame(samples, frame_length=frame_length, hop_length=hop_length, axis=0)
    n_frames = windows.shape[0]
    rms = np.empty(n_frames, dtype=np.float64)

    for start in range(0, n_frames, block_frames):
        check(cancel)
        block = windows[start : start + block_frames].astype(np.float64)
        rms[start : start + block.shape[0]] = np.sqrt(np.mean(block**2, axis=1))

    return samples, rms


def to_db(rms: np.ndarray) -> np.ndarray:
    """RMS amplitude to dBFS."""
    return 20.0 * np.log10(np.maximum(rms, _RMS_EPS))


def frame_runs(mask: np.ndarray) -> list[tuple[int, int, bool]]:
    """Split a boolean mask into (start, end, value) runs."""
    if mask.size == 0:
        return []
    change = np.flatnonzero(np.diff(mask.astype(np.int8))) + 1
    bounds = np.concatenate(([0], change, [mask.size]))
    return [(int(a), int(b), bool(mask[a])) for a, b in zip(bounds[:-1], bounds[1:])]


def vad_threshold(db: np.ndarray, config: VADConfig) -> tuple[float, float]:
    """Adaptive energy threshold.

    The noise floor is a low percentile of frame energy. A recording with
    almost no dynamic range (all speech or all noise) falls back to the
    absolute threshold alone.

    Returns:
        Tuple of (noise_floor_db, threshold_db)
    """
    floor = float(np.percentile(db, config.noise_percentile))
    peak = float(np.percentile(db, config.dynamic_range_percentile))

    if peak - floor < config.threshold_offset_db:
        return floor, config.absolute_threshold_db
    return floor, max(floor + config.threshold_offset_db, config.absolute_threshold_db)


def apply_hysteresis(raw: np.ndarray, hangover_frames: int, min_voiced_frames: int) -> np.ndarray:
    """Smooth raw voiced flags.

    A voiced run is only interrupted by at least ``hangover_frames``
    consecutive low-energy frames; shorter interior gaps are relabelled
    voiced. Voiced bursts shorter than ``min_voiced_frames`` are dropped.
    """
    voiced = raw.copy()
    n = voiced.size

    for a, b, flag in frame_runs(voiced):
        if not flag and a > 0 and b < n and (b - a) < hangover_frames:
            voiced[a:b] = True

    for a, b, flag in frame_runs(voiced):
        if flag and (b - a) < min_voiced_frames:
            voiced[a:b] = False

    return voiced


def detect_voice_activity(db: np.ndarray, config: VADConfig) -> tuple[np.ndarray, float, float]:
    """Classify frames voiced/unvoiced.

    Returns:
        Tuple of (voiced_mask, noise_floor_db, threshold_db)
    """
    floor, threshold = vad_threshold(db, config)
    raw = db > threshold
    voiced = apply_hysteresis(raw, config.hangover_frames, config.min_voiced_frames)
    return voiced, floor, threshold


def preprocess(
    audio: AudioInput,
    config: PreprocessConfig,
    cancel: CancellationToken | None = None,
) -> StageResult[PreprocessedSignal]:
    """Validate, resample, frame and run VAD on one recording.

    Args:
        audio: Decoded mono PCM
        config: Preprocessing configuration
        cancel: Optional cancellation token

    Returns:
        StageResult wrapping the PreprocessedSignal; degraded with
        EMPTY_OR_SILENT_AUDIO when no frame is voiced

    Raises:
        InputError: For audio the engine cannot analyze
    """
    samples = validate_audio(audio, config)
    duration = samples.size / audio.sample_rate
    check(cancel)

    canonical_sr = config.canonical_sample_rate
    samples = resample(samples, audio.sample_rate, canonical_sr)
    check(cancel)

    frame_length = config.frame_length
    hop_length = config.hop_length
    padded, rms = frame_energy(samples, frame_length, hop_length, config.block_frames, cancel)
    db = to_db(rms)

    voiced, floor, threshold = detect_voice_activity(db, config.vad)
    timeline = VoiceActivityTimeline.from_mask(voiced, hop_length / canonical_sr, duration)

    log.debug(
        "Preprocessed %.2fs at %d Hz: %d frames, floor %.1f dB, threshold %.1f dB, %.2fs voiced",
        duration,
        canonical_sr,
        rms.size,
        floor,
        threshold,
        timeline.voiced_duration,
    )

    signal = PreprocessedSignal(
        samples=padded,
        sample_rate=canonical_sr,
        frame_length=frame_length,
        hop_length=hop_length,
        rms=rms,
        db=db,
        voiced=voiced,
        timeline=timeline,
        noise_floor_db=floor,
        threshold_db=threshold,
        duration=duration,
    )

    if not voiced.any():
        return StageResult.degraded(
            signal,
            Stage.PREPROCESS,
            [
                (
                    WarningCode.EMPTY_OR_SILENT_AUDIO,
                    "Every frame is below the voice activity threshold; "
                    "nothing audible to analyze.",
                )
            ],
        )
    return StageResult.ok(signal, Stage.PREPROCESS)
