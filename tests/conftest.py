"""
Test configuration and shared fixtures.
"""

from __future__ import annotations

import json
import wave
from pathlib import Path

import numpy as np
import pytest

from cadence.analyze.signal import AudioInput
from cadence.config import EngineConfig
from cadence.transcript import Transcript, TranscriptWord

SR = 16000

ITALIAN_WORDS = [
    "oggi",
    "parliamo",
    "del",
    "progetto",
    "che",
    "abbiamo",
    "sviluppato",
    "insieme",
    "nel",
    "corso",
    "dell",
    "anno",
]


def make_tone(
    duration: float,
    sr: int = SR,
    f0: float = 150.0,
    vibrato_hz: float = 0.0,
    vibrato_depth: float = 0.0,
    amplitude: float = 0.1,
) -> np.ndarray:
    """Sine tone with optional slow pitch modulation."""
    t = np.arange(int(round(duration * sr))) / sr
    phase = 2 * np.pi * f0 * t
    if vibrato_hz and vibrato_depth:
        phase -= vibrato_depth / vibrato_hz * np.cos(2 * np.pi * vibrato_hz * t)
    return (amplitude * np.sin(phase)).astype(np.float32)


def make_speech_like(
    duration: float,
    gaps: list[tuple[float, float]],
    sr: int = SR,
    noise: float = 0.001,
    seed: int = 7,
) -> np.ndarray:
    """Modulated tone with silent (low-noise) gaps at the given spans."""
    rng = np.random.default_rng(seed)
    samples = make_tone(duration, sr=sr, vibrato_hz=0.5, vibrato_depth=60.0)
    for start, end in gaps:
        samples[int(start * sr) : int(end * sr)] = 0.0
    return (samples + rng.normal(0.0, noise, samples.size)).astype(np.float32)


def make_noise(duration: float, level: float = 1e-4, sr: int = SR, seed: int = 11) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.normal(0.0, level, int(duration * sr)).astype(np.float32)


def even_words(count: int, duration: float, word_len: float = 0.3) -> list[TranscriptWord]:
    """``count`` words evenly spaced from t=0 over ``duration`` seconds."""
    step = duration / count
    return [
        TranscriptWord(
            word=ITALIAN_WORDS[i % len(ITALIAN_WORDS)],
            start=round(i * step, 3),
            end=round(i * step + word_len, 3),
        )
        for i in range(count)
    ]


def write_wav(path: Path, samples: np.ndarray, sr: int = SR) -> Path:
    """Write float samples as 16-bit mono PCM WAV."""
    pcm = (np.clip(samples, -1.0, 1.0) * 32767).astype("<i2")
    with wave.open(str(path), "wb") as f:
        f.setnchannels(1)
        f.setsampwidth(2)
        f.setframerate(sr)
        f.writeframes(pcm.tobytes())
    return path


@pytest.fixture
def config() -> EngineConfig:
    """Default engine configuration."""
    return EngineConfig()


@pytest.fixture
def presentation_audio() -> AudioInput:
    """60 s of voiced signal with 3 s silent gaps at 20-23 s and 40-43 s."""
    samples = make_speech_like(60.0, [(20.0, 23.0), (40.0, 43.0)])
    return AudioInput(samples=samples, sample_rate=SR, duration=60.0)


@pytest.fixture
def presentation_transcript() -> Transcript:
    """150 evenly spaced Italian words with a single 'ehm' at t=10 s."""
    words = even_words(150, 60.0)
    words[25] = TranscriptWord(word="ehm", start=10.0, end=10.3)
    return Transcript(words=tuple(words), language="it")


@pytest.fixture
def silent_audio() -> AudioInput:
    """All-zero PCM."""
    return AudioInput(samples=np.zeros(5 * SR, dtype=np.float32), sample_rate=SR, duration=5.0)


@pytest.fixture
def low_noise_audio() -> AudioInput:
    """10 s of faint noise, entirely below the VAD threshold."""
    return AudioInput(samples=make_noise(10.0), sample_rate=SR, duration=10.0)


@pytest.fixture
def tone_audio() -> AudioInput:
    """5 s steady 200 Hz tone."""
    return AudioInput(samples=make_tone(5.0, f0=200.0), sample_rate=SR, duration=5.0)


@pytest.fixture
def sample_transcript_dict() -> dict:
    """Transcription provider JSON with word timestamps in segments."""
    return {
        "language": "en",
        "text": "So, um, today I want to talk about our roadmap.",
        "segments": [
            {
                "start": 0.0,
                "end": 3.0,
                "text": "So, um, today I want to",
                "words": [
                    {"word": " So,", "start": 0.0, "end": 0.3},
                    {"word": " um,", "start": 0.8, "end": 1.1},
                    {"word": " today", "start": 1.5, "end": 1.9},
                    {"word": " I", "start": 1.95, "end": 2.05},
                    {"word": " want", "start": 2.1, "end": 2.4},
                    {"word": " to", "start": 2.45, "end": 2.6},
                ],
            },
            {
                "start": 3.0,
                "end": 5.0,
                "text": "talk about our roadmap.",
                "words": [
                    {"word": " talk", "start": 3.0, "end": 3.3},
                    {"word": " about", "start": 3.35, "end": 3.7},
                    {"word": " our", "start": 3.75, "end": 3.9},
                    {"word": " roadmap.", "start": 3.95, "end": 4.6},
                ],
            },
        ],
    }


@pytest.fixture
def transcript_file(tmp_path: Path, sample_transcript_dict: dict) -> Path:
    path = tmp_path / "transcript.json"
    path.write_text(json.dumps(sample_transcript_dict), encoding="utf-8")
    return path
