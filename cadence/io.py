"""
cadence.io - JSON read/write helpers, atomic file writes, audio loading.

Centralized I/O for the CLI. The engine itself never touches the
filesystem; it only sees decoded arrays and parsed transcripts.
"""

from __future__ import annotations

import hashlib
import json
import tempfile
from pathlib import Path
from typing import Any

import numpy as np

from cadence.analyze.signal import AudioInput
from cadence.exceptions import CorruptAudioError, InputError
from cadence.transcript import Transcript


def read_json(path: Path) -> dict[str, Any]:
    """Read JSON file with UTF-8 encoding.

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If file contains invalid JSON
    """
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _atomic_write(path: Path, write) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        delete=False,
        suffix=".tmp",
    ) as tmp:
        tmp_path = Path(tmp.name)
        try:
            write(tmp)
        except Exception:
            tmp_path.unlink(missing_ok=True)
            raise
    tmp_path.replace(path)


def write_json(path: Path, data: dict[str, Any], indent: int = 2) -> None:
    """Write JSON file atomically with pretty formatting.

    Writes to a temp file first, then renames to prevent corruption
    on interruption.
    """
    _atomic_write(path, lambda f: json.dump(data, f, indent=indent, ensure_ascii=False))


def write_text(path: Path, content: str) -> None:
    """Write text file atomically."""
    _atomic_write(path, lambda f: f.write(content))


def load_audio(path: Path) -> AudioInput:
    """Decode an audio file to mono float PCM at its native sample rate.

    Raises:
        FileNotFoundError: If the file doesn't exist
        CorruptAudioError: If librosa cannot decode the file
    """
    if not path.exists():
        raise FileNotFoundError(f"Audio file not found: {path}")

    import librosa

    try:
        samples, sr = librosa.load(str(path), sr=None, mono=True)
    except Exception as e:
        raise CorruptAudioError(f"Failed to decode audio {path.name}: {e}") from e

    return AudioInput(samples=samples, sample_rate=int(sr), duration=len(samples) / sr if sr else None)


def load_transcript(path: Path, language: str | None = None) -> Transcript:
    """Parse a transcript JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        InputError: If the file is not valid transcript JSON
    """
    try:
        data = read_json(path)
    except json.JSONDecodeError as e:
        raise InputError(f"Transcript {path.name} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise InputError(f"Transcript {path.name} must contain a JSON object")

    try:
        return Transcript.from_dict(data, language=language)
    except (AttributeError, TypeError, ValueError) as e:
        raise InputError(f"Transcript {path.name} has malformed words: {e}") from e


def compute_cache_key(audio: AudioInput, transcript: Transcript) -> str:
    """SHA-256 over the audio content and the transcript's words and language."""
    sha256 = hashlib.sha256()
    samples = np.ascontiguousarray(audio.samples)
    sha256.update(str(samples.dtype).encode())
    sha256.update(samples.tobytes())
    sha256.update(str(audio.sample_rate).encode())
    for w in transcript.words:
        sha256.update(f"{w.word}\x1f{w.start!r}\x1f{w.end!r}\x1e".encode())
    sha256.update(transcript.language.encode())
    return f"sha256:{sha256.hexdigest()}"
