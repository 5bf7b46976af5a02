"""Tests for cadence.io module - JSON, text and input loading."""

from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pytest
from conftest import SR, make_tone, write_wav

from cadence.analyze.signal import AudioInput
from cadence.exceptions import CorruptAudioError, InputError
from cadence.io import (
    compute_cache_key,
    load_audio,
    load_transcript,
    read_json,
    write_json,
    write_text,
)
from cadence.transcript import Transcript, TranscriptWord


class TestReadJson:
    def test_read_valid_json(self, tmp_path: Path) -> None:
        data = {"key": "value", "number": 42}
        json_file = tmp_path / "test.json"
        json_file.write_text(json.dumps(data))

        assert read_json(json_file) == data

    def test_read_json_with_unicode(self, tmp_path: Path) -> None:
        json_file = tmp_path / "test.json"
        json_file.write_text(json.dumps({"word": "cioè"}), encoding="utf-8")

        assert read_json(json_file)["word"] == "cioè"

    def test_read_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            read_json(tmp_path / "nonexistent.json")


class TestAtomicWrites:
    def test_writes_json_file(self, tmp_path: Path) -> None:
        data = {"key": "value", "nested": {"a": 1}}
        output_path = tmp_path / "out" / "report.json"
        write_json(output_path, data)

        with open(output_path) as f:
            assert json.load(f) == data

    def test_pretty_prints_by_default(self, tmp_path: Path) -> None:
        output_path = tmp_path / "report.json"
        write_json(output_path, {"a": 1})
        assert "\n" in output_path.read_text()

    def test_unicode_is_not_escaped(self, tmp_path: Path) -> None:
        output_path = tmp_path / "report.json"
        write_json(output_path, {"word": "però"})
        assert "però" in output_path.read_text(encoding="utf-8")

    def test_write_text_overwrites(self, tmp_path: Path) -> None:
        output_path = tmp_path / "report.txt"
        write_text(output_path, "first")
        write_text(output_path, "second")
        assert output_path.read_text() == "second"

    def test_no_temp_files_left(self, tmp_path: Path) -> None:
        write_text(tmp_path / "report.txt", "content")
        assert list(tmp_path.glob("*.tmp")) == []

    def test_failed_write_cleans_up(self, tmp_path: Path) -> None:
        output_path = tmp_path / "report.json"
        with pytest.raises(TypeError):
            write_json(output_path, {"bad": object()})
        assert not output_path.exists()
        assert list(tmp_path.glob("*.tmp")) == []


class TestLoadTranscript:
    def test_load(self, transcript_file: Path) -> None:
        transcript = load_transcript(transcript_file)
        assert transcript.language == "en"
        assert transcript.word_count == 10

    def test_language_override(self, transcript_file: Path) -> None:
        assert load_transcript(transcript_file, language="it").language == "it"

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(InputError):
            load_transcript(path)

    def test_not_an_object(self, tmp_path: Path) -> None:
        path = tmp_path / "list.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(InputError):
            load_transcript(path)

    def test_malformed_timestamps(self, tmp_path: Path) -> None:
        path = tmp_path / "bad-times.json"
        path.write_text(json.dumps({"words": [{"word": "hi", "start": "soon"}]}))
        with pytest.raises(InputError):
            load_transcript(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_transcript(tmp_path / "missing.json")


class TestLoadAudio:
    def test_load_wav(self, tmp_path: Path) -> None:
        path = write_wav(tmp_path / "talk.wav", make_tone(1.0))
        audio = load_audio(path)

        assert audio.sample_rate == SR
        assert audio.samples.ndim == 1
        assert audio.duration == pytest.approx(1.0)
        assert float(np.max(np.abs(audio.samples))) == pytest.approx(0.1, abs=0.01)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_audio(tmp_path / "missing.wav")

    def test_undecodable_file(self, tmp_path: Path) -> None:
        path = tmp_path / "notes.wav"
        path.write_bytes(b"this is not audio")
        with pytest.raises(CorruptAudioError):
            load_audio(path)


class TestCacheKey:
    def test_same_inputs_same_key(self) -> None:
        samples = make_tone(0.5)
        transcript = Transcript(words=(TranscriptWord("hi", 0.0, 0.2),), language="en")
        first = compute_cache_key(AudioInput(samples, SR), transcript)
        second = compute_cache_key(AudioInput(samples.copy(), SR), transcript)
        assert first == second

    def test_sample_rate_changes_key(self) -> None:
        samples = make_tone(0.5)
        transcript = Transcript(words=())
        assert compute_cache_key(AudioInput(samples, SR), transcript) != compute_cache_key(
            AudioInput(samples, 22050), transcript
        )

    def test_word_timing_changes_key(self) -> None:
        audio = AudioInput(make_tone(0.5), SR)
        early = Transcript(words=(TranscriptWord("hi", 0.0, 0.2),))
        late = Transcript(words=(TranscriptWord("hi", 0.1, 0.3),))
        assert compute_cache_key(audio, early) != compute_cache_key(audio, late)
