"""Tests for cadence CLI commands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from conftest import make_speech_like, write_wav
from typer.testing import CliRunner

from cadence import __version__
from cadence.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep find_config_file from picking up a cadence.yaml outside the test."""
    monkeypatch.chdir(tmp_path)


class TestVersion:
    def test_version_flag(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestInitConfigCommand:
    def test_writes_default_config(self, tmp_path: Path) -> None:
        path = tmp_path / "cadence.yaml"
        result = runner.invoke(app, ["init-config", str(path)])
        assert result.exit_code == 0
        assert path.exists()
        assert "presentation" in path.read_text()

    def test_with_profile(self, tmp_path: Path) -> None:
        path = tmp_path / "cadence.yaml"
        result = runner.invoke(app, ["init-config", str(path), "-p", "lecture"])
        assert result.exit_code == 0
        assert "lecture" in path.read_text()

    def test_fails_if_file_exists(self, tmp_path: Path) -> None:
        path = tmp_path / "cadence.yaml"
        path.write_text("profile: lecture\n")
        result = runner.invoke(app, ["init-config", str(path)])
        assert result.exit_code == 1
        assert "already exists" in result.output
        assert path.read_text() == "profile: lecture\n"

    def test_force_overwrites(self, tmp_path: Path) -> None:
        path = tmp_path / "cadence.yaml"
        path.write_text("profile: lecture\n")
        result = runner.invoke(app, ["init-config", str(path), "--force"])
        assert result.exit_code == 0
        assert "presentation" in path.read_text()

    def test_unknown_profile(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["init-config", str(tmp_path / "c.yaml"), "-p", "keynote"])
        assert result.exit_code == 1
        assert "Unknown profile" in result.output


class TestLexiconCommand:
    def test_lists_entries(self) -> None:
        result = runner.invoke(app, ["lexicon", "it"])
        assert result.exit_code == 0
        assert "ehm" in result.output
        assert "hesitation" in result.output

    def test_unknown_language_falls_back(self) -> None:
        result = runner.invoke(app, ["lexicon", "xx"])
        assert result.exit_code == 0
        assert "falling back" in result.output

    def test_bad_config(self, tmp_path: Path) -> None:
        config_file = tmp_path / "broken.yaml"
        config_file.write_text("weights:\n  fillers: 90\n")
        result = runner.invoke(app, ["lexicon", "it", "--config", str(config_file)])
        assert result.exit_code == 1


class TestAnalyzeCommand:
    def test_writes_report(self, tmp_path: Path, transcript_file: Path) -> None:
        audio_file = write_wav(tmp_path / "talk.wav", make_speech_like(6.0, [(2.0, 3.0)]))
        output = tmp_path / "report.json"

        result = runner.invoke(
            app, ["analyze", str(audio_file), str(transcript_file), "--output", str(output)]
        )

        assert result.exit_code == 0, result.output
        assert "Overall score" in result.output
        report = json.loads(output.read_text(encoding="utf-8"))
        assert 0 <= report["speakingPerformance"]["overallScore"] <= 100
        assert report["language"] == "en"
        assert report["fillerWords"]["byType"]["um"] == 1

    def test_json_output(self, tmp_path: Path, transcript_file: Path) -> None:
        audio_file = write_wav(tmp_path / "talk.wav", make_speech_like(6.0, [(2.0, 3.0)]))
        result = runner.invoke(app, ["analyze", str(audio_file), str(transcript_file), "--json"])
        assert result.exit_code == 0, result.output
        assert '"speechRate"' in result.output

    def test_missing_audio(self, tmp_path: Path, transcript_file: Path) -> None:
        result = runner.invoke(app, ["analyze", str(tmp_path / "missing.wav"), str(transcript_file)])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_unsupported_sample_rate(self, tmp_path: Path, transcript_file: Path) -> None:
        audio_file = write_wav(
            tmp_path / "phone.wav", make_speech_like(6.0, [], sr=4000), sr=4000
        )
        result = runner.invoke(app, ["analyze", str(audio_file), str(transcript_file)])
        assert result.exit_code == 1
        assert "unsupported-sample-rate" in result.output
