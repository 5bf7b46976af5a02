"""Tests for cadence.analyze.pauses module."""

from __future__ import annotations

import pytest

from cadence.analyze.pauses import (
    analyze_pauses,
    classify_distribution,
    classify_pause_rate,
    find_pause_intervals,
    is_degraded_signal,
    pause_context,
)
from cadence.analyze.results import StageStatus
from cadence.analyze.signal import VoiceActivityTimeline, VoiceSegment
from cadence.config import PauseConfig
from cadence.models import PauseQuality, WarningCode
from cadence.transcript import Transcript, TranscriptWord


def timeline_of(*spans: tuple[float, float, bool]) -> VoiceActivityTimeline:
    segments = tuple(VoiceSegment(a, b, v) for a, b, v in spans)
    return VoiceActivityTimeline(segments=segments, duration=segments[-1].end)


class TestFindPauseIntervals:
    def test_edge_silence_is_ignored(self) -> None:
        timeline = timeline_of(
            (0.0, 1.0, False),
            (1.0, 5.0, True),
            (5.0, 6.0, False),
            (6.0, 9.0, True),
            (9.0, 12.0, False),
        )
        intervals = find_pause_intervals(timeline, PauseConfig())
        assert [(p.start, p.end) for p in intervals] == [(5.0, 6.0)]

    def test_edge_silence_can_be_included(self) -> None:
        timeline = timeline_of((0.0, 1.0, False), (1.0, 5.0, True), (5.0, 6.0, False))
        intervals = find_pause_intervals(timeline, PauseConfig(include_edge_silence=True))
        assert len(intervals) == 2

    def test_short_gaps_are_not_pauses(self) -> None:
        timeline = timeline_of(
            (0.0, 2.0, True),
            (2.0, 2.2, False),
            (2.2, 4.0, True),
            (4.0, 4.3, False),
            (4.3, 6.0, True),
        )
        assert find_pause_intervals(timeline, PauseConfig()) == []

    def test_no_voice_is_one_interval(self) -> None:
        timeline = timeline_of((0.0, 8.0, False))
        intervals = find_pause_intervals(timeline, PauseConfig())
        assert len(intervals) == 1
        assert intervals[0].duration == 8.0


class TestClassification:
    def test_distribution(self) -> None:
        dist = classify_distribution([0.35, 0.6, 1.9, 2.5, 3.0], PauseConfig())
        assert (dist.short, dist.medium, dist.long) == (1, 2, 2)

    def test_distribution_sums_to_count(self) -> None:
        durations = [0.31, 0.5, 2.0, 2.01, 0.49]
        dist = classify_distribution(durations, PauseConfig())
        assert dist.short + dist.medium + dist.long == len(durations)

    @pytest.mark.parametrize(
        "rate,expected",
        [
            (0.0, PauseQuality.TOO_RARE),
            (2.9, PauseQuality.TOO_RARE),
            (3.0, PauseQuality.OPTIMAL),
            (15.0, PauseQuality.OPTIMAL),
            (15.1, PauseQuality.TOO_FREQUENT),
        ],
    )
    def test_pause_rate(self, rate: float, expected: PauseQuality) -> None:
        assert classify_pause_rate(rate, PauseConfig()) is expected


class TestPauseContext:
    def test_words_on_each_side(self) -> None:
        transcript = Transcript.from_words(
            [
                {"word": "one", "start": 0.0, "end": 0.3},
                {"word": "two", "start": 0.4, "end": 0.7},
                {"word": "three", "start": 0.8, "end": 1.0},
                {"word": "four", "start": 2.5, "end": 2.8},
                {"word": "five", "start": 2.9, "end": 3.1},
            ]
        )
        before, after = pause_context(transcript, 1.0, 2.5, 2)
        assert before == "two three"
        assert after == "four five"

    def test_word_bleeding_into_pause(self) -> None:
        transcript = Transcript.from_words(
            [
                {"word": "before", "start": 0.5, "end": 1.2},
                {"word": "after", "start": 2.4, "end": 2.8},
            ]
        )
        before, after = pause_context(transcript, 1.0, 2.5, 3)
        assert before == "before"
        assert after == "after"

    def test_no_transcript(self) -> None:
        assert pause_context(None, 1.0, 2.0, 3) == (None, None)

    def test_no_words_after(self) -> None:
        transcript = Transcript.from_words([{"word": "end", "start": 0.0, "end": 0.5}])
        assert pause_context(transcript, 1.0, 2.0, 3) == ("end", None)


class TestAnalyzePauses:
    def test_summary(self) -> None:
        timeline = timeline_of(
            (0.0, 10.0, True),
            (10.0, 10.4, False),
            (10.4, 20.0, True),
            (20.0, 21.0, False),
            (21.0, 40.0, True),
            (40.0, 43.0, False),
            (43.0, 60.0, True),
        )
        result = analyze_pauses(timeline, None, PauseConfig())
        analysis = result.value

        assert result.status is StageStatus.OK
        assert analysis.total_pauses == 3
        assert analysis.total_pause_duration == pytest.approx(4.4)
        assert analysis.max_pause_duration == pytest.approx(3.0)
        assert analysis.min_pause_duration == pytest.approx(0.4)
        assert analysis.avg_pause_duration == pytest.approx(4.4 / 3, abs=1e-3)
        assert analysis.pauses_per_minute == pytest.approx(3.0)
        assert analysis.pause_ratio == pytest.approx(4.4 / 60, abs=1e-3)
        assert analysis.quality is PauseQuality.OPTIMAL
        assert (
            analysis.pause_distribution.short,
            analysis.pause_distribution.medium,
            analysis.pause_distribution.long,
        ) == (1, 1, 1)

    def test_pauses_sorted_and_disjoint(self) -> None:
        timeline = timeline_of(
            (0.0, 3.0, True),
            (3.0, 4.0, False),
            (4.0, 6.0, True),
            (6.0, 6.5, False),
            (6.5, 9.0, True),
        )
        pauses = analyze_pauses(timeline, None, PauseConfig()).value.pauses
        for prev, cur in zip(pauses, pauses[1:]):
            assert prev.end_time <= cur.start_time
        assert all(p.duration > PauseConfig().min_pause_duration for p in pauses)

    def test_rate_uses_speaking_span(self) -> None:
        timeline = timeline_of(
            (0.0, 30.0, False),
            (30.0, 50.0, True),
            (50.0, 51.0, False),
            (51.0, 90.0, True),
        )
        analysis = analyze_pauses(timeline, None, PauseConfig()).value
        assert analysis.total_pauses == 1
        assert analysis.pauses_per_minute == pytest.approx(1.0)

    def test_whole_recording_silence_is_undetermined(self) -> None:
        timeline = timeline_of((0.0, 30.0, False))
        result = analyze_pauses(timeline, None, PauseConfig())

        assert result.status is StageStatus.DEGRADED
        assert result.warnings[0].code is WarningCode.DEGRADED_PAUSE_SIGNAL
        assert result.value.total_pauses == 1
        assert result.value.pause_distribution.long == 1
        assert result.value.quality is PauseQuality.UNDETERMINED

    def test_single_giant_pause_is_degraded(self) -> None:
        timeline = timeline_of(
            (0.0, 0.5, True),
            (0.5, 19.5, False),
            (19.5, 20.0, True),
        )
        assert is_degraded_signal(timeline, find_pause_intervals(timeline, PauseConfig()), PauseConfig())
        result = analyze_pauses(timeline, None, PauseConfig())
        assert result.value.quality is PauseQuality.UNDETERMINED

    def test_context_attached(self) -> None:
        timeline = timeline_of((0.0, 2.0, True), (2.0, 3.0, False), (3.0, 5.0, True))
        transcript = Transcript(
            words=(
                TranscriptWord("hello", 0.5, 1.0),
                TranscriptWord("there", 1.2, 1.9),
                TranscriptWord("again", 3.1, 3.6),
            )
        )
        pause = analyze_pauses(timeline, transcript, PauseConfig()).value.pauses[0]
        assert pause.context_before == "hello there"
        assert pause.context_after == "again"

    def test_serializes_camel_case(self) -> None:
        timeline = timeline_of((0.0, 2.0, True), (2.0, 3.0, False), (3.0, 5.0, True))
        data = analyze_pauses(timeline, None, PauseConfig()).value.to_dict()
        assert "totalPauses" in data
        assert "startTime" in data["pauses"][0]
        assert data["pauseDistribution"]["medium"] == 1
