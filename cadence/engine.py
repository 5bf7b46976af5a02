"""
cadence.engine - Orchestrates one analysis call.

Runs the preprocessor, fans the four independent analyzers out onto a
thread pool, joins them and hands the results to the scorer. The engine
holds only its frozen config and the loaded lexicons, so a single instance
can serve concurrent calls.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Any, Callable

from cadence.analyze.fillers import detect_fillers, empty_filler_analysis
from cadence.analyze.pauses import analyze_pauses, empty_pause_analysis, find_pause_intervals
from cadence.analyze.quality import analyze_audio_quality, silent_audio_quality
from cadence.analyze.results import StageResult
from cadence.analyze.scoring import assemble_metrics
from cadence.analyze.signal import AudioInput, preprocess
from cadence.analyze.speech_rate import analyze_speech_rate, empty_speech_rate
from cadence.cancel import CancellationToken
from cadence.config import EngineConfig, normalize_language
from cadence.exceptions import AnalysisCancelled, CadenceError
from cadence.io import compute_cache_key
from cadence.lexicon import LexiconRegistry
from cadence.logging import get_logger
from cadence.models import AudioMetrics, Stage
from cadence.transcript import Transcript

log = get_logger("engine")

POLL_INTERVAL_SEC = 0.05

STAGE_UNAVAILABLE = "This measurement could not be completed for the recording."


class OutcomeStatus(str, Enum):
    COMPLETED = "completed"
    DEGRADED = "degraded"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class AnalysisOutcome:
    """Result of AnalysisEngine.run(): a report, or why there is none."""

    status: OutcomeStatus
    metrics: AudioMetrics | None = None
    error_category: str | None = None
    error_message: str | None = None

    @property
    def ok(self) -> bool:
        return self.metrics is not None


class AnalysisEngine:
    """Turns one (audio, transcript) pair into an AudioMetrics report.

    Args:
        config: Resolved engine configuration (defaults when None)
        lexicons: Preloaded filler lexicons; loaded from ``config`` when None

    Raises:
        ConfigError: If the filler lexicons cannot be loaded
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        lexicons: LexiconRegistry | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.lexicons = lexicons or LexiconRegistry.from_config(self.config.fillers)
        log.debug(
            "Engine ready: profile %s, lexicons %s",
            self.config.profile,
            ", ".join(self.lexicons.languages),
        )

    def cache_key(self, audio: AudioInput, transcript: Transcript) -> str:
        """Key under which a caller may cache this pair's report."""
        return compute_cache_key(audio, transcript)

    def analyze(
        self,
        audio: AudioInput,
        transcript: Transcript,
        cancel: CancellationToken | None = None,
        timeout: float | None = None,
    ) -> AudioMetrics:
        """Run the full pipeline on one recording.

        Args:
            audio: Decoded mono PCM from the audio capture provider
            transcript: Time-aligned transcript
            cancel: Optional token the caller may set to abort the call
            timeout: Optional wall-clock limit in seconds

        Returns:
            Immutable AudioMetrics report

        Raises:
            InputError: If the audio or transcript cannot be analyzed
            AnalysisError: If preprocessing fails unexpectedly
            AnalysisCancelled: If the token is set or the timeout expires
        """
        # the timeout cancels only this call's token, never the caller's
        token = cancel.child() if cancel is not None else CancellationToken()
        timer = None
        if timeout is not None:
            timer = threading.Timer(timeout, token.cancel, args=("timeout",))
            timer.daemon = True
            timer.start()

        started = time.perf_counter()
        try:
            metrics = self._analyze(audio, transcript, token)
        finally:
            if timer is not None:
                timer.cancel()
            if cancel is not None:
                cancel.detach(token)

        log.info(
            "Analyzed %.1fs of audio in %.2fs (score %d%s)",
            metrics.duration_seconds,
            time.perf_counter() - started,
            metrics.speaking_performance.overall_score,
            ", degraded" if metrics.degraded else "",
        )
        return metrics

    def run(
        self,
        audio: AudioInput,
        transcript: Transcript,
        cancel: CancellationToken | None = None,
        timeout: float | None = None,
    ) -> AnalysisOutcome:
        """Like analyze(), but reports failure and cancellation as an outcome."""
        try:
            metrics = self.analyze(audio, transcript, cancel=cancel, timeout=timeout)
        except AnalysisCancelled as e:
            log.info("Analysis cancelled: %s", e.reason)
            return AnalysisOutcome(
                status=OutcomeStatus.CANCELLED,
                error_category=e.category,
                error_message=str(e),
            )
        except CadenceError as e:
            log.warning("Analysis failed (%s): %s", e.category, e)
            return AnalysisOutcome(
                status=OutcomeStatus.FAILED,
                error_category=e.category,
                error_message=str(e),
            )

        status = OutcomeStatus.DEGRADED if metrics.degraded else OutcomeStatus.COMPLETED
        return AnalysisOutcome(status=status, metrics=metrics)

    def _analyze(
        self,
        audio: AudioInput,
        transcript: Transcript,
        token: CancellationToken,
    ) -> AudioMetrics:
        config = self.config
        token.raise_if_cancelled()

        log.debug("Stage %s started", Stage.PREPROCESS.value)
        prepared = preprocess(audio, config.preprocess, token)
        signal = prepared.value
        transcript.validate_against(signal.duration, config.transcript_tolerance_sec)
        token.raise_if_cancelled()

        lexicon, is_fallback = self.lexicons.get(transcript.language)
        language = normalize_language(transcript.language) or lexicon.language
        pause_total = sum(p.duration for p in find_pause_intervals(signal.timeline, config.pauses))

        stages: dict[Stage, tuple[Callable[[], StageResult[Any]], Callable[[], Any]]] = {
            Stage.PAUSES: (
                partial(analyze_pauses, signal.timeline, transcript, config.pauses, token),
                empty_pause_analysis,
            ),
            Stage.SPEECH_RATE: (
                partial(
                    analyze_speech_rate,
                    transcript,
                    signal.duration,
                    pause_total,
                    config.speech_rate.bands_for(language),
                    config.speech_rate,
                    token,
                ),
                partial(empty_speech_rate, STAGE_UNAVAILABLE, transcript.word_count),
            ),
            Stage.FILLERS: (
                partial(detect_fillers, transcript, lexicon, is_fallback, config.fillers, token),
                partial(empty_filler_analysis, normalize_language(transcript.language), lexicon.language),
            ),
            Stage.AUDIO_QUALITY: (
                partial(analyze_audio_quality, signal, config.audio_quality, token),
                partial(silent_audio_quality, config.audio_quality, STAGE_UNAVAILABLE),
            ),
        }

        results = self._run_stages(stages, token)

        metrics = assemble_metrics(
            speech_rate=results[Stage.SPEECH_RATE],
            pauses=results[Stage.PAUSES],
            fillers=results[Stage.FILLERS],
            audio=results[Stage.AUDIO_QUALITY],
            weights=config.weights,
            duration=signal.duration,
            language=language,
            preprocess=prepared,
        )
        for warning in metrics.warnings:
            log.warning("[%s] %s: %s", warning.stage.value, warning.code.value, warning.message)
        return metrics

    def _run_stages(
        self,
        stages: dict[Stage, tuple[Callable[[], StageResult[Any]], Callable[[], Any]]],
        token: CancellationToken,
    ) -> dict[Stage, StageResult[Any]]:
        """Run the analyzers concurrently and join them.

        A stage that raises is replaced by its fallback report with a
        STAGE_FAILED warning; cancellation aborts the whole call.
        """
        with ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="cadence"
        ) as pool:
            futures: dict[Future, Stage] = {}
            for stage, (task, _) in stages.items():
                log.debug("Stage %s started", stage.value)
                futures[pool.submit(task)] = stage

            pending = set(futures)
            while pending:
                _, pending = wait(pending, timeout=POLL_INTERVAL_SEC, return_when=FIRST_COMPLETED)
                if token.cancelled:
                    for future in pending:
                        future.cancel()
                    raise AnalysisCancelled(token.reason)

        results: dict[Stage, StageResult[Any]] = {}
        for future, stage in futures.items():
            try:
                results[stage] = future.result()
            except AnalysisCancelled:
                raise
            except Exception as e:
                log.exception("Stage %s failed", stage.value)
                fallback = stages[stage][1]
                results[stage] = StageResult.failed(fallback(), stage, f"{type(e).__name__}: {e}")
            else:
                log.debug("Stage %s finished (%s)", stage.value, results[stage].status.value)
        return results
