"""
cadence.exceptions - Custom exception classes.

All Cadence-specific exceptions inherit from CadenceError. Input errors
carry a machine-readable ``category`` so callers can branch on the kind of
rejection without parsing messages.
"""


class CadenceError(Exception):
    """Base exception for all Cadence errors."""

    category = "error"


class ConfigError(CadenceError):
    """Configuration or lexicon loading/validation error."""

    category = "config-error"


class InputError(CadenceError):
    """Audio or transcript input rejected; the whole analysis call fails."""

    category = "invalid-input"


class ZeroLengthAudioError(InputError):
    """Audio contains no samples or declares a zero duration."""

    category = "zero-length-audio"


class CorruptAudioError(InputError):
    """Audio samples are unreadable, non-finite or inconsistent."""

    category = "corrupt-audio"


class UnsupportedSampleRateError(InputError):
    """Sample rate is below the supported floor."""

    category = "unsupported-sample-rate"

    def __init__(self, sample_rate: int, minimum: int):
        self.sample_rate = sample_rate
        self.minimum = minimum
        super().__init__(
            f"Sample rate {sample_rate} Hz is below the supported minimum of {minimum} Hz"
        )


class TranscriptMismatchError(InputError):
    """Transcript timestamps do not fit the audio."""

    category = "transcript-mismatch"


class AnalysisError(CadenceError):
    """Unexpected failure inside an analysis stage."""

    category = "analysis-error"


class AnalysisCancelled(Exception):
    """The caller cancelled the analysis (or its timeout expired).

    Not a CadenceError subclass, so it never matches ``except CadenceError``.
    """

    category = "cancelled"

    def __init__(self, reason: str = "cancelled"):
        self.reason = reason
        super().__init__(f"Analysis cancelled ({reason})")
