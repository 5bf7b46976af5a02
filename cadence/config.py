"""
cadence.config - YAML config loading, profile merging, validation.

Every threshold the analyzers use lives here as a named option with a
documented default. The resolved EngineConfig is frozen and injected into
the engine, so concurrent analyses share it read-only.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from cadence.exceptions import ConfigError


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class VADConfig(_Frozen):
    """Energy-based voice activity detection settings."""

    noise_percentile: float = Field(default=5.0, ge=0.0, le=50.0)
    threshold_offset_db: float = Field(default=10.0, gt=0.0)
    absolute_threshold_db: float = Field(default=-55.0, le=0.0)
    dynamic_range_percentile: float = Field(default=95.0, ge=50.0, le=100.0)
    hangover_frames: int = Field(default=15, ge=0)
    min_voiced_frames: int = Field(default=3, ge=1)


class PreprocessConfig(_Frozen):
    """Resampling, framing and input validation settings."""

    canonical_sample_rate: int = Field(default=16000, ge=8000)
    min_sample_rate: int = Field(default=8000, gt=0)
    frame_ms: float = Field(default=25.0, gt=0.0)
    hop_ms: float = Field(default=10.0, gt=0.0)
    duration_tolerance_sec: float = Field(default=0.5, ge=0.0)
    block_frames: int = Field(default=8192, ge=1)
    vad: VADConfig = Field(default_factory=VADConfig)

    @model_validator(mode="after")
    def validate_framing(self) -> PreprocessConfig:
        if self.hop_ms > self.frame_ms:
            raise ValueError("hop_ms must not exceed frame_ms")
        if self.min_sample_rate > self.canonical_sample_rate:
            raise ValueError("min_sample_rate must not exceed canonical_sample_rate")
        return self

    @property
    def frame_length(self) -> int:
        return int(round(self.canonical_sample_rate * self.frame_ms / 1000.0))

    @property
    def hop_length(self) -> int:
        return int(round(self.canonical_sample_rate * self.hop_ms / 1000.0))


class PauseConfig(_Frozen):
    """Pause detection and classification settings."""

    min_pause_duration: float = Field(default=0.3, gt=0.0)
    short_below: float = Field(default=0.5, gt=0.0)
    long_above: float = Field(default=2.0, gt=0.0)
    min_pauses_per_minute: float = Field(default=3.0, ge=0.0)
    max_pauses_per_minute: float = Field(default=15.0, gt=0.0)
    context_words: int = Field(default=4, ge=3, le=5)
    include_edge_silence: bool = False
    degraded_coverage: float = Field(default=0.9, gt=0.0, le=1.0)

    @model_validator(mode="after")
    def validate_bands(self) -> PauseConfig:
        if self.short_below > self.long_above:
            raise ValueError("short_below must not exceed long_above")
        if self.min_pauses_per_minute >= self.max_pauses_per_minute:
            raise ValueError("min_pauses_per_minute must be below max_pauses_per_minute")
        return self


class WpmBands(_Frozen):
    """Words-per-minute band edges for one language."""

    slow_below: float = Field(default=110.0, gt=0.0)
    fast_above: float = Field(default=160.0, gt=0.0)
    very_fast_above: float = Field(default=190.0, gt=0.0)

    @model_validator(mode="after")
    def validate_order(self) -> WpmBands:
        if not self.slow_below <= self.fast_above <= self.very_fast_above:
            raise ValueError("WPM bands must satisfy slow_below <= fast_above <= very_fast_above")
        return self


DEFAULT_WPM_BANDS: dict[str, dict[str, float]] = {
    "default": {"slow_below": 110, "fast_above": 160, "very_fast_above": 190},
    "en": {"slow_below": 110, "fast_above": 160, "very_fast_above": 190},
    "it": {"slow_below": 130, "fast_above": 170, "very_fast_above": 200},
    "es": {"slow_below": 130, "fast_above": 175, "very_fast_above": 205},
    "fr": {"slow_below": 120, "fast_above": 170, "very_fast_above": 200},
    "pt": {"slow_below": 125, "fast_above": 170, "very_fast_above": 200},
    "de": {"slow_below": 100, "fast_above": 150, "very_fast_above": 180},
}


class SpeechRateConfig(_Frozen):
    """Pacing bands per language and windowed rate settings."""

    bands: dict[str, WpmBands] = Field(
        default_factory=lambda: {k: WpmBands(**v) for k, v in DEFAULT_WPM_BANDS.items()}
    )
    window_seconds: float = Field(default=30.0, gt=0.0)

    @field_validator("bands", mode="before")
    @classmethod
    def merge_default_bands(cls, v: Any) -> Any:
        """Overlay user bands on the built-in ones, field by field.

        A language missing from the built-ins starts from the 'default' bands,
        after any override of those.
        """
        if not isinstance(v, dict):
            return v
        merged: dict[str, Any] = {k: dict(b) for k, b in DEFAULT_WPM_BANDS.items()}
        for lang in sorted(v, key=lambda k: k != "default"):
            bands = v[lang]
            if isinstance(bands, WpmBands):
                bands = bands.model_dump()
            base = merged.get(lang, merged["default"])
            if isinstance(bands, dict) and isinstance(base, dict):
                merged[lang] = {**base, **bands}
            else:
                merged[lang] = bands
        return merged

    def bands_for(self, language: str | None) -> WpmBands:
        """Return the bands for a language code, falling back to 'default'."""
        code = normalize_language(language)
        return self.bands.get(code, self.bands["default"])


class FillerConfig(_Frozen):
    """Filler lexicon selection and confidence scoring settings."""

    default_language: str = "en"
    unknown_language_penalty: float = Field(default=0.15, ge=0.0, le=1.0)
    min_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    lexicon_paths: dict[str, Path] = Field(default_factory=dict)

    hesitation_weight: float = Field(default=1.0, ge=0.0, le=1.0)
    marker_weight: float = Field(default=0.6, ge=0.0, le=1.0)
    phrase_weight: float = Field(default=0.65, ge=0.0, le=1.0)
    elongated_strength: float = Field(default=0.85, ge=0.0, le=1.0)
    embedded_strength: float = Field(default=0.5, ge=0.0, le=1.0)

    isolation_gap_sec: float = Field(default=0.25, ge=0.0)
    isolation_bonus: float = Field(default=0.1, ge=0.0, le=1.0)
    short_token_sec: float = Field(default=0.6, gt=0.0)
    short_isolated_bonus: float = Field(default=0.05, ge=0.0, le=1.0)
    base_discount: float = Field(default=0.2, ge=0.0, le=1.0)
    context_words: int = Field(default=3, ge=1)

    excellent_below: float = Field(default=2.0, ge=0.0)
    good_below: float = Field(default=5.0, ge=0.0)
    fair_max: float = Field(default=10.0, ge=0.0)

    @model_validator(mode="after")
    def validate_bands(self) -> FillerConfig:
        if not self.excellent_below <= self.good_below <= self.fair_max:
            raise ValueError("filler rate bands must be ascending")
        return self


class AudioQualityConfig(_Frozen):
    """Volume, pitch and clarity band settings."""

    db_floor: float = Field(default=-100.0, lt=0.0)
    too_quiet_below_db: float = -42.0
    quiet_below_db: float = -30.0
    loud_above_db: float = -10.0
    too_loud_above_db: float = -4.0
    consistency_span_db: float = Field(default=20.0, gt=0.0)

    pitch_fmin: float = Field(default=65.0, gt=0.0)
    pitch_fmax: float = Field(default=400.0, gt=0.0)
    pitch_frame_length: int = Field(default=1024, ge=64)
    pitch_block_frames: int = Field(default=4096, ge=1)
    monotone_floor_hz: float = Field(default=20.0, ge=0.0)
    low_variation_below_hz: float = Field(default=35.0, ge=0.0)
    high_variation_above_hz: float = Field(default=90.0, ge=0.0)

    default_noise_floor_db: float = Field(default=-50.0, lt=0.0)
    snr_min_db: float = -10.0
    snr_max_db: float = 60.0
    fair_snr_db: float = 10.0
    good_snr_db: float = 20.0
    excellent_snr_db: float = 30.0

    @model_validator(mode="after")
    def validate_bands(self) -> AudioQualityConfig:
        volume = [
            self.too_quiet_below_db,
            self.quiet_below_db,
            self.loud_above_db,
            self.too_loud_above_db,
        ]
        if volume != sorted(volume):
            raise ValueError("volume bands must be ascending")
        if not (
            self.monotone_floor_hz <= self.low_variation_below_hz <= self.high_variation_above_hz
        ):
            raise ValueError("pitch variation bands must be ascending")
        if self.pitch_fmin >= self.pitch_fmax:
            raise ValueError("pitch_fmin must be below pitch_fmax")
        if not self.fair_snr_db <= self.good_snr_db <= self.excellent_snr_db:
            raise ValueError("SNR bands must be ascending")
        if self.snr_min_db >= self.snr_max_db:
            raise ValueError("snr_min_db must be below snr_max_db")
        return self


class ScorerWeights(_Frozen):
    """Percent weights of the four sub-scores; must total exactly 100."""

    speech_rate: float = Field(default=25.0, ge=0.0, le=100.0)
    pauses: float = Field(default=20.0, ge=0.0, le=100.0)
    fillers: float = Field(default=25.0, ge=0.0, le=100.0)
    audio_quality: float = Field(default=30.0, ge=0.0, le=100.0)

    @model_validator(mode="after")
    def validate_total(self) -> ScorerWeights:
        total = self.speech_rate + self.pauses + self.fillers + self.audio_quality
        if abs(total - 100.0) > 1e-6:
            raise ValueError(f"Scorer weights must sum to 100, got {total:g}")
        return self


class EngineConfig(_Frozen):
    """Resolved configuration for the analysis engine."""

    profile: str = "presentation"
    preprocess: PreprocessConfig = Field(default_factory=PreprocessConfig)
    pauses: PauseConfig = Field(default_factory=PauseConfig)
    speech_rate: SpeechRateConfig = Field(default_factory=SpeechRateConfig)
    fillers: FillerConfig = Field(default_factory=FillerConfig)
    audio_quality: AudioQualityConfig = Field(default_factory=AudioQualityConfig)
    weights: ScorerWeights = Field(default_factory=ScorerWeights)
    max_workers: int = Field(default=4, ge=1)
    transcript_tolerance_sec: float = Field(default=0.5, ge=0.0)

    @field_validator("profile")
    @classmethod
    def validate_profile(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("profile must not be empty")
        return v


BUILTIN_PROFILES: dict[str, dict[str, Any]] = {
    "presentation": {
        "weights": {
            "speech_rate": 25,
            "pauses": 20,
            "fillers": 25,
            "audio_quality": 30,
        },
        "pauses": {"min_pauses_per_minute": 3.0, "max_pauses_per_minute": 15.0},
    },
    "lecture": {
        "weights": {
            "speech_rate": 30,
            "pauses": 25,
            "fillers": 20,
            "audio_quality": 25,
        },
        "pauses": {"min_pauses_per_minute": 4.0, "max_pauses_per_minute": 18.0},
    },
    "conversation": {
        "weights": {
            "speech_rate": 20,
            "pauses": 15,
            "fillers": 35,
            "audio_quality": 30,
        },
        "pauses": {"min_pauses_per_minute": 2.0, "max_pauses_per_minute": 20.0},
    },
}


def normalize_language(language: str | None) -> str:
    """Reduce a language tag such as 'it-IT' or 'EN_us' to its primary subtag."""
    if not language:
        return ""
    return language.strip().replace("_", "-").split("-")[0].lower()


def load_profile(name: str, profiles_dir: Path | None = None) -> dict[str, Any]:
    """Load a profile by name, checking custom profiles first."""
    if profiles_dir and profiles_dir.exists():
        profile_file = profiles_dir / f"{name}.yaml"
        if profile_file.exists():
            with open(profile_file) as f:
                return yaml.safe_load(f) or {}
    if name in BUILTIN_PROFILES:
        return _deep_copy(BUILTIN_PROFILES[name])
    raise ValueError(f"Unknown profile: {name}")


def merge_config(project_config: dict[str, Any], profile: dict[str, Any]) -> dict[str, Any]:
    """Merge config with profile defaults. Config values take precedence.

    Nested sections (``weights``, ``pauses``, ...) are merged key by key.
    """
    merged = _deep_copy(profile)
    for key, value in project_config.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(value, merged[key])
        elif value is not None:
            merged[key] = value
    return merged


def build_config(raw_config: dict[str, Any], profiles_dir: Path | None = None) -> EngineConfig:
    """Resolve a raw config dict against its profile and validate it.

    Raises:
        ConfigError: If the profile is unknown or any value is invalid
    """
    profile_name = raw_config.get("profile", "presentation")
    try:
        profile = load_profile(profile_name, profiles_dir)
        if "inherits" in profile:
            parent = load_profile(profile.pop("inherits"), profiles_dir)
            profile = merge_config(profile, parent)
        merged = merge_config(raw_config, profile)
        merged["profile"] = profile_name
        return EngineConfig(**merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
    except ValueError as e:
        raise ConfigError(str(e)) from e


def load_config(config_file: Path | None = None) -> EngineConfig:
    """Load and validate configuration from a YAML file.

    Args:
        config_file: Path to cadence.yaml; None returns the default config

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigError: If the file is not valid YAML or fails validation
    """
    if config_file is None:
        return build_config({})

    if not config_file.exists():
        raise FileNotFoundError(f"No config file found at {config_file}")

    try:
        with open(config_file) as f:
            raw_config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse {config_file}: {e}") from e

    if not isinstance(raw_config, dict):
        raise ConfigError(f"{config_file} must contain a mapping")

    lexicon_paths = (raw_config.get("fillers") or {}).get("lexicon_paths") or {}
    for language, lexicon_path in lexicon_paths.items():
        if not Path(lexicon_path).is_absolute():
            lexicon_paths[language] = str(config_file.parent / lexicon_path)

    profiles_dir = config_file.parent / "profiles"
    return build_config(raw_config, profiles_dir if profiles_dir.exists() else None)


def create_default_config(profile: str = "presentation") -> dict[str, Any]:
    """Create a default config dict for a profile."""
    defaults: dict[str, Any] = {"profile": profile}
    if profile in BUILTIN_PROFILES:
        defaults = merge_config(defaults, BUILTIN_PROFILES[profile])
    return defaults


def write_config(config: dict[str, Any], path: Path) -> None:
    """Write configuration to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)


def _deep_copy(data: dict[str, Any]) -> dict[str, Any]:
    return {k: _deep_copy(v) if isinstance(v, dict) else v for k, v in data.items()}
