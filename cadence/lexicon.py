"""
cadence.lexicon - Per-language filler word lexicons.

Lexicons are YAML files (``cadence/lexicons/<lang>.yaml`` plus any paths
named in ``fillers.lexicon_paths``) listing vocalized hesitations,
discourse markers and multi-word phrases. A LexiconRegistry loads them once
and is read-only afterwards.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import yaml

from cadence.config import FillerConfig, normalize_language
from cadence.exceptions import ConfigError
from cadence.logging import get_logger

log = get_logger("lexicon")

LEXICONS_DIR = Path(__file__).parent / "lexicons"

_EDGE_PUNCTUATION = re.compile(r"^[^\w]+|[^\w]+$", re.UNICODE)
_REPEATS = re.compile(r"(.)\1+", re.UNICODE)


class FillerKind(str, Enum):
    HESITATION = "hesitation"
    MARKER = "marker"
    PHRASE = "phrase"


def normalize_token(token: str) -> str:
    """NFC-normalize, lower-case and strip surrounding punctuation."""
    token = unicodedata.normalize("NFC", token).lower().strip()
    return _EDGE_PUNCTUATION.sub("", token)


def collapse_repeats(token: str) -> str:
    """Collapse runs of the same character ('ehmmm' -> 'ehm')."""
    return _REPEATS.sub(r"\1", token)


@dataclass(frozen=True)
class FillerLexicon:
    """Normalized filler entries for one language."""

    language: str
    hesitations: frozenset[str]
    markers: frozenset[str]
    phrases: tuple[tuple[str, ...], ...]

    def kind_of(self, token: str) -> FillerKind | None:
        if token in self.hesitations:
            return FillerKind.HESITATION
        if token in self.markers:
            return FillerKind.MARKER
        return None

    def elongated_match(self, token: str) -> tuple[str, FillerKind] | None:
        """Match a stretched hesitation such as 'uhmmm' to its entry."""
        collapsed = collapse_repeats(token)
        for entry in sorted(self.hesitations):
            if collapse_repeats(entry) == collapsed:
                return entry, FillerKind.HESITATION
        return None

    @property
    def entries(self) -> list[tuple[str, FillerKind]]:
        rows = [(h, FillerKind.HESITATION) for h in sorted(self.hesitations)]
        rows += [(m, FillerKind.MARKER) for m in sorted(self.markers)]
        rows += [(" ".join(p), FillerKind.PHRASE) for p in self.phrases]
        return rows


def load_lexicon_file(path: Path, language: str | None = None) -> FillerLexicon:
    """Load one lexicon YAML file.

    Raises:
        ConfigError: If the file is missing, unparsable or empty
    """
    if not path.exists():
        raise ConfigError(f"Lexicon file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse lexicon {path}: {e}") from e

    lang = normalize_language(language or data.get("language") or path.stem)
    hesitations = frozenset(normalize_token(t) for t in data.get("hesitations", []) if t)
    markers = frozenset(normalize_token(t) for t in data.get("markers", []) if t) - hesitations
    phrases = tuple(
        sorted(
            {tuple(normalize_token(p) for p in str(phrase).split()) for phrase in data.get("phrases", [])},
            key=lambda p: (-len(p), p),
        )
    )

    if not hesitations and not markers and not phrases:
        raise ConfigError(f"Lexicon {path} defines no filler entries")

    return FillerLexicon(language=lang, hesitations=hesitations, markers=markers, phrases=phrases)


class LexiconRegistry:
    """Loaded lexicons keyed by primary language subtag."""

    def __init__(self, lexicons: dict[str, FillerLexicon], default_language: str) -> None:
        default = normalize_language(default_language)
        if default not in lexicons:
            raise ConfigError(f"No lexicon available for default language '{default_language}'")
        self._lexicons = dict(lexicons)
        self.default_language = default

    @classmethod
    def from_config(cls, config: FillerConfig, lexicons_dir: Path = LEXICONS_DIR) -> LexiconRegistry:
        """Load built-in lexicons, then apply ``lexicon_paths`` overrides."""
        lexicons: dict[str, FillerLexicon] = {}
        for path in sorted(lexicons_dir.glob("*.yaml")):
            lexicon = load_lexicon_file(path)
            lexicons[lexicon.language] = lexicon

        for language, path in config.lexicon_paths.items():
            lexicon = load_lexicon_file(Path(path), language)
            lexicons[lexicon.language] = lexicon
            log.debug("Loaded lexicon override for %s from %s", lexicon.language, path)

        return cls(lexicons, config.default_language)

    @property
    def languages(self) -> list[str]:
        return sorted(self._lexicons)

    def get(self, language: str | None) -> tuple[FillerLexicon, bool]:
        """Return the lexicon for a language and whether it is a fallback."""
        code = normalize_language(language)
        if code in self._lexicons:
            return self._lexicons[code], False
        return self._lexicons[self.default_language], True
