from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
import logging
import re
import unicodedata
from types import MappingProxyType
from typing import Mapping

from shadowing.core import config as config_core

logger = logging.getLogger(__name__)

DEFAULT_CONTRACTIONS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "there's": ("there", "is"),
        "it's": ("it", "is"),
        "that's": ("that", "is"),
        "what's": ("what", "is"),
        "who's": ("who", "is"),
        "where's": ("where", "is"),
        "here's": ("here", "is"),
        "he's": ("he", "is"),
        "she's": ("she", "is"),
        "we're": ("we", "are"),
        "they're": ("they", "are"),
        "you're": ("you", "are"),
        "i'm": ("i", "am"),
        "i've": ("i", "have"),
        "i'll": ("i", "will"),
        "can't": ("can", "not"),
        "won't": ("will", "not"),
        "don't": ("do", "not"),
        "doesn't": ("does", "not"),
        "didn't": ("did", "not"),
        "isn't": ("is", "not"),
        "aren't": ("are", "not"),
        "wasn't": ("was", "not"),
        "weren't": ("were", "not"),
        "hasn't": ("has", "not"),
        "haven't": ("have", "not"),
        "hadn't": ("had", "not"),
    }
)

# Letters (L*), combining marks (M*) and digits (N*) survive; everything else but whitespace is dropped.
_KEPT_CATEGORIES = frozenset("LMN")


def _strip_non_word(text: str) -> str:
    return "".join(ch for ch in text if ch.isspace() or unicodedata.category(ch)[0] in _KEPT_CATEGORIES)


def _contraction_pattern(contractions: Mapping[str, tuple[str, ...]]) -> re.Pattern[str] | None:
    if not contractions:
        return None
    # Longest first so a shorter key never shadows a longer one sharing its prefix.
    keys = sorted(contractions, key=len, reverse=True)
    return re.compile(r"(?<!\w)(?:" + "|".join(re.escape(k) for k in keys) + r")(?!\w)")


@dataclass(frozen=True)
class NormalizerConfig:
    """Immutable normalization settings.

    `contractions` maps a lowercase contraction to the words it expands to. The
    mapping is frozen on construction and the matching regex is compiled once.
    """

    contractions: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: DEFAULT_CONTRACTIONS)
    _pattern: re.Pattern[str] | None = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        frozen = MappingProxyType(
            {key.lower(): tuple(words) for key, words in self.contractions.items()}
        )
        object.__setattr__(self, "contractions", frozen)
        object.__setattr__(self, "_pattern", _contraction_pattern(frozen))

    def with_contractions(self, extra: Mapping[str, tuple[str, ...] | list[str]]) -> NormalizerConfig:
        merged = dict(self.contractions)
        merged.update({key: tuple(words) for key, words in extra.items()})
        return NormalizerConfig(contractions=merged)

    def expand_contractions(self, text: str) -> str:
        if self._pattern is None:
            return text
        return self._pattern.sub(lambda m: " ".join(self.contractions[m.group(0)]), text)


DEFAULT_NORMALIZER = NormalizerConfig()


def _configured_contractions() -> dict[str, tuple[str, ...]]:
    section = config_core.get_config_value("normalize", "contractions")
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ValueError("config normalize.contractions must be a table")
    out: dict[str, tuple[str, ...]] = {}
    for key, words in section.items():
        if not isinstance(words, list) or not words or not all(isinstance(w, str) and w for w in words):
            raise ValueError(f"config normalize.contractions.{key} must be a non-empty list of words")
        out[str(key)] = tuple(w.lower() for w in words)
    return out


@lru_cache(maxsize=1)
def configured_normalizer() -> NormalizerConfig:
    """Default table extended with `[normalize.contractions]` from the config file.

    Resolved once per process; call `configured_normalizer.cache_clear()` after changing
    the config in tests.
    """
    extra = _configured_contractions()
    if not extra:
        return DEFAULT_NORMALIZER
    logger.debug("extending contraction table with %d configured entries", len(extra))
    return DEFAULT_NORMALIZER.with_contractions(extra)


def normalize(text: str | None, config: NormalizerConfig = DEFAULT_NORMALIZER) -> list[str]:
    """Turn raw text into comparison tokens.

    Applies NFC so composed and decomposed spellings agree, lowercases, expands
    contractions on whole-word boundaries, strips everything that is not a letter,
    combining mark, digit or whitespace, then splits. Never raises; `None`,
    blank and punctuation-only input give an empty list.

    >>> normalize("It's raining!")
    ['it', 'is', 'raining']
    """
    if text is None or not text.strip():
        return []
    lowered = unicodedata.normalize("NFC", text).lower().strip()
    expanded = config.expand_contractions(lowered)
    stripped = _strip_non_word(expanded)
    return [token for token in stripped.split() if token]
