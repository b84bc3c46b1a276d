from __future__ import annotations

import logging

from shadowing.core.align import align
from shadowing.core.config import DEFAULT_MAX_TOKENS
from shadowing.core.normalize import DEFAULT_NORMALIZER, NormalizerConfig, normalize
from shadowing.core.report import ComparisonResult, build_report, empty_result

logger = logging.getLogger(__name__)


class InputTooLargeError(ValueError):
    def __init__(self, side: str, tokens: int, max_tokens: int) -> None:
        super().__init__(f"{side} text has {tokens} tokens, more than the limit of {max_tokens}")
        self.side = side
        self.tokens = tokens
        self.max_tokens = max_tokens


def resolve_limit(max_tokens: int | None) -> int:
    limit = DEFAULT_MAX_TOKENS if max_tokens is None else max_tokens
    if limit <= 0:
        raise ValueError(f"max_tokens must be positive, got {limit}")
    return limit


def check_size(side: str, tokens: list[str], limit: int) -> None:
    if len(tokens) > limit:
        raise InputTooLargeError(side, len(tokens), limit)


def compare_texts(
    transcribed_text: str,
    expected_text: str,
    *,
    max_tokens: int | None = None,
    normalizer: NormalizerConfig | None = None,
) -> ComparisonResult:
    """Compare a transcript against the text the learner was asked to say.

    Pure and synchronous; configuration is never read here. Callers that honour the
    config file pass `config.max_tokens()` and `configured_normalizer()` in. Raises
    InputTooLargeError when either side exceeds `max_tokens` (default 1000), before
    any alignment work is done.
    """
    limit = resolve_limit(max_tokens)
    normalizer = normalizer or DEFAULT_NORMALIZER

    expected_tokens = normalize(expected_text, normalizer)
    if not expected_tokens:
        return empty_result(expected_text, transcribed_text)
    transcribed_tokens = normalize(transcribed_text, normalizer)

    check_size("expected", expected_tokens, limit)
    check_size("transcribed", transcribed_tokens, limit)

    alignment = align(expected_tokens, transcribed_tokens)
    result = build_report(expected_text, transcribed_text, alignment)
    logger.debug(
        "compared %d expected / %d transcribed tokens: accuracy %.1f",
        len(expected_tokens),
        len(transcribed_tokens),
        result.accuracy,
    )
    return result
