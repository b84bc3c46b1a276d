from __future__ import annotations

from dataclasses import dataclass
import logging

from shadowing.core import config as config_core, stt
from shadowing.core.compare import compare_texts
from shadowing.core.normalize import NormalizerConfig, configured_normalizer
from shadowing.core.report import ComparisonResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShadowingResult:
    transcript: stt.Transcript
    comparison: ComparisonResult

    @property
    def data(self) -> dict:
        data = self.comparison.to_dict()
        data["transcript"] = self.transcript.to_dict()
        data["backend"] = {"id": self.transcript.backend, "features": ["stt", "compare"]}
        return data


def perform_shadowing(
    *,
    in_path: str,
    expected_text: str,
    language: str | None = None,
    backend: str = stt.DEFAULT_BACKEND,
    word_timestamps: bool = True,
    api_url: str | None = None,
    timeout: float | None = None,
    max_tokens: int | None = None,
    normalizer: NormalizerConfig | None = None,
) -> ShadowingResult:
    """Transcribe a recording and score it against `expected_text`.

    Transcription errors propagate unchanged; the comparison only runs once a
    transcript exists. `max_tokens` and `normalizer` default to the configured values.
    """
    transcript = stt.transcribe(
        in_path=in_path,
        language=language,
        backend=backend,
        word_timestamps=word_timestamps,
        api_url=api_url,
        timeout=timeout,
    )
    comparison = compare_texts(
        transcript.text,
        expected_text,
        max_tokens=config_core.max_tokens() if max_tokens is None else max_tokens,
        normalizer=normalizer or configured_normalizer(),
    )
    logger.info("shadowing practice completed: accuracy %.1f%%", comparison.accuracy)
    return ShadowingResult(transcript=transcript, comparison=comparison)
