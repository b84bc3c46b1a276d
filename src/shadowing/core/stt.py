from __future__ import annotations

from dataclasses import dataclass, field
import logging
import os
from pathlib import Path
import tempfile

import requests

from shadowing.core import config as config_core, jsonio
from shadowing.core.process import ensure_tool, run_checked

logger = logging.getLogger(__name__)

SUPPORTED_BACKENDS = {"whisper", "whisper.api"}
DEFAULT_BACKEND = "whisper"
DEFAULT_API_URL = "http://localhost:8000/api/transcribe"
DEFAULT_LANGUAGE = "en"
DEFAULT_MODEL = "base"
DEFAULT_TIMEOUT_SECONDS = 60.0


@dataclass(frozen=True)
class Transcript:
    text: str
    backend: str
    language: str | None = None
    segments: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "backend": self.backend,
            "language": self.language,
            "segments": self.segments,
        }


class SttError(RuntimeError):
    def __init__(self, kind: str, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.details = details or {}


def build_stt_command(in_path: Path, out_dir: Path, *, language: str, model: str) -> list[str]:
    return [
        "whisper",
        str(in_path),
        "--model",
        model,
        "--output_format",
        "json",
        "--output_dir",
        str(out_dir),
        "--language",
        language,
        "--task",
        "transcribe",
    ]


def _extract_transcript(raw: dict, *, backend: str, language: str) -> Transcript:
    segments = [
        {
            "start": segment.get("start"),
            "end": segment.get("end"),
            "text": (segment.get("text") or "").strip(),
        }
        for segment in raw.get("segments", []) or []
        if isinstance(segment, dict)
    ]
    return Transcript(
        text=(raw.get("text") or "").strip(),
        backend=backend,
        language=raw.get("language") or language,
        segments=segments,
    )


def _setting(key: str, default: object) -> object:
    value = config_core.get_config_value("stt", key)
    return default if value is None else value


def resolve_api_url(cli_value: str | None = None) -> str:
    if cli_value:
        return cli_value
    config_value = config_core.get_config_value("stt", "api_url")
    if isinstance(config_value, str) and config_value.strip():
        return config_value
    return os.environ.get("SHADOWING_STT_API_URL") or DEFAULT_API_URL


def resolve_timeout(cli_value: float | None = None) -> float:
    value = cli_value if cli_value is not None else _setting("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ValueError(f"stt timeout must be a positive number of seconds, got {value!r}")
    return float(value)


def _transcribe_whisper_cli(input_path: Path, *, language: str, timeout: float) -> Transcript:
    ensure_tool("whisper")
    model = str(_setting("model", DEFAULT_MODEL))
    with tempfile.TemporaryDirectory(prefix="shadowing-stt-") as tmp:
        out_dir = Path(tmp)
        run_checked(build_stt_command(input_path, out_dir, language=language, model=model), timeout=timeout)
        output_json = out_dir / input_path.with_suffix(".json").name
        if not output_json.exists():
            raise SttError("bad_response", f"Whisper output not found: {output_json.name}")
        try:
            raw = jsonio.loads_object(output_json.read_text(encoding="utf-8"), source="whisper output")
        except ValueError as exc:
            raise SttError("bad_response", str(exc)) from exc
    return _extract_transcript(raw, backend="whisper", language=language)


def _transcribe_whisper_api(
    input_path: Path,
    *,
    language: str,
    word_timestamps: bool,
    api_url: str,
    timeout: float,
) -> Transcript:
    form = {"language": language, "word_timestamps": "true" if word_timestamps else "false"}
    try:
        with input_path.open("rb") as fh:
            response = requests.post(
                api_url,
                files={"file": (input_path.name, fh)},
                data=form,
                timeout=timeout,
            )
        response.raise_for_status()
    except requests.exceptions.Timeout as exc:
        logger.error("transcription API at %s timed out after %ss", api_url, timeout)
        raise SttError("timeout", f"Transcription API timed out after {timeout:g}s", {"api_url": api_url}) from exc
    except requests.exceptions.ConnectionError as exc:
        logger.error("cannot connect to transcription API at %s: %s", api_url, exc)
        raise SttError(
            "unreachable",
            f"Cannot connect to transcription API at {api_url}",
            {"api_url": api_url},
        ) from exc
    except requests.exceptions.HTTPError as exc:
        status = exc.response.status_code if exc.response is not None else None
        logger.error("transcription API returned HTTP %s", status)
        raise SttError(
            "backend",
            f"Transcription API returned HTTP {status}",
            {"api_url": api_url, "status_code": status},
        ) from exc
    except requests.exceptions.RequestException as exc:
        logger.error("transcription API request to %s failed: %s", api_url, exc)
        raise SttError(
            "backend",
            f"Transcription API request failed: {type(exc).__name__}",
            {"api_url": api_url},
        ) from exc

    try:
        raw = jsonio.loads_object(response.text, source="transcription API response")
    except ValueError as exc:
        raise SttError("bad_response", str(exc), {"api_url": api_url}) from exc
    return _extract_transcript(raw, backend="whisper.api", language=language)


def transcribe(
    *,
    in_path: str,
    language: str | None = None,
    backend: str = DEFAULT_BACKEND,
    word_timestamps: bool = True,
    api_url: str | None = None,
    timeout: float | None = None,
) -> Transcript:
    """Turn an audio file into text with an external recognizer.

    `whisper` runs the local CLI; `whisper.api` posts the file to an HTTP
    transcription service. No retries: failures surface as SttError.
    """
    if backend not in SUPPORTED_BACKENDS:
        raise ValueError(f"Unsupported backend: {backend}")

    input_path = Path(in_path).expanduser()
    if not input_path.exists():
        raise FileNotFoundError(f"Input file not found: {input_path}")

    language = language or str(_setting("language", DEFAULT_LANGUAGE))
    timeout_s = resolve_timeout(timeout)
    logger.info("transcribing %s with %s (language=%s)", input_path.name, backend, language)

    if backend == "whisper":
        transcript = _transcribe_whisper_cli(input_path, language=language, timeout=timeout_s)
    else:
        transcript = _transcribe_whisper_api(
            input_path,
            language=language,
            word_timestamps=word_timestamps,
            api_url=resolve_api_url(api_url),
            timeout=timeout_s,
        )
    logger.info("transcription finished: %d characters", len(transcript.text))
    return transcript
