from __future__ import annotations

import logging
import os
import shutil

import typer

from shadowing.core import (
    config as config_core,
    envelope,
    stt,
)
from shadowing.core.align import align as align_tokens
from shadowing.core.compare import InputTooLargeError, check_size, compare_texts, resolve_limit
from shadowing.core.jsonio import dumps
from shadowing.core.normalize import configured_normalizer, normalize as normalize_text
from shadowing.core.process import ProcessFailedError, ProcessTimeoutError, ToolMissingError
from shadowing.core.shadow import perform_shadowing

VERSION = "0.1.0"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

app = typer.Typer(add_completion=False, help="shadowing - speech practice feedback engine")


def _emit(out: dict) -> None:
    typer.echo(dumps(out))
    if out.get("ok") is True:
        raise typer.Exit(code=0)
    raise typer.Exit(code=1)


def _trim(text: str, limit: int = 2000) -> str:
    return text if len(text) <= limit else text[:limit]


def _resolve_log_level(cli_value: str | None) -> str:
    if cli_value:
        return cli_value
    env_value = os.environ.get("SHADOWING_LOG_LEVEL")
    if env_value:
        return env_value
    try:
        config_value = config_core.get_config_value("logging", "level")
    except ValueError:
        # doctor reports unreadable config files.
        config_value = None
    if isinstance(config_value, str) and config_value.strip():
        return config_value
    return "WARNING"


def _configure_logging(level_name: str) -> None:
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        raise typer.BadParameter(f"Unknown log level: {level_name}")
    # Logs go to stderr; stdout carries only the JSON envelope.
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)


def _resolve_stt_backend(*, cli_value: str | None, default: str = stt.DEFAULT_BACKEND) -> str:
    if cli_value:
        return cli_value
    config_value = config_core.get_config_value("stt", "backend")
    if isinstance(config_value, str) and config_value.strip():
        return config_value
    env_value = os.environ.get("SHADOWING_STT_BACKEND")
    return env_value or default


def _resolve_max_tokens(cli_value: int | None) -> int:
    return resolve_limit(cli_value if cli_value is not None else config_core.max_tokens())


def _transcription_error(command: str, exc: Exception, details: dict) -> dict:
    if isinstance(exc, stt.SttError):
        error_type = "BACKEND_UNAVAILABLE" if exc.kind in {"unreachable", "timeout"} else "BACKEND_FAILED"
        return envelope.err(
            command=command,
            error_type=error_type,
            message=str(exc),
            details={**details, "kind": exc.kind, **exc.details},
        )
    if isinstance(exc, ToolMissingError):
        return envelope.err(
            command=command,
            error_type="TOOL_MISSING",
            message=str(exc),
            details={**details, "tool": exc.tool},
        )
    if isinstance(exc, ProcessTimeoutError):
        return envelope.err(
            command=command,
            error_type="BACKEND_UNAVAILABLE",
            message=str(exc),
            details={**details, "cmd": exc.cmd, "timeout": exc.timeout},
        )
    if isinstance(exc, ProcessFailedError):
        return envelope.err(
            command=command,
            error_type="BACKEND_FAILED",
            message="transcription backend failed",
            details={**details, "cmd": exc.cmd, "returncode": exc.returncode, "stderr": _trim(exc.stderr)},
        )
    raise exc


@app.callback()
def main(
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG|INFO|WARNING|ERROR"),
):
    _configure_logging(_resolve_log_level(log_level))


# ---- Global commands ----
@app.command()
def version(json_output: bool = typer.Option(False, "--json", help="Output JSON envelope")):
    if json_output:
        _emit(envelope.ok(command="version", data={"version": VERSION}))
    typer.echo(f"shadowing {VERSION}")


@app.command()
def doctor(json_output: bool = typer.Option(True, "--json")):
    checks: list[dict] = []

    cfg_path = config_core.config_path()
    try:
        config_core.get_config()
    except ValueError as exc:
        checks.append({"name": "config", "ok": False, "details": {"path": str(cfg_path), "error": str(exc)}})
    else:
        checks.append({"name": "config", "ok": True, "details": {"path": str(cfg_path), "exists": cfg_path.exists()}})

    whisper_path = shutil.which("whisper")
    checks.append({"name": "tool.whisper", "ok": whisper_path is not None, "details": {"path": whisper_path}})

    try:
        stt_details = {"api_url": stt.resolve_api_url(), "backend": _resolve_stt_backend(cli_value=None)}
    except ValueError as exc:
        checks.append({"name": "stt.api", "ok": False, "details": {"error": str(exc)}})
    else:
        checks.append({"name": "stt.api", "ok": True, "details": stt_details})

    try:
        normalizer = configured_normalizer()
    except ValueError as exc:
        checks.append({"name": "normalize.contractions", "ok": False, "details": {"error": str(exc)}})
    else:
        checks.append(
            {"name": "normalize.contractions", "ok": True, "details": {"count": len(normalizer.contractions)}}
        )

    try:
        limit = config_core.max_tokens()
    except ValueError as exc:
        checks.append({"name": "compare.max_tokens", "ok": False, "details": {"error": str(exc)}})
    else:
        checks.append({"name": "compare.max_tokens", "ok": True, "details": {"value": limit}})

    _emit(envelope.ok(command="doctor", data={"checks": checks}))


# -------------- text --------------
@app.command("normalize")
def normalize_cmd(
    text: str = typer.Option(..., "--text"),
    json_output: bool = typer.Option(True, "--json"),
):
    try:
        tokens = normalize_text(text, configured_normalizer())
        out = envelope.ok(command="normalize", data={"text": text, "tokens": tokens})
    except ValueError as exc:
        out = envelope.err(command="normalize", error_type="INVALID_ARGUMENT", message=str(exc), details={})
    _emit(out)


@app.command("align")
def align_cmd(
    expected: str = typer.Option(..., "--expected"),
    transcribed: str = typer.Option(..., "--transcribed"),
    max_tokens: int | None = typer.Option(None, "--max-tokens"),
    json_output: bool = typer.Option(True, "--json"),
):
    details = {"expected": expected, "transcribed": transcribed}
    try:
        normalizer = configured_normalizer()
        limit = _resolve_max_tokens(max_tokens)
        expected_tokens = normalize_text(expected, normalizer)
        transcribed_tokens = normalize_text(transcribed, normalizer)
        check_size("expected", expected_tokens, limit)
        check_size("transcribed", transcribed_tokens, limit)
        ops = align_tokens(expected_tokens, transcribed_tokens)
        out = envelope.ok(
            command="align",
            data={
                "expected_tokens": expected_tokens,
                "transcribed_tokens": transcribed_tokens,
                "operations": [op.to_dict() for op in ops],
            },
            limits={"max_tokens": limit},
        )
    except InputTooLargeError as exc:
        out = envelope.err(
            command="align",
            error_type="INPUT_TOO_LARGE",
            message=str(exc),
            details={"side": exc.side, "tokens": exc.tokens, "max_tokens": exc.max_tokens},
        )
    except ValueError as exc:
        out = envelope.err(command="align", error_type="INVALID_ARGUMENT", message=str(exc), details=details)
    _emit(out)


@app.command("compare")
def compare_cmd(
    expected: str = typer.Option(..., "--expected"),
    transcribed: str = typer.Option(..., "--transcribed"),
    max_tokens: int | None = typer.Option(None, "--max-tokens"),
    json_output: bool = typer.Option(True, "--json"),
):
    try:
        limit = _resolve_max_tokens(max_tokens)
        result = compare_texts(transcribed, expected, max_tokens=limit, normalizer=configured_normalizer())
        out = envelope.ok(command="compare", data=result.to_dict(), limits={"max_tokens": limit})
    except InputTooLargeError as exc:
        out = envelope.err(
            command="compare",
            error_type="INPUT_TOO_LARGE",
            message=str(exc),
            details={"side": exc.side, "tokens": exc.tokens, "max_tokens": exc.max_tokens},
        )
    except ValueError as exc:
        out = envelope.err(
            command="compare",
            error_type="INVALID_ARGUMENT",
            message=str(exc),
            details={"expected": expected, "transcribed": transcribed},
        )
    _emit(out)


# -------------- audio --------------
@app.command("stt")
def stt_cmd(
    in_path: str = typer.Option(..., "--in"),
    language: str | None = typer.Option(None, "--language"),
    backend: str | None = typer.Option(None, "--backend", help="whisper|whisper.api"),
    api_url: str | None = typer.Option(None, "--api-url"),
    timeout: float | None = typer.Option(None, "--timeout", help="Seconds"),
    word_timestamps: bool = typer.Option(True, "--word-timestamps/--no-word-timestamps"),
    json_output: bool = typer.Option(True, "--json"),
):
    backend = _resolve_stt_backend(cli_value=backend)
    details = {"in": in_path, "backend": backend}
    try:
        transcript = stt.transcribe(
            in_path=in_path,
            language=language,
            backend=backend,
            word_timestamps=word_timestamps,
            api_url=api_url,
            timeout=timeout,
        )
        out = envelope.ok(
            command="stt",
            data={"in": in_path, "transcript": transcript.to_dict(), "backend": {"id": backend, "features": ["stt"]}},
        )
    except (stt.SttError, ToolMissingError, ProcessTimeoutError, ProcessFailedError) as exc:
        out = _transcription_error("stt", exc, details)
    except (ValueError, FileNotFoundError) as exc:
        out = envelope.err(command="stt", error_type="INVALID_ARGUMENT", message=str(exc), details=details)
    _emit(out)


@app.command("shadow")
def shadow_cmd(
    in_path: str = typer.Option(..., "--in"),
    expected: str = typer.Option(..., "--expected"),
    language: str | None = typer.Option(None, "--language"),
    backend: str | None = typer.Option(None, "--backend", help="whisper|whisper.api"),
    api_url: str | None = typer.Option(None, "--api-url"),
    timeout: float | None = typer.Option(None, "--timeout", help="Seconds"),
    word_timestamps: bool = typer.Option(True, "--word-timestamps/--no-word-timestamps"),
    max_tokens: int | None = typer.Option(None, "--max-tokens"),
    json_output: bool = typer.Option(True, "--json"),
):
    backend = _resolve_stt_backend(cli_value=backend)
    details = {"in": in_path, "expected": expected, "backend": backend}
    try:
        result = perform_shadowing(
            in_path=in_path,
            expected_text=expected,
            language=language,
            backend=backend,
            word_timestamps=word_timestamps,
            api_url=api_url,
            timeout=timeout,
            max_tokens=max_tokens,
        )
        out = envelope.ok(command="shadow", data=result.data)
    except (stt.SttError, ToolMissingError, ProcessTimeoutError, ProcessFailedError) as exc:
        out = _transcription_error("shadow", exc, details)
    except InputTooLargeError as exc:
        out = envelope.err(
            command="shadow",
            error_type="INPUT_TOO_LARGE",
            message=str(exc),
            details={**details, "side": exc.side, "tokens": exc.tokens, "max_tokens": exc.max_tokens},
        )
    except (ValueError, FileNotFoundError) as exc:
        out = envelope.err(command="shadow", error_type="INVALID_ARGUMENT", message=str(exc), details=details)
    _emit(out)


if __name__ == "__main__":
    app()
