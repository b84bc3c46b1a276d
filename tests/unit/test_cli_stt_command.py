from __future__ import annotations

import json

import requests
from typer.testing import CliRunner

from shadowing.cli import app
from shadowing.core import stt

runner = CliRunner()


def _invoke(*args: str) -> tuple[int, dict]:
    result = runner.invoke(app, ["--log-level", "CRITICAL", *args])
    return result.exit_code, json.loads(result.stdout)


def test_stt_forwards_word_timestamps_flag(monkeypatch, tmp_path):
    seen: dict = {}

    def _fake_transcribe(**kwargs):
        seen.update(kwargs)
        return stt.Transcript(text="hello", backend=kwargs["backend"], language="en")

    monkeypatch.setattr(stt, "transcribe", _fake_transcribe)
    code, out = _invoke("stt", "--in", str(tmp_path / "take.wav"), "--backend", "whisper.api", "--no-word-timestamps")
    assert code == 0
    assert out["data"]["transcript"]["text"] == "hello"
    assert seen["word_timestamps"] is False


def test_stt_reports_unexpected_request_errors_as_envelope(monkeypatch, tmp_path):
    recording = tmp_path / "take.wav"
    recording.write_bytes(b"RIFF\x00\x00\x00\x00WAVE")

    def _fake_post(*args, **kwargs):
        raise requests.exceptions.TooManyRedirects("loop")

    monkeypatch.setattr(stt.requests, "post", _fake_post)
    code, out = _invoke("stt", "--in", str(recording), "--backend", "whisper.api", "--api-url", "http://asr.test")
    assert code == 1
    assert out["ok"] is False
    assert out["error"]["type"] == "BACKEND_FAILED"
    assert out["error"]["details"]["kind"] == "backend"


def test_compare_honours_configured_limit(monkeypatch):
    monkeypatch.setenv("SHADOWING_MAX_TOKENS", "2")
    code, out = _invoke("compare", "--expected", "one two three", "--transcribed", "one two three")
    assert code == 1
    assert out["error"]["type"] == "INPUT_TOO_LARGE"
    assert out["error"]["details"]["max_tokens"] == 2
