# pytest configuration hooks.
#
# Policy: No skipped tests. Skips hide real problems.
# If something cannot run in this environment, use xfail with a clear reason (and fix it later).

from __future__ import annotations

import os
from pathlib import Path
import pytest

# Register pytest-bdd step definitions as a pytest plugin so fixtures are discoverable.
pytest_plugins = ["tests.bdd.steps"]

_SKIP_COUNT = 0

_ENV_KEYS = (
    "SHADOWING_MAX_TOKENS",
    "SHADOWING_STT_BACKEND",
    "SHADOWING_STT_API_URL",
    "SHADOWING_LOG_LEVEL",
)


def pytest_configure() -> None:
    # CLI subprocesses import the package from src/ without an install.
    src = str(Path(__file__).resolve().parents[1] / "src")
    current = os.environ.get("PYTHONPATH")
    os.environ["PYTHONPATH"] = src if not current else os.pathsep.join([src, current])
    if "SHADOWING_CONFIG_PATH" not in os.environ:
        path = Path(__file__).resolve().parent / "fixtures" / "shadowing-test-config.toml"
        os.environ["SHADOWING_CONFIG_PATH"] = str(path)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch):
    from shadowing.core import config as config_core
    from shadowing.core.normalize import configured_normalizer

    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    config_core.reset_config_cache()
    configured_normalizer.cache_clear()
    yield
    config_core.reset_config_cache()
    configured_normalizer.cache_clear()


def pytest_runtest_logreport(report: pytest.TestReport) -> None:
    global _SKIP_COUNT
    if report.when == "setup" and report.outcome == "skipped":
        _SKIP_COUNT += 1


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    if _SKIP_COUNT > 0:
        pytest.exit(f"Skipped tests are not allowed (skipped={_SKIP_COUNT}).", returncode=2)
