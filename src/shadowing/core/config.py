from __future__ import annotations

import os
from pathlib import Path
import tomllib

_CONFIG_CACHE: dict | None = None

DEFAULT_MAX_TOKENS = 1000


def config_path() -> Path:
    override = os.environ.get("SHADOWING_CONFIG_PATH")
    if override:
        return Path(override).expanduser()
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base).expanduser() if base else (Path.home() / ".config")
    return root / "shadowing" / "config.toml"


def load_config() -> dict:
    path = config_path()
    if not path.exists():
        return {}
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ValueError(f"Invalid config file: {path}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Invalid config file structure: {path}")
    return data


def get_config() -> dict:
    global _CONFIG_CACHE
    if _CONFIG_CACHE is None:
        _CONFIG_CACHE = load_config()
    return _CONFIG_CACHE


def reset_config_cache() -> None:
    global _CONFIG_CACHE
    _CONFIG_CACHE = None


def get_config_value(*keys: str, default: object | None = None) -> object | None:
    current: object = get_config()
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current


def max_tokens() -> int:
    """Upper bound on tokens per side accepted by the aligner.

    Config `[compare] max_tokens` wins over `SHADOWING_MAX_TOKENS`.
    """
    config_value = get_config_value("compare", "max_tokens")
    if isinstance(config_value, int) and not isinstance(config_value, bool) and config_value > 0:
        return config_value
    env_value = os.environ.get("SHADOWING_MAX_TOKENS")
    if env_value:
        try:
            parsed = int(env_value)
        except ValueError:
            parsed = 0
        if parsed > 0:
            return parsed
    return DEFAULT_MAX_TOKENS
