from __future__ import annotations

from typing import Any, Dict

from shadowing.core.error_types import assert_known_error_type


def ok(
    *,
    command: str,
    data: Dict[str, Any] | None = None,
    limits: Dict[str, Any] | None = None,
    schema_version: str = "1",
) -> Dict[str, Any]:
    return {
        "ok": True,
        "schema_version": schema_version,
        "command": command,
        "data": data or {},
        "limits": limits or {},
    }


def err(
    *,
    command: str,
    error_type: str,
    message: str,
    details: Dict[str, Any] | None = None,
    schema_version: str = "1",
) -> Dict[str, Any]:
    assert_known_error_type(error_type)
    return {
        "ok": False,
        "schema_version": schema_version,
        "command": command,
        "error": {
            "type": error_type,
            "message": message,
            "details": details or {},
        },
    }
