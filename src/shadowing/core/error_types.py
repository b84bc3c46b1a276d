from __future__ import annotations

from typing import Final

# Callers branch on these instead of parsing messages.
# Keep this list minimal and grow it only when a new type is actually emitted.
KNOWN_ERROR_TYPES: Final[set[str]] = {
    "BACKEND_FAILED",
    "BACKEND_UNAVAILABLE",
    "INPUT_TOO_LARGE",
    "INVALID_ARGUMENT",
    "TOOL_MISSING",
}


def assert_known_error_type(error_type: str) -> None:
    if error_type not in KNOWN_ERROR_TYPES:
        raise ValueError(f"Unknown error type: {error_type!r}. Add it to shadowing.core.error_types.KNOWN_ERROR_TYPES.")
