"""Executable BDD harness.

Every scenario under specs/bdd drives the real CLI through `python -m shadowing.cli`
and checks the envelope against the JSON schemas in schemas/.
"""

from __future__ import annotations

from pytest_bdd import scenarios

# Load all feature files from specs/bdd
scenarios("../../specs/bdd")
