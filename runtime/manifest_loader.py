"""Manifest loader — find, read and validate the guardrail manifest."""

from __future__ import annotations

import os
from pathlib import Path

import yaml

from contracts.manifest import Manifest

MANIFEST_ENV_VAR = "ACTIONGATE_MANIFEST"
DEFAULT_MANIFEST_PATH = "actiongate.yaml"


def resolve_manifest_path(explicit: str | None = None) -> tuple[str, bool]:
    """Pick the manifest path: *explicit*, then ``$ACTIONGATE_MANIFEST``, then
    ``actiongate.yaml`` in the working directory.

    The flag is True when the caller or the environment named the file, False
    for the fallback, which callers may treat as optional.
    """
    if explicit:
        return explicit, True
    from_env = os.environ.get(MANIFEST_ENV_VAR)
    if from_env:
        return from_env, True
    return DEFAULT_MANIFEST_PATH, False


def load_manifest(path: str) -> Manifest:
    """Parse *path* into a Manifest.

    Raises FileNotFoundError when the file is absent and ValueError when its
    top level is not a mapping; bad field values surface as pydantic's
    ValidationError.
    """
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"Manifest not found: {path}")

    data = yaml.safe_load(p.read_text(encoding="utf-8"))
    if data is None:
        raise ValueError(f"Manifest {path} is empty")
    if not isinstance(data, dict):
        raise ValueError(f"Manifest must be a YAML mapping, got {type(data).__name__}")
    return Manifest.model_validate(data)
