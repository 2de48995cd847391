"""
YAML configuration loader.

This helper locates, reads, and validates the *clintrialdata* configuration
before returning a :class:`clintrialdata.config.schema.ConfigSchema` instance.

Search precedence (first existing file wins)
1. An explicit path argument (``--config`` on the CLI).
2. ``$CLINTRIALDATA_CONFIG``.
3. ``<user config dir>/config.yaml`` – per-user override.
4. The packaged default shipped inside the wheel.

Environment variables are applied on top of whichever file was loaded:

* ``CLINTRIALDATA_REPO``      → ``repo``
* ``CLINTRIALDATA_CACHE_DIR`` → ``cache_dir``
* ``CLINTRIALDATA_TIMEOUT``   → ``timeout``
* ``GITHUB_TOKEN`` / ``GITHUB_PAT`` → ``token``
"""

from __future__ import annotations

import logging
import os
from importlib.resources import as_file, files
from pathlib import Path
from typing import Optional

import yaml
from platformdirs import user_config_dir

from .schema import ConfigSchema

log = logging.getLogger(__name__)

APP_NAME = "clinTrialData"

# --------------------------------------------------------------------------- #
# Wheel-internal fallback (works even from a zipped wheel)                    #
# --------------------------------------------------------------------------- #
try:
    _DEFAULT_CONFIG = files("clintrialdata.resources") / "default_config.yaml"
except ModuleNotFoundError:
    _DEFAULT_CONFIG = Path(__file__).resolve().parent.parent / "resources" / "default_config.yaml"

_ENV_MAP = {
    "repo": "CLINTRIALDATA_REPO",
    "cache_dir": "CLINTRIALDATA_CACHE_DIR",
    "timeout": "CLINTRIALDATA_TIMEOUT",
}


def _user_config() -> Path:
    """Return ``<user config dir>/config.yaml``."""
    return Path(user_config_dir(APP_NAME)) / "config.yaml"


def _first_existing(*candidates: Optional[Path]) -> Optional[Path]:
    """Return the first path in *candidates* that exists on disk."""
    for p in candidates:
        if p is not None and p.exists():
            return p
    return None


def _load_yaml(path: Path) -> dict:
    """Read a YAML mapping; an empty document yields an empty dict."""
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise RuntimeError(f"Invalid configuration – {path} is not a mapping")
    return data


def _resolve_yaml(explicit: Optional[Path]) -> Path:
    """Resolve the YAML path according to the documented precedence."""
    env = os.environ.get("CLINTRIALDATA_CONFIG")
    env_path = Path(env).expanduser() if env else None
    resolved = _first_existing(explicit, env_path, _user_config())
    if resolved is None:
        with as_file(_DEFAULT_CONFIG) as p:
            resolved = p
    return resolved


def _apply_env(merged: dict) -> dict:
    """Overlay ``CLINTRIALDATA_*`` and GitHub token variables onto *merged*."""
    for key, env in _ENV_MAP.items():
        val = os.getenv(env)
        if val:
            merged[key] = val
    token = os.getenv("GITHUB_TOKEN") or os.getenv("GITHUB_PAT")
    if token:
        merged["token"] = token
    return merged


# --------------------------------------------------------------------------- #
# Public API                                                                  #
# --------------------------------------------------------------------------- #
def load_config(config_path: Optional[str | Path] = None) -> ConfigSchema:
    """Return a fully validated :class:`ConfigSchema`.

    Args:
        config_path: Explicit YAML path.  ``None`` triggers the search
            sequence described in the module doc-string.  An explicit path
            that does not exist is an error rather than a silent fallback.

    Returns:
        A :class:`ConfigSchema` ready for downstream use.

    Raises:
        RuntimeError: When the file is missing, not a mapping, or fails
            validation.
    """
    explicit = Path(config_path).expanduser().resolve() if config_path else None
    if explicit is not None and not explicit.exists():
        raise RuntimeError(f"Invalid configuration – {explicit} does not exist")

    path = _resolve_yaml(explicit)
    log.debug("Loading configuration from %s", path)

    try:
        merged = _apply_env(_load_yaml(path))
    except yaml.YAMLError as exc:
        raise RuntimeError(f"Invalid configuration – {exc}") from exc

    try:
        return ConfigSchema(**merged)
    except Exception as exc:  # pydantic.ValidationError
        raise RuntimeError(f"Invalid configuration – {exc}") from exc
