"""
Pydantic model mirroring the YAML configuration consumed by *clintrialdata*.

The rest of the package works with a validated :class:`ConfigSchema` instead
of ad-hoc dictionaries.  Unknown keys are rejected so that a misspelt option
fails loudly rather than being silently ignored.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_REPO_RE = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


class ConfigSchema(BaseModel):
    """Root configuration object."""

    model_config = ConfigDict(extra="forbid")

    version: str = "1.0"
    repo: str = Field(
        "Lovemore-Gakava/clinTrialData",
        description="GitHub repository in the form owner/repo",
    )
    api_url: str = "https://api.github.com"
    cache_dir: Optional[Path] = None
    timeout: float = Field(60.0, gt=0)
    token: Optional[str] = Field(None, description="GitHub API token")

    @field_validator("repo")
    @classmethod
    def _repo_shape(cls, value: str) -> str:
        """Require the ``owner/repo`` form used by the release API."""
        if not _REPO_RE.match(value):
            raise ValueError(f"repo must look like 'owner/repo', got {value!r}")
        return value

    @field_validator("cache_dir")
    @classmethod
    def _expand_cache_dir(cls, value: Optional[Path]) -> Optional[Path]:
        """Expand ``~`` so callers always receive a usable path."""
        return value.expanduser() if value is not None else None

    @field_validator("api_url")
    @classmethod
    def _strip_slash(cls, value: str) -> str:
        return value.rstrip("/")
