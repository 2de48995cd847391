"""
Light-weight HTTP helpers for talking to the GitHub release store.

Only the low-level mechanics of *sending* a request belong here: URL joining,
headers, the optional API token and the timeout.  The helpers return the raw
``requests.Response`` (after :meth:`~requests.Response.raise_for_status`) so
callers decide how to parse the payload.

Functions
---------
github_get
    Perform an optionally token-authenticated ``GET`` request.
stream_to_file
    Download a URL to disk in chunks.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import requests

DEFAULT_TIMEOUT = 60.0
CHUNK_SIZE = 1 << 16


def _default_timeout() -> Optional[float]:
    """Return the timeout configured via ``CLINTRIALDATA_TIMEOUT`` or ``DEFAULT_TIMEOUT``."""
    env = os.getenv("CLINTRIALDATA_TIMEOUT")
    if not env:
        return DEFAULT_TIMEOUT
    try:
        return float(env)
    except ValueError:
        return DEFAULT_TIMEOUT


def _headers(token: Optional[str], accept: str) -> Dict[str, str]:
    headers = {"Accept": accept, "X-GitHub-Api-Version": "2022-11-28"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def github_get(
    url: str,
    token: Optional[str] = None,
    params: Optional[Dict[str, Any]] = None,
    *,
    timeout: Optional[float] = None,
    accept: str = "application/vnd.github+json",
    stream: bool = False,
) -> requests.Response:
    """Send a GET request and raise for non-2xx statuses.

    Args:
        url: Fully-qualified URL.
        token: GitHub token; omitted from the request when *None*.
        params: Query parameters.
        timeout: Seconds before giving up; defaults to ``CLINTRIALDATA_TIMEOUT``
            or :data:`DEFAULT_TIMEOUT`.
        accept: ``Accept`` header value.
        stream: Defer downloading the body (large assets).

    Returns:
        The raw :class:`requests.Response` object.

    Raises:
        requests.exceptions.RequestException: Transport failure or HTTP error.
    """
    if timeout is None:
        timeout = _default_timeout()

    resp = requests.get(
        url,
        headers=_headers(token, accept),
        params=params or {},
        timeout=timeout,
        stream=stream,
        allow_redirects=True,
    )
    resp.raise_for_status()
    return resp


def stream_to_file(
    url: str,
    dest: Path,
    token: Optional[str] = None,
    *,
    timeout: Optional[float] = None,
) -> Path:
    """Download *url* into *dest* chunk by chunk and return *dest*.

    A partially written file is removed when the transfer fails.
    """
    resp = github_get(
        url, token, timeout=timeout, accept="application/octet-stream", stream=True
    )
    try:
        with open(dest, "wb") as fh:
            for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                if chunk:
                    fh.write(chunk)
    except (OSError, requests.exceptions.RequestException):
        dest.unlink(missing_ok=True)
        raise
    finally:
        resp.close()
    return dest


__all__ = ["DEFAULT_TIMEOUT", "github_get", "stream_to_file"]
