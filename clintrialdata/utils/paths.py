"""Well-known locations and path normalisation helpers.

* :func:`cache_dir` – the single CacheRoot under which downloaded studies live.
* :func:`bundled_data_root` – the ``exampledata`` folder shipped in the wheel.
* :func:`normalize_study_path` – the canonical form used as a lock key.
"""

from __future__ import annotations

import os
from importlib.resources import files
from pathlib import Path
from typing import Iterator, Optional

from platformdirs import user_cache_dir, user_log_dir

from ..config import APP_NAME, ConfigSchema, load_config


def cache_dir(config: Optional[ConfigSchema] = None) -> Path:
    """Return the local cache directory for downloaded studies.

    ``$CLINTRIALDATA_CACHE_DIR`` wins, then the ``cache_dir`` configuration
    key, then the platform user-cache convention.  The directory is not
    created here.

    Args:
        config: Already loaded configuration.  Loaded on demand when *None*
            and the environment variable is unset.
    """
    env = os.environ.get("CLINTRIALDATA_CACHE_DIR")
    if env:
        return Path(env).expanduser()
    cfg = config if config is not None else load_config()
    if cfg.cache_dir is not None:
        return cfg.cache_dir
    return Path(user_cache_dir(APP_NAME))


def log_dir() -> Path:
    """Return the directory for rotating JSON logs (outside the cache root)."""
    env = os.environ.get("CLINTRIALDATA_LOG_DIR")
    if env:
        return Path(env).expanduser()
    return Path(user_log_dir(APP_NAME))


def bundled_data_root() -> Path:
    """Return the ``exampledata`` directory installed with the package."""
    return Path(str(files("clintrialdata") / "exampledata"))


def normalize_study_path(path: str | os.PathLike) -> Path:
    """Return *path* as an absolute path with symlinks and ``..`` collapsed.

    Works for paths that do not exist yet; two paths name the same study
    exactly when their normalised forms are equal.
    """
    return Path(os.path.realpath(os.path.expanduser(os.fspath(path))))


def is_strictly_within(path: str | os.PathLike, root: str | os.PathLike) -> bool:
    """Return *True* when *path* lies below *root* (component-wise, not equal)."""
    p = normalize_study_path(path)
    r = normalize_study_path(root)
    return p != r and p.is_relative_to(r)


def iter_study_dirs(base: Path) -> Iterator[Path]:
    """Yield immediate, non-hidden subdirectories of *base* in sorted order.

    Hidden entries cover the listing snapshot and transient download
    staging folders.
    """
    for child in sorted(base.iterdir()):
        if child.is_dir() and not child.name.startswith("."):
            yield child


__all__ = [
    "cache_dir",
    "log_dir",
    "bundled_data_root",
    "normalize_study_path",
    "is_strictly_within",
    "iter_study_dirs",
]
