"""
File-mode hardening for cached study folders.

The in-memory lock registry only protects writes that go through this
package.  For studies that live in the cache root on POSIX systems, the
:class:`PermissionHardener` adds an OS-enforced layer by making the tree
read-only (files ``0444``, directories ``0555``) and restores the usual
``0644`` / ``0755`` on release.

The hardener refuses to touch anything that is not strictly below its cache
root, even when asked to.  The whole tree is listed before any mode changes,
so the order in which files and directories are processed does not affect
reachability.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from ..utils.paths import is_strictly_within, normalize_study_path

log = logging.getLogger(__name__)

FILE_READ_ONLY = 0o444
DIR_READ_ONLY = 0o555
FILE_READ_WRITE = 0o644
DIR_READ_WRITE = 0o755


def _walk(root: Path) -> tuple[list[Path], list[Path]]:
    """Return ``(directories, files)`` under *root*, *root* included, top-down."""
    dirs: list[Path] = []
    files: list[Path] = []
    for current, subdirs, filenames in os.walk(root):
        base = Path(current)
        dirs.append(base)
        files.extend(base / f for f in filenames)
        # Symlinked directories are reported as files so their targets stay untouched
        for d in list(subdirs):
            if (base / d).is_symlink():
                subdirs.remove(d)
                files.append(base / d)
    return dirs, files


class PermissionHardener:
    """Platform-conditional permission setter scoped to one cache root.

    Args:
        cache_root: Only paths strictly below this directory are changed.
        enabled: Override platform detection.  Defaults to ``True`` on POSIX.
    """

    def __init__(self, cache_root: str | os.PathLike, enabled: Optional[bool] = None):
        self.cache_root = normalize_study_path(cache_root)
        self.enabled = (os.name == "posix") if enabled is None else enabled

    def __repr__(self) -> str:
        return f"PermissionHardener(cache_root={str(self.cache_root)!r}, enabled={self.enabled})"

    # ------------------------------------------------------------------ #
    # scope guard                                                        #
    # ------------------------------------------------------------------ #
    def applies_to(self, path: str | os.PathLike) -> bool:
        """Return *True* when :meth:`harden`/:meth:`relax` would act on *path*."""
        if not self.enabled:
            return False
        if not is_strictly_within(path, self.cache_root):
            return False
        return normalize_study_path(path).is_dir()

    # ------------------------------------------------------------------ #
    # public API                                                         #
    # ------------------------------------------------------------------ #
    def harden(self, path: str | os.PathLike) -> int:
        """Make the study tree read-only and return the number of entries changed."""
        if not self.applies_to(path):
            return 0
        dirs, files = _walk(normalize_study_path(path))
        changed = self._chmod_all(files, FILE_READ_ONLY, follow=False)
        changed += self._chmod_all(dirs, DIR_READ_ONLY)
        log.debug("Hardened %d entries under %s", changed, path)
        return changed

    def relax(self, path: str | os.PathLike) -> int:
        """Restore write permission on the study tree and return the count changed."""
        if not self.applies_to(path):
            return 0
        dirs, files = _walk(normalize_study_path(path))
        changed = self._chmod_all(dirs, DIR_READ_WRITE)
        changed += self._chmod_all(files, FILE_READ_WRITE, follow=False)
        log.debug("Relaxed %d entries under %s", changed, path)
        return changed

    # ------------------------------------------------------------------ #
    # internals                                                          #
    # ------------------------------------------------------------------ #
    @staticmethod
    def _chmod_all(paths: list[Path], mode: int, *, follow: bool = True) -> int:
        changed = 0
        for p in paths:
            if not follow and p.is_symlink():
                continue
            try:
                os.chmod(p, mode)
                changed += 1
            except OSError as exc:
                log.warning("Could not chmod %s to %o: %s", p, mode, exc)
        return changed


__all__ = [
    "PermissionHardener",
    "FILE_READ_ONLY",
    "DIR_READ_ONLY",
    "FILE_READ_WRITE",
    "DIR_READ_WRITE",
]
