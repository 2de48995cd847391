"""
Session-scoped advisory locks over study folders.

A :class:`LockRegistry` owns a set of normalised study paths.  Membership means
"writes and removals through this package must be refused"; absence means
they are permitted.  The set lives only in memory and is rebuilt from scratch
in every process by :meth:`LockRegistry.seed`, which locks every bundled and
every cached study.

Lock bookkeeping never raises.  Missing folders and blocked operations are
reported through :class:`~clintrialdata.utils.errors.LockWarning` plus a
boolean result; escalating a refused write into an exception is the job of
:class:`clintrialdata.connectors.LockedConnector`.

The registry has no internal mutex.  Threads that share one registry must
coordinate lock/unlock calls themselves.

Process-wide instance
---------------------
:func:`get_registry` builds the registry lazily on first use, seeds it and
then returns the same object for the rest of the process.  The module-level
helpers (:func:`lock_study`, :func:`unlock_study`, …) all delegate to it.
"""

from __future__ import annotations

import logging
import os
import warnings
from pathlib import Path
from typing import Iterable, Optional

from ..models import LockStatus
from ..utils.errors import LockWarning
from ..utils.paths import (
    bundled_data_root,
    cache_dir,
    iter_study_dirs,
    normalize_study_path,
)
from .permissions import PermissionHardener

log = logging.getLogger(__name__)

DEFAULT_REASON = "Package installed"
BUNDLED_REASON = "Bundled data - protected from overwrites"
CACHED_REASON = "Cached data - protected from overwrites"


class LockRegistry:
    """In-memory set of locked study paths.

    Args:
        hardener: Optional :class:`PermissionHardener`.  When supplied, every
            successful :meth:`lock` hardens the folder's file modes and every
            :meth:`unlock` relaxes them (cache-rooted POSIX paths only).
    """

    def __init__(self, hardener: Optional[PermissionHardener] = None):
        self.hardener = hardener
        self._locked: set[str] = set()

    def __repr__(self) -> str:
        return f"LockRegistry(locked={len(self._locked)}, hardener={self.hardener!r})"

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, os.PathLike)):
            return False
        return self.is_locked(path)

    def __len__(self) -> int:
        return len(self._locked)

    @property
    def locked_paths(self) -> list[Path]:
        """Sorted snapshot of the locked, normalised paths."""
        return [Path(p) for p in sorted(self._locked)]

    # ------------------------------------------------------------------ #
    # queries                                                            #
    # ------------------------------------------------------------------ #
    def is_locked(self, path: str | os.PathLike) -> bool:
        """Return *True* when *path* is locked in this session."""
        return str(normalize_study_path(path)) in self._locked

    def status(self, path: str | os.PathLike) -> LockStatus:
        """Return the lock state of *path* without side effects."""
        return LockStatus(locked=self.is_locked(path), path=Path(path))

    def guard(self, path: str | os.PathLike, operation: str = "write to study folder") -> bool:
        """Return *True* when *operation* may proceed on *path*.

        A locked path yields ``False`` and a :class:`LockWarning` that names the
        operation and the path.
        """
        if not self.is_locked(path):
            return True
        warnings.warn(
            f"Cannot {operation}: study folder is locked\n"
            f"  Path: {path}\n"
            "  Use unlock_study() to remove the lock for this session.",
            LockWarning,
            stacklevel=2,
        )
        return False

    # ------------------------------------------------------------------ #
    # mutations                                                          #
    # ------------------------------------------------------------------ #
    def lock(self, path: str | os.PathLike, reason: str = DEFAULT_REASON) -> bool:
        """Lock *path* for the rest of the session.

        Returns ``False`` (with a :class:`LockWarning`) when *path* is not an
        existing directory.  Locking an already locked path succeeds again.
        """
        study = normalize_study_path(path)
        if not study.is_dir():
            warnings.warn(f"Study folder does not exist: {path}", LockWarning, stacklevel=2)
            return False

        key = str(study)
        self._locked.add(key)
        log.debug("Locked %s (%s)", key, reason)

        self._apply(path, harden=True)
        return True

    def unlock(self, path: str | os.PathLike) -> bool:
        """Release the lock on *path*; unlocking an unlocked path is a no-op."""
        key = str(normalize_study_path(path))
        self._locked.discard(key)
        log.debug("Unlocked %s", key)

        self._apply(path, harden=False)
        return True

    def lock_all(self, base_path: str | os.PathLike, reason: str = DEFAULT_REASON) -> list[Path]:
        """Lock every immediate study folder under *base_path*.

        Returns:
            The folders that were actually locked.  A missing *base_path*
            yields an empty list and a :class:`LockWarning`.
        """
        base = Path(base_path)
        if not base.is_dir():
            warnings.warn(f"Base folder does not exist: {base_path}", LockWarning, stacklevel=2)
            return []
        return [d for d in iter_study_dirs(base) if self.lock(d, reason)]

    def seed(self, roots: Iterable[tuple[Path, str]]) -> list[Path]:
        """Lock the study folders under each ``(root, reason)`` pair.

        Roots that do not exist are skipped silently.
        """
        locked: list[Path] = []
        for root, reason in roots:
            if root.is_dir():
                locked.extend(self.lock_all(root, reason))
        return locked

    def clear(self) -> None:
        """Forget every lock without touching file modes."""
        self._locked.clear()

    # ------------------------------------------------------------------ #
    # internals                                                          #
    # ------------------------------------------------------------------ #
    def _apply(self, path: str | os.PathLike, *, harden: bool) -> None:
        if self.hardener is None:
            return
        try:
            if harden:
                self.hardener.harden(path)
            else:
                self.hardener.relax(path)
        except OSError as exc:
            log.warning("Could not update permissions on %s: %s", path, exc)


# --------------------------------------------------------------------------- #
# Process-wide registry                                                       #
# --------------------------------------------------------------------------- #
_REGISTRY: Optional[LockRegistry] = None


def default_seed_roots(cache_root: Optional[Path] = None) -> list[tuple[Path, str]]:
    """Return the ``(root, reason)`` pairs locked at library initialisation."""
    root = cache_root if cache_root is not None else cache_dir()
    return [(bundled_data_root(), BUNDLED_REASON), (root, CACHED_REASON)]


def get_registry() -> LockRegistry:
    """Return the process-wide registry, creating and seeding it on first use."""
    global _REGISTRY
    if _REGISTRY is None:
        root = cache_dir()
        registry = LockRegistry(hardener=PermissionHardener(root))
        registry.seed(default_seed_roots(root))
        log.debug("Lock registry initialised with %d study folder(s)", len(registry))
        _REGISTRY = registry
    return _REGISTRY


def reset_registry() -> None:
    """Drop the process-wide registry; the next :func:`get_registry` re-seeds."""
    global _REGISTRY
    _REGISTRY = None


def is_study_locked(study_path: str | os.PathLike) -> bool:
    """Return *True* when *study_path* is locked in this session."""
    return get_registry().is_locked(study_path)


def lock_study(study_path: str | os.PathLike, reason: str = DEFAULT_REASON) -> bool:
    """Lock *study_path* for the rest of the session."""
    return get_registry().lock(study_path, reason)


def unlock_study(study_path: str | os.PathLike) -> bool:
    """Remove the session lock on *study_path* and restore write permissions."""
    return get_registry().unlock(study_path)


def lock_all_studies(base_path: str | os.PathLike, reason: str = DEFAULT_REASON) -> list[Path]:
    """Lock every study folder under *base_path*."""
    return get_registry().lock_all(base_path, reason)


def get_lock_status(study_path: str | os.PathLike) -> LockStatus:
    """Return ``LockStatus(locked=…, path=…)`` for *study_path*."""
    return get_registry().status(study_path)


def can_write_study(study_path: str | os.PathLike, operation: str = "write to study folder") -> bool:
    """Return *True* when *study_path* is unlocked; warn and return *False* otherwise."""
    return get_registry().guard(study_path, operation)


__all__ = [
    "LockRegistry",
    "get_registry",
    "reset_registry",
    "default_seed_roots",
    "is_study_locked",
    "lock_study",
    "unlock_study",
    "lock_all_studies",
    "get_lock_status",
    "can_write_study",
]
