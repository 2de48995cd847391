"""Lock-aware wrapper around :class:`FilesystemConnector`."""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from ..locking.registry import LockRegistry
from ..utils.errors import LockedFolderViolation
from .fs import FilesystemConnector


class LockedConnector:
    """Refuse writes and removals while the owning study folder is locked.

    Reads and listings go straight to *inner*.  Mutations first ask
    *registry* whether *study_path* may be modified; a refusal (already
    reported as a :class:`~clintrialdata.utils.errors.LockWarning`) is turned
    into :class:`~clintrialdata.utils.errors.LockedFolderViolation`.
    """

    def __init__(self, inner: FilesystemConnector, study_path: str | Path, registry: LockRegistry):
        self.inner = inner
        self.study_path = Path(study_path)
        self.registry = registry

    def __repr__(self) -> str:
        return f"LockedConnector(path={str(self.inner.path)!r}, study_path={str(self.study_path)!r})"

    @property
    def path(self) -> Path:
        return self.inner.path

    def list_content(self) -> list[str]:
        return self.inner.list_content()

    def read(self, name: str) -> pd.DataFrame:
        return self.inner.read(name)

    def _refuse(self, operation: str, name: str) -> LockedFolderViolation:
        return LockedFolderViolation(
            f"Cannot {operation} '{name}': study folder is locked\n"
            f"  Path: {self.study_path}\n"
            "  Use unlock_study() to remove the lock for this session."
        )

    def write(self, data: pd.DataFrame, name: str, overwrite: bool = False) -> Path:
        if not self.registry.guard(self.study_path, operation="write to study folder"):
            raise self._refuse("write", name)
        return self.inner.write(data, name, overwrite=overwrite)

    def remove(self, name: str) -> Path:
        if not self.registry.guard(self.study_path, operation="remove from study folder"):
            raise self._refuse("remove", name)
        return self.inner.remove(name)


__all__ = ["LockedConnector"]
