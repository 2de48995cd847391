"""Dataset connectors and the domain-name mapping returned by ``connect``."""

from __future__ import annotations

from typing import Iterator, Mapping, Union

from .fs import DATASET_SUFFIXES, FilesystemConnector, dataset_files
from .locked import LockedConnector

AnyConnector = Union[FilesystemConnector, LockedConnector]


class Connectors(Mapping[str, AnyConnector]):
    """Read-only mapping of domain name to connector.

    Domains are also reachable as attributes, e.g. ``db.adam.read("adsl")``.
    """

    def __init__(self, connectors: Mapping[str, AnyConnector]):
        self._connectors = dict(connectors)

    def __getitem__(self, name: str) -> AnyConnector:
        return self._connectors[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._connectors)

    def __len__(self) -> int:
        return len(self._connectors)

    def __getattr__(self, name: str) -> AnyConnector:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._connectors[name]
        except KeyError:
            raise AttributeError(
                f"No domain {name!r}; available: {', '.join(self._connectors) or '(none)'}"
            ) from None

    def __dir__(self) -> list[str]:
        return sorted(set(super().__dir__()) | set(self._connectors))

    def __repr__(self) -> str:
        return f"Connectors({', '.join(self._connectors)})"


__all__ = [
    "AnyConnector",
    "Connectors",
    "DATASET_SUFFIXES",
    "FilesystemConnector",
    "LockedConnector",
    "dataset_files",
]
