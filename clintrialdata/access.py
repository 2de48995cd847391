"""
Local dataset discovery and connections.

A *source* is a study folder (``cdisc_pilot/``) whose sub-folders are
*domains* (``adam/``, ``sdtm/``) holding one dataset file per table.  Sources
are looked up in the user cache first and in the bundled ``exampledata``
second, so a downloaded copy shadows a bundled one of the same name.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import pandas as pd

from .connectors import Connectors, FilesystemConnector, LockedConnector, dataset_files
from .locking.registry import LockRegistry, get_registry
from .pipelines.metadata import METADATA_FILE, load_metadata
from .utils.errors import ClinTrialDataError, SourceNotFound
from .utils.paths import bundled_data_root, cache_dir, iter_study_dirs

log = logging.getLogger(__name__)

SOURCE_COLUMNS: tuple[str, ...] = ("source", "description", "domains", "format", "location")
DEFAULT_SOURCE = "cdisc_pilot"


def _domains(source_path: Path) -> list[str]:
    return [d.name for d in iter_study_dirs(source_path) if dataset_files(d)]


def _search_roots(cache_root: Optional[Path] = None) -> list[tuple[str, Path]]:
    root = Path(cache_root) if cache_root is not None else cache_dir()
    return [("cached", root), ("bundled", bundled_data_root())]


# --------------------------------------------------------------------------- #
# Configuration and connection                                                #
# --------------------------------------------------------------------------- #
def generate_connector_config(source_path: str | Path) -> dict[str, Any]:
    """Describe every domain folder of *source_path* that holds datasets.

    Raises:
        SourceNotFound: *source_path* is not a directory.
    """
    source_path = Path(source_path)
    if not source_path.is_dir():
        raise SourceNotFound(f"Data source directory not found: {source_path}")

    return {
        "metadata": {"root_path": "."},
        "datasources": [
            {
                "name": domain,
                "backend": {"type": "connector_fs", "path": f"{{metadata.root_path}}/{domain}"},
            }
            for domain in _domains(source_path)
        ],
    }


def connect(config: dict[str, Any], root_path: str | Path) -> Connectors:
    """Build filesystem connectors from a configuration dict.

    ``{metadata.root_path}`` placeholders in backend paths are replaced by
    *root_path*.
    """
    root = str(root_path)
    connectors: dict[str, FilesystemConnector] = {}
    for entry in config.get("datasources", []):
        backend = entry.get("backend", {})
        if backend.get("type") != "connector_fs":
            raise ValueError(f"Unsupported backend type: {backend.get('type')!r}")
        path = backend["path"].replace("{metadata.root_path}", root)
        connectors[entry["name"]] = FilesystemConnector(path)
    return Connectors(connectors)


def resolve_source_path(source: str, cache_root: Optional[Path] = None) -> Path:
    """Return the folder of *source*, preferring the user cache.

    Raises:
        SourceNotFound: Neither the cache nor the bundled data has *source*.
    """
    for _location, root in _search_roots(cache_root):
        candidate = root / source
        if candidate.is_dir():
            return candidate
    raise SourceNotFound(
        f"Data source '{source}' not found.\n"
        "If this is a remote dataset, download it first with:\n"
        f'  download_study("{source}")'
    )


def connect_to_source(
    source: str,
    *,
    registry: Optional[LockRegistry] = None,
    cache_root: Optional[Path] = None,
) -> Connectors:
    """Connect to *source*, wrapping every domain in a :class:`LockedConnector`."""
    root_path = resolve_source_path(source, cache_root)
    registry = registry if registry is not None else get_registry()
    plain = connect(generate_connector_config(root_path), root_path)
    log.debug("Connected to %s at %s (%s)", source, root_path, ", ".join(plain))
    return Connectors(
        {name: LockedConnector(conn, root_path, registry) for name, conn in plain.items()}
    )


# --------------------------------------------------------------------------- #
# Discovery                                                                   #
# --------------------------------------------------------------------------- #
def _description(source_path: Path, default: str) -> str:
    meta_path = source_path / METADATA_FILE
    if not meta_path.is_file():
        return default
    try:
        meta = load_metadata(meta_path)
    except (OSError, ClinTrialDataError) as exc:
        log.debug("Ignoring unreadable %s: %s", meta_path, exc)
        return default
    return meta.description or default


def _format(source_path: Path, domains: list[str]) -> str:
    suffixes = {
        f.suffix.lower().lstrip(".") for d in domains for f in dataset_files(source_path / d)
    }
    return ", ".join(sorted(suffixes))


def list_data_sources(cache_root: Optional[Path] = None) -> pd.DataFrame:
    """Return every study available locally.

    Cached studies are listed before bundled ones and shadow bundled studies
    of the same name.  Folders without any dataset file are skipped.

    Returns:
        DataFrame with columns ``source``, ``description``, ``domains``
        (comma separated), ``format`` and ``location`` (``"cached"`` or
        ``"bundled"``).
    """
    rows: list[dict[str, str]] = []
    seen: set[str] = set()
    for location, root in _search_roots(cache_root):
        if not root.is_dir():
            continue
        for source_path in iter_study_dirs(root):
            if source_path.name in seen:
                continue
            domains = _domains(source_path)
            if not domains:
                continue
            rows.append(
                {
                    "source": source_path.name,
                    "description": _description(source_path, source_path.name),
                    "domains": ", ".join(domains),
                    "format": _format(source_path, domains),
                    "location": location,
                }
            )
            seen.add(source_path.name)

    if not rows:
        return pd.DataFrame({col: pd.Series(dtype="object") for col in SOURCE_COLUMNS})
    return pd.DataFrame(rows, columns=list(SOURCE_COLUMNS))


def connect_clinical_data(
    source: str = DEFAULT_SOURCE,
    *,
    registry: Optional[LockRegistry] = None,
    cache_root: Optional[Path] = None,
) -> Connectors:
    """Connect to a local study by name.

    Example::

        db = connect_clinical_data("cdisc_pilot")
        db.adam.list_content()
        adsl = db.adam.read("adsl")

    Raises:
        SourceNotFound: *source* is not in :func:`list_data_sources`.
    """
    available = list_data_sources(cache_root)["source"].tolist()
    if source not in available:
        raise SourceNotFound(
            f"Unknown data source: '{source}'\n"
            f"Available sources: {', '.join(available)}\n"
            "Use list_data_sources() to see all options."
        )
    return connect_to_source(source, registry=registry, cache_root=cache_root)


__all__ = [
    "DEFAULT_SOURCE",
    "SOURCE_COLUMNS",
    "generate_connector_config",
    "connect",
    "resolve_source_path",
    "connect_to_source",
    "list_data_sources",
    "connect_clinical_data",
]
