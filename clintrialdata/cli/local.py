"""Commands that only look at local state: ``sources``, ``cache-dir`` and ``status``.

None of them touches the network.
"""

from __future__ import annotations

from pathlib import Path

import click
import structlog

from clintrialdata.access import list_data_sources
from clintrialdata.locking import LockRegistry, PermissionHardener
from clintrialdata.locking.registry import default_seed_roots
from clintrialdata.utils.display import echo_banner, echo_frame
from clintrialdata.utils.paths import cache_dir

log = structlog.get_logger()


def session_registry(cache_root: Path) -> LockRegistry:
    """Return a registry seeded from the bundled data and *cache_root*."""
    registry = LockRegistry(hardener=PermissionHardener(cache_root))
    registry.seed(default_seed_roots(cache_root))
    return registry


@click.command(name="sources", help="List studies available locally (bundled and cached).")
@click.pass_obj
def sources(ctx_obj) -> None:
    """Entry-point for ``clintrialdata-cli sources``."""
    root = cache_dir(ctx_obj["cfg"])
    log.debug("listing local sources", cache_root=str(root))
    echo_banner("Local data sources")
    echo_frame(list_data_sources(cache_root=root), empty="No local data sources found.")


@click.command(name="cache-dir", help="Print the cache directory used for downloads.")
@click.pass_obj
def cache_dir_cmd(ctx_obj) -> None:
    """Entry-point for ``clintrialdata-cli cache-dir``."""
    click.echo(str(cache_dir(ctx_obj["cfg"])))


@click.command(name="status", help="Report whether a study folder is locked at startup.")
@click.argument("path", type=click.Path(path_type=Path))
@click.pass_obj
def status(ctx_obj, path: Path) -> None:
    """Entry-point for ``clintrialdata-cli status``.

    Locks live for one process only, so this reports the state every new
    session starts from: bundled and cached studies are locked.
    """
    registry = session_registry(cache_dir(ctx_obj["cfg"]))
    result = registry.status(path)
    click.echo(f"{'locked' if result.locked else 'unlocked'}\t{result.path}")
