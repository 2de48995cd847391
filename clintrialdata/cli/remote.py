"""Commands that talk to the release store: ``available``, ``download`` and ``info``.

Library errors are surfaced as :class:`click.ClickException` so the user sees
a one-line message instead of a traceback (``--debug`` logs the chain).
"""

from __future__ import annotations

import click
import structlog

from clintrialdata.config import ConfigSchema
from clintrialdata.pipelines import dataset_info, download_study, list_available_studies
from clintrialdata.remote import LATEST, GitHubReleaseCatalog, RemoteCatalog
from clintrialdata.utils.display import echo_banner, echo_frame, echo_success
from clintrialdata.utils.errors import ClinTrialDataError
from clintrialdata.utils.paths import cache_dir

from .local import session_registry

log = structlog.get_logger()


def build_catalog(cfg: ConfigSchema) -> RemoteCatalog:
    """Return the release catalog used by the CLI."""
    return GitHubReleaseCatalog.from_config(cfg)


_repo_option = click.option(
    "--repo",
    default=None,
    metavar="OWNER/REPO",
    help="GitHub repository holding the releases (default from config).",
)


@click.command(name="available", help="List studies that can be downloaded from GitHub.")
@_repo_option
@click.pass_obj
def available(ctx_obj, repo: str | None) -> None:
    """Entry-point for ``clintrialdata-cli available``."""
    cfg = ctx_obj["cfg"]
    echo_banner("Available studies")
    try:
        frame = list_available_studies(
            repo or cfg.repo, catalog=build_catalog(cfg), cache_root=cache_dir(cfg)
        )
    except ClinTrialDataError as exc:
        log.debug("listing failed", error=str(exc), kind=exc.kind)
        raise click.ClickException(str(exc)) from exc
    echo_frame(frame, empty="No studies found in any release.")


@click.command(name="download", help="Download a study into the local cache.")
@click.argument("source")
@click.option("--version", "version", default=LATEST, help="Release tag to download from.")
@click.option("--force", is_flag=True, help="Re-download even if the study is cached.")
@_repo_option
@click.pass_obj
def download(ctx_obj, source: str, version: str, force: bool, repo: str | None) -> None:
    """Entry-point for ``clintrialdata-cli download``."""
    cfg = ctx_obj["cfg"]
    root = cache_dir(cfg)
    echo_banner(f"Download {source}")
    try:
        path = download_study(
            source,
            version=version,
            force=force,
            repo=repo or cfg.repo,
            catalog=build_catalog(cfg),
            registry=session_registry(root),
            cache_root=root,
        )
    except ClinTrialDataError as exc:
        log.debug("download failed", source=source, error=str(exc), kind=exc.kind)
        raise click.ClickException(str(exc)) from exc
    echo_success(f"{source} available at {path}")


@click.command(name="info", help="Show a study's metadata without downloading it.")
@click.argument("source")
@_repo_option
@click.pass_obj
def info(ctx_obj, source: str, repo: str | None) -> None:
    """Entry-point for ``clintrialdata-cli info``."""
    cfg = ctx_obj["cfg"]
    try:
        dataset_info(
            source,
            repo or cfg.repo,
            catalog=build_catalog(cfg),
            cache_root=cache_dir(cfg),
        )
    except ClinTrialDataError as exc:
        raise click.ClickException(str(exc)) from exc
