"""Expose the project-wide Click group for the ``clintrialdata-cli`` script.

The module:

* declares a single Click *group* called :pyfunc:`main`;
* wires common global flags (config file, verbosity, log mirror);
* sets up logging via :pyfunc:`clintrialdata.utils.logging.setup_logging`;
* loads the validated configuration into the Click context;
* registers every sub-command located in sibling modules.
"""

from __future__ import annotations

import importlib
from pathlib import Path
from typing import Any, Dict

import click

from clintrialdata import __version__
from clintrialdata.config import load_config
from clintrialdata.utils.logging import setup_logging


class LazyGroup(click.Group):
    """Click group that imports sub-commands lazily."""

    def __init__(self, *args, **kwargs):
        self._lazy: dict[str, str] = {}
        super().__init__(*args, **kwargs)

    def set_lazy_command(self, name: str, target: str) -> None:
        """Register *name* to be imported from ``target`` on first use."""
        self._lazy[name] = target

    def list_commands(self, ctx):
        return sorted(set(super().list_commands(ctx)) | set(self._lazy))

    def get_command(self, ctx, cmd_name):  # noqa: D401 - Click signature
        """Resolve *cmd_name* from the eager map or import table."""
        cmd = super().get_command(ctx, cmd_name)
        if cmd is not None:
            return cmd
        target = self._lazy.get(cmd_name)
        if not target:
            return None
        module_name, attr = target.split(":", 1)
        module = importlib.import_module(module_name)
        cmd = getattr(module, attr)
        self.add_command(cmd, name=cmd_name)
        return cmd


# ─────────────────────────────────────────────────────────────────────────────
# Context settings shared by the entire Click hierarchy
# ─────────────────────────────────────────────────────────────────────────────
_CTX: Dict[str, Any] = dict(
    help_option_names=["-h", "--help"],
    show_default=True,
    max_content_width=120,
)

# Commands that stream progress messages even without -v.
_PROGRESS_COMMANDS = {"download"}


@click.group(
    cls=LazyGroup,
    context_settings=_CTX,
    help="""\b
clintrialdata-cli – clinical-trial example datasets.

""",
)
@click.version_option(__version__)
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="YAML configuration file (repo, cache_dir, timeout).",
)
@click.option("-v", "--verbose", is_flag=True, help="INFO-level console output.")
@click.option("--debug",        is_flag=True, help="DEBUG console + JSON logfile.")
@click.option(
    "--save-logfile",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    help="Mirror console output into this plain-text file.",
)
@click.pass_context
def main(  # noqa: D401 – Click requires the callback to be named “main”.
    ctx: click.Context,
    config_path: Path | None,
    verbose: bool,
    debug: bool,
    save_logfile: Path | None,
) -> None:
    """Root command executed by *clintrialdata-cli*.

    Raises:
        click.ClickException: When the configuration cannot be loaded.
    """
    subcmd = ctx.invoked_subcommand or ""

    # Logging must be configured before any output is produced ----------------
    setup_logging(
        verbose=verbose,
        debug=debug,
        force_info=subcmd in _PROGRESS_COMMANDS and not (verbose or debug),
        extra_text_log=save_logfile,
    )

    try:
        cfg = load_config(config_path)
    except RuntimeError as exc:
        raise click.ClickException(str(exc)) from exc

    ctx.obj = {
        "cfg": cfg,
        "verbose": verbose,
        "debug": debug,
    }


main.set_lazy_command("sources", "clintrialdata.cli.local:sources")
main.set_lazy_command("cache-dir", "clintrialdata.cli.local:cache_dir_cmd")
main.set_lazy_command("status", "clintrialdata.cli.local:status")
main.set_lazy_command("available", "clintrialdata.cli.remote:available")
main.set_lazy_command("download", "clintrialdata.cli.remote:download")
main.set_lazy_command("info", "clintrialdata.cli.remote:info")

cli = main
__all__: list[str] = ["main"]
