"""Utility functions to print formatted CLI messages and study summaries."""

from __future__ import annotations

import locale
import sys

import click
import pandas as pd

from ..models import StudyMetadata

__all__ = [
    "echo_banner",
    "echo_success",
    "echo_frame",
    "render_dataset_info",
]

_PREVIEW = 8
_WIDTH = 70


def echo_banner(text: str) -> None:
    """Print a colourful banner announcing a processing step."""
    click.secho(f"\n=== {text} ===", fg="cyan")


def echo_success(text: str) -> None:
    """Echo a green success message prefixed with a tick."""
    click.secho(f"✓ {text}", fg="green")


def echo_frame(frame: pd.DataFrame, empty: str = "Nothing to show.") -> None:
    """Echo *frame* without its index, or *empty* when it has no rows."""
    if frame.empty:
        click.echo(empty)
        return
    click.echo(frame.to_string(index=False))


def _rule_char() -> str:
    """Return a box-drawing rule on UTF-8 terminals, a dash elsewhere."""
    encoding = (getattr(sys.stdout, "encoding", None) or locale.getpreferredencoding(False) or "").lower()
    return "─" if "utf" in encoding else "-"


def render_dataset_info(meta: StudyMetadata) -> str:
    """Return the human-readable summary printed by ``dataset_info``.

    The layout is a ruled header (``source (version)``), the description,
    one line per domain previewing at most eight dataset names, then the
    subject count, version, license and source URL when present.
    """
    header = f"{meta.source} ({meta.version})" if meta.version else meta.source
    sep = _rule_char() * _WIDTH
    lines: list[str] = [sep, header, sep]

    if meta.description:
        lines += [meta.description, ""]

    if meta.domains:
        lines.append("Domains & datasets:")
        for domain, datasets in meta.domains.items():
            n = len(datasets)
            preview = ", ".join(datasets[:_PREVIEW])
            if n > _PREVIEW:
                preview += f", ... ({n} total)"
            lines.append(f"  {domain:<6} ({n}): {preview}")
        lines.append("")

    if meta.n_subjects is not None:
        lines.append(f"Subjects:   {meta.n_subjects}")
    if meta.version is not None:
        lines.append(f"Version:    {meta.version}")
    if meta.license is not None:
        lines.append(f"License:    {meta.license}")
    if meta.source_url is not None:
        lines.append(f"Source:     {meta.source_url}")
    lines.append(sep)

    return "\n".join(lines)
