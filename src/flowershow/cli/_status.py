"""The status command."""

from __future__ import annotations

import json

import click

from ._helpers import main, _errors, _open_publisher


@main.command()
@click.option("--json", "as_json", is_flag=True, default=False, help="Output as JSON.")
@click.pass_context
def status(ctx, as_json):
    """Show which vault files are new, changed, unchanged or deleted."""
    publisher = _open_publisher(ctx)
    with _errors():
        st = publisher.get_publish_status()

    sections = [
        ("new", [f.path for f in st.new_files]),
        ("changed", [f.path for f in st.changed_files]),
        ("deleted", list(st.deleted_paths)),
        ("unchanged", [f.path for f in st.unchanged_files]),
    ]
    if as_json:
        payload = {name: paths for name, paths in sections}
        payload["truncated"] = st.truncated
        click.echo(json.dumps(payload, indent=2))
        return

    for name, paths in sections:
        click.echo(f"{name.capitalize()} ({len(paths)}):")
        for p in paths:
            click.echo(f"  {p}")
    if st.truncated:
        click.echo("Warning: the remote listing was truncated; deletions may be incomplete.", err=True)
    if st.in_sync:
        click.echo("Everything is published.")
