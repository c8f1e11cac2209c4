"""The publish, publish-note and unpublish commands."""

from __future__ import annotations

import click

from ._helpers import main, _errors, _open_publisher, _status


@main.command()
@click.option("--new/--no-new", "new", default=True, help="Include new files.")
@click.option("--changed/--no-changed", "changed", default=True, help="Include changed files.")
@click.option("--deleted/--no-deleted", "deleted", default=True, help="Include deletions.")
@click.option("--branch-name", default=None, help="Working branch name (default: timestamped).")
@click.option("--auto-merge/--no-auto-merge", "auto_merge", default=None,
              help="Merge the pull request (default: on, or FLOWERSHOW_AUTO_MERGE).")
@click.option("--dry-run", "-n", is_flag=True, default=False, help="Show what would be published.")
@click.pass_context
def publish(ctx, new, changed, deleted, branch_name, auto_merge, dry_run):
    """Publish new and changed files and delete removed ones, as one batch."""
    publisher = _open_publisher(ctx, auto_merge=auto_merge)
    with _errors():
        st = publisher.get_publish_status()
    batch = st.batch(new=new, changed=changed, deleted=deleted, branch_name_hint=branch_name)

    if batch.empty:
        click.echo("Nothing to publish.")
        return
    if dry_run:
        for f in batch.files_to_publish:
            click.echo(f"push   {f.path}")
        for p in batch.files_to_delete:
            click.echo(f"delete {p}")
        return

    _status(ctx, f"Publishing {len(batch.files_to_publish)} file(s), deleting {len(batch.files_to_delete)}")
    with _errors():
        result = publisher.publish_batch(batch)

    if result.pr_number is None:
        click.echo(f"Published {len(result.published)}, deleted {len(result.deleted)}.")
        return
    click.echo(f"Pull request #{result.pr_number}: {result.pr_url}")
    click.echo(f"Branch: {result.branch}")
    click.echo(f"Merge: {result.state}")


@main.command("publish-note")
@click.argument("path")
@click.pass_context
def publish_note(ctx, path):
    """Publish one note and its embedded images directly to the base branch."""
    publisher = _open_publisher(ctx)
    try:
        record = publisher.vault.read(path)
    except (OSError, ValueError) as exc:
        raise click.ClickException(f"Cannot read {path}: {exc}")
    with _errors():
        embeds = publisher.publish_one(record)
    click.echo(f"Published {record.path}")
    for e in embeds:
        if e.ok:
            click.echo(f"  + {e.path}")
        else:
            click.echo(f"  skipped {e.link} ({e.skip_reason})", err=True)


@main.command()
@click.argument("path")
@click.pass_context
def unpublish(ctx, path):
    """Delete one published path from the base branch."""
    publisher = _open_publisher(ctx)
    with _errors():
        publisher.unpublish_one(path)
    click.echo(f"Unpublished {path}")
