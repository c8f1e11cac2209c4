"""Shared helpers, the progress printer, and the main CLI group."""

from __future__ import annotations

import logging
from contextlib import contextmanager

import click

from ..config import BACKENDS, PublishConfig
from ..exceptions import PartialBatchFailure, PublishError, PullRequestCreationFailed
from ..publisher import Publisher
from ..vault import LocalVault


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _status(ctx, msg):
    """Emit a status message to stderr when verbose mode (-v) is on."""
    if ctx.obj.get("verbose"):
        click.echo(msg, err=True)


class _EchoHandler(logging.Handler):
    """Log handler writing through click.echo, to stderr."""

    def emit(self, record):
        try:
            click.echo(self.format(record), err=True)
        except Exception:
            self.handleError(record)


def _configure_logging(verbose: int) -> None:
    if not verbose:
        return
    logger = logging.getLogger("flowershow")
    if not any(isinstance(h, _EchoHandler) for h in logger.handlers):
        handler = _EchoHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose > 1 else logging.INFO)


def _build_config(ctx, **overrides) -> PublishConfig:
    """Environment settings, then global options, then *overrides*."""
    config = PublishConfig.from_env()
    changes = {k: v for k, v in ctx.obj.get("settings", {}).items() if v not in (None, ())}
    changes.update({k: v for k, v in overrides.items() if v is not None})
    if changes:
        config = config.replace(**changes)
    return config


def _open_publisher(ctx, **overrides) -> Publisher:
    config = _build_config(ctx, **overrides)
    with _errors():
        vault = LocalVault(ctx.obj["vault"], config)
        publisher = Publisher(config, vault, progress=_EchoProgress())
    _status(ctx, f"Vault {vault.root} -> {publisher.repository!r} ({config.branch})")
    return publisher


@contextmanager
def _errors():
    """Turn library errors into ClickExceptions with actionable text."""
    try:
        yield
    except PartialBatchFailure as exc:
        lines = [str(exc), f"Working branch left in place: {exc.branch}"]
        if exc.committed:
            lines.append("Committed: " + ", ".join(exc.committed))
        lines.append("Remaining: " + ", ".join(exc.remaining))
        raise click.ClickException("\n".join(lines))
    except PullRequestCreationFailed as exc:
        raise click.ClickException(f"{exc}\nWorking branch left in place: {exc.branch}")
    except PublishError as exc:
        raise click.ClickException(str(exc))


class _EchoProgress:
    """ProgressSink that prints one line per file to stderr."""

    def on_publish(self, done, total, path):
        click.echo(f"[{done}/{total}] pushed {path}", err=True)

    def on_delete(self, done, total, path):
        click.echo(f"[{done}/{total}] deleted {path}", err=True)

    def on_complete(self, result):
        pass

    def on_error(self, error):
        pass


# ---------------------------------------------------------------------------
# Main group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--vault", "-C", "vault", type=click.Path(file_okay=False), envvar="FLOWERSHOW_VAULT",
              default=".", show_default=True, help="Vault directory (or set FLOWERSHOW_VAULT).")
@click.option("--owner", help="Repository owner (or set FLOWERSHOW_OWNER).")
@click.option("--repo", help="Repository name (or set FLOWERSHOW_REPO).")
@click.option("--token", help="Access token (or set FLOWERSHOW_TOKEN).")
@click.option("--branch", "-b", help="Base branch (default: main).")
@click.option("--backend", type=click.Choice(BACKENDS), help="Remote backend (default: github).")
@click.option("--objects-url", "objects_url", help="Base URL of the object-storage backend.")
@click.option("--exclude", "exclude_patterns", multiple=True,
              help="Exclude paths matching this regex (repeatable; replaces the default).")
@click.option("-v", "--verbose", count=True, help="Verbose output on stderr (-vv for debug).")
@click.pass_context
def main(ctx, vault, owner, repo, token, branch, backend, objects_url, exclude_patterns, verbose):
    """flowershow — publish a notes vault to a Git-hosted site.

    \b
    Quick start:
      export FLOWERSHOW_OWNER=me FLOWERSHOW_REPO=garden FLOWERSHOW_TOKEN=...
      flowershow -C ~/notes status
      flowershow -C ~/notes publish

    \b
    Batches are committed to a fresh branch, proposed as a pull request
    and merged (or queued for auto-merge) when --auto-merge is on.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["vault"] = vault
    ctx.obj["settings"] = {
        "owner": owner,
        "repo": repo,
        "token": token,
        "branch": branch,
        "backend": backend,
        "objects_url": objects_url,
        "exclude_patterns": tuple(exclude_patterns),
    }
    _configure_logging(verbose)
