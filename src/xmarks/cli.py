"""Click CLI with commands: whoami, sync, status, topics, discover, classify, thread, reset."""

from __future__ import annotations

import click

from xmarks.categories import (
    get_categories_with_counts,
    get_classification_state,
    get_total_post_count,
    get_unclassified_count,
    reset_classification_state,
)
from xmarks.classify import classify_bookmarks, discover_topics
from xmarks.config import load_config
from xmarks.db import get_engine, init_db
from xmarks.errors import XmarksError
from xmarks.logging import setup_logging
from xmarks.reasoning import ReasoningClient
from xmarks.source import BirdClient
from xmarks.sync import get_sync_state, get_thread, reset_sync_state, sync_bookmarks
from xmarks.worker import run_loop, worker_options


@click.group()
@click.option("--config", "config_path", default="config.yaml", help="Path to config YAML file.")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logs on the console.")
@click.pass_context
def cli(ctx: click.Context, config_path: str, verbose: bool) -> None:
    """xmarks: personal X bookmark archive."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    cfg = load_config(config_path)
    ctx.obj["config"] = cfg

    engine = get_engine(cfg.settings.database_url)
    init_db(engine)
    ctx.obj["engine"] = engine


@cli.command()
@click.pass_context
def whoami(ctx: click.Context) -> None:
    """Check that the bird CLI is authenticated."""
    cfg = ctx.obj["config"]
    if BirdClient.from_settings(cfg.settings).check_auth():
        click.echo("Authenticated.")
        return
    click.echo("Not authenticated. Log in to X in Safari, then retry.")
    raise SystemExit(1)


@cli.command()
@worker_options(default_interval=3600)
@click.pass_context
def sync(ctx: click.Context, loop: bool, interval: int) -> None:
    """Import bookmarks from bird into the archive."""
    cfg = ctx.obj["config"]
    engine = ctx.obj["engine"]
    log = setup_logging(cfg.settings.log_dir, "sync", verbose=ctx.obj["verbose"])
    source = BirdClient.from_settings(cfg.settings)

    def _once() -> int:
        result = sync_bookmarks(engine, source, log)
        click.echo(f"Synced {result.synced} bookmarks at {result.last_sync_at}")
        return result.synced

    if loop:
        run_loop(_once, loop=True, interval=interval, log=log, name="sync")
        return

    try:
        _once()
    except XmarksError as exc:
        raise click.ClickException(f"Sync failed: {exc}") from exc


@cli.command()
@click.pass_context
def discover(ctx: click.Context) -> None:
    """Replace the topic taxonomy with one proposed by the reasoning tool."""
    cfg = ctx.obj["config"]
    engine = ctx.obj["engine"]
    log = setup_logging(cfg.settings.log_dir, "discover", verbose=ctx.obj["verbose"])

    try:
        created = discover_topics(engine, ReasoningClient.from_settings(cfg.settings), cfg.classification, log)
    except XmarksError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(f"Discovered {len(created)} topics:")
    for category in created:
        prefix = f"{category.emoji} " if category.emoji else ""
        click.echo(f"  {prefix}{category.name}: {category.description or ''}")


@cli.command()
@click.pass_context
def classify(ctx: click.Context) -> None:
    """Assign every unclassified bookmark to a topic."""
    cfg = ctx.obj["config"]
    engine = ctx.obj["engine"]
    log = setup_logging(cfg.settings.log_dir, "classify", verbose=ctx.obj["verbose"])

    try:
        classified = classify_bookmarks(engine, ReasoningClient.from_settings(cfg.settings), cfg.classification, log)
    except XmarksError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(f"Classified {classified} bookmarks.")


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show sync and classification state."""
    engine = ctx.obj["engine"]

    sync_state = get_sync_state(engine)
    click.echo("\n=== Sync ===")
    click.echo(f"  Status: {sync_state.status}")
    click.echo(f"  Last sync: {sync_state.last_sync_at or 'never'}  |  Synced last pass: {sync_state.total_synced}")
    if sync_state.error_message:
        click.echo(f"  Error: {sync_state.error_message}")

    state = get_classification_state(engine)
    click.echo("\n=== Classification ===")
    phase = f" ({state.phase})" if state.phase else ""
    click.echo(f"  Status: {state.status}{phase}  |  Progress: {state.progress_current}/{state.progress_total}")
    click.echo(f"  Completed: {state.completed_at or 'never'}")
    if state.error_message:
        click.echo(f"  Error: {state.error_message}")

    click.echo("\n=== Posts ===")
    click.echo(f"  Total: {get_total_post_count(engine)}  |  Unclassified: {get_unclassified_count(engine)}")
    click.echo()


@cli.command()
@click.pass_context
def topics(ctx: click.Context) -> None:
    """List topics with their bookmark counts."""
    categories = get_categories_with_counts(ctx.obj["engine"])
    if not categories:
        click.echo("No topics yet. Run 'xmarks discover' first.")
        return
    for category in categories:
        prefix = f"{category.emoji} " if category.emoji else ""
        click.echo(f"  {category.post_count:>5}  {prefix}{category.name}")


@cli.command()
@click.argument("post_id")
@click.pass_context
def thread(ctx: click.Context, post_id: str) -> None:
    """Show the conversation around a bookmarked post."""
    cfg = ctx.obj["config"]
    log = setup_logging(cfg.settings.log_dir, "thread", verbose=ctx.obj["verbose"])
    posts = get_thread(ctx.obj["engine"], BirdClient.from_settings(cfg.settings), post_id, log)
    if not posts:
        click.echo(f"No thread found for {post_id}.")
        return
    for post in posts:
        click.echo(f"[{post.created_at}] @{post.author_handle}: {post.text}")


@cli.command()
@click.option("--sync", "only_sync", is_flag=True, help="Reset only the sync state.")
@click.option("--classification", "only_classification", is_flag=True, help="Reset only the classification state.")
@click.pass_context
def reset(ctx: click.Context, only_sync: bool, only_classification: bool) -> None:
    """Force stuck state rows back to idle after a crashed run."""
    engine = ctx.obj["engine"]
    both = not only_sync and not only_classification
    if only_sync or both:
        reset_sync_state(engine)
        click.echo("Sync state reset to idle.")
    if only_classification or both:
        reset_classification_state(engine)
        click.echo("Classification state reset to idle.")
