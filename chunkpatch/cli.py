"""CLI entrypoint for chunkpatch."""

import sys
from pathlib import Path

import click

from . import __version__


def _session_from_ctx(ctx: click.Context):
    from .commands import resolve_session, resolve_settings

    obj = ctx.obj
    try:
        settings = resolve_settings(obj["settings_path"])
        session = resolve_session(
            settings,
            host_version=obj["host_version"],
            host_page=obj["host_page"],
            url=obj["url"],
        )
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    return settings, session


@click.group()
@click.version_option(__version__, prog_name="chunkpatch")
@click.option(
    "--state-dir",
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
    default=Path(".chunkpatch"),
    show_default=True,
    help="Directory holding the patch cache, signature and patch.log",
)
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Settings file (.toml, .yml or .yaml)",
)
@click.option("--host-version", type=str, default=None, help="Host application version (part of the cache signature)")
@click.option(
    "--host-page",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Host HTML page to read the version from (gamepass-app-version meta tag)",
)
@click.option("--url", type=str, default=None, help="Page URL; a /play/ path means the session starts in a stream")
@click.pass_context
def cli(
    ctx: click.Context,
    state_dir: Path,
    settings_path: Path | None,
    host_version: str | None,
    host_page: Path | None,
    url: str | None,
) -> None:
    """chunkpatch - Rule-based patching of host code chunks.

    Rewrites xCloud web player chunks with an ordered rule catalog,
    remembering which rule matched which chunk across runs.
    """
    ctx.ensure_object(dict)
    ctx.obj["state_dir"] = state_dir
    ctx.obj["settings_path"] = settings_path
    ctx.obj["host_version"] = host_version
    ctx.obj["host_page"] = host_page
    ctx.obj["url"] = url


@cli.command()
@click.argument("chunks", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--out",
    "out_dir",
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Write every chunk (patched or not) to this directory",
)
@click.option("--in-place", is_flag=True, help="Overwrite patched chunks in place")
@click.option("--dry-run", is_flag=True, help="Report what would change; write nothing")
@click.option("--verbose", is_flag=True, help="Echo the patch log to stderr")
@click.pass_context
def patch(
    ctx: click.Context,
    chunks: tuple[Path, ...],
    out_dir: Path | None,
    in_place: bool,
    dry_run: bool,
    verbose: bool,
) -> None:
    """Patch chunk files, one batch per file in argument order.

    Examples:

        chunkpatch --host-version 1.2.3 patch chunks/*.js --out patched/

        chunkpatch --url https://www.xbox.com/play/launch/x patch main.js --dry-run
    """
    from .commands.patch_cmd import run_patch

    settings, session = _session_from_ctx(ctx)
    try:
        exit_code = run_patch(
            list(chunks),
            ctx.obj["state_dir"],
            settings,
            session,
            out_dir=out_dir,
            in_place=in_place,
            dry_run=dry_run,
            verbose=verbose,
        )
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    sys.exit(exit_code)


@cli.command()
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def rules(ctx: click.Context, output_json: bool) -> None:
    """List catalog rules and the phase each lands in."""
    from .commands.rules_cmd import run_rules

    settings, session = _session_from_ctx(ctx)
    sys.exit(run_rules(settings, session, output_json=output_json))


@cli.group()
def cache() -> None:
    """Inspect or reset the persisted rule-to-chunk cache."""
    pass


@cache.command("show")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def cache_show(ctx: click.Context, output_json: bool) -> None:
    """Show cached rule associations per chunk."""
    from .commands.cache_cmd import run_cache_show

    sys.exit(run_cache_show(ctx.obj["state_dir"], output_json=output_json))


@cache.command("clear")
@click.pass_context
def cache_clear(ctx: click.Context) -> None:
    """Forget every cached association."""
    from .commands.cache_cmd import run_cache_clear

    sys.exit(run_cache_clear(ctx.obj["state_dir"]))


@cli.command()
@click.pass_context
def signature(ctx: click.Context) -> None:
    """Show the current cache signature and whether the stored one matches."""
    from .commands.cache_cmd import run_signature

    settings, session = _session_from_ctx(ctx)
    sys.exit(run_signature(ctx.obj["state_dir"], settings, session))


@cli.command("log")
@click.option("--last", "last_n", type=int, default=None, help="Show only the last N entries")
@click.pass_context
def log_cmd(ctx: click.Context, last_n: int | None) -> None:
    """Show the patch log."""
    from .commands.cache_cmd import run_log

    run_log(ctx.obj["state_dir"], last_n=last_n)


@cli.command()
@click.argument("chunk_dir", type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path))
@click.option(
    "--out",
    "out_dir",
    required=True,
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
    help="Directory for patched copies",
)
@click.option("--verbose", is_flag=True, help="Echo the patch log to stderr")
@click.pass_context
def watch(ctx: click.Context, chunk_dir: Path, out_dir: Path, verbose: bool) -> None:
    """Patch chunks as they are written to CHUNK_DIR.

    Runs until interrupted (Ctrl+C).
    """
    from .commands.watch_cmd import run_watch

    settings, session = _session_from_ctx(ctx)
    run_watch(chunk_dir, out_dir, ctx.obj["state_dir"], settings, session, verbose=verbose)


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
