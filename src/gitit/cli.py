"""CLI interface for gitit."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .cache import cache_directory
from .config import EnvironmentSettings, load_config
from .errors import GititError
from .hooks import failed_hook
from .pipeline import download_template_sync
from .utils import configure_logging, console

logger = logging.getLogger(__name__)


def failure_message(exc: BaseException) -> str:
    """Single-line ``<stage> failed: <reason>`` summary of ``exc``."""
    if isinstance(exc, GititError):
        stage = exc.stage
    else:
        hook = failed_hook(exc)
        stage = f"{hook} hook" if hook else "gitit"
    reason = " ".join(str(exc).split()) or type(exc).__name__
    return f"{stage} failed: {reason}"


@click.group()
@click.version_option(__version__, prog_name="gitit")
def cli() -> None:
    """Download project templates from git hosts, URLs and registries."""
    pass


@cli.command("clone")
@click.argument("template")
@click.argument("destination", metavar="DIR", required=False)
@click.option("--force", is_flag=True, help="Extract into an existing, non-empty directory")
@click.option(
    "--force-clean",
    is_flag=True,
    help="Remove the destination directory before extracting",
)
@click.option(
    "--install/--no-install",
    default=None,
    help="Install dependencies with the detected package manager",
)
@click.option("--silent", is_flag=True, help="Hide package manager output")
@click.option("--auth", default=None, help="Token sent as 'Authorization: Bearer <auth>'")
@click.option(
    "--cwd",
    default=None,
    type=click.Path(file_okay=False),
    help="Directory the destination is resolved against",
)
@click.option("--offline", is_flag=True, help="Only use the local cache")
@click.option(
    "--prefer-offline",
    is_flag=True,
    help="Use the local cache when present, download otherwise",
)
@click.option("--registry", default=None, help="Template registry URL")
@click.option("--no-registry", is_flag=True, help="Disable registry lookups")
@click.option("--provider", default=None, help="Provider used when TEMPLATE has no prefix")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logs")
def clone_cmd(
    template: str,
    destination: Optional[str],
    force: bool,
    force_clean: bool,
    install: Optional[bool],
    silent: bool,
    auth: Optional[str],
    cwd: Optional[str],
    offline: bool,
    prefer_offline: bool,
    registry: Optional[str],
    no_registry: bool,
    provider: Optional[str],
    verbose: bool,
) -> None:
    """
    Download TEMPLATE and extract it into DIR.

    TEMPLATE is [provider:]source, e.g. gh:org/repo/subdir#ref, a registry
    name, or an https:// URL. DIR defaults to the template's name.
    Values from a gitit.config.yml found above the working directory are
    used as defaults.
    """
    try:
        config = load_config(cwd=Path(cwd) if cwd else None)
        env = EnvironmentSettings.from_env()
        log = configure_logging(verbose or config.verbose or env.debug)

        options = config.to_options(
            dir=destination,
            cwd=cwd,
            force=force or None,
            force_clean=force_clean or None,
            install=install,
            silent=silent or None,
            auth=auth,
            offline=offline or None,
            prefer_offline=prefer_offline or None,
            registry=False if no_registry else registry,
            provider=provider,
        )
        result = download_template_sync(template, options, log=log)
    except Exception as e:
        logger.debug("clone failed", exc_info=True)
        console.print(
            failure_message(e),
            style="red",
            markup=False,
            highlight=False,
            soft_wrap=True,
        )
        sys.exit(1)

    console.print(
        f"✨ Successfully cloned {result.name} to {result.dir}",
        style="green",
        markup=False,
        highlight=False,
        soft_wrap=True,
    )


cli.add_command(clone_cmd, "create")
cli.add_command(clone_cmd, "new")


@cli.command("cache-dir")
def cache_dir_cmd() -> None:
    """Print the directory downloaded tarballs are cached in."""
    click.echo(str(cache_directory()))


if __name__ == "__main__":
    cli()
