"""
Pulp Slimmer — CLI Entry Point

Usage:
    pulp-slimmer create-new   -f repos_to_mirror.yaml
    pulp-slimmer use-existing -f repos_to_mirror.yaml -l testbuild-6.6.0
    pulp-slimmer teardown     -f repos_to_mirror.yaml
    pulp-slimmer slim-status
"""

from __future__ import annotations

# Load .env file FIRST, before any other imports that might read env vars
from pathlib import Path
from dotenv import load_dotenv

_env_file = Path.cwd() / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

import click

from .cli.mirror import create_new, slim_status, teardown, use_existing
from .config.settings import PulpSettings
from .engine.errors import ConfigError
from .logging_config import setup_logging


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Run verbosely (DEBUG logging)")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Pulp Slimmer — Mirror RPM repos into Pulp and build slim repos from them."""
    setup_logging(level="DEBUG" if verbose else None)

    ctx.ensure_object(dict)
    if "settings" not in ctx.obj:
        try:
            ctx.obj["settings"] = PulpSettings.from_env()
        except ConfigError as e:
            click.secho(f"Configuration error: {e}", fg="red", err=True)
            ctx.exit(e.exit_code)


cli.add_command(create_new)
cli.add_command(use_existing)
cli.add_command(teardown)
cli.add_command(slim_status)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
