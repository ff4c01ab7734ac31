"""
CLI mirror commands — create-new, use-existing, teardown and slim-status.

Usage:
    pulp-slimmer create-new   -f repos_to_mirror.yaml [-l LABEL] [--workers N]
    pulp-slimmer use-existing -f repos_to_mirror.yaml [-l LABEL] [-o OUTPUT] [--workers N]
    pulp-slimmer teardown     -f repos_to_mirror.yaml
    pulp-slimmer slim-status  [-o OUTPUT] [--json]
"""

from __future__ import annotations

import json
import logging
import signal
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, List, Optional, TypeVar

import click

from ..client.pulp_api import PulpClient
from ..config.repos_file import load_repos
from ..config.settings import BuildSession, PulpSettings
from ..engine.copy import ContentCopyPlanner
from ..engine.errors import ConfigError, SlimmerError
from ..engine.mirror import MirrorOrchestrator
from ..engine.pipeline import PipelineRunner, RunResult
from ..engine.reconciler import ResourceReconciler
from ..engine.slim import SlimRepoPipeline
from ..engine.tasks import TaskWaiter
from ..models.repos import RepoSpec
from ..persistence.ledger import RunLedger
from ..persistence.slim_repos_file import DEFAULT_OUTPUT, load_slim_repos

logger = logging.getLogger(__name__)

DEFAULT_REPOS_FILE = "repos_to_mirror.yaml"
DEFAULT_SESSION_LABEL = "testbuild-6.6.0"

T = TypeVar("T")


def _load_repos_option(ctx: click.Context, param: click.Parameter, value: str) -> List[RepoSpec]:
    """Click callback: the declared-mirrors file must exist and be valid YAML."""
    try:
        return load_repos(Path(value))
    except ConfigError as e:
        raise click.BadParameter(str(e), ctx=ctx, param=param)


repos_file_option = click.option(
    "-f", "--repos-rpms-file", "repos",
    default=DEFAULT_REPOS_FILE,
    show_default=True,
    callback=_load_repos_option,
    help="YAML file with repos/RPMs to include",
)
session_label_option = click.option(
    "-l", "--session-label",
    default=DEFAULT_SESSION_LABEL,
    show_default=True,
    help="Build session name, used for slim repo names and Pulp labels",
)
workers_option = click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=1,
    show_default=True,
    help="Repos processed in parallel (the content copy is always one call)",
)
ledger_option = click.option(
    "--ledger",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Append run events to this NDJSON file",
)


@contextmanager
def cancel_on_sigterm() -> Iterator[threading.Event]:
    """Set the yielded event on SIGTERM so task waits stop cleanly."""
    event = threading.Event()

    if threading.current_thread() is not threading.main_thread():
        yield event
        return

    def _handler(signum, frame):
        logger.warning("SIGTERM received, cancelling task waits")
        event.set()

    previous = signal.signal(signal.SIGTERM, _handler)
    try:
        yield event
    finally:
        signal.signal(signal.SIGTERM, previous)


def _run_guarded(ctx: click.Context, action: Callable[[], T]) -> T:
    """Single top-level handler: log a fatal engine error and exit with its code."""
    try:
        return action()
    except SlimmerError as e:
        logger.error(f"{type(e).__name__}: {e}")
        ctx.exit(e.exit_code)


def _report(ctx: click.Context, result: RunResult) -> None:
    for outcome in result.failures:
        click.secho(f"  ✗ {outcome.name}: {outcome.error}", fg="red", err=True)
    if result.exit_code:
        ctx.exit(result.exit_code)


@click.command("create-new")
@repos_file_option
@session_label_option
@workers_option
@ledger_option
@click.pass_context
def create_new(
    ctx: click.Context,
    repos: List[RepoSpec],
    session_label: str,
    workers: int,
    ledger: Optional[Path],
) -> None:
    """Delete existing + create new repo mirrors."""
    settings: PulpSettings = ctx.obj["settings"]
    session = BuildSession(session_label)

    def _do() -> RunResult:
        with cancel_on_sigterm() as cancel, PulpClient(settings, transport=ctx.obj.get("transport")) as pulp:
            waiter = TaskWaiter(pulp, settings.poll_interval, settings.task_deadline, cancel)
            orchestrator = MirrorOrchestrator(
                ResourceReconciler(pulp, waiter),
                session,
                PipelineRunner(RunLedger(ledger), workers),
            )
            return orchestrator.run(repos)

    result = _run_guarded(ctx, _do)
    for outcome in result.outcomes:
        if outcome.ok:
            click.echo(f"  ✓ {outcome.name}: {outcome.state.distribution_href}")
    _report(ctx, result)


@click.command("use-existing")
@repos_file_option
@session_label_option
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_OUTPUT,
    show_default=True,
    help="Where to write the slim repo records",
)
@workers_option
@ledger_option
@click.pass_context
def use_existing(
    ctx: click.Context,
    repos: List[RepoSpec],
    session_label: str,
    output: Path,
    workers: int,
    ledger: Optional[Path],
) -> None:
    """Build slim repos from existing repo mirrors."""
    settings: PulpSettings = ctx.obj["settings"]
    session = BuildSession(session_label)

    def _do() -> RunResult:
        with cancel_on_sigterm() as cancel, PulpClient(settings, transport=ctx.obj.get("transport")) as pulp:
            waiter = TaskWaiter(pulp, settings.poll_interval, settings.task_deadline, cancel)
            reconciler = ResourceReconciler(pulp, waiter)
            pipeline = SlimRepoPipeline(
                reconciler,
                ContentCopyPlanner(pulp, waiter),
                session,
                PipelineRunner(RunLedger(ledger), workers),
                prefix=settings.slim_prefix,
            )
            return pipeline.run(repos, output)

    result = _run_guarded(ctx, _do)

    click.echo(f"\nWrote slim repos data to: '{output}'", err=True)
    click.echo("\nSlim repos:")
    for record in result.records:
        click.echo(f"    {record.distro_url}")
    click.echo()
    _report(ctx, result)


@click.command("teardown")
@repos_file_option
@click.pass_context
def teardown(ctx: click.Context, repos: List[RepoSpec]) -> None:
    """Delete the repo, remote, publication and distribution of each declared mirror."""
    settings: PulpSettings = ctx.obj["settings"]

    def _do() -> None:
        with cancel_on_sigterm() as cancel, PulpClient(settings, transport=ctx.obj.get("transport")) as pulp:
            waiter = TaskWaiter(pulp, settings.poll_interval, settings.task_deadline, cancel)
            reconciler = ResourceReconciler(pulp, waiter)
            for spec in repos:
                reconciler.delete_mirror(spec.name)
                click.echo(f"  ✓ {spec.name} removed")

    _run_guarded(ctx, _do)


@click.command("slim-status")
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_OUTPUT,
    show_default=True,
    help="Slim repo records written by use-existing",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def slim_status(ctx: click.Context, output: Path, as_json: bool) -> None:
    """Show the slim repos recorded by the last use-existing run."""
    records = _run_guarded(ctx, lambda: load_slim_repos(output))

    if as_json:
        click.echo(json.dumps({name: r.model_dump() for name, r in records.items()}, indent=2))
        return

    if not records:
        click.echo("No slim repos recorded.")
        return

    click.echo(f"\n📦 Slim repos ({output})\n")
    for name, record in records.items():
        click.secho(f"  {name}", bold=True, nl=False)
        click.echo(f"  ← {record.source_repo_name}")
        click.echo(f"      {record.distro_url or '(not distributed)'}")
    click.echo()
