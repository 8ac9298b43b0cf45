"""
CLI entrypoints for gadmin.

Every command runs the startup guards first: not running as root, and
``$GADMIN_HOME`` (or ``--home``) naming an absolute, writable directory.
Failures print to stderr and exit with a distinguishing status.
"""

from __future__ import annotations

import logging
import os
from typing import List, NoReturn, Optional

import anyio
import typer

from gadmin.config import RUNNER_NAME, configure_settings, ensure_not_root, get_settings, validate_home
from gadmin.errors import ConfigurationError, GadminError, RunnerNotFoundError
from gadmin.formatters import (
    format_cluster,
    format_cluster_list,
    format_invocation,
    format_run_result,
    format_targets,
)
from gadmin.inventory import InventoryStore
from gadmin.runner import prepare_run

EXIT_HOME = 254
EXIT_RUNNER = 253
EXIT_FAILED = 1

app = typer.Typer(help="Administer clusters and run playbooks against them.", no_args_is_help=True)


def main() -> None:
    """Entrypoint for the ``gadmin`` command."""
    app()


def _fail(message: str, code: int = EXIT_FAILED) -> NoReturn:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code)


def _split(values: Optional[List[str]]) -> List[str]:
    items: List[str] = []
    for value in values or []:
        items.extend(part.strip() for part in value.split(",") if part.strip())
    return items


def _store() -> InventoryStore:
    return InventoryStore.open(get_settings().inventory_dir)


@app.callback()
def _startup(
    home: str = typer.Option(None, envvar="GADMIN_HOME", help="gadmin home directory"),
    runner: str = typer.Option(None, envvar="GADMIN_RUNNER", help="Path to the ansible-runner executable"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        ensure_not_root()
        if not home:
            raise ConfigurationError("$GADMIN_HOME not set")
        validate_home(home)
        configure_settings(home=home, runner=runner)
    except ConfigurationError as exc:
        _fail(f"{exc}; exiting.", EXIT_HOME)


@app.command("clusters")
def list_clusters() -> None:
    """List the clusters in the inventory."""
    try:
        store = _store()
    except GadminError as exc:
        _fail(str(exc))
    typer.echo(str(store))
    typer.echo(format_cluster_list(store.list_clusters()))


@app.command("create")
def create_cluster(
    name: str = typer.Argument(..., help="Cluster name"),
    hosts: List[str] = typer.Argument(..., help="Hosts to place in the cluster"),
) -> None:
    """Create a cluster with all hosts in the default group."""
    try:
        cluster = _store().create_cluster(name, _split(hosts))
    except GadminError as exc:
        _fail(str(exc))
    typer.echo(format_cluster(cluster))


@app.command("show")
def show_cluster(name: str = typer.Argument(..., help="Cluster name")) -> None:
    """Show a cluster's hosts and groups."""
    try:
        cluster = _store().load_cluster(name)
    except GadminError as exc:
        _fail(str(exc))
    typer.echo(format_cluster(cluster))


@app.command("targets")
def resolve_targets(
    name: str = typer.Argument(..., help="Cluster name"),
    groups: List[str] = typer.Argument(..., help="Groups to resolve, in order"),
) -> None:
    """Resolve groups to hosts and show which groups each host matched."""
    try:
        cluster = _store().load_cluster(name)
    except GadminError as exc:
        _fail(str(exc))
    typer.echo(format_targets(cluster.inventory.resolve_targets(_split(groups))))


@app.command("run")
def run_playbook(
    name: str = typer.Argument(..., help="Cluster name"),
    playbook: str = typer.Argument(..., help="Playbook file to run"),
    hosts: Optional[List[str]] = typer.Option(None, "--hosts", help="Run only against these hosts"),
    groups: Optional[List[str]] = typer.Option(None, "--groups", help="Run only against hosts in these groups"),
    ident: Optional[str] = typer.Option(None, help="Run identifier"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Prepare the run and print the command only"),
) -> None:
    """Run a playbook against a cluster through ansible-runner."""
    settings = get_settings()
    if dry_run:
        runner = str(settings.runner or RUNNER_NAME)
    else:
        try:
            runner = str(settings.require_runner())
        except RunnerNotFoundError as exc:
            _fail(str(exc), EXIT_RUNNER)

    try:
        orchestrator = prepare_run(
            _store(),
            name,
            os.path.expanduser(playbook),
            settings.runs_dir,
            runner,
            hosts=_split(hosts),
            groups=_split(groups),
            ident=ident,
        )
    except (GadminError, ValueError) as exc:
        _fail(str(exc))

    typer.echo(format_invocation(orchestrator.invocation))
    if dry_run:
        return

    try:
        result = orchestrator.execute()
    except GadminError as exc:
        _fail(str(exc), EXIT_RUNNER)
    typer.echo(format_run_result(result))
    if result.rc != 0:
        raise typer.Exit(result.rc)


@app.command("serve")
def serve() -> None:
    """Run the MCP server in STDIO mode."""
    from server import mcp

    anyio.run(mcp.run_stdio_async)


if __name__ == "__main__":
    main()
