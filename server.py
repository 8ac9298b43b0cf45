#!/usr/bin/env python3
"""
gadmin MCP server entrypoint.

This module wires the cluster inventory and run orchestration helpers into
FastMCP tools.  Each tool returns structured dictionaries; errors come back as
``{"status": "failed", "error": ...}`` rather than exceptions.
"""

from __future__ import annotations

from typing import List, Optional

from fastmcp import FastMCP

from gadmin.config import RUNNER_NAME, get_settings
from gadmin.errors import GadminError
from gadmin.formatters import format_cluster, format_invocation, format_targets
from gadmin.inventory import InventoryStore
from gadmin.runner import prepare_run


mcp = FastMCP("gadmin")


def _store() -> InventoryStore:
    return InventoryStore.open(get_settings().inventory_dir)


def _failure(exc: Exception, **extra) -> dict:
    return {"status": "failed", "error": str(exc), "output": str(exc), **extra}


@mcp.tool()
def get_paths_info() -> dict:
    """Expose the resolved gadmin paths for debugging."""
    try:
        settings = get_settings()
    except GadminError as exc:
        return _failure(exc)
    return {
        "home": str(settings.home),
        "inventory_dir": str(settings.inventory_dir),
        "runs_dir": str(settings.runs_dir),
        "runner": str(settings.runner) if settings.runner else None,
    }


@mcp.tool()
def list_clusters() -> dict:
    """List the clusters defined in the inventory."""
    try:
        store = _store()
    except GadminError as exc:
        return _failure(exc)
    clusters = store.list_clusters()
    return {"inventory": str(store.directory), "count": len(clusters), "clusters": clusters}


@mcp.tool()
def show_cluster(name: str) -> dict:
    """Show the hosts and groups of one cluster."""
    try:
        cluster = _store().load_cluster(name)
    except GadminError as exc:
        return _failure(exc, cluster=name)
    return {**cluster.to_dict(), "output": format_cluster(cluster)}


@mcp.tool()
def create_cluster(name: str, hosts: List[str]) -> dict:
    """Create a new cluster with all hosts in the default group."""
    try:
        cluster = _store().create_cluster(name, hosts)
    except GadminError as exc:
        return _failure(exc, cluster=name)
    return {"status": "created", **cluster.to_dict()}


@mcp.tool()
def resolve_targets(cluster: str, groups: List[str]) -> dict:
    """Resolve groups to hosts, reporting which requested groups each host matched."""
    try:
        loaded = _store().load_cluster(cluster)
    except GadminError as exc:
        return _failure(exc, cluster=cluster)
    resolved = loaded.inventory.resolve_targets(groups)
    return {
        "cluster": cluster,
        "groups": groups,
        "count": len(resolved),
        "hosts": resolved,
        "output": format_targets(resolved),
    }


def _prepare(
    cluster: str,
    playbook: str,
    hosts: Optional[List[str]],
    groups: Optional[List[str]],
    ident: Optional[str],
    runner: str,
):
    settings = get_settings()
    return prepare_run(
        _store(),
        cluster,
        playbook,
        settings.runs_dir,
        runner,
        hosts=hosts,
        groups=groups,
        ident=ident,
    )


@mcp.tool()
def plan_run(
    cluster: str,
    playbook: str,
    hosts: Optional[List[str]] = None,
    groups: Optional[List[str]] = None,
    ident: Optional[str] = None,
) -> dict:
    """
    Prepare a run workspace and return the runner invocation without executing it.
    """
    settings = get_settings()
    try:
        orchestrator = _prepare(cluster, playbook, hosts, groups, ident, str(settings.runner or RUNNER_NAME))
    except (GadminError, ValueError) as exc:
        return _failure(exc, cluster=cluster, playbook=playbook)

    invocation = orchestrator.invocation
    return {
        "status": "planned",
        "cluster": cluster,
        "invocation": invocation.to_dict(),
        "output": format_invocation(invocation),
    }


@mcp.tool()
def run_playbook(
    cluster: str,
    playbook: str,
    hosts: Optional[List[str]] = None,
    groups: Optional[List[str]] = None,
    ident: Optional[str] = None,
) -> dict:
    """
    Execute a playbook against a cluster through ansible-runner.
    """
    try:
        runner = get_settings().require_runner()
        orchestrator = _prepare(cluster, playbook, hosts, groups, ident, str(runner))
        result = orchestrator.execute()
    except (GadminError, ValueError) as exc:
        return _failure(exc, cluster=cluster, playbook=playbook)

    details = result.to_dict()
    return {
        "status": details.get("status"),
        "cluster": cluster,
        "rc": details.get("rc"),
        "output": details.get("summary"),
        "details": details,
    }


if __name__ == "__main__":
    mcp.run()
