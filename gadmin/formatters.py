"""
Formatting helpers for human readable summaries.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterable, List

from .inventory import Cluster

if TYPE_CHECKING:  # pragma: no cover
    from .runner import Invocation, RunResult


def format_cluster_list(names: Iterable[str]) -> str:
    names = list(names)
    if not names:
        return "No clusters defined."
    return "\n".join(f"- {name}" for name in names)


def format_cluster(cluster: Cluster) -> str:
    """Render a cluster's hosts and group membership."""
    inventory = cluster.inventory
    lines: List[str] = []
    lines.append("=" * 80)
    lines.append(f"CLUSTER: {cluster.name}")
    lines.append("=" * 80)
    lines.append(f"Hosts: {len(inventory.hosts)}  Groups: {len(inventory.group_names())}")

    lines.append("")
    lines.append("Hosts:")
    for host, variables in inventory.hosts.items():
        if variables:
            assignments = " ".join(f"{key}={value}" for key, value in variables.items())
            lines.append(f"  - {host} {assignments}")
        else:
            lines.append(f"  - {host}")

    lines.append("")
    lines.append("Groups:")
    for group in inventory.group_names():
        members = inventory.all_host_names() if group == "all" else inventory.hosts_in_group(group)
        lines.append(f"  - {group} ({len(members)}): {', '.join(members)}")

    return "\n".join(lines)


def format_targets(resolved: Dict[str, List[str]]) -> str:
    if not resolved:
        return "No hosts matched."
    width = max(len(host) for host in resolved)
    return "\n".join(
        f"{host.ljust(width)}  {', '.join(groups) if groups else '(all)'}" for host, groups in resolved.items()
    )


def format_invocation(invocation: "Invocation") -> str:
    lines = [
        f"Ident: {invocation.ident}",
        f"Playbook: {invocation.playbook}",
        f"Workspace: {invocation.base_dir}",
    ]
    if invocation.target is not None:
        lines.append(f"Targets ({invocation.target.kind}): {', '.join(invocation.target.hosts)}")
    lines.append(f"Command: {' '.join(invocation.command)}")
    return "\n".join(lines)


def format_run_result(result: "RunResult") -> str:
    """Render a concise summary for a runner execution."""
    lines: List[str] = []
    lines.append("=" * 80)
    lines.append(f"RUN: {result.invocation.ident}")
    lines.append("=" * 80)
    lines.append(f"Status: {result.status}  Exit code: {result.rc}")
    lines.append(f"Artifacts: {result.artifacts_dir}")

    stderr = result.stderr.strip()
    if stderr:
        lines.append("")
        lines.append("Errors:")
        for line in stderr.splitlines()[-20:]:
            lines.append(f"  {line}")

    return "\n".join(lines)
