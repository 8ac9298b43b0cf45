"""
Playbook run orchestration against one cluster.

A :class:`RunOrchestrator` ties a cluster's live inventory to a
:class:`~gadmin.workspace.RunWorkspace`.  A run moves through::

    created -> targets resolved (optional) -> playbook staged -> invocation built

and only then may the runner be executed.  Execution is a single blocking
``ansible-runner`` process; there is no retry and no timeout.
"""

from __future__ import annotations

import logging
import subprocess
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import (
    EmptyTargetError,
    InvocationNotReadyError,
    NoMatchingHostsError,
    RunnerExecutionError,
)
from .inventory import Cluster, InventoryStore
from .rootfs import ScopedRoot
from .workspace import RunWorkspace

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    CREATED = "created"
    TARGETS_RESOLVED = "targets_resolved"
    PLAYBOOK_STAGED = "playbook_staged"
    INVOCATION_BUILT = "invocation_built"


@dataclass(frozen=True)
class TargetOverride:
    """Explicit hosts for a run, and the groups they came from if any."""

    kind: str
    requested: Tuple[str, ...]
    hosts: Tuple[str, ...]
    membership: Dict[str, List[str]] = field(default_factory=dict, compare=False)

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "kind": self.kind,
            "requested": list(self.requested),
            "hosts": list(self.hosts),
        }
        if self.membership:
            data["membership"] = {host: list(groups) for host, groups in self.membership.items()}
        return data


@dataclass(frozen=True)
class Invocation:
    """Fully resolved description of one runner process."""

    executable: str
    playbook: str
    ident: str
    base_dir: str
    target: Optional[TargetOverride] = None

    def __post_init__(self) -> None:
        for name in ("executable", "playbook", "ident", "base_dir"):
            if not getattr(self, name):
                raise ValueError(f"Invocation requires a non-empty {name}")

    @property
    def command(self) -> List[str]:
        cmd = [self.executable, "-p", self.playbook, "-i", self.ident, "run", self.base_dir]
        if self.target is not None:
            cmd.extend(["--limit", ",".join(self.target.hosts)])
        return cmd

    @property
    def artifacts_dir(self) -> Path:
        return Path(self.base_dir) / "artifacts" / self.ident

    def to_dict(self) -> Dict[str, object]:
        return {
            "executable": self.executable,
            "playbook": self.playbook,
            "ident": self.ident,
            "base_dir": self.base_dir,
            "target": self.target.to_dict() if self.target else None,
            "command": self.command,
        }


@dataclass
class RunResult:
    """Outcome of executing an invocation."""

    status: str
    invocation: Invocation
    rc: int
    stdout: str = ""
    stderr: str = ""

    @property
    def artifacts_dir(self) -> Path:
        return self.invocation.artifacts_dir

    def to_dict(self) -> Dict[str, object]:
        from .formatters import format_run_result  # Local import to avoid circular

        return {
            "status": self.status,
            "rc": self.rc,
            "ident": self.invocation.ident,
            "playbook": self.invocation.playbook,
            "artifacts": str(self.artifacts_dir),
            "command": self.invocation.command,
            "summary": format_run_result(self),
        }


class RunOrchestrator:
    """
    Prepare and launch one runner invocation for a cluster.

    The orchestrator holds the caller's :class:`Cluster` object rather than a
    copy, so group resolution always sees the cluster's current document.
    Only one holder should replace that document at a time; use
    :meth:`refresh` to pull the persisted version back in.
    """

    def __init__(
        self,
        workspace_path: str | Path,
        cluster: Cluster,
        runner: str | Path,
        root: Optional[ScopedRoot] = None,
    ):
        self.workspace = RunWorkspace(workspace_path, root)
        self.cluster = cluster
        self.runner = str(runner)
        self.state = RunState.CREATED
        self.target: Optional[TargetOverride] = None
        self.playbook: Optional[Path] = None
        self.invocation: Optional[Invocation] = None

    @property
    def base_dir(self) -> Path:
        return self.workspace.base_dir

    def refresh(self, store: InventoryStore) -> Cluster:
        return store.refresh_cluster(self.cluster)

    # --- targets ---------------------------------------------------------

    def set_target(self, kind: str, targets: Sequence[str]) -> TargetOverride:
        if kind == "hosts":
            return self.set_explicit_hosts(targets)
        if kind in ("group", "groups"):
            return self.set_explicit_groups(targets)
        raise ValueError(f'Target type must be either "hosts" or "group". Supplied {kind!r}.')

    def set_explicit_hosts(self, hosts: Sequence[str]) -> TargetOverride:
        if not hosts:
            raise EmptyTargetError("No targets provided.")
        self._retarget(TargetOverride(kind="hosts", requested=tuple(hosts), hosts=tuple(hosts)))
        logger.debug("Run targets overridden with hosts %s", list(hosts))
        return self.target

    def set_explicit_groups(self, groups: Sequence[str]) -> TargetOverride:
        if not groups:
            raise EmptyTargetError("No targets provided.")

        membership = self.cluster.inventory.resolve_targets(groups)
        if not membership:
            raise NoMatchingHostsError(f"No hosts found in the group(s) provided: {', '.join(groups)}")

        self._retarget(
            TargetOverride(
                kind="groups",
                requested=tuple(groups),
                hosts=tuple(membership),
                membership=membership,
            )
        )
        logger.debug("Run targets resolved from groups %s to %d hosts", list(groups), len(membership))
        return self.target

    def _retarget(self, target: TargetOverride) -> None:
        # A built invocation carries the old --limit and must be rebuilt.
        self.target = target
        if self.invocation is not None:
            logger.info("Targets changed; discarding invocation %s", self.invocation.ident)
            self.invocation = None
        self.state = RunState.PLAYBOOK_STAGED if self.playbook is not None else RunState.TARGETS_RESOLVED

    # --- staging and invocation -----------------------------------------

    def prepare_workspace(self) -> Path:
        return self.workspace.prepare()

    def stage_inventory(self) -> Path:
        return self.workspace.stage_inventory(self.cluster)

    def stage_playbook(self, path: str | Path) -> Path:
        self.playbook = self.workspace.stage_playbook(path)
        self._advance(RunState.PLAYBOOK_STAGED)
        return self.playbook

    def build_invocation(self, ident: Optional[str] = None) -> Invocation:
        """Build the runner invocation, replacing any earlier one."""
        if self.playbook is None:
            raise InvocationNotReadyError("No playbook staged. Call RunOrchestrator.stage_playbook() first.")

        self.invocation = Invocation(
            executable=self.runner,
            playbook=str(self.playbook),
            ident=ident or uuid.uuid4().hex[:8],
            base_dir=str(self.base_dir),
            target=self.target,
        )
        self.state = RunState.INVOCATION_BUILT
        logger.info("Built invocation %s for cluster %r", self.invocation.ident, self.cluster.name)
        return self.invocation

    def execute(self) -> RunResult:
        if self.invocation is None:
            raise InvocationNotReadyError("Invocation not setup. Call RunOrchestrator.build_invocation() first.")

        invocation = self.invocation
        logger.info("Running %s", " ".join(invocation.command))
        try:
            proc = subprocess.run(
                invocation.command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise RunnerExecutionError(f"Unable to start {invocation.executable!r}: {exc}") from exc

        status = "completed" if proc.returncode == 0 else "failed"
        logger.info("Run %s finished with exit code %d", invocation.ident, proc.returncode)
        return RunResult(
            status=status,
            invocation=invocation,
            rc=proc.returncode,
            stdout=proc.stdout,
            stderr=proc.stderr,
        )

    def _advance(self, state: RunState) -> None:
        # State only moves forward.
        order = list(RunState)
        if order.index(state) > order.index(self.state):
            self.state = state


def prepare_run(
    store: InventoryStore,
    cluster_name: str,
    playbook: str | Path,
    runs_dir: Path,
    runner: str | Path,
    hosts: Optional[Sequence[str]] = None,
    groups: Optional[Sequence[str]] = None,
    ident: Optional[str] = None,
) -> RunOrchestrator:
    """
    Load a cluster, lay out a fresh workspace under ``runs_dir`` and build the
    invocation for ``playbook``.  Nothing is executed.
    """
    if hosts and groups:
        raise ValueError("Pass either hosts or groups, not both")

    cluster = store.load_cluster(cluster_name)
    ident = ident or uuid.uuid4().hex[:8]

    orchestrator = RunOrchestrator(ident, cluster, runner, root=ScopedRoot(runs_dir))
    if hosts:
        orchestrator.set_explicit_hosts(hosts)
    elif groups:
        orchestrator.set_explicit_groups(groups)

    orchestrator.prepare_workspace()
    orchestrator.stage_inventory()
    orchestrator.stage_playbook(playbook)
    orchestrator.build_invocation(ident)
    return orchestrator
