"""
Core package for gadmin, the cluster administration tool.

This package provides the cluster inventory model and its on-disk store, the
per-run workspace layout, and the orchestrator that turns a cluster and a
playbook into a single ``ansible-runner`` invocation.
"""

from .config import Settings, get_settings  # noqa: F401
from .inventory import Cluster, HostGroupDocument, InventoryStore  # noqa: F401
from .rootfs import ScopedRoot  # noqa: F401
from .runner import Invocation, RunOrchestrator, RunResult  # noqa: F401
from .workspace import RunWorkspace  # noqa: F401
