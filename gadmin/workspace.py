"""
Per-run working directory for the automation runner.

A :class:`RunWorkspace` owns one base directory laid out the way the runner
expects::

    <base>/
      inventory/   staged playbooks and the cluster inventory
      project/     runner working state

Directory creation is exclusive: the base directory is created at most once
per run and nothing is cleaned up when a later step fails.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Optional

from .errors import (
    PersistenceError,
    SourceNotReadableError,
    WorkspaceExistsError,
    WorkspaceNotWritableError,
)
from .inventory import Cluster, ensure_dir_writable, write_inventory_to_dir
from .rootfs import ScopedRoot

logger = logging.getLogger(__name__)

INPUT_DIRS = ("inventory", "project")


class RunWorkspace:
    def __init__(self, base_dir: str | Path, root: Optional[ScopedRoot] = None):
        if root is not None:
            self.base_dir = root.resolve(base_dir)
        else:
            self.base_dir = Path(os.path.abspath(base_dir))
        self.root = root

    def __repr__(self) -> str:
        return f"RunWorkspace({str(self.base_dir)!r})"

    @property
    def inventory_dir(self) -> Path:
        return self.base_dir / "inventory"

    @property
    def project_dir(self) -> Path:
        return self.base_dir / "project"

    def create_base_directory(self) -> Path:
        """Create the workspace root; fails if it already exists."""
        try:
            self.base_dir.mkdir(mode=0o755)
        except FileExistsError as exc:
            raise WorkspaceExistsError(f"Runner base directory {str(self.base_dir)!r} already exists") from exc
        except OSError as exc:
            raise PersistenceError(
                f"Unable to create the runner base directory {str(self.base_dir)!r}: {exc}", self.base_dir
            ) from exc
        logger.info("Created run workspace %s", self.base_dir)
        return self.base_dir

    def create_input_directories(self) -> None:
        ensure_dir_writable(self.base_dir, WorkspaceNotWritableError)

        for name in INPUT_DIRS:
            input_dir = self.base_dir / name
            try:
                input_dir.mkdir(mode=0o755)
            except OSError as exc:
                raise PersistenceError(f"Unable to create runner input directory {str(input_dir)!r}: {exc}", input_dir) from exc
        logger.debug("Created input directories in %s", self.base_dir)

    def prepare(self) -> Path:
        self.create_base_directory()
        self.create_input_directories()
        return self.base_dir

    def stage_playbook(self, source: str | Path) -> Path:
        """Copy a playbook byte-for-byte into the ``inventory`` directory."""
        src = Path(os.path.abspath(source))
        if not src.is_file() or not os.access(src, os.R_OK):
            raise SourceNotReadableError(f"Playbook {str(src)!r} is not a readable file")

        ensure_dir_writable(self.inventory_dir, WorkspaceNotWritableError)

        dst = self.inventory_dir / src.name
        try:
            shutil.copyfile(src, dst)
        except OSError as exc:
            raise PersistenceError(f"Failed to copy playbook from {str(src)!r} to {str(dst)!r}: {exc}", dst) from exc
        logger.info("Staged playbook %s", dst)
        return dst

    def stage_inventory(self, cluster: Cluster) -> Path:
        """Write the cluster's inventory document next to the staged playbooks."""
        return write_inventory_to_dir(cluster, self.inventory_dir, WorkspaceNotWritableError)
