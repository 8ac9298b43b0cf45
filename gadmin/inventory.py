"""
Cluster inventory documents and the on-disk store that holds them.

Each cluster is described by one YAML document in the Ansible inventory shape::

    all:
      hosts:
        192.168.100.71: {var1: foo}
        192.168.100.72: {}
      children:
        gluster:
          hosts:
            192.168.100.71: {}
            192.168.100.72: {}

The store keeps one ``<cluster>.yml`` per cluster directly inside the
``inventory`` directory of the gadmin home.  Documents are only ever created
or replaced whole; there is no incremental edit API.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Sequence

import yaml

from .errors import (
    ClusterAlreadyExistsError,
    ClusterNotFoundError,
    MalformedDocumentError,
    PathEscapeError,
    PersistenceError,
    SerializationError,
)
from .rootfs import ScopedRoot

logger = logging.getLogger(__name__)

INVENTORY_DIR = "inventory"
DOCUMENT_SUFFIX = ".yml"
ALL_GROUP = "all"
DEFAULT_GROUP = "gluster"

HostVars = Dict[str, str]


@dataclass
class HostGroupDocument:
    """In-memory form of one cluster's inventory."""

    hosts: Dict[str, HostVars] = field(default_factory=dict)
    groups: Dict[str, Dict[str, HostVars]] = field(default_factory=dict)

    @classmethod
    def new(cls, name: str, host_names: Sequence[str]) -> "HostGroupDocument":
        """Build a document with every host in the default group and no variables."""
        hosts: Dict[str, HostVars] = {host: {} for host in host_names}
        group: Dict[str, HostVars] = {host: {} for host in host_names}
        logger.debug("New inventory for cluster %r with %d hosts", name, len(hosts))
        return cls(hosts=hosts, groups={DEFAULT_GROUP: group})

    # --- wire format -----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            ALL_GROUP: {
                "hosts": {host: dict(variables) for host, variables in self.hosts.items()},
                "children": {
                    group: {"hosts": {host: dict(variables) for host, variables in members.items()}}
                    for group, members in self.groups.items()
                    if group != ALL_GROUP
                },
            }
        }

    def serialize(self) -> bytes:
        try:
            rendered = yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=False)
        except (yaml.YAMLError, MemoryError) as exc:
            raise SerializationError(f"Unable to generate YAML inventory: {exc}") from exc
        return rendered.encode("utf-8")

    @classmethod
    def deserialize(cls, data: bytes | str) -> "HostGroupDocument":
        try:
            raw = yaml.safe_load(data)
        except yaml.YAMLError as exc:
            raise MalformedDocumentError(f"Inventory is not valid YAML: {exc}") from exc

        if raw is None:
            return cls()
        if not isinstance(raw, dict):
            raise MalformedDocumentError("Inventory must be a mapping with a top-level 'all' key")

        top = raw.get(ALL_GROUP)
        if top is None:
            return cls()
        if not isinstance(top, dict):
            raise MalformedDocumentError("'all' must be a mapping")

        hosts = _parse_hosts(top.get("hosts"), "all.hosts")

        children = top.get("children") or {}
        if not isinstance(children, dict):
            raise MalformedDocumentError("'all.children' must be a mapping of groups")

        groups: Dict[str, Dict[str, HostVars]] = {}
        for group, body in children.items():
            where = f"all.children.{group}"
            if body is None:
                body = {}
            if not isinstance(body, dict):
                raise MalformedDocumentError(f"'{where}' must be a mapping")
            groups[str(group)] = _parse_hosts(body.get("hosts"), f"{where}.hosts")

        if ALL_GROUP in groups:
            logger.warning("Inventory stores a group named %r; it is reserved and is dropped", ALL_GROUP)
            del groups[ALL_GROUP]

        return cls(hosts=hosts, groups=groups)

    # --- queries ---------------------------------------------------------

    def group_names(self) -> List[str]:
        return [ALL_GROUP] + [group for group in self.groups if group != ALL_GROUP]

    def has_group(self, group: str) -> bool:
        return group == ALL_GROUP or group in self.groups

    def all_host_names(self) -> List[str]:
        return list(self.hosts)

    def hosts_in_group(self, group: str) -> List[str]:
        return list(self.groups.get(group, {}))

    def resolve_targets(self, groups: Sequence[str]) -> Dict[str, List[str]]:
        """
        Resolve ``groups`` into a mapping of host -> groups it matched.

        Groups are visited in the order given.  ``all`` adds every host not
        already present with no group recorded for it; a host seen again via a
        later group has that group appended.  Unknown groups are skipped so
        stale group references degrade to fewer targets instead of failing.
        """
        resolved: Dict[str, List[str]] = {}
        for group in groups:
            if group == ALL_GROUP:
                for host in self.all_host_names():
                    resolved.setdefault(host, [])
            elif group not in self.groups:
                logger.warning("Skipping unknown group %r", group)
            else:
                for host in self.hosts_in_group(group):
                    resolved.setdefault(host, []).append(group)
        logger.debug("Resolved groups %s to %d hosts", list(groups), len(resolved))
        return resolved


def _parse_hosts(value: Any, where: str) -> Dict[str, HostVars]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise MalformedDocumentError(f"'{where}' must be a mapping of host names")

    hosts: Dict[str, HostVars] = {}
    for host, variables in value.items():
        if variables is None:
            variables = {}
        if not isinstance(variables, dict):
            raise MalformedDocumentError(f"Variables for host {host!r} in '{where}' must be a mapping")
        parsed: HostVars = {}
        for key, val in variables.items():
            if isinstance(val, (dict, list)):
                raise MalformedDocumentError(f"Variable {key!r} of host {host!r} in '{where}' must be a scalar")
            parsed[str(key)] = "" if val is None else str(val)
        hosts[str(host)] = parsed
    return hosts


@dataclass
class Cluster:
    """A named cluster and its live inventory document."""

    name: str
    inventory: HostGroupDocument

    def to_dict(self) -> Dict[str, object]:
        hosts = self.inventory.all_host_names()
        return {
            "name": self.name,
            "total_hosts": len(hosts),
            "hosts": hosts,
            "groups": {group: self.inventory.hosts_in_group(group) for group in self.inventory.groups},
        }


class InventoryStore:
    """Directory of cluster documents, keyed by cluster name."""

    def __init__(self, root: ScopedRoot):
        self.root = root
        self._cluster_names: List[str] = _discover_clusters(root.base)
        logger.debug("Discovered %d clusters in %s", len(self._cluster_names), root.base)

    @classmethod
    def open(cls, path: str | Path) -> "InventoryStore":
        directory = Path(os.path.abspath(path))
        if directory.name != INVENTORY_DIR:
            directory = directory / INVENTORY_DIR
        return cls(ScopedRoot(directory))

    @property
    def directory(self) -> Path:
        return self.root.base

    def __str__(self) -> str:
        return f"Inventory at {str(self.directory)!r} has {len(self._cluster_names)} clusters defined."

    def list_clusters(self) -> List[str]:
        return self._cluster_names[:]

    def contains_cluster(self, name: str) -> bool:
        return name in self._cluster_names

    def cluster_path(self, name: str) -> Path:
        path = self.root.resolve(f"{name}{DOCUMENT_SUFFIX}")
        if path.parent != self.directory:
            raise PathEscapeError(f"Cluster name {name!r} does not map directly into {str(self.directory)!r}")
        return path

    def load_cluster(self, name: str) -> Cluster:
        if not self.contains_cluster(name):
            raise ClusterNotFoundError(f"Cluster named {name!r} isn't in the inventory.")

        document = self._read_document(name)
        self._track(name)
        return Cluster(name=name, inventory=document)

    def create_cluster(self, name: str, host_names: Sequence[str]) -> Cluster:
        if self.contains_cluster(name):
            raise ClusterAlreadyExistsError(f"Cluster named {name!r} already in the inventory.")

        document = HostGroupDocument.new(name, host_names)
        path = self.cluster_path(name)
        _write_file(path, document.serialize())

        self._track(name)
        logger.info("Created cluster %r with %d hosts at %s", name, len(document.hosts), path)
        return Cluster(name=name, inventory=document)

    def refresh_cluster(self, cluster: Cluster) -> Cluster:
        """Re-read ``cluster``'s document from disk into the same object."""
        if not self.contains_cluster(cluster.name):
            raise ClusterNotFoundError(f"Cluster named {cluster.name!r} isn't in the inventory.")
        cluster.inventory = self._read_document(cluster.name)
        logger.debug("Refreshed cluster %r", cluster.name)
        return cluster

    # --- internals -------------------------------------------------------

    def _track(self, name: str) -> None:
        if name not in self._cluster_names:
            self._cluster_names.append(name)

    def _read_document(self, name: str) -> HostGroupDocument:
        path = self.cluster_path(name)
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise PersistenceError(f"Unable to load inventory file for cluster {name!r}: {exc}", path) from exc
        try:
            return HostGroupDocument.deserialize(data)
        except MalformedDocumentError as exc:
            raise MalformedDocumentError(f"Unable to load cluster from inventory {name!r}: {exc}") from exc


def _discover_clusters(directory: Path) -> List[str]:
    if not directory.exists():
        return []
    if not directory.is_dir():
        raise PersistenceError(f"{str(directory)!r} is not a directory.", directory)
    try:
        return sorted(
            entry.name[: -len(DOCUMENT_SUFFIX)]
            for entry in directory.iterdir()
            if entry.is_file() and entry.name.endswith(DOCUMENT_SUFFIX)
        )
    except OSError as exc:
        raise PersistenceError(f"Unable to read inventory directory {str(directory)!r}: {exc}", directory) from exc


def _write_file(path: Path, data: bytes) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True, mode=0o755)
        path.write_bytes(data)
    except OSError as exc:
        raise PersistenceError(f"Unable to write YAML inventory {str(path)!r}: {exc}", path) from exc


def ensure_dir_writable(path: Path, error: type = PersistenceError) -> None:
    """Raise ``error`` unless ``path`` is an existing, writable directory."""
    if not path.exists():
        raise error(f"Unable to access {str(path)!r}: no such directory")
    if not path.is_dir():
        raise error(f"{str(path)!r} is not a directory.")
    if not os.access(path, os.W_OK):
        raise error(f"Directory {str(path)!r} is not writable.")


def write_inventory_to_dir(cluster: Cluster, directory: str | Path, error: type = PersistenceError) -> Path:
    """Write ``cluster``'s document as ``<name>.yml`` into an existing directory."""
    target_dir = Path(os.path.abspath(directory))
    ensure_dir_writable(target_dir, error)

    path = target_dir / f"{cluster.name}{DOCUMENT_SUFFIX}"
    if path.parent != target_dir:
        raise PathEscapeError(f"Cluster name {cluster.name!r} does not map directly into {str(target_dir)!r}")
    _write_file(path, cluster.inventory.serialize())
    logger.debug("Wrote inventory for cluster %r to %s", cluster.name, path)
    return path
