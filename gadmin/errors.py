"""
Error taxonomy for gadmin.

Every core operation either succeeds or raises exactly one of these.  None of
them are retried internally and no partial filesystem state is rolled back;
callers inherit whatever was created before the failure.
"""

from __future__ import annotations


class GadminError(RuntimeError):
    """Base class for all gadmin errors."""


class ConfigurationError(GadminError):
    """Raised when the gadmin home directory or environment is unusable."""


class PathEscapeError(GadminError):
    """Raised when a path resolves outside of its confining root."""


class ClusterNotFoundError(GadminError):
    """Raised when a cluster is not tracked by the inventory store."""


class ClusterAlreadyExistsError(GadminError):
    """Raised when creating a cluster whose name is already tracked."""


class MalformedDocumentError(GadminError):
    """Raised when a cluster document does not match the inventory schema."""


class SerializationError(GadminError):
    """Raised when a cluster document cannot be rendered."""


class PersistenceError(GadminError):
    """Raised when a filesystem write or read fails."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


class WorkspaceExistsError(GadminError):
    """Raised when a run workspace base directory cannot be created afresh."""


class WorkspaceNotWritableError(GadminError):
    """Raised when a workspace directory is missing, not a directory or read-only."""


class SourceNotReadableError(GadminError):
    """Raised when a playbook to be staged cannot be read."""


class EmptyTargetError(GadminError):
    """Raised when a target override is given no hosts or groups."""


class NoMatchingHostsError(GadminError):
    """Raised when a group override resolves to no hosts at all."""


class InvocationNotReadyError(GadminError):
    """Raised when an invocation is built or executed out of order."""


class RunnerNotFoundError(GadminError):
    """Raised when no usable runner executable is configured."""


class RunnerExecutionError(GadminError):
    """Raised when the runner process could not be started."""
