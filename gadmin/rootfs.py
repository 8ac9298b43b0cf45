"""
Path confinement for everything gadmin writes.

A :class:`ScopedRoot` is handed to the inventory store and run workspaces so
that every path they touch is resolved beneath one base directory.
"""

from __future__ import annotations

from pathlib import Path

from .errors import PathEscapeError


class ScopedRoot:
    """Canonical base directory that refuses paths escaping it."""

    def __init__(self, base: str | Path):
        self.base = Path(base).expanduser().resolve()

    def __repr__(self) -> str:
        return f"ScopedRoot({str(self.base)!r})"

    def contains(self, path: str | Path) -> bool:
        candidate = Path(path).expanduser().resolve()
        return candidate == self.base or self.base in candidate.parents

    def resolve(self, *parts: str | Path) -> Path:
        """Join ``parts`` onto the base and return the canonical result."""
        candidate = self.base.joinpath(*parts).resolve()
        if not self.contains(candidate):
            joined = "/".join(str(part) for part in parts)
            raise PathEscapeError(f"{joined!r} escapes {str(self.base)!r}")
        return candidate

    def scoped(self, *parts: str | Path) -> "ScopedRoot":
        return ScopedRoot(self.resolve(*parts))
