"""
Configuration helpers for gadmin.

All filesystem locations derive from the gadmin home directory
(``$GADMIN_HOME``).  Use :func:`get_settings` to obtain a cached
:class:`Settings` object; the runner executable it carries is handed to the
orchestrator explicitly rather than looked up by the core.
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from .errors import ConfigurationError, RunnerNotFoundError

RUNNER_NAME = "ansible-runner"


@dataclass(frozen=True)
class Settings:
    """Resolved locations used by the CLI and tool server."""

    home: Path
    inventory_dir: Path
    runs_dir: Path
    runner: Optional[Path] = None

    @classmethod
    def load(
        cls,
        home: str | Path | None = None,
        runner: str | Path | None = None,
    ) -> "Settings":
        home_env = os.getenv("GADMIN_HOME")
        if not (home or home_env):
            raise ConfigurationError("$GADMIN_HOME not set")
        home_path = Path(home or home_env).expanduser().resolve()

        runs_dir = home_path / "runs"
        if home_path.is_dir():
            runs_dir.mkdir(exist_ok=True, mode=0o755)

        return cls(
            home=home_path,
            inventory_dir=home_path / "inventory",
            runs_dir=runs_dir,
            runner=_find_runner(runner),
        )

    def require_runner(self) -> Path:
        """Return the runner executable or raise if none is usable."""
        if self.runner is None:
            raise RunnerNotFoundError(f"{RUNNER_NAME} not found in $PATH: {os.getenv('PATH', '')!r}")
        ensure_executable(self.runner)
        return self.runner


def _find_runner(runner: str | Path | None) -> Optional[Path]:
    candidate = runner or os.getenv("GADMIN_RUNNER") or shutil.which(RUNNER_NAME)
    if not candidate:
        return None
    return Path(candidate).expanduser().resolve()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.load()


def configure_settings(home: str | Path | None = None, runner: str | Path | None = None) -> Settings:
    if home is not None:
        os.environ["GADMIN_HOME"] = str(home)
    if runner is not None:
        os.environ["GADMIN_RUNNER"] = str(runner)
    get_settings.cache_clear()
    return get_settings()


def ensure_not_root() -> None:
    if os.geteuid() == 0:
        raise ConfigurationError("Running as root is not supported")


def validate_home(path: str | Path) -> Path:
    """Check that ``path`` is an absolute, existing, writable directory."""
    home = Path(path).expanduser()
    if not home.is_absolute():
        raise ConfigurationError(f"$GADMIN_HOME {str(home)!r} is not an absolute path")
    if not home.is_dir():
        raise ConfigurationError(f"$GADMIN_HOME {str(home)!r} doesn't exist or is not a directory")
    if not os.access(home, os.W_OK):
        raise ConfigurationError(f"$GADMIN_HOME {str(home)!r} is not writable")
    return home.resolve()


def ensure_executable(path: Path) -> None:
    if not path.is_file():
        raise RunnerNotFoundError(f"{str(path)!r} is not a file")
    if not os.access(path, os.X_OK):
        raise RunnerNotFoundError(f"File {str(path)!r} is not executable")
