from __future__ import annotations

import os
from pathlib import Path

import pytest

from gadmin.config import configure_settings
from gadmin.inventory import Cluster, HostGroupDocument


FAKE_RUNNER = """#!/bin/sh
echo "fake-runner $*"
exit ${FAKE_RUNNER_RC:-0}
"""


@pytest.fixture
def fake_runner(tmp_path: Path) -> Path:
    """Executable standing in for ansible-runner; echoes its arguments."""
    path = tmp_path / "bin" / "ansible-runner"
    path.parent.mkdir()
    path.write_text(FAKE_RUNNER)
    path.chmod(0o755)
    return path


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, fake_runner: Path) -> Path:
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("GADMIN_HOME", str(home_dir))
    monkeypatch.setenv("GADMIN_RUNNER", str(fake_runner))
    monkeypatch.setattr(os, "geteuid", lambda: 1000)
    configure_settings()
    return home_dir.resolve()


@pytest.fixture
def playbook(tmp_path: Path) -> Path:
    path = tmp_path / "site.yml"
    path.write_text("- hosts: all\n  tasks:\n    - ping:\n")
    return path


@pytest.fixture
def cluster() -> Cluster:
    document = HostGroupDocument(
        hosts={"h1": {}, "h2": {"ansible_user": "admin"}, "h3": {}},
        groups={"gluster": {"h1": {}, "h2": {}}, "arbiter": {"h2": {}, "h3": {}}},
    )
    return Cluster(name="prod", inventory=document)
