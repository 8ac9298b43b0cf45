#!/usr/bin/env python3
"""Tests for the gadmin command line."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from typer.testing import CliRunner

from cli import EXIT_HOME, EXIT_RUNNER, app

runner = CliRunner()


def test_create_show_and_list(home: Path) -> None:
    result = runner.invoke(app, ["create", "prod", "10.0.0.1", "10.0.0.2"])
    assert result.exit_code == 0, result.output
    assert "CLUSTER: prod" in result.output

    result = runner.invoke(app, ["clusters"])
    assert result.exit_code == 0
    assert "has 1 clusters defined" in result.output
    assert "- prod" in result.output

    result = runner.invoke(app, ["show", "prod"])
    assert result.exit_code == 0
    assert "gluster (2): 10.0.0.1, 10.0.0.2" in result.output


def test_targets_command(home: Path) -> None:
    runner.invoke(app, ["create", "prod", "a,b"])
    result = runner.invoke(app, ["targets", "prod", "gluster", "all"])
    assert result.exit_code == 0
    assert "gluster" in result.output


def test_errors_exit_non_zero(home: Path) -> None:
    runner.invoke(app, ["create", "prod", "a"])
    result = runner.invoke(app, ["create", "prod", "b"])
    assert result.exit_code == 1
    assert "already in the inventory" in result.output

    result = runner.invoke(app, ["show", "staging"])
    assert result.exit_code == 1


def test_run_dry_run_prints_command(home: Path, playbook: Path) -> None:
    runner.invoke(app, ["create", "prod", "a", "b"])
    result = runner.invoke(app, ["run", "prod", str(playbook), "--hosts", "b", "--ident", "dry1", "--dry-run"])
    assert result.exit_code == 0, result.output
    assert "Command:" in result.output
    assert "--limit b" in result.output
    assert (home / "runs" / "dry1" / "inventory" / "site.yml").is_file()


def test_run_executes_runner(home: Path, playbook: Path) -> None:
    runner.invoke(app, ["create", "prod", "a", "b"])
    result = runner.invoke(app, ["run", "prod", str(playbook), "--groups", "gluster", "--ident", "r1"])
    assert result.exit_code == 0, result.output
    assert "Status: completed" in result.output


def test_run_without_runner_exits_with_runner_status(home: Path, playbook: Path, tmp_path: Path) -> None:
    runner.invoke(app, ["create", "prod", "a"])
    result = runner.invoke(app, ["--runner", str(tmp_path / "missing"), "run", "prod", str(playbook)])
    assert result.exit_code == EXIT_RUNNER


def test_home_must_be_set(home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GADMIN_HOME")
    result = runner.invoke(app, ["clusters"])
    assert result.exit_code == EXIT_HOME
    assert "$GADMIN_HOME not set" in result.output


def test_home_must_be_absolute_and_exist(home: Path, tmp_path: Path) -> None:
    result = runner.invoke(app, ["--home", "relative/home", "clusters"])
    assert result.exit_code == EXIT_HOME

    result = runner.invoke(app, ["--home", str(tmp_path / "missing"), "clusters"])
    assert result.exit_code == EXIT_HOME


def test_refuses_to_run_as_root(home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(os, "geteuid", lambda: 0)
    result = runner.invoke(app, ["clusters"])
    assert result.exit_code == EXIT_HOME
    assert "root" in result.output
