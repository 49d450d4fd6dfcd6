"""Tests for the CLI db commands."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

from typer.testing import CliRunner

from docpage.cli.app import app
from docpage.cli.db import _container_state, _docker_available

runner = CliRunner()


class TestDockerAvailable:
    def test_returns_true_when_docker_found(self) -> None:
        with patch("docpage.cli.db.shutil.which", return_value="/usr/bin/docker"):
            assert _docker_available() is True

    def test_returns_false_when_docker_missing(self) -> None:
        with patch("docpage.cli.db.shutil.which", return_value=None):
            assert _docker_available() is False


class TestContainerState:
    def test_returns_none_when_not_found(self) -> None:
        with patch("docpage.cli.db.subprocess.run") as mock_run:
            mock_run.return_value.returncode = 1
            assert _container_state() is None

    def test_returns_running(self) -> None:
        with patch("docpage.cli.db.subprocess.run") as mock_run:
            mock_run.return_value.returncode = 0
            mock_run.return_value.stdout = "running\n"
            assert _container_state() == "running"

    def test_inspect_targets_the_container(self) -> None:
        with patch("docpage.cli.db.subprocess.run") as mock_run:
            mock_run.return_value.returncode = 0
            mock_run.return_value.stdout = "exited\n"
            assert _container_state() == "exited"

        (argv,), _ = mock_run.call_args
        assert argv[:2] == ["docker", "inspect"]
        assert argv[-1] == "docpage-db"


class TestCommands:
    def test_status_without_docker_fails(self) -> None:
        with patch("docpage.cli.db.shutil.which", return_value=None):
            result = runner.invoke(app, ["db", "status"])
        assert result.exit_code == 1
        assert "Docker is not installed" in result.output

    def test_status_reports_missing_container(self) -> None:
        with (
            patch("docpage.cli.db.shutil.which", return_value="/usr/bin/docker"),
            patch("docpage.cli.db.subprocess.run") as mock_run,
        ):
            mock_run.return_value.returncode = 1
            result = runner.invoke(app, ["db", "status"])
        assert result.exit_code == 0
        assert "not found" in result.output

    def test_start_is_noop_when_running(self) -> None:
        with (
            patch("docpage.cli.db.shutil.which", return_value="/usr/bin/docker"),
            patch("docpage.cli.db.subprocess.run") as mock_run,
        ):
            mock_run.return_value.returncode = 0
            mock_run.return_value.stdout = "running\n"
            result = runner.invoke(app, ["db", "start"])
        assert result.exit_code == 0
        assert "already running" in result.output
        assert mock_run.call_count == 1

    def test_stop_removes_container(self) -> None:
        with (
            patch("docpage.cli.db.shutil.which", return_value="/usr/bin/docker"),
            patch("docpage.cli.db.subprocess.run") as mock_run,
        ):
            mock_run.return_value.returncode = 0
            mock_run.return_value.stdout = "running\n"
            result = runner.invoke(app, ["db", "stop"])
        assert result.exit_code == 0
        (argv,), _ = mock_run.call_args
        assert argv == ["docker", "rm", "-f", "docpage-db"]

    def test_init_creates_schema(self) -> None:
        store = AsyncMock()
        with (
            patch("docpage.db.engine.get_engine"),
            patch("docpage.db.postgres.PostgresDocumentStore", return_value=store),
        ):
            result = runner.invoke(app, ["db", "init"])
        assert result.exit_code == 0, result.output
        store.ensure_ready.assert_awaited_once()
        store.dispose.assert_awaited_once()
