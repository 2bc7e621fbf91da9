"""Tests for the wled-backup command line."""

from __future__ import annotations

import asyncio
import json
import os
import signal
import sys
import time
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from tests.helpers import RUN_TS, make_device
from wled_backup import __version__
from wled_backup.cli import main
from wled_backup.cli.runner import run_command
from wled_backup.errors import DiscoveryError
from wled_backup.models import BackupOutcome, BackupRun, BackupStatus


def _run(out_dir: Path, *outcomes: BackupOutcome) -> BackupRun:
    return BackupRun(
        started_at=RUN_TS,
        search_window=10,
        out_dir=out_dir,
        outcomes=outcomes,
        finished_at=RUN_TS,
    )


def _ok(out_dir: Path) -> BackupOutcome:
    return BackupOutcome(
        device=make_device("kitchen"),
        status=BackupStatus.SUCCEEDED,
        duration=0.4,
        paths=(out_dir / "Kitchen_192.168.1.20_80_20261019T120000000000Z_cfg.json",),
        hostname="Kitchen",
    )


def _failed() -> BackupOutcome:
    return BackupOutcome(
        device=make_device("desk", address="192.168.1.21"),
        status=BackupStatus.FAILED,
        duration=10.0,
        error="Timed out after 10s",
        error_kind="fetch",
    )


@pytest.fixture
def runner():
    return CliRunner()


def _invoke(runner, args, result=None, side_effect=None):
    mock = AsyncMock(return_value=result, side_effect=side_effect)
    with patch("wled_backup.cli.app.run_backup", mock):
        outcome = runner.invoke(main, args)
    return outcome, mock


class TestOptions:
    def test_out_dir_required(self, runner):
        result = runner.invoke(main, [])
        assert result.exit_code == 2
        assert "--out-dir" in result.output

    def test_defaults(self, runner, tmp_path):
        result, mock = _invoke(runner, ["--out-dir", str(tmp_path)], _run(tmp_path))
        assert result.exit_code == 0
        config = mock.call_args.args[0]
        assert config.out_dir == tmp_path
        assert config.search_secs == 10
        assert config.max_parallel == 4
        assert config.device_timeout == 10.0
        assert config.service_type == "_wled._tcp.local."

    def test_overrides(self, runner, tmp_path):
        result, mock = _invoke(
            runner,
            ["-o", str(tmp_path), "-s", "4", "--max-parallel", "2", "--timeout", "2.5"],
            _run(tmp_path),
        )
        assert result.exit_code == 0
        config = mock.call_args.args[0]
        assert (config.search_secs, config.max_parallel, config.device_timeout) == (4, 2, 2.5)

    def test_rejects_zero_parallelism(self, runner, tmp_path):
        result = runner.invoke(main, ["-o", str(tmp_path), "--max-parallel", "0"])
        assert result.exit_code == 2

    def test_rejects_negative_search_window(self, runner, tmp_path):
        result = runner.invoke(main, ["-o", str(tmp_path), "--search-secs", "-1"])
        assert result.exit_code == 2

    def test_rejects_bad_service_type(self, runner, tmp_path):
        result = runner.invoke(main, ["-o", str(tmp_path), "--service-type", "_wled._tcp"])
        assert result.exit_code == 2
        assert "service_type" in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestOutput:
    def test_no_devices(self, runner, tmp_path):
        result, _ = _invoke(runner, ["-o", str(tmp_path)], _run(tmp_path))
        assert result.exit_code == 0
        assert "searching for 10 seconds" in result.output
        assert "No devices discovered." in result.output
        assert "Finished: 0 succeeded, 0 failed" in result.output

    def test_summary_table(self, runner, tmp_path):
        result, _ = _invoke(runner, ["-o", str(tmp_path)], _run(tmp_path, _ok(tmp_path)))
        assert result.exit_code == 0
        assert "Device" in result.output
        assert "Kitchen" in result.output
        assert "192.168.1.20:80" in result.output
        assert "succeeded" in result.output
        assert "Finished: 1 succeeded, 0 failed" in result.output

    def test_partial_failure_exits_one(self, runner, tmp_path):
        result, _ = _invoke(
            runner, ["-o", str(tmp_path)], _run(tmp_path, _ok(tmp_path), _failed())
        )
        assert result.exit_code == 1
        assert "fetch: Timed out after 10s" in result.output
        assert "Finished: 1 succeeded, 1 failed" in result.output

    def test_json_summary(self, runner, tmp_path):
        result, mock = _invoke(
            runner, ["-o", str(tmp_path), "--json"], _run(tmp_path, _ok(tmp_path), _failed())
        )
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["succeeded"] == 1
        assert data["failed"] == 1
        assert [o["status"] for o in data["outcomes"]] == ["succeeded", "failed"]
        assert mock.call_args.kwargs["on_device"] is None

    def test_progress_callbacks_in_table_mode(self, runner, tmp_path):
        async def fake_run_backup(config, *, on_device, on_outcome):
            on_device(make_device("kitchen"))
            outcome = _ok(tmp_path)
            on_outcome(outcome)
            on_outcome(_failed())
            return _run(tmp_path, outcome, _failed())

        with patch("wled_backup.cli.app.run_backup", fake_run_backup):
            result = runner.invoke(main, ["-o", str(tmp_path)])

        assert "Discovered: kitchen._wled._tcp.local. (192.168.1.20:80)" in result.output
        assert "saved Kitchen (192.168.1.20:80)" in result.output
        assert "FAILED 192.168.1.21:80: Timed out after 10s" in result.output


class TestErrors:
    def test_discovery_error_exits_one(self, runner, tmp_path):
        result, _ = _invoke(
            runner,
            ["-o", str(tmp_path)],
            side_effect=DiscoveryError("Cannot open mDNS listener: in use"),
        )
        assert result.exit_code == 1
        assert "Error: Cannot open mDNS listener: in use" in result.output

    def test_discovery_error_json(self, runner, tmp_path):
        result, _ = _invoke(
            runner,
            ["-o", str(tmp_path), "--json"],
            side_effect=DiscoveryError("Cannot open mDNS listener: in use"),
        )
        assert result.exit_code == 1
        assert json.loads(result.output) == {"error": "Cannot open mDNS listener: in use"}

    def test_cancellation_exits_130(self, runner, tmp_path):
        result, _ = _invoke(runner, ["-o", str(tmp_path)], side_effect=asyncio.CancelledError)
        assert result.exit_code == 130
        assert "Interrupted" in result.output


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signal handlers only")
class TestRunCommand:
    def test_returns_coroutine_result(self):
        async def work():
            return 42

        assert run_command(work) == 42

    def test_sigterm_cancels_running_command(self):
        reached_end = False

        async def wait_for_signal():
            nonlocal reached_end
            os.kill(os.getpid(), signal.SIGTERM)
            await asyncio.sleep(5)
            reached_end = True

        start = time.monotonic()
        with pytest.raises(asyncio.CancelledError):
            run_command(wait_for_signal)
        assert time.monotonic() - start < 2.0
        assert not reached_end

