"""Tests for process table enumeration and signalling."""

import pytest

from pulse_common.errors import CommandError
from pulse_provisioner.processes import ProcessPattern, ProcessTable
from tests.helpers.fakes import FakeCommandRunner, make_host

pytestmark = pytest.mark.unit_provisioner


def test_signals_are_scoped_to_the_account(tmp_path) -> None:
    runner = FakeCommandRunner()
    table = ProcessTable(runner, make_host(tmp_path / "home"))
    table.signal(ProcessPattern("qemu-system"), "TERM")
    table.signal(ProcessPattern("/usr/bin/su - dev -c", any_owner=True), "TERM")
    assert runner.lines() == [
        "sudo pkill -TERM -u 501 -f qemu-system",
        "sudo pkill -TERM -f /usr/bin/su - dev -c",
    ]


def test_matches_reports_pid_and_pattern(tmp_path) -> None:
    runner = FakeCommandRunner().on("qemu-system", (0, "101\n102\n")).on("limactl", (1, ""))
    table = ProcessTable(runner, make_host(tmp_path / "home"))
    found = table.matches([ProcessPattern("qemu-system"), ProcessPattern("limactl")])
    assert found == ["101 qemu-system", "102 qemu-system"]


def test_pgrep_error_is_raised(tmp_path) -> None:
    runner = FakeCommandRunner().on("pgrep", (2, "pgrep: invalid regex"))
    table = ProcessTable(runner, make_host(tmp_path / "home"))
    with pytest.raises(CommandError):
        table.matches([ProcessPattern("(")])
