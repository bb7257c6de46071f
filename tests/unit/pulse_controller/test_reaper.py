"""Tests for the two-phase process reaper."""

from unittest.mock import MagicMock

import pytest

from pulse_common.errors import ReaperError
from pulse_controller.reaper import ProcessReaper, ReaperState, stack_patterns
from pulse_provisioner.processes import ProcessPattern, ProcessTable
from tests.helpers.fakes import FakeClock

pytestmark = pytest.mark.unit_controller

PATTERNS = [ProcessPattern("qemu-system"), ProcessPattern("limactl")]


def _table(*match_results):
    table = MagicMock(spec=ProcessTable)
    table.matches.side_effect = list(match_results)
    return table


def test_nothing_running_stops_without_escalation() -> None:
    clock = FakeClock()
    table = _table([], [])
    result = ProcessReaper(table, sleep=clock.sleep).kill(PATTERNS, 8)
    assert result.state is ReaperState.STOPPED
    assert not result.escalated
    assert clock.sleeps == []
    table.signal_all.assert_called_once_with(PATTERNS, "TERM")


def test_term_within_grace_period() -> None:
    clock = FakeClock()
    table = _table(["1 qemu-system"], ["1 qemu-system"], ["1 qemu-system"], [])
    result = ProcessReaper(table, sleep=clock.sleep).kill(PATTERNS, 8)
    assert result.ok
    assert clock.sleeps == [1, 1]
    assert [c.args[1] for c in table.signal_all.call_args_list] == ["TERM"]


def test_escalates_to_kill_after_grace_period() -> None:
    clock = FakeClock()
    stuck = ["1 qemu-system"]
    table = _table(stuck, stuck, stuck, stuck, stuck, [])
    result = ProcessReaper(table, sleep=clock.sleep, final_poll=1).kill(PATTERNS, 3)
    assert result.ok
    assert result.escalated
    assert [c.args[1] for c in table.signal_all.call_args_list] == ["TERM", "KILL"]
    assert clock.sleeps == [1, 1, 1, 1]


def test_survivors_after_kill_fail_the_run() -> None:
    clock = FakeClock()
    stuck = ["1 qemu-system"]
    table = _table(*([stuck] * 10))
    reaper = ProcessReaper(table, sleep=clock.sleep)
    with pytest.raises(ReaperError, match="Reboot"):
        reaper.kill_or_raise(PATTERNS, 2)
    assert reaper.state is ReaperState.FAILED


def test_invalid_transition_is_rejected() -> None:
    reaper = ProcessReaper(_table())
    with pytest.raises(ValueError):
        reaper._transition(ReaperState.KILLING)


def test_stack_patterns_cover_wrapper_for_any_owner() -> None:
    patterns = stack_patterns("/opt/homebrew/bin/colima", "dev")
    wrapper = [p for p in patterns if p.any_owner]
    assert [p.pattern for p in wrapper] == ["/usr/bin/su - dev -c"]
    assert ProcessPattern("qemu-system") in patterns
