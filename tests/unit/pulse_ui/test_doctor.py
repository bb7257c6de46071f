"""Tests for the doctor service."""

import pytest

from pulse_common.errors import ConfigurationError
from pulse_ui.doctor import HOST_TOOLS, DoctorService
from tests.helpers.fakes import make_host

pytestmark = pytest.mark.unit_ui


def _service(tmp_path, environ=None, missing=(), resolver=None):
    return DoctorService(
        environ={"HOMEBREW_USER": "dev"} if environ is None else environ,
        which=lambda name: None if name in missing else f"/usr/bin/{name}",
        resolver=resolver or (lambda user: make_host(tmp_path / "home")),
    )


def test_all_checks_pass(tmp_path) -> None:
    report = _service(tmp_path, {"HOMEBREW_USER": "dev", "CONTAINERS_DIR": str(tmp_path)}).check_all()
    assert report.total_failures == 0
    assert [group.title for group in report.groups] == ["Host Tools", "Configuration"]
    assert any("colima: /opt/homebrew/bin/colima" in msg for msg in report.info_messages)


def test_missing_tools_are_counted(tmp_path) -> None:
    group = _service(tmp_path, missing=("pgrep", "pkill")).check_host_tools()
    assert group.failures == 2
    assert [item.label for item in group.items] == list(HOST_TOOLS)


def test_missing_user_stops_configuration_checks(tmp_path) -> None:
    group, messages = _service(tmp_path, environ={}).check_configuration()
    assert group.failures == 1
    assert len(group.items) == 1
    assert "HOMEBREW_USER" in messages[0]


def test_unresolvable_account(tmp_path) -> None:
    def resolver(user):
        raise ConfigurationError(f"Failed to resolve account {user}")

    group, messages = _service(tmp_path, resolver=resolver).check_configuration()
    assert group.failures == 1
    assert any(msg.startswith("Account:") for msg in messages)


def test_missing_containers_dir_is_optional(tmp_path) -> None:
    environ = {"HOMEBREW_USER": "dev", "CONTAINERS_DIR": str(tmp_path / "absent")}
    group, _ = _service(tmp_path, environ).check_configuration()
    assert group.failures == 0
    assert not group.items[-1].ok
