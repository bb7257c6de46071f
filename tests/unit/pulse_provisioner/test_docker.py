"""Tests for the Docker CLI adapter."""

import socket
import tempfile
from pathlib import Path

import pytest

from pulse_provisioner.docker import DockerRuntime
from tests.helpers.fakes import FakeCommandRunner

pytestmark = pytest.mark.unit_provisioner


def _runtime(runner, tmp_path):
    return DockerRuntime(runner, "/opt/homebrew/bin/docker", tmp_path / "docker.sock")


def test_env_pins_endpoint(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("DOCKER_CONTEXT", "desktop-linux")
    runtime = _runtime(FakeCommandRunner(), tmp_path)
    env = runtime.env()
    assert env["DOCKER_HOST"] == f"unix://{tmp_path / 'docker.sock'}"
    assert "DOCKER_CONTEXT" not in env
    assert env["PATH"].startswith("/opt/homebrew/bin")


def test_every_call_carries_the_endpoint(tmp_path) -> None:
    runner = FakeCommandRunner()
    runtime = _runtime(runner, tmp_path)
    runtime.version()
    runtime.remove_container("web")
    assert all(call.env["DOCKER_HOST"] == runtime.host_uri for call in runner.calls)
    assert runner.lines()[1] == "/opt/homebrew/bin/docker rm -f web"


def test_deep_health_stops_at_first_failure(tmp_path) -> None:
    runner = FakeCommandRunner().on("docker ps", (1, "Cannot connect to the Docker daemon"))
    result = _runtime(runner, tmp_path).deep_health()
    assert not result.ok
    assert runner.lines_with("system info") == []


def test_deep_health_runs_all_three(tmp_path) -> None:
    runner = FakeCommandRunner()
    assert _runtime(runner, tmp_path).deep_health().ok
    assert [line.split("docker ", 1)[1] for line in runner.lines()] == ["info", "ps", "system info"]


def test_socket_present_requires_a_socket() -> None:
    # AF_UNIX paths are length-limited; keep the directory short.
    with tempfile.TemporaryDirectory(dir="/tmp") as short_dir:
        sock_path = Path(short_dir) / "d.sock"
        _check_socket(sock_path)


def _check_socket(sock_path: Path) -> None:
    runtime = DockerRuntime(FakeCommandRunner(), "docker", sock_path)
    assert not runtime.socket_present()
    sock_path.write_text("not a socket")
    assert not runtime.socket_present()
    sock_path.unlink()
    server = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        server.bind(str(sock_path))
        assert runtime.socket_present()
    finally:
        server.close()


def test_run_script_leaves_stdin_to_the_script(tmp_path) -> None:
    script = "docker run -i --name web nginx cat\necho after\n"
    runner = FakeCommandRunner()
    _runtime(runner, tmp_path).run_script(script, timeout=30)
    call = runner.calls[0]
    assert call.argv[-2:] == ("-c", script)
    assert call.input is None


def test_container_names(tmp_path) -> None:
    runner = FakeCommandRunner().on("{{.Names}}", (0, "web\napi\n"))
    assert _runtime(runner, tmp_path).container_names() == ["web", "api"]
