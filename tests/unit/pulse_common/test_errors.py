"""Tests for the shared error taxonomy."""

from pathlib import Path

import pytest

from pulse_common.errors import (
    BackendVerificationError,
    ForbiddenBackendError,
    ReaperError,
    SupervisionError,
    error_to_payload,
    normalize_context,
)

pytestmark = pytest.mark.unit_common


def test_context_is_json_friendly() -> None:
    context = normalize_context({"path": Path("/tmp/x"), "items": (1, Path("a")), "nested": {"p": Path("b")}})
    assert context == {"path": "/tmp/x", "items": [1, "a"], "nested": {"p": "b"}}


def test_error_to_payload_keeps_only_evidence() -> None:
    err = ReaperError("still alive", context={"survivors": ["123 qemu-system"], "output": "qemu", "status": ""})
    payload = error_to_payload(err)
    assert payload == {
        "error_type": "ReaperError",
        "error": "still alive",
        "failing_check": "ReaperError",
        "evidence": {"output": "qemu"},
    }


@pytest.mark.parametrize(
    "context,check",
    [
        ({"check": "bootstrap", "gate": "docker api"}, "bootstrap"),
        ({"gate": "docker api"}, "docker api"),
        ({}, "SupervisionError"),
    ],
)
def test_failing_check_prefers_explicit_check(context, check) -> None:
    assert SupervisionError("boom", context=context).failing_check == check


def test_forbidden_backend_is_a_verification_error() -> None:
    assert issubclass(ForbiddenBackendError, BackendVerificationError)
    assert ForbiddenBackendError("vz").error_type == "ForbiddenBackendError"
