"""Tests for transient vs fatal classification."""

import itertools

import pytest

from pulse_controller.classifier import ErrorClass, classify, match_marker

pytestmark = pytest.mark.unit_controller

TRANSIENT_SAMPLES = {
    "eof": "error during connect: Get \"http://docker/v1.45/info\": EOF",
    "connection_reset": "read unix @->/Users/dev/.colima/default/docker.sock: read: connection reset by peer",
    "broken_pipe": "write unix @->docker.sock: write: broken pipe",
    "timeout": "net/http: TLS handshake timeout",
    "connection_refused": "dial unix /Users/dev/.colima/default/docker.sock: connect: connection refused",
    "socket_missing": "dial unix /Users/dev/.colima/default/docker.sock: connect: no such file or directory",
    "context_canceled": "context canceled",
    "closing_connection": "use of closed network connection",
}

WRAPPERS = [
    "{}",
    "Unable to find image locally\n{}\n",
    "docker: Error response from daemon: {}.",
    "   {}   ",
]

FATAL_SAMPLES = [
    "docker: Error response from daemon: pull access denied for nope, repository does not exist",
    "Unable to find image 'nope:latest' locally\nmanifest unknown",
    "permission denied while trying to connect",
    "unknown flag: --nmae",
    "exit status 1",
]


@pytest.mark.parametrize(
    "marker,template",
    list(itertools.product(TRANSIENT_SAMPLES, WRAPPERS)),
)
def test_any_transient_marker_is_transient(marker: str, template: str) -> None:
    text = template.format(TRANSIENT_SAMPLES[marker])
    assert classify(text) is ErrorClass.TRANSIENT
    assert match_marker(text) == marker


@pytest.mark.parametrize("text", [s.upper() for s in TRANSIENT_SAMPLES.values()])
def test_matching_is_case_insensitive(text: str) -> None:
    assert classify(text) is ErrorClass.TRANSIENT


@pytest.mark.parametrize("text", FATAL_SAMPLES)
def test_texts_without_markers_are_fatal(text: str) -> None:
    assert classify(text) is ErrorClass.FATAL
    assert match_marker(text) is None


@pytest.mark.parametrize("text", ["", None])
def test_empty_text_is_fatal(text) -> None:
    assert classify(text) is ErrorClass.FATAL


@pytest.mark.parametrize(
    "text,marker",
    [
        ("read: unexpectedEOF", "eof"),
        ("proxy: ErrUnexpectedEOF while copying", "eof"),
        ("too many timeouts talking to daemon", "timeout"),
        ("dial: Timeouts exceeded", "timeout"),
        ("i/o timed out", "timeout"),
        ("docker.sock: connection refusedx", "connection_refused"),
    ],
)
def test_markers_match_inside_longer_words(text: str, marker: str) -> None:
    assert classify(text) is ErrorClass.TRANSIENT
    assert match_marker(text) == marker
