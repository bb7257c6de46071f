"""Transient vs fatal classification of captured error text."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorClass(str, Enum):
    TRANSIENT = "transient"
    FATAL = "fatal"


@dataclass(frozen=True)
class TransientMarker:
    name: str
    regex: re.Pattern[str]


TRANSIENT_MARKERS: tuple[TransientMarker, ...] = (
    TransientMarker("eof", re.compile(r"eof|unexpected end of (?:file|stream)|end of stream", re.I)),
    TransientMarker("connection_reset", re.compile(r"connection reset", re.I)),
    TransientMarker("broken_pipe", re.compile(r"broken pipe", re.I)),
    TransientMarker(
        "timeout",
        re.compile(r"timed?[ -]?out|deadline exceeded", re.I),
    ),
    TransientMarker("connection_refused", re.compile(r"connection refused", re.I)),
    TransientMarker(
        "socket_missing",
        re.compile(
            r"\.sock\b[^\n]*no such file or directory|cannot connect to the docker daemon",
            re.I,
        ),
    ),
    TransientMarker("context_canceled", re.compile(r"context cancell?ed", re.I)),
    TransientMarker(
        "closing_connection",
        re.compile(
            r"use of closed network connection|server closed idle connection|closing connection",
            re.I,
        ),
    ),
)


def match_marker(text: str | None) -> Optional[str]:
    """Name of the first transient marker found in ``text``."""
    if not text:
        return None
    for marker in TRANSIENT_MARKERS:
        if marker.regex.search(text):
            return marker.name
    return None


def classify(text: str | None) -> ErrorClass:
    """Transient when a transport marker is present; anything else is fatal."""
    return ErrorClass.TRANSIENT if match_marker(text) else ErrorClass.FATAL
