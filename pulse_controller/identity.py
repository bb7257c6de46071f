"""Container identity extraction from free-form installer scripts.

The accepted forms of the name flag, in priority order::

    --name=VALUE
    --name = VALUE   |  --name =VALUE  |  --name= VALUE
    --name VALUE

VALUE may be bare, single-quoted or double-quoted. The first form found
anywhere in the script wins over later forms, so a script mixing styles
resolves deterministically.
"""

from __future__ import annotations

import re
import shlex
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

NAME_FLAG = "--name"
PROMPT_GLYPHS = ("$ ", "% ", "❯ ", "➜ ")

_CONTINUATION = re.compile(r"[ \t]*\\[ \t]*\n[ \t]*")
_VALUE = r"""(?:"([^"]*)"|'([^']*)'|([^\s"';&|<>()]+))"""
_UNSAFE_PATH_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def _strip_prompt(line: str) -> str:
    stripped = line.lstrip()
    for glyph in PROMPT_GLYPHS:
        if stripped.startswith(glyph):
            return stripped[len(glyph):]
    return line


def normalize_source(text: str) -> str:
    """Strip CRs and prompt glyphs, then join backslash continuations."""
    text = text.replace("\r", "")
    text = "\n".join(_strip_prompt(line) for line in text.split("\n"))
    return _CONTINUATION.sub(" ", text)


def tokenize(line: str) -> List[str]:
    """POSIX shell-like tokens; ``#`` comments dropped. Raises ValueError on bad quoting."""
    lexer = shlex.shlex(line, posix=True, punctuation_chars=True)
    lexer.whitespace_split = True
    return list(lexer)


TokenMatcher = Callable[[Sequence[str], int], Optional[str]]


def _equals_joined(tokens: Sequence[str], index: int) -> Optional[str]:
    token = tokens[index]
    if token.startswith(NAME_FLAG + "="):
        return token[len(NAME_FLAG) + 1:]
    return None


def _spaced_equals(tokens: Sequence[str], index: int) -> Optional[str]:
    if tokens[index] == NAME_FLAG + "=" and index + 1 < len(tokens):
        following = tokens[index + 1]
        return None if following.startswith("-") else following
    if tokens[index] != NAME_FLAG or index + 1 >= len(tokens):
        return None
    following = tokens[index + 1]
    if following == "=":
        return tokens[index + 2] if index + 2 < len(tokens) else None
    if following.startswith("=") and len(following) > 1:
        return following[1:]
    return None


def _separate(tokens: Sequence[str], index: int) -> Optional[str]:
    if tokens[index] != NAME_FLAG or index + 1 >= len(tokens):
        return None
    following = tokens[index + 1]
    if following.startswith("-") or following.startswith("="):
        return None
    return following


@dataclass(frozen=True)
class NameRule:
    """One accepted form: a token matcher plus a regex used when tokenizing fails."""

    name: str
    match_tokens: TokenMatcher
    fallback: re.Pattern[str]

    def match_line(self, tokens: Optional[Sequence[str]], line: str) -> Optional[str]:
        if tokens is None:
            found = self.fallback.search(line)
            if not found:
                return None
            return next((group for group in found.groups() if group is not None), None)
        for index in range(len(tokens)):
            value = self.match_tokens(tokens, index)
            if value:
                return value
        return None


NAME_RULES: tuple[NameRule, ...] = (
    NameRule("equals_joined", _equals_joined, re.compile(rf"--name={_VALUE}")),
    NameRule("spaced_equals", _spaced_equals, re.compile(rf"--name\s*=\s*{_VALUE}")),
    NameRule(
        "separate",
        _separate,
        re.compile(r"""--name\s+(?:"([^"]*)"|'([^']*)'|([^\s"';&|<>()=-][^\s"';&|<>()]*))"""),
    ),
)


@dataclass(frozen=True)
class IdentityMatch:
    value: str
    rule: str


def _logical_lines(text: str) -> List[tuple[str, Optional[List[str]]]]:
    lines: list[tuple[str, Optional[list[str]]]] = []
    for line in normalize_source(text).split("\n"):
        if NAME_FLAG not in line:
            continue
        try:
            tokens: Optional[list[str]] = tokenize(line)
        except ValueError:
            tokens = None
        lines.append((line, tokens))
    return lines


def find_identity(text: str) -> Optional[IdentityMatch]:
    """Return the first identity by rule priority, then by line order."""
    lines = _logical_lines(text)
    for rule in NAME_RULES:
        for line, tokens in lines:
            value = rule.match_line(tokens, line)
            if value:
                return IdentityMatch(value=value, rule=rule.name)
    return None


def extract_identity(text: str) -> Optional[str]:
    match = find_identity(text)
    return match.value if match else None


def safe_identity(identity: str) -> str:
    """Filesystem-safe form used for per-job attempt log directories."""
    return _UNSAFE_PATH_CHARS.sub("_", identity) or "_"
