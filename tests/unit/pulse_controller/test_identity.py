"""Tests for container identity extraction."""

import pytest

from pulse_controller.identity import (
    extract_identity,
    find_identity,
    normalize_source,
    safe_identity,
)

pytestmark = pytest.mark.unit_controller


@pytest.mark.parametrize(
    "script",
    [
        "docker run -d --name my-app nginx",
        "docker run -d --name 'my-app' nginx",
        'docker run -d --name "my-app" nginx',
        "docker run -d --name=my-app nginx",
        "docker run -d --name='my-app' nginx",
        'docker run -d --name="my-app" nginx',
        "docker run -d --name = my-app nginx",
        "docker run -d --name =my-app nginx",
        "docker run -d --name= my-app nginx",
        'docker run -d --name= "my-app" nginx',
        "docker   run   -d    --name     my-app     nginx",
        "docker run -d \\\n  --name my-app \\\n  -p 8080:80 \\\n  nginx",
        "docker run -d \\\r\n  --name my-app \\\r\n  nginx\r\n",
        "$ docker run -d --name my-app nginx",
        "% docker run -d --name=my-app nginx",
        "❯ docker run --name my-app nginx",
        "docker run -d \\\n  --name \\\n  my-app nginx",
    ],
)
def test_name_forms_yield_identity(script: str) -> None:
    assert extract_identity(script) == "my-app"


def test_identity_is_deterministic() -> None:
    script = "docker run --name my-app nginx\n"
    assert {extract_identity(script) for _ in range(5)} == {"my-app"}


def test_earlier_rule_wins_over_line_order() -> None:
    script = "docker run --name first nginx\ndocker run --name=second redis\n"
    match = find_identity(script)
    assert match.value == "second"
    assert match.rule == "equals_joined"


def test_comments_are_ignored() -> None:
    script = "# docker run --name old-app nginx\ndocker run --name new-app nginx\n"
    assert extract_identity(script) == "new-app"


def test_flag_value_must_not_be_another_flag() -> None:
    assert extract_identity("docker run --name -d nginx") is None
    assert extract_identity("docker run --name= -d nginx") is None


def test_no_name_means_no_identity() -> None:
    assert extract_identity("docker compose up -d\n") is None
    assert extract_identity("docker run -n web nginx") is None


def test_unbalanced_quotes_use_regex_fallback() -> None:
    script = "docker run --name my-app -e MOTD=\"it's nginx"
    assert extract_identity(script) == "my-app"


def test_semicolon_does_not_leak_into_value() -> None:
    assert extract_identity("docker rm -f x; docker run --name web; echo ok") == "web"


def test_normalize_joins_continuations_and_strips_prompts() -> None:
    text = "$ docker run \\\r\n    --name web \\\n    nginx\r\n"
    assert normalize_source(text) == "docker run --name web nginx\n"


def test_hash_prompt_is_left_alone() -> None:
    assert normalize_source("# comment\n") == "# comment\n"


def test_safe_identity() -> None:
    assert safe_identity("team/web:1") == "team_web_1"
