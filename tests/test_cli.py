"""CLI tests: URL flag parsing and the create/stats/migrate commands."""

import pytest

from shortener.cli import build_parser, main, parse_url_flag
from shortener.config import Settings


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("https://www.google.com", ["https://www.google.com"]),
        ('["https://www.google.com", "https://www.github.com"]', ["https://www.google.com", "https://www.github.com"]),
        ("['https://www.google.com', 'https://www.github.com']", ["https://www.google.com", "https://www.github.com"]),
        ("[https://www.google.com, https://www.github.com]", ["https://www.google.com", "https://www.github.com"]),
        ("  https://www.python.org  ", ["https://www.python.org"]),
    ],
)
def test_parse_url_flag(value: str, expected: list[str]) -> None:
    assert parse_url_flag(value) == expected


@pytest.mark.parametrize("value", ["[]", "[ ]", '[""]'])
def test_parse_url_flag_rejects_empty_array(value: str) -> None:
    with pytest.raises(ValueError):
        parse_url_flag(value)


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_migrate(settings: Settings, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["migrate"], settings=settings) == 0
    assert "Database migrations executed successfully." in capsys.readouterr().out


def test_create_then_stats(settings: Settings, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["migrate"], settings=settings) == 0
    capsys.readouterr()

    assert main(["create", "--url", "https://www.example.com"], settings=settings) == 0
    out = capsys.readouterr().out
    assert "[1/1] https://www.example.com" in out
    assert "1 out of 1 URL(s) shortened successfully." in out

    code_line = next(line for line in out.splitlines() if line.strip().startswith("Code:"))
    code = code_line.split(":", 1)[1].strip()
    assert len(code) == 6
    assert f"Full URL: http://localhost:8080/{code}" in out

    assert main(["stats", "--code", code], settings=settings) == 0
    out = capsys.readouterr().out
    assert f"Statistics for short code: {code}" in out
    assert "Long URL: https://www.example.com" in out
    assert "Total clicks: 0" in out


def test_create_many(settings: Settings, capsys: pytest.CaptureFixture[str]) -> None:
    main(["migrate"], settings=settings)
    capsys.readouterr()

    urls = '["https://www.google.com", "https://www.github.com"]'
    assert main(["create", "--url", urls], settings=settings) == 0

    out = capsys.readouterr().out
    assert "[2/2] https://www.github.com" in out
    assert "2 out of 2 URL(s) shortened successfully." in out


def test_create_rejects_invalid_url(settings: Settings, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["create", "--url", '["https://www.google.com", "not a url"]'], settings=settings) == 1
    assert "Error: Invalid URL format for URL #2 (not a url)" in capsys.readouterr().out


def test_create_rejects_empty_array(settings: Settings, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["create", "--url", "[]"], settings=settings) == 1
    assert "Failed to parse URL flag" in capsys.readouterr().out


def test_stats_unknown_code(settings: Settings, capsys: pytest.CaptureFixture[str]) -> None:
    main(["migrate"], settings=settings)
    capsys.readouterr()

    assert main(["stats", "--code", "zzz999"], settings=settings) == 1
    assert "Error: Short code 'zzz999' not found" in capsys.readouterr().out
