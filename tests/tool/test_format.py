"""Tests for output formatters."""

import io

import pytest

from proxy_apiserver.tool.format import (
    NameFormatter,
    TableFormatter,
    YamlFormatter,
    formatter_for,
)

OBJECTS = [
    {
        "apiVersion": "apps.maisem.dev/v1",
        "kind": "Deployment",
        "metadata": {"name": "web", "namespace": "default"},
    },
    {
        "apiVersion": "apps.maisem.dev/v1",
        "kind": "Deployment",
        "metadata": {"name": "api", "namespace": "staging"},
    },
]


def test_writes_to_current_stdout(capsys: pytest.CaptureFixture[str]) -> None:
    """Test formatters resolve stdout when printing rather than at import."""
    NameFormatter().print(OBJECTS)
    assert capsys.readouterr().out == "deployment/web\ndeployment/api\n"

    TableFormatter().print(OBJECTS)
    assert capsys.readouterr().out == "NAME\nweb\napi\n"


def test_writes_to_file(capsys: pytest.CaptureFixture[str]) -> None:
    out = io.StringIO()
    TableFormatter(with_namespace=True).print(OBJECTS, file=out)
    assert [line.split() for line in out.getvalue().splitlines()] == [
        ["NAMESPACE", "NAME"],
        ["default", "web"],
        ["staging", "api"],
    ]
    assert capsys.readouterr().out == ""


def test_table_empty(capsys: pytest.CaptureFixture[str]) -> None:
    TableFormatter().print([])
    assert capsys.readouterr().out == ""


@pytest.mark.parametrize(
    ("output", "formatter"),
    [("name", NameFormatter), ("yaml", YamlFormatter), (None, TableFormatter)],
)
def test_formatter_for(output: str | None, formatter: type) -> None:
    assert isinstance(formatter_for(output), formatter)
