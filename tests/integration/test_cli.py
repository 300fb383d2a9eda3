import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from cosmodb.cli import cli, parse_sort, parse_where
from cosmodb.core.config import Settings


@pytest.fixture
def store(tmp_path):
    directory = tmp_path / "store"
    directory.mkdir()
    (directory / "tasks.json").write_text(json.dumps([
        {"id": "1", "text": "b", "priority": 2, "status": "pending"},
        {"id": "2", "text": "a", "priority": 1, "status": "done"},
        {"id": "3", "text": "c", "priority": 2, "status": "pending"},
    ]), encoding="utf-8")
    (directory / "empty.json").write_text("[]", encoding="utf-8")
    return directory


def invoke(args, **overrides):
    """Run the CLI with settings isolated from the environment."""
    settings = Settings(_env_file=None, environment="testing", **overrides)
    with patch("cosmodb.cli.get_settings", return_value=settings):
        return CliRunner().invoke(cli, args)


def test_collections(store):
    result = invoke(["--directory", str(store), "collections"])

    assert result.exit_code == 0
    assert result.output.splitlines() == ["empty\t0", "tasks\t3"]


def test_collections_corrupt_file(store):
    (store / "tasks.json").write_text("{not json", encoding="utf-8")

    result = invoke(["--directory", str(store), "collections"])

    assert result.exit_code == 1
    assert "ERROR: Error loading collection tasks" in result.output
    assert "Traceback" not in result.output


def test_count(store):
    result = invoke(["--directory", str(store), "count", "tasks", "--where", "priority=2"])

    assert result.exit_code == 0
    assert result.output.strip() == "2"


def test_count_missing_collection(store):
    result = invoke(["--directory", str(store), "count", "nothing"])

    assert result.exit_code == 0
    assert result.output.strip() == "0"


def test_find_with_options(store):
    result = invoke([
        "--directory", str(store),
        "find", "tasks",
        "-w", "status=pending",
        "--sort", "text:desc",
        "--limit", "1",
    ])

    assert result.exit_code == 0
    assert json.loads(result.output) == [
        {"id": "3", "text": "c", "priority": 2, "status": "pending"}
    ]


def test_find_does_not_write(store):
    before = (store / "tasks.json").read_text(encoding="utf-8")

    invoke(["--directory", str(store), "find", "tasks"])

    assert (store / "tasks.json").read_text(encoding="utf-8") == before
    assert sorted(path.name for path in store.iterdir()) == ["empty.json", "tasks.json"]


def test_find_rejected_operator(store):
    result = invoke(
        ["--directory", str(store), "find", "tasks", "-w", "$gt=1"],
        reserved_operator_policy="reject",
    )

    assert result.exit_code == 1
    assert "ERROR: Query operators are not supported: $gt" in result.output


def test_bad_where(store):
    result = invoke(["--directory", str(store), "count", "tasks", "--where", "priority"])

    assert result.exit_code == 2


def test_parse_where():
    assert parse_where(("a=1", "b=true", "c=null", 'd="2"', "e=plain", "f=")) == {
        "a": 1,
        "b": True,
        "c": None,
        "d": "2",
        "e": "plain",
        "f": "",
    }


def test_parse_sort():
    assert parse_sort(("a", "b:desc", "c:ASC")) == {"a": 1, "b": -1, "c": 1}
