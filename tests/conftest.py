"""Pytest configuration and fixtures."""

import json

import pytest
from typer.testing import CliRunner


@pytest.fixture
def users():
    """A small array of user records."""
    return [
        {"name": "Alice", "age": 34, "team": "core", "tags": ["admin", "dev"]},
        {"name": "Bob", "age": 27, "team": "web", "tags": ["dev"]},
        {"name": "Carol", "age": 41, "team": "core", "tags": []},
        {"name": "Dave", "age": 19, "team": "ops", "tags": ["oncall"]},
    ]


@pytest.fixture
def store():
    """A nested document for path queries."""
    return {
        "store": {
            "book": [
                {"title": "Sayings", "price": 8.95, "author": {"name": "Nigel"}},
                {"title": "Sword", "price": 12.99, "author": {"name": "Evelyn"}},
                {"title": "Moby Dick", "price": 8.99, "author": {"name": "Herman"}},
            ],
            "bicycle": {"color": "red", "price": 19.95},
        },
        "owner": {"name": "Ann"},
    }


@pytest.fixture
def users_file(tmp_path, users):
    """Write the users fixture to a JSON file and return its path."""
    path = tmp_path / "users.json"
    path.write_text(json.dumps(users), encoding="utf-8")
    return path


@pytest.fixture
def doc_files(tmp_path):
    """Two related JSON files for diffing."""
    old = tmp_path / "old.json"
    new = tmp_path / "new.json"
    old.write_text(json.dumps({"name": "app", "version": 1, "deps": ["a", "b"]}), encoding="utf-8")
    new.write_text(json.dumps({"name": "app", "version": 2, "deps": ["a", "b", "c"]}), encoding="utf-8")
    return old, new


@pytest.fixture
def runner():
    """Typer CLI test runner."""
    return CliRunner()
