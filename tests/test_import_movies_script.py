"""
tests/test_import_movies_script.py

CLI behaviour of scripts/import_movies.py with storage replaced by the
in-memory store.
"""

from __future__ import annotations

import json

import pytest

from scripts import import_movies


@pytest.fixture()
def cli_store(monkeypatch, store, import_settings):
    monkeypatch.setattr(import_movies, "MovieRepository", lambda session_factory: store)
    monkeypatch.setattr(import_movies, "get_movie_import_settings", lambda: import_settings)
    monkeypatch.setattr(import_movies, "configure_logging", lambda level=None: None)
    return store


def test_successful_import_prints_summary(cli_store, tmp_path, make_row, csv_payload, capsys) -> None:
    path = tmp_path / "movies.csv"
    path.write_bytes(csv_payload([make_row("1", "Heat"), make_row("2", "Alien")]))

    exit_code = import_movies.main([str(path), "--batch-size", "1"])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert payload["processedCount"] == 2
    assert payload["errorCount"] == 0
    assert sorted(cli_store.records) == ["1", "2"]


def test_import_with_nothing_stored_exits_one(cli_store, tmp_path, make_row, csv_payload) -> None:
    path = tmp_path / "movies.csv"
    path.write_bytes(csv_payload([make_row("", "Untitled")]))

    assert import_movies.main([str(path)]) == 1


def test_invalid_headers_exit_two(cli_store, tmp_path, capsys) -> None:
    path = tmp_path / "movies.csv"
    path.write_bytes(b"id,title\n1,Heat\n")

    assert import_movies.main([str(path)]) == 2
    assert "Missing required columns" in capsys.readouterr().err


def test_missing_file_exits_two(cli_store, tmp_path) -> None:
    assert import_movies.main([str(tmp_path / "absent.csv")]) == 2
