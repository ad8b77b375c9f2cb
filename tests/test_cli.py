"""Tests for the command line interface."""

import json

import pytest

from contact_search import cli

from .conftest import FakeEmbeddingProvider

CONTACTS = [
    {"id": "c1", "name": "Ada Lovelace", "email": "ada@example.com", "tags": ["python", "math"]},
    {"id": "c2", "name": "Grace Hopper", "tags": ["AI"]},
]

CONVERSATIONS = [
    {
        "id": "conv-1",
        "contact_id": "c2",
        "transcription": "Discussed the startup budget",
        "summary": "Budget review",
        "created_at": "2024-05-01T10:00:00",
    },
]


@pytest.fixture
def data_files(tmp_path):
    contacts_path = tmp_path / "contacts.json"
    conversations_path = tmp_path / "conversations.json"
    contacts_path.write_text(json.dumps(CONTACTS))
    conversations_path.write_text(json.dumps(CONVERSATIONS))
    return str(contacts_path), str(conversations_path)


@pytest.fixture(autouse=True)
def fake_provider(monkeypatch):
    provider = FakeEmbeddingProvider()
    monkeypatch.setattr(cli, "create_embedding_provider", lambda config: provider)
    return provider


def test_search_json_output(data_files, capsys):
    contacts_path, _ = data_files

    exit_code = cli.main(["search", "Ada", "--contacts", contacts_path, "--json", "--debug"])

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["query"] == "Ada"
    assert payload["results"][0]["contact_id"] == "c1"
    assert payload["results"][0]["matched_field"] == "name"
    assert payload["results"][0]["score"] == 1.0
    assert payload["debug"][0]["final"] > 1.0


def test_search_with_conversations(data_files, capsys):
    contacts_path, conversations_path = data_files

    exit_code = cli.main([
        "search", "budget",
        "--contacts", contacts_path,
        "--conversations", conversations_path,
    ])

    assert exit_code == 0
    output = capsys.readouterr().out
    assert "1. Grace Hopper (c2)" in output


def test_tags_command(data_files, capsys):
    contacts_path, _ = data_files

    assert cli.main(["tags", "AI", "--contacts", contacts_path, "--max-results", "1"]) == 0
    output = capsys.readouterr().out
    assert "Grace Hopper" in output
    assert "field=tag" in output
    assert "Ada Lovelace" not in output


def test_no_results_message(data_files, capsys):
    contacts_path, _ = data_files

    assert cli.main(["search", "zebra", "--contacts", contacts_path]) == 0
    assert "No contacts match 'zebra'" in capsys.readouterr().out


def test_missing_contacts_file(tmp_path, capsys):
    exit_code = cli.main(["search", "Ada", "--contacts", str(tmp_path / "missing.json")])
    assert exit_code == 1
    assert "Error" in capsys.readouterr().err


def test_subcommand_required():
    with pytest.raises(SystemExit):
        cli.main([])


def test_invalid_setting_reports_error(data_files, capsys):
    """Test a rejected override exits with an error instead of a traceback."""
    contacts_path, _ = data_files

    exit_code = cli.main(["search", "Ada", "--contacts", contacts_path, "--max-results", "0"])

    assert exit_code == 1
    assert "Error" in capsys.readouterr().err
