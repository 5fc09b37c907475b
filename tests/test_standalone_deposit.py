"""Tests for the standalone command-line runner."""

import json
from unittest.mock import MagicMock

import pytest

import standalone_deposit
from deposit import DepositOrchestrator
from models.results import Err, Ok
from repository import JsonFileRecordRepository
from zenodo_client import ZenodoClient


@pytest.fixture
def config_path(tmp_path) -> str:
    """A config with one automatically registering tenant and two records."""
    records_file = tmp_path / "records.json"
    records_file.write_text(
        json.dumps(
            [
                {"localId": "1", "submissionId": "1", "tenantId": "journal-a", "doi": "10.1/1"},
                {"localId": "2", "submissionId": "2", "tenantId": "journal-a"},
            ]
        ),
        encoding="utf-8",
    )
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "records_file": str(records_file),
                "tenants": [
                    {
                        "tenantId": "journal-a",
                        "apiKey": "k",
                        "testMode": True,
                        "automaticRegistration": True,
                    }
                ],
            }
        ),
        encoding="utf-8",
    )
    return str(path)


@pytest.fixture
def patched_client(monkeypatch) -> ZenodoClient:
    """Make the runner deposit through a mock client."""
    client = MagicMock(spec=ZenodoClient)
    monkeypatch.setattr(
        standalone_deposit,
        "DepositOrchestrator",
        lambda repository: DepositOrchestrator(
            repository, client_factory=lambda settings: client
        ),
    )
    return client


def run(config_path, tmp_path, *args) -> int:
    return standalone_deposit.main(
        ["--config", config_path, "--log-file", str(tmp_path / "zensync.log"), *args]
    )


class TestMain:
    """Tests for the sub-commands."""

    def test_deposit_reports_failures(self, config_path, tmp_path, patched_client):
        patched_client.create_draft.return_value = Ok("abc123")

        exit_code = run(config_path, tmp_path, "deposit", "journal-a")

        # Record 2 has no DOI and DOI minting is off
        assert exit_code == 1
        repository = JsonFileRecordRepository(str(tmp_path / "records.json"))
        assert repository.get("1").remote_id == "abc123"
        assert repository.get("2").remote_id is None
        patched_client.create_draft.assert_called_once()

    def test_deposit_selected_records(self, config_path, tmp_path, patched_client):
        patched_client.create_draft.return_value = Ok("abc123")

        assert run(config_path, tmp_path, "deposit", "journal-a", "--ids", "1") == 0

    def test_send(self, config_path, tmp_path, patched_client):
        patched_client.create_draft.return_value = Err.of("mdsError", "down")

        assert run(config_path, tmp_path, "send") == 1
        assert patched_client.create_draft.call_count == 1

    def test_export(self, config_path, tmp_path):
        output = tmp_path / "export.json"

        assert run(config_path, tmp_path, "export", "journal-a", str(output)) == 0
        assert len(json.loads(output.read_text(encoding="utf-8"))) == 2

    def test_mark_registered(self, config_path, tmp_path):
        assert run(config_path, tmp_path, "mark-registered", "journal-a", "--ids", "2") == 0

    def test_unknown_tenant(self, config_path, tmp_path):
        assert run(config_path, tmp_path, "deposit", "journal-z") == 1

    def test_missing_config(self, tmp_path):
        assert run(str(tmp_path / "missing.json"), tmp_path, "send") == 1
