"""Unit tests for DepositOrchestrator."""

from unittest.mock import call

import pytest

import messages
from deposit import DepositOrchestrator
from models.records import DepositStatus, LocalRecord, RecordFile, TenantSettings
from models.results import Err, Ok
from repository import InMemoryRecordRepository

METADATA_JSON = '{"metadata":{"title":"T"}}'


@pytest.fixture
def orchestrator(repository, mock_client) -> DepositOrchestrator:
    """Create an orchestrator whose client factory returns the mock client."""
    return DepositOrchestrator(repository, client_factory=lambda settings: mock_client)


class TestPreconditions:
    """Tests for the checks made before any remote call."""

    def test_missing_api_key(self, orchestrator, record, mock_client):
        result = orchestrator.deposit(record, TenantSettings(api_key=""), METADATA_JSON)

        assert not result.ok
        assert result.message_keys == [messages.NO_API_KEY]
        assert mock_client.method_calls == []

    def test_missing_doi_without_minting(self, orchestrator, record, mock_client):
        record.doi = ""
        settings = TenantSettings(api_key="k", mint_doi=False)

        result = orchestrator.deposit(record, settings, METADATA_JSON)

        assert not result.ok
        assert result.message_keys == [messages.NO_DOI]
        assert mock_client.method_calls == []
        assert record.deposit_status == DepositStatus.NONE.value

    def test_missing_doi_with_minting_is_deposited(
        self, orchestrator, record, mock_client
    ):
        record.doi = None
        mock_client.create_draft.return_value = Ok("abc123")
        settings = TenantSettings(api_key="k", mint_doi=True)

        result = orchestrator.deposit(record, settings, METADATA_JSON)

        assert result.ok


class TestNewRecord:
    """Tests for depositing a record that has no remote ID yet."""

    def test_create_without_publishing(
        self, orchestrator, record, repository, settings, mock_client
    ):
        mock_client.create_draft.return_value = Ok("abc123")

        result = orchestrator.deposit(record, settings, METADATA_JSON)

        assert result.ok
        assert result.value is True
        mock_client.create_draft.assert_called_once_with(METADATA_JSON)
        mock_client.publish_draft.assert_not_called()
        mock_client.is_published.assert_not_called()
        stored = repository.get("42")
        assert stored.remote_id == "abc123"
        assert stored.deposit_status == DepositStatus.REGISTERED.value

    def test_automatic_publishing(self, orchestrator, record, settings, mock_client):
        settings.automatic_publishing = True
        mock_client.create_draft.return_value = Ok("abc123")
        mock_client.publish_draft.return_value = Ok(True)

        result = orchestrator.deposit(record, settings, METADATA_JSON)

        assert result.ok
        mock_client.publish_draft.assert_called_once_with("abc123")

    def test_create_failure_marks_error(
        self, orchestrator, record, repository, settings, mock_client
    ):
        mock_client.create_draft.return_value = Err.of(
            messages.MDS_ERROR, "bad (400 BAD REQUEST)"
        )

        result = orchestrator.deposit(record, settings, METADATA_JSON)

        assert result.message_keys == [messages.MDS_ERROR]
        stored = repository.get("42")
        assert stored.deposit_status == DepositStatus.ERROR.value
        assert stored.deposit_message == "bad (400 BAD REQUEST)"
        assert stored.remote_id is None

    def test_files_are_uploaded(self, orchestrator, record, settings, mock_client, tmp_path):
        galley = tmp_path / "article.pdf"
        galley.write_bytes(b"%PDF-1.7")
        record.files = [RecordFile(name="article.pdf", path=str(galley))]
        mock_client.create_draft.return_value = Ok("abc123")
        mock_client.upload_file.return_value = Ok(True)

        result = orchestrator.deposit(record, settings, METADATA_JSON)

        assert result.ok
        remote_id, file_name, _ = mock_client.upload_file.call_args.args
        assert (remote_id, file_name) == ("abc123", "article.pdf")

    def test_missing_local_file_is_a_file_error(
        self, orchestrator, record, settings, mock_client, tmp_path
    ):
        record.files = [RecordFile(name="a.pdf", path=str(tmp_path / "missing.pdf"))]
        mock_client.create_draft.return_value = Ok("abc123")

        result = orchestrator.deposit(record, settings, METADATA_JSON)

        assert result.message_keys == [messages.FILE_ERROR]
        assert record.deposit_status == DepositStatus.ERROR.value
        mock_client.upload_file.assert_not_called()

    def test_upload_failure_stops_the_deposit(
        self, orchestrator, record, settings, mock_client, tmp_path
    ):
        galley = tmp_path / "article.pdf"
        galley.write_bytes(b"%PDF-1.7")
        record.files = [RecordFile(name="article.pdf", path=str(galley))]
        settings.automatic_publishing = True
        mock_client.create_draft.return_value = Ok("abc123")
        mock_client.upload_file.return_value = Err.of(messages.FILE_ERROR, "quota")

        result = orchestrator.deposit(record, settings, METADATA_JSON)

        assert result.message_keys == [messages.FILE_ERROR]
        mock_client.publish_draft.assert_not_called()


class TestIdempotentIdentifier:
    """Depositing twice reuses the remote ID."""

    def test_second_deposit_updates_instead_of_creating(
        self, orchestrator, record, settings, mock_client
    ):
        mock_client.create_draft.return_value = Ok("abc123")
        assert orchestrator.deposit(record, settings, METADATA_JSON).ok

        mock_client.is_published.return_value = Ok(False)
        mock_client.delete_draft.return_value = Ok(True)
        mock_client.update_draft.return_value = Ok("abc123")

        result = orchestrator.deposit(record, settings, METADATA_JSON)

        assert result.ok
        assert mock_client.create_draft.call_count == 1
        mock_client.update_draft.assert_called_once_with("abc123", METADATA_JSON)
        assert record.remote_id == "abc123"

    def test_stale_draft_delete_failure(
        self, orchestrator, record, repository, settings, mock_client
    ):
        record.remote_id = "abc123"
        mock_client.is_published.return_value = Ok(False)
        mock_client.delete_draft.return_value = Err.of(
            messages.RECORD_DELETE_ERROR, "locked (409 CONFLICT)"
        )

        result = orchestrator.deposit(record, settings, METADATA_JSON)

        assert result.message_keys == [messages.RECORD_DELETE_ERROR]
        mock_client.update_draft.assert_not_called()
        assert repository.get("42").deposit_status == DepositStatus.ERROR.value

    def test_stale_draft_review_is_cancelled_before_delete(
        self, orchestrator, record, settings, mock_client
    ):
        record.remote_id = "abc123"
        mock_client.is_published.return_value = Ok(False)
        mock_client.get_draft_review.return_value = Ok("req-1")
        mock_client.cancel_review.return_value = Ok(True)
        mock_client.delete_draft.return_value = Ok(True)
        mock_client.update_draft.return_value = Ok("abc123")

        result = orchestrator.deposit(record, settings, METADATA_JSON)

        assert result.ok
        names = [name for name, _, _ in mock_client.method_calls]
        assert names.index("cancel_review") < names.index("delete_draft")
        mock_client.cancel_review.assert_called_once_with("req-1")

    def test_review_lookup_failure_still_deletes(
        self, orchestrator, record, settings, mock_client
    ):
        record.remote_id = "abc123"
        mock_client.is_published.return_value = Ok(False)
        mock_client.get_draft_review.return_value = Err.of(
            messages.REVIEW_CHECK_ERROR, "oops (500 INTERNAL SERVER ERROR)"
        )
        mock_client.delete_draft.return_value = Ok(True)
        mock_client.update_draft.return_value = Ok("abc123")

        result = orchestrator.deposit(record, settings, METADATA_JSON)

        assert result.ok
        mock_client.cancel_review.assert_not_called()
        mock_client.delete_draft.assert_called_once_with("abc123")

    def test_published_check_failure(self, orchestrator, record, settings, mock_client):
        record.remote_id = "abc123"
        mock_client.is_published.return_value = Err.of(
            messages.PUBLISH_CHECK_ERROR, "oops (500 INTERNAL SERVER ERROR)"
        )

        result = orchestrator.deposit(record, settings, METADATA_JSON)

        assert result.message_keys == [messages.PUBLISH_CHECK_ERROR]
        mock_client.delete_draft.assert_not_called()
        mock_client.update_draft.assert_not_called()


class TestSiblingFanOut:
    """The remote ID is shared by every record of a version group."""

    def test_remote_id_written_to_siblings(self, mock_client, settings):
        siblings = [
            LocalRecord(
                local_id=f"v1.{minor}",
                submission_id="5",
                tenant_id="journal-a",
                version_stage="X",
                version_major=1,
                version_minor=minor,
                doi=f"10.1/x.{minor}",
                title=f"Minor {minor}",
            )
            for minor in range(3)
        ]
        other_major = LocalRecord(
            local_id="v2.0",
            submission_id="5",
            version_stage="X",
            version_major=2,
            doi="10.1/y",
        )
        repository = InMemoryRecordRepository(siblings + [other_major])
        orchestrator = DepositOrchestrator(repository, client_factory=lambda s: mock_client)
        mock_client.create_draft.return_value = Ok("abc123")

        result = orchestrator.deposit(repository.get("v1.1"), settings, METADATA_JSON)

        assert result.ok
        for local_id in ("v1.0", "v1.1", "v1.2"):
            assert repository.get(local_id).remote_id == "abc123"
        assert repository.get("v1.0").title == "Minor 0"
        assert repository.get("v1.0").deposit_status == DepositStatus.NONE.value
        assert repository.get("v1.2").doi == "10.1/x.2"
        assert repository.get("v2.0").remote_id is None


class TestPublishedRecord:
    """A published record gets a new draft and keeps its files."""

    def test_published_record_skips_uploads(
        self, orchestrator, record, settings, mock_client, tmp_path
    ):
        galley = tmp_path / "article.pdf"
        galley.write_bytes(b"%PDF-1.7")
        record.files = [RecordFile(name="article.pdf", path=str(galley))]
        record.remote_id = "abc123"
        mock_client.is_published.return_value = Ok(True)
        mock_client.create_draft_from_published.return_value = Ok(True)
        mock_client.update_draft.return_value = Ok("abc123")
        mock_client.publish_draft.return_value = Ok(True)

        result = orchestrator.deposit(record, settings, METADATA_JSON)

        assert result.ok
        mock_client.upload_file.assert_not_called()
        mock_client.delete_draft.assert_not_called()
        mock_client.create_draft_from_published.assert_called_once_with("abc123")
        names = [name for name, _, _ in mock_client.method_calls]
        assert names.index("create_draft_from_published") < names.index("update_draft")
        # Published records are always re-published after the update
        mock_client.publish_draft.assert_called_once_with("abc123")

    def test_new_draft_failure(self, orchestrator, record, settings, mock_client):
        record.remote_id = "abc123"
        mock_client.is_published.return_value = Ok(True)
        mock_client.create_draft_from_published.return_value = Err.of(
            messages.DRAFT_PUBLISH_ERROR, "nope"
        )

        result = orchestrator.deposit(record, settings, METADATA_JSON)

        assert result.message_keys == [messages.DRAFT_PUBLISH_ERROR]
        mock_client.update_draft.assert_not_called()

    def test_community_not_resubmitted_on_update(
        self, orchestrator, record, settings, mock_client
    ):
        settings.community_id = "community-uuid"
        record.remote_id = "abc123"
        mock_client.is_published.return_value = Ok(True)
        mock_client.create_draft_from_published.return_value = Ok(True)
        mock_client.update_draft.return_value = Ok("abc123")
        mock_client.publish_draft.return_value = Ok(True)

        result = orchestrator.deposit(record, settings, METADATA_JSON)

        assert result.ok
        mock_client.create_review.assert_not_called()


class TestPublishCompensation:
    """A failed publish discards the draft and reports only the publish error."""

    def test_publish_failure_deletes_draft(
        self, orchestrator, record, repository, settings, mock_client
    ):
        settings.automatic_publishing = True
        mock_client.create_draft.return_value = Ok("abc123")
        mock_client.publish_draft.return_value = Err.of(
            messages.PUBLISH_ERROR, "missing creators (400 BAD REQUEST)"
        )
        mock_client.delete_draft.return_value = Ok(True)

        result = orchestrator.deposit(record, settings, METADATA_JSON)

        assert result.message_keys == [messages.PUBLISH_ERROR]
        mock_client.delete_draft.assert_called_once_with("abc123")
        stored = repository.get("42")
        assert stored.remote_id is None
        assert stored.deposit_status == DepositStatus.ERROR.value

    def test_failed_compensation_is_not_reported(
        self, orchestrator, record, repository, settings, mock_client
    ):
        settings.automatic_publishing = True
        mock_client.create_draft.return_value = Ok("abc123")
        mock_client.publish_draft.return_value = Err.of(messages.PUBLISH_ERROR, "p")
        mock_client.delete_draft.return_value = Err.of(
            messages.RECORD_DELETE_ERROR, "d"
        )

        result = orchestrator.deposit(record, settings, METADATA_JSON)

        assert result.message_keys == [messages.PUBLISH_ERROR]
        assert [e.param for e in result.errors] == ["p"]
        mock_client.delete_draft.assert_called_once_with("abc123")
        assert repository.get("42").remote_id == "abc123"

    def test_published_record_keeps_remote_id(
        self, orchestrator, record, repository, settings, mock_client
    ):
        record.remote_id = "abc123"
        mock_client.is_published.return_value = Ok(True)
        mock_client.create_draft_from_published.return_value = Ok(True)
        mock_client.update_draft.return_value = Ok("abc123")
        mock_client.publish_draft.return_value = Err.of(messages.PUBLISH_ERROR, "p")
        mock_client.delete_draft.return_value = Ok(True)

        result = orchestrator.deposit(record, settings, METADATA_JSON)

        assert result.message_keys == [messages.PUBLISH_ERROR]
        assert repository.get("42").remote_id == "abc123"


class TestCommunitySubmission:
    """Tests for submitting new records to the tenant's community."""

    def test_submit_and_accept(self, orchestrator, record, settings, mock_client):
        settings.community_id = "community-uuid"
        settings.automatic_publishing_community = True
        mock_client.create_draft.return_value = Ok("abc123")
        mock_client.create_review.return_value = Ok(True)
        mock_client.submit_review.return_value = Ok("req-1")
        mock_client.accept_review.return_value = True

        result = orchestrator.deposit(record, settings, METADATA_JSON)

        assert result.ok
        mock_client.create_review.assert_called_once_with("abc123", "community-uuid")
        mock_client.submit_review.assert_called_once_with("abc123")
        mock_client.accept_review.assert_called_once_with("req-1")

    def test_accept_only_when_enabled(self, orchestrator, record, settings, mock_client):
        settings.community_id = "community-uuid"
        mock_client.create_draft.return_value = Ok("abc123")
        mock_client.create_review.return_value = Ok(True)
        mock_client.submit_review.return_value = Ok("req-1")

        result = orchestrator.deposit(record, settings, METADATA_JSON)

        assert result.ok
        mock_client.accept_review.assert_not_called()

    def test_review_failure_keeps_record_registered(
        self, orchestrator, record, repository, settings, mock_client
    ):
        settings.community_id = "community-uuid"
        mock_client.create_draft.return_value = Ok("abc123")
        mock_client.create_review.return_value = Err.of(
            messages.CREATE_REVIEW_ERROR, "closed (403 FORBIDDEN)"
        )

        result = orchestrator.deposit(record, settings, METADATA_JSON)

        assert result.message_keys == [messages.CREATE_REVIEW_ERROR]
        mock_client.submit_review.assert_not_called()
        assert repository.get("42").deposit_status == DepositStatus.REGISTERED.value


class TestDeleteDraft:
    """Tests for withdrawing an unpublished draft."""

    def test_cancels_review_and_clears_ids(
        self, orchestrator, record, repository, settings, mock_client
    ):
        record.remote_id = "abc123"
        record.deposit_status = DepositStatus.REGISTERED
        mock_client.get_draft_review.return_value = Ok("req-1")
        mock_client.cancel_review.return_value = Ok(True)
        mock_client.delete_draft.return_value = Ok(True)

        result = orchestrator.delete_draft(record, settings)

        assert result.ok
        assert mock_client.method_calls[-2:] == [
            call.cancel_review("req-1"),
            call.delete_draft("abc123"),
        ]
        stored = repository.get("42")
        assert stored.remote_id is None
        assert stored.deposit_status == DepositStatus.NONE.value

    def test_without_review(self, orchestrator, record, settings, mock_client):
        record.remote_id = "abc123"
        mock_client.get_draft_review.return_value = Ok(None)
        mock_client.delete_draft.return_value = Ok(True)

        result = orchestrator.delete_draft(record, settings)

        assert result.ok
        mock_client.cancel_review.assert_not_called()

    def test_nothing_to_delete(self, orchestrator, record, settings, mock_client):
        result = orchestrator.delete_draft(record, settings)

        assert result.ok
        assert mock_client.method_calls == []

    def test_delete_failure(self, orchestrator, record, settings, mock_client):
        record.remote_id = "abc123"
        mock_client.get_draft_review.return_value = Ok(None)
        mock_client.delete_draft.return_value = Err.of(
            messages.RECORD_DELETE_ERROR, "published"
        )

        result = orchestrator.delete_draft(record, settings)

        assert result.message_keys == [messages.RECORD_DELETE_ERROR]
        assert record.remote_id == "abc123"
