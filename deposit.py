"""Deposit of a local publication into Zenodo.

``DepositOrchestrator.deposit`` drives one record through the remote
lifecycle::

    preconditions -> published check -> stale draft removal
      -> create / update draft -> remote ID fan-out -> file upload
      -> publish -> registered -> community submission

The first failing step ends the run and its errors are returned; only the
accept-review step and the compensating draft removal after a failed
publish are best-effort.  Deposits of the same version group must not run
concurrently: the remote ID fan-out is not locked.
"""

import logging
from typing import Callable, Optional

import messages
from models.records import DepositStatus, LocalRecord, TenantSettings
from models.results import Err, Ok, Result
from repository import RecordRepository
from zenodo_client import ZenodoClient

logger = logging.getLogger("zensync.deposit")

ClientFactory = Callable[[TenantSettings], ZenodoClient]


class DepositOrchestrator:
    """
    Deposits local records and keeps their remote identifiers in sync.

    Attributes:
        repository (RecordRepository): Persists records and finds version groups.
        client_factory (ClientFactory): Builds the API client for a tenant.
    """

    def __init__(
        self,
        repository: RecordRepository,
        client_factory: ClientFactory = ZenodoClient.from_settings,
    ):
        self.repository = repository
        self.client_factory = client_factory

    def deposit(
        self, record: LocalRecord, settings: TenantSettings, metadata_json: str
    ) -> Result[bool]:
        """
        Creates or updates the Zenodo record of a local record.

        Args:
            record (LocalRecord): The record to deposit.
            settings (TenantSettings): The settings of the record's tenant.
            metadata_json (str): The record payload sent to Zenodo.

        Returns:
            Result[bool]: ``Ok(True)`` once the record is registered, otherwise
                the errors of the first failed step.
        """
        if not settings.api_key:
            return Err.of(messages.NO_API_KEY)

        if not settings.mint_doi and not record.doi:
            return Err.of(messages.NO_DOI)

        client = self.client_factory(settings)

        existing_id = record.remote_id
        is_update = bool(existing_id)
        is_published = False

        if is_update:
            published = client.is_published(existing_id)
            if not published.ok:
                return self._fail(record, published)
            is_published = published.value

        if is_update and not is_published:
            self._cancel_open_review(client, existing_id)
            deleted = self._discard_draft(client, record, existing_id)
            if not deleted.ok:
                return deleted

        if is_published:
            draft = client.create_draft_from_published(existing_id)
            if not draft.ok:
                return self._fail(record, draft)

        if is_update:
            saved = client.update_draft(existing_id, metadata_json)
        else:
            saved = client.create_draft(metadata_json)
        if not saved.ok:
            return self._fail(record, saved)

        remote_id = saved.value
        self._set_remote_id(record, remote_id)

        # Files of a published record cannot be changed.
        if not is_published:
            uploaded = self._deposit_files(client, record, remote_id)
            if not uploaded.ok:
                return self._fail(record, uploaded)

        if settings.automatic_publishing or is_published:
            published = client.publish_draft(remote_id)
            if not published.ok:
                self._compensate(client, record, remote_id, is_published)
                return self._fail(record, published)

        record.deposit_status = DepositStatus.REGISTERED
        record.deposit_message = None
        self.repository.save(record)
        logger.info("Record %s registered as Zenodo record %s", record.local_id, remote_id)

        # A failed community submission leaves the record registered.
        if settings.community_id and not is_update:
            return self._submit_to_community(client, settings, remote_id)

        return Ok(True)

    def delete_draft(
        self, record: LocalRecord, settings: TenantSettings
    ) -> Result[bool]:
        """
        Withdraws the unpublished Zenodo draft of a record.

        An open community review request is cancelled first, as Zenodo
        refuses to delete a draft under review. The remote ID is cleared on
        the whole version group and the record returns to ``none``.

        Args:
            record (LocalRecord): The record whose draft is withdrawn.
            settings (TenantSettings): The settings of the record's tenant.

        Returns:
            Result[bool]: ``Ok(True)``, or the errors of the failed step.
        """
        if not settings.api_key:
            return Err.of(messages.NO_API_KEY)

        if not record.remote_id:
            return Ok(True)

        client = self.client_factory(settings)

        self._cancel_open_review(client, record.remote_id)

        deleted = self._discard_draft(client, record, record.remote_id)
        if not deleted.ok:
            return deleted

        record.deposit_status = DepositStatus.NONE
        record.deposit_message = None
        self.repository.save(record)
        return Ok(True)

    # ===================================================================
    #  Steps
    # ===================================================================

    def _cancel_open_review(self, client: ZenodoClient, remote_id: str) -> None:
        """
        Cancels the open community review request of a draft, if any.

        Zenodo refuses to delete a draft under review. Failures are logged
        and left for the delete to report.
        """
        review = client.get_draft_review(remote_id)
        if not review.ok:
            logger.warning(
                "Could not look up the review request of %s: %s",
                remote_id,
                review.errors[0].param,
            )
            return

        if not review.value:
            return

        cancelled = client.cancel_review(review.value)
        if not cancelled.ok:
            logger.warning(
                "Could not cancel review request %s: %s",
                review.value,
                cancelled.errors[0].param,
            )

    def _discard_draft(
        self, client: ZenodoClient, record: LocalRecord, remote_id: str
    ) -> Result[bool]:
        deleted = client.delete_draft(remote_id)
        if not deleted.ok:
            return self._fail(record, deleted)

        self._set_remote_id(record, None)
        return deleted

    def _deposit_files(
        self, client: ZenodoClient, record: LocalRecord, remote_id: str
    ) -> Result[bool]:
        for index, file in enumerate(record.files, 1):
            logger.info(
                "  [%d/%d] Uploading %s...", index, len(record.files), file.name
            )
            try:
                with open(file.path, "rb") as content:
                    uploaded = client.upload_file(remote_id, file.name, content)
            except OSError as exc:
                return Err.of(messages.FILE_ERROR, str(exc))

            if not uploaded.ok:
                return uploaded

        return Ok(True)

    def _compensate(
        self,
        client: ZenodoClient,
        record: LocalRecord,
        remote_id: str,
        was_published: bool,
    ) -> None:
        deleted = client.delete_draft(remote_id)
        if not deleted.ok:
            logger.warning(
                "Could not delete draft %s after failed publish: %s",
                remote_id,
                deleted.errors[0].param,
            )
            return

        # Discarding the edit draft of a published record leaves the record.
        if not was_published:
            self._set_remote_id(record, None)

    def _submit_to_community(
        self, client: ZenodoClient, settings: TenantSettings, remote_id: str
    ) -> Result[bool]:
        logger.info("Submitting %s to community %s...", remote_id, settings.community_id)

        review = client.create_review(remote_id, settings.community_id)
        if not review.ok:
            return review

        request = client.submit_review(remote_id)
        if not request.ok:
            return request

        if settings.automatic_publishing_community:
            client.accept_review(request.value)

        return Ok(True)

    # ===================================================================
    #  Local state
    # ===================================================================

    def _set_remote_id(self, record: LocalRecord, remote_id: Optional[str]) -> None:
        """
        Writes the remote ID on the record and on the rest of its version group.
        """
        record.remote_id = remote_id
        self.repository.save(record)

        siblings = self.repository.find_version_group(*record.group_key())
        for sibling in siblings:
            if sibling.local_id == record.local_id:
                continue
            sibling.remote_id = remote_id
            self.repository.save(sibling)

    def _fail(self, record: LocalRecord, result: Err) -> Err:
        record.deposit_status = DepositStatus.ERROR
        record.deposit_message = "; ".join(
            error.param or error.message_key for error in result.errors
        )
        self.repository.save(record)
        logger.error(
            "Deposit of record %s failed: %s", record.local_id, record.deposit_message
        )
        return result
