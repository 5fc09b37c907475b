"""Zenodo API client for the record deposit primitives.

This module handles direct HTTP communication with the Zenodo/InvenioRDM
API.  It has no knowledge of local publications: every method issues one
request (three for a file upload) and returns an ``Ok`` or ``Err`` result
instead of raising.

Failed responses are normalized into a single error entry whose parameter
is ``"<body> (<status> <reason>)"``.  Failures without a response (DNS,
connection, timeout) use the exception text alone.
"""

import json
import logging
from typing import Any, BinaryIO, Dict, Final, Optional, Union
from urllib.parse import quote

import requests
from requests.exceptions import RequestException

import messages
from models.records import TenantSettings
from models.results import Err, Ok, Result

logger = logging.getLogger("zensync.client")

ZENODO_API_URL: Final[str] = "https://zenodo.org/api/"
ZENODO_SANDBOX_API_URL: Final[str] = "https://sandbox.zenodo.org/api/"
RECORDS_OPERATION: Final[str] = "records"

HTTP_NOT_FOUND: Final[int] = 404

INVENIO_JSON: Final[str] = "application/vnd.inveniordm.v1+json"

REQUEST_COMMENT: Final[str] = "This request was submitted by zensync."
ACCEPT_COMMENT: Final[str] = "This request was accepted by zensync."


def base_url_for(test_mode: bool) -> str:
    """Select the sandbox or the production API.

    Args:
        test_mode: Whether the tenant deposits to the Zenodo sandbox.

    Returns:
        The API base URL, ending with '/'.
    """
    return ZENODO_SANDBOX_API_URL if test_mode else ZENODO_API_URL


def describe_failure(exc: RequestException) -> str:
    """Build the diagnostic text for a failed request.

    Args:
        exc: The exception raised by ``requests``.

    Returns:
        ``"<body> (<status> <reason>)"`` when a response was received,
        otherwise the exception message.
    """
    response = exc.response
    if response is None:
        return str(exc)
    return f"{response.text} ({response.status_code} {response.reason})"


def _failure(message_key: str, exc: RequestException) -> Err:
    diagnostic = describe_failure(exc)
    logger.debug("%s: %s", message_key, diagnostic)
    return Err.of(message_key, diagnostic)


def _is_not_found(exc: RequestException) -> bool:
    return exc.response is not None and exc.response.status_code == HTTP_NOT_FOUND


def _body_id(body: Any) -> Optional[Any]:
    """The ``id`` of a JSON object body; ``None`` for any other body."""
    if not isinstance(body, dict):
        return None
    return body.get("id")


class ZenodoClient:
    """Stateless wrapper around the Zenodo record, request and vocabulary endpoints.

    Attributes:
        api_key: Bearer token for API authentication.
        base_url: Zenodo API base URL (must end with '/').
        session: The ``requests`` session used for every call.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = ZENODO_API_URL,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.session = session or requests.Session()

    @classmethod
    def from_settings(
        cls, settings: TenantSettings, session: Optional[requests.Session] = None
    ) -> "ZenodoClient":
        """Create a client for a tenant's API key and sandbox/production mode."""
        return cls(
            api_key=settings.api_key or "",
            base_url=base_url_for(settings.test_mode),
            session=session,
        )

    # ===================================================================
    #  Helpers
    # ===================================================================

    def _auth_headers(
        self, content_type: Optional[str] = None, accept: Optional[str] = None
    ) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if content_type:
            headers["Content-Type"] = content_type
        if accept:
            headers["Accept"] = accept
        return headers

    def _records_url(self, *parts: Union[str, int]) -> str:
        path = "/".join(str(part) for part in parts)
        if not path:
            return f"{self.base_url}{RECORDS_OPERATION}"
        return f"{self.base_url}{RECORDS_OPERATION}/{path}"

    def _send_draft(
        self, method: str, url: str, metadata_json: str
    ) -> Result[str]:
        try:
            payload = json.loads(metadata_json)
        except ValueError as exc:
            return Err.of(messages.MDS_ERROR, f"Invalid metadata JSON: {exc}")

        try:
            response = self.session.request(
                method,
                url,
                json=payload,
                headers=self._auth_headers(
                    content_type="application/json", accept=INVENIO_JSON
                ),
            )
            response.raise_for_status()
            remote_id = _body_id(response.json())
        except RequestException as exc:
            return _failure(messages.MDS_ERROR, exc)

        if not remote_id:
            return Err.of(messages.MDS_ERROR, "No record ID returned by Zenodo")
        return Ok(str(remote_id))

    # ===================================================================
    #  Draft records
    # ===================================================================

    def create_draft(self, metadata_json: str) -> Result[str]:
        """Create a draft record.

        Args:
            metadata_json: Full record payload as a JSON string.

        Returns:
            The new record ID, or an ``mdsError`` result.
        """
        logger.info("Creating draft record...")
        return self._send_draft("POST", self._records_url(), metadata_json)

    def update_draft(self, remote_id: str, metadata_json: str) -> Result[str]:
        """Replace the metadata of an existing draft.

        Args:
            remote_id: Record ID.
            metadata_json: Full record payload as a JSON string.

        Returns:
            The record ID, or an ``mdsError`` result.
        """
        logger.info("Updating draft record %s...", remote_id)
        return self._send_draft(
            "PUT", self._records_url(remote_id, "draft"), metadata_json
        )

    def create_draft_from_published(self, remote_id: str) -> Result[bool]:
        """Open a new draft shadowing a published record so it can be edited.

        Args:
            remote_id: ID of the published record.

        Returns:
            ``Ok(True)``, or a ``draftPublishError`` result.
        """
        try:
            response = self.session.post(
                self._records_url(remote_id, "draft"),
                headers=self._auth_headers(
                    content_type="application/json", accept=INVENIO_JSON
                ),
            )
            response.raise_for_status()
        except RequestException as exc:
            return _failure(messages.DRAFT_PUBLISH_ERROR, exc)
        return Ok(True)

    def delete_draft(self, remote_id: str) -> Result[bool]:
        """Delete (discard) a draft record.

        Args:
            remote_id: Draft record ID.

        Returns:
            ``Ok(True)``, or a ``recordDeleteError`` result.
        """
        logger.info("Deleting draft %s...", remote_id)
        try:
            response = self.session.delete(
                self._records_url(remote_id, "draft"),
                headers=self._auth_headers(),
            )
            response.raise_for_status()
        except RequestException as exc:
            return _failure(messages.RECORD_DELETE_ERROR, exc)
        return Ok(True)

    def upload_file(
        self, remote_id: str, file_name: str, content: BinaryIO
    ) -> Result[bool]:
        """Upload a single file to a draft record (three-step process).

        1. Register the file key.
        2. PUT the file content.
        3. Commit the upload.

        A failing step aborts this file; earlier steps are not rolled back.

        Args:
            remote_id: Draft record ID.
            file_name: File key on the record.
            content: Readable binary stream with the file content.

        Returns:
            ``Ok(True)``, or a ``fileError`` result.
        """
        files_url = self._records_url(remote_id, "draft", "files")
        file_url = f"{files_url}/{quote(file_name, safe='')}"
        try:
            # Step 1: Register the file key
            response = self.session.post(
                files_url,
                json=[{"key": file_name}],
                headers=self._auth_headers(content_type="application/json"),
            )
            response.raise_for_status()

            # Step 2: Upload file content
            response = self.session.put(
                f"{file_url}/content",
                data=content,
                headers=self._auth_headers(content_type="application/octet-stream"),
            )
            response.raise_for_status()

            # Step 3: Commit the file
            response = self.session.post(
                f"{file_url}/commit",
                headers=self._auth_headers(),
            )
            response.raise_for_status()
        except RequestException as exc:
            return _failure(messages.FILE_ERROR, exc)
        return Ok(True)

    def publish_draft(self, remote_id: str) -> Result[bool]:
        """Publish a draft record.

        Args:
            remote_id: Draft record ID.

        Returns:
            ``Ok(True)``, or a ``publishError`` result.
        """
        logger.info("Publishing record %s...", remote_id)
        try:
            response = self.session.post(
                self._records_url(remote_id, "draft", "actions", "publish"),
                headers=self._auth_headers(),
            )
            response.raise_for_status()
        except RequestException as exc:
            return _failure(messages.PUBLISH_ERROR, exc)
        return Ok(True)

    def is_published(self, remote_id: str) -> Result[bool]:
        """Check whether a record has been published.

        A 404 from the published-record endpoint means the record only
        exists as a draft (or not at all) and is not an error.

        Args:
            remote_id: Record ID.

        Returns:
            ``Ok(True)`` / ``Ok(False)``, or a ``publishCheckError`` result.
        """
        try:
            response = self.session.get(
                self._records_url(remote_id), headers=self._auth_headers()
            )
            response.raise_for_status()
        except RequestException as exc:
            if _is_not_found(exc):
                return Ok(False)
            return _failure(messages.PUBLISH_CHECK_ERROR, exc)
        return Ok(True)

    # ===================================================================
    #  Community review requests
    # ===================================================================

    def create_review(self, remote_id: str, community_id: str) -> Result[bool]:
        """Create a community review request on a draft record.

        The request must exist before ``submit_review`` can move the draft
        into the community's queue.

        Args:
            remote_id: Draft record ID.
            community_id: Zenodo community UUID.

        Returns:
            ``Ok(True)``, or a ``createReviewError`` result.
        """
        payload = {
            "receiver": {"community": community_id},
            "type": "community-submission",
        }
        try:
            response = self.session.put(
                self._records_url(remote_id, "draft", "review"),
                json=payload,
                headers=self._auth_headers(accept="application/json"),
            )
            response.raise_for_status()
        except RequestException as exc:
            return _failure(messages.CREATE_REVIEW_ERROR, exc)
        return Ok(True)

    def submit_review(self, remote_id: str) -> Result[str]:
        """Submit a draft to the community review queue.

        Depending on the community's submission policy the record may also
        be published right away.

        Args:
            remote_id: Draft record ID.

        Returns:
            The review request ID, or a ``submitReviewError`` result.
        """
        payload = {"payload": {"content": REQUEST_COMMENT, "format": "html"}}
        try:
            response = self.session.post(
                self._records_url(remote_id, "draft", "actions", "submit-review"),
                json=payload,
                headers=self._auth_headers(accept="application/json"),
            )
            response.raise_for_status()
            request_id = _body_id(response.json())
        except RequestException as exc:
            return _failure(messages.SUBMIT_REVIEW_ERROR, exc)

        if not request_id:
            return Err.of(
                messages.SUBMIT_REVIEW_ERROR, "No request ID returned by Zenodo"
            )
        return Ok(str(request_id))

    def accept_review(self, request_id: str) -> bool:
        """Accept a community review request, which also publishes the record.

        Best-effort: a failure is logged and reported as ``False``.

        Args:
            request_id: Review request ID.

        Returns:
            Whether the request was accepted.
        """
        payload = {"payload": {"content": ACCEPT_COMMENT, "format": "html"}}
        try:
            response = self.session.post(
                f"{self.base_url}requests/{request_id}/actions/accept",
                json=payload,
                headers=self._auth_headers(accept="application/json"),
            )
            response.raise_for_status()
        except RequestException as exc:
            logger.warning(
                "%s",
                messages.render(messages.ACCEPT_REVIEW_ERROR, describe_failure(exc))
            )
            return False
        return True

    def get_draft_review(self, remote_id: str) -> Result[Optional[str]]:
        """Look up the review request attached to a draft.

        Args:
            remote_id: Draft record ID.

        Returns:
            The review request ID, ``Ok(None)`` if the draft has none, or a
            ``reviewCheckError`` result.
        """
        try:
            response = self.session.get(
                self._records_url(remote_id, "draft", "review"),
                headers=self._auth_headers(accept="application/json"),
            )
            response.raise_for_status()
            request_id = _body_id(response.json())
        except RequestException as exc:
            if _is_not_found(exc):
                return Ok(None)
            return _failure(messages.REVIEW_CHECK_ERROR, exc)

        return Ok(str(request_id) if request_id else None)

    def cancel_review(self, request_id: str) -> Result[bool]:
        """Cancel an open community review request.

        Args:
            request_id: Review request ID.

        Returns:
            ``Ok(True)``, or a ``reviewCancelError`` result.
        """
        try:
            response = self.session.post(
                f"{self.base_url}requests/{request_id}/actions/cancel",
                headers=self._auth_headers(accept="application/json"),
            )
            response.raise_for_status()
        except RequestException as exc:
            return _failure(messages.REVIEW_CANCEL_ERROR, exc)
        return Ok(True)

    # ===================================================================
    #  Vocabularies
    # ===================================================================

    def check_award_valid(self, funder_ror: str, award_id: str) -> bool:
        """Check a funder/award combination against the awards vocabulary.

        Args:
            funder_ror: The funder's ROR identifier.
            award_id: The award number.

        Returns:
            ``True`` only if the award exists with the expected ID. Any
            failure, including a 404, yields ``False``.
        """
        expected_id = f"{funder_ror}::{award_id}"
        try:
            response = self.session.get(f"{self.base_url}awards/{expected_id}")
            response.raise_for_status()
        except RequestException as exc:
            if not _is_not_found(exc):
                logger.warning(
                    "%s",
                    messages.render(messages.AWARD_ERROR, describe_failure(exc))
                )
            return False

        try:
            body: Dict[str, Any] = response.json()
        except ValueError:
            return False
        if not isinstance(body, dict):
            return False
        return bool(body.get("id")) and body["id"] == expected_id

    def check_community_exists(self, community_name: str) -> Result[Union[str, bool]]:
        """Resolve a community slug to its UUID.

        Args:
            community_name: The community slug (or UUID).

        Returns:
            The community UUID, ``Ok(False)`` if there is no such community,
            or a ``communityIdError`` result.
        """
        try:
            response = self.session.get(f"{self.base_url}communities/{community_name}")
            response.raise_for_status()
            community_id = _body_id(response.json())
        except RequestException as exc:
            if _is_not_found(exc):
                return Ok(False)
            return _failure(messages.COMMUNITY_ID_ERROR, exc)

        if not community_id:
            return Err.of(
                messages.COMMUNITY_ID_ERROR,
                "No community ID found in the Zenodo API response.",
            )
        return Ok(str(community_id))
