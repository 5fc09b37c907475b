"""Message keys reported by deposits, and their English rendering."""

from typing import Dict, Final, Optional

DEPOSIT_SUCCESS: Final[str] = "deposit.success"

NO_API_KEY: Final[str] = "noApiKey"
NO_DOI: Final[str] = "noDoi"
MDS_ERROR: Final[str] = "mdsError"
DRAFT_PUBLISH_ERROR: Final[str] = "draftPublishError"
FILE_ERROR: Final[str] = "fileError"
RECORD_DELETE_ERROR: Final[str] = "recordDeleteError"
PUBLISH_ERROR: Final[str] = "publishError"
PUBLISH_CHECK_ERROR: Final[str] = "publishCheckError"
CREATE_REVIEW_ERROR: Final[str] = "createReviewError"
SUBMIT_REVIEW_ERROR: Final[str] = "submitReviewError"
ACCEPT_REVIEW_ERROR: Final[str] = "acceptReviewError"
REVIEW_CHECK_ERROR: Final[str] = "reviewCheckError"
REVIEW_CANCEL_ERROR: Final[str] = "reviewCancelError"
COMMUNITY_ID_ERROR: Final[str] = "communityIdError"
AWARD_ERROR: Final[str] = "awardError"

MESSAGES: Final[Dict[str, str]] = {
    DEPOSIT_SUCCESS: "Deposit was successful.",
    NO_API_KEY: "No Zenodo API key is configured.",
    NO_DOI: "The item has no DOI and Zenodo DOI minting is disabled.",
    MDS_ERROR: "Creating or updating the Zenodo record failed: {param}",
    DRAFT_PUBLISH_ERROR: "Creating a new draft of the published record failed: {param}",
    FILE_ERROR: "Uploading a file to Zenodo failed: {param}",
    RECORD_DELETE_ERROR: "Deleting the Zenodo draft failed: {param}",
    PUBLISH_ERROR: "Publishing the Zenodo record failed: {param}",
    PUBLISH_CHECK_ERROR: "Checking whether the Zenodo record is published failed: {param}",
    CREATE_REVIEW_ERROR: "Creating the community review request failed: {param}",
    SUBMIT_REVIEW_ERROR: "Submitting the record to the community failed: {param}",
    ACCEPT_REVIEW_ERROR: "Accepting the community review request failed: {param}",
    REVIEW_CHECK_ERROR: "Checking for an open review request failed: {param}",
    REVIEW_CANCEL_ERROR: "Cancelling the community review request failed: {param}",
    COMMUNITY_ID_ERROR: "The Zenodo community could not be resolved: {param}",
    AWARD_ERROR: "Validating the funding award failed: {param}",
}


def render(message_key: str, param: Optional[str] = None) -> str:
    """
    Renders a message key and its optional parameter as English text.

    Unknown keys are returned as-is, followed by the parameter if there is one.
    """
    template = MESSAGES.get(message_key)
    if template is None:
        return f"{message_key}: {param}" if param else message_key
    return template.format(param=param if param is not None else "")
