"""Local publication and tenant models."""

from typing import List, Optional
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, AliasChoices


class DepositStatus(str, Enum):
    """
    * NONE: Never deposited, or withdrawn.
    * REGISTERED: Deposited in Zenodo.
    * MARKED_REGISTERED: Marked as registered by an operator without a deposit.
    * ERROR: The last deposit attempt failed.
    """

    NONE = "none"
    REGISTERED = "registered"
    MARKED_REGISTERED = "markedRegistered"
    ERROR = "error"


class RecordFile(BaseModel):
    """
    A file from the rendition set of a publication (e.g. the PDF galley).

    Attributes:
        name (str): The file key used on the remote record.
        path (str): The local path of the file content.
    """

    name: str
    path: str


class AuthorAffiliation(BaseModel):
    """
    Affiliation of an author.

    Attributes:
        name (Optional[str]): The institution name.
        ror (Optional[str]): The ROR identifier, either bare or as a https://ror.org/ URL.
    """

    name: Optional[str] = None
    ror: Optional[str] = None


class Author(BaseModel):
    """
    An author of a publication.

    Attributes:
        given_name (Optional[str]): Given name(s).
        family_name (Optional[str]): Family name.
        orcid (Optional[str]): ORCID iD.
        orcid_verified (bool): Whether the ORCID iD was verified by the author.
        affiliations (List[AuthorAffiliation]): Author affiliations.
    """

    given_name: Optional[str] = None
    family_name: Optional[str] = None
    orcid: Optional[str] = None
    orcid_verified: bool = False
    affiliations: List[AuthorAffiliation] = []


class FundingAward(BaseModel):
    """
    A grant that funded the publication.

    Attributes:
        funder_ror (str): The funder's ROR identifier.
        award_id (str): The code assigned by the funder to the award.
    """

    funder_ror: str
    award_id: str


class JournalInfo(BaseModel):
    """
    Journal level information of an article.
    """

    title: Optional[str] = None
    issn: Optional[str] = None
    volume: Optional[str] = None
    issue: Optional[str] = None
    start_page: Optional[str] = None
    end_page: Optional[str] = None


class LocalRecord(BaseModel):
    """
    A versioned publication eligible for deposit.

    Records sharing ``(submission_id, version_stage, version_major)`` form a
    version group and share one remote identifier.
    """

    model_config = ConfigDict(use_enum_values=True)

    local_id: str = Field(validation_alias=AliasChoices("local_id", "localId"))
    submission_id: str = Field(
        validation_alias=AliasChoices("submission_id", "submissionId")
    )
    tenant_id: str = Field(
        default="default", validation_alias=AliasChoices("tenant_id", "tenantId")
    )
    remote_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("remote_id", "remoteId")
    )
    deposit_status: DepositStatus = Field(
        default=DepositStatus.NONE,
        validation_alias=AliasChoices("deposit_status", "depositStatus"),
    )
    deposit_message: Optional[str] = None
    version_major: int = Field(
        default=1, validation_alias=AliasChoices("version_major", "versionMajor")
    )
    version_minor: int = Field(
        default=0, validation_alias=AliasChoices("version_minor", "versionMinor")
    )
    version_stage: str = Field(
        default="VoR", validation_alias=AliasChoices("version_stage", "versionStage")
    )
    is_current: bool = True
    doi: Optional[str] = None
    files: List[RecordFile] = []

    title: Optional[str] = None
    abstract: Optional[str] = None
    authors: List[Author] = []
    date_published: Optional[str] = None
    date_accepted: Optional[str] = None
    embargo_until: Optional[str] = None
    keywords: List[str] = []
    license_url: Optional[str] = None
    language: Optional[str] = None
    references: List[str] = []
    url: Optional[str] = None
    copyright_holder: Optional[str] = None
    copyright_year: Optional[int] = None
    funding: List[FundingAward] = []
    journal: Optional[JournalInfo] = None

    def group_key(self) -> tuple:
        """
        The version group this record belongs to.
        """
        return (self.submission_id, self.version_stage, self.version_major)


class TenantSettings(BaseModel):
    """
    Zenodo deposit settings of a single tenant (journal).

    Attributes:
        tenant_id (str): The tenant identifier.
        api_key (Optional[str]): Zenodo personal access token.
        test_mode (bool): Use the Zenodo sandbox instead of production.
        automatic_publishing (bool): Publish records right after depositing.
        automatic_publishing_community (bool): Accept the community review request
            after submitting it, which also publishes the record.
        community (Optional[str]): The community slug entered by the operator.
        community_id (Optional[str]): The community UUID resolved from ``community``.
        mint_doi (bool): Let Zenodo mint DOIs for records without one.
        automatic_registration (bool): Deposit records from the scheduled flow.
        doi_versioning (bool): Deposit each publication version instead of articles.
        publisher (Optional[str]): Publisher institution name.
    """

    tenant_id: str = Field(
        default="default", validation_alias=AliasChoices("tenant_id", "tenantId")
    )
    api_key: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("api_key", "apiKey")
    )
    test_mode: bool = Field(
        default=False, validation_alias=AliasChoices("test_mode", "testMode")
    )
    automatic_publishing: bool = Field(
        default=False,
        validation_alias=AliasChoices("automatic_publishing", "automaticPublishing"),
    )
    automatic_publishing_community: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "automatic_publishing_community", "automaticPublishingCommunity"
        ),
    )
    community: Optional[str] = None
    community_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("community_id", "communityId")
    )
    mint_doi: bool = Field(
        default=False, validation_alias=AliasChoices("mint_doi", "mintDoi")
    )
    automatic_registration: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "automatic_registration", "automaticRegistration"
        ),
    )
    doi_versioning: bool = Field(
        default=False,
        validation_alias=AliasChoices("doi_versioning", "doiVersioning"),
    )
    publisher: Optional[str] = None
