"""InvenioRDM draft record payload models."""

from typing import List, Dict, Optional, Any, Literal

from pydantic import BaseModel, Field


class Identifier(BaseModel):
    """
    Identifier of a person or organization.

    Attributes:
        scheme (str): The identifier scheme.
        identifier (str): Actual value of the identifier.
    """

    scheme: str
    identifier: str


class PersonOrganization(BaseModel):
    """
    A person or an organization.

    Attributes:
        type (str): The type of name. Either personal or organizational.
        given_name (Optional[str]): Given name(s).
        family_name (Optional[str]): Family name.
        name (Optional[str]): The full name of the organisation.
        identifiers (Optional[List[Identifier]]): Person or organisation identifiers.
    """

    type: Literal["personal", "organizational"]
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    name: Optional[str] = None
    identifiers: Optional[List[Identifier]] = None


class Affiliation(BaseModel):
    """
    Affiliation of a creator, by ROR ID and/or by name.
    """

    id: Optional[str] = None
    name: Optional[str] = None


class Creator(BaseModel):
    """
    An author credited for the record.

    Attributes:
        person_or_org (PersonOrganization): The person or organization.
        affiliations (Optional[List[Affiliation]]): Affiliations of the author.
    """

    person_or_org: PersonOrganization
    affiliations: Optional[List[Affiliation]] = None


class VocabularyId(BaseModel):
    """
    A reference to a controlled vocabulary entry (resource type, license,
    language, relation type, funder, award).
    """

    id: str


class DateType(BaseModel):
    """
    A date type.

    Attributes:
        id (str): Date type id from the controlled vocabulary.
        title (Optional[Dict[str, str]]): Localized human readable labels.
    """

    id: Literal[
        "accepted",
        "available",
        "collected",
        "copyrighted",
        "created",
        "issued",
        "other",
        "submitted",
        "updated",
        "valid",
        "withdrawn",
    ]
    title: Optional[Dict[str, str]] = None


class Date(BaseModel):
    """
    Date relevant to a resource.

    Attributes:
        date (str): A date or time interval.
        type (DateType): The type of date.
        description (Optional[str]): Free text, specific information about the date.
    """

    date: str
    type: DateType
    description: Optional[str] = None


class Funding(BaseModel):
    """
    A validated funder/award pair.
    """

    funder: VocabularyId
    award: VocabularyId


class Subject(BaseModel):
    """
    A free keyword.
    """

    subject: str


class RelatedIdentifier(BaseModel):
    """
    Identifier of a related resource, e.g. the article landing page.

    Attributes:
        identifier (str): The identifier value.
        scheme (str): The identifier scheme (e.g. "url", "doi").
        relation_type (VocabularyId): The relation to this record (e.g. "isidenticalto").
    """

    identifier: str
    scheme: str
    relation_type: VocabularyId


class Reference(BaseModel):
    """
    A raw citation string.
    """

    reference: str


class Metadata(BaseModel):
    """
    The descriptive metadata of a draft record.
    """

    resource_type: VocabularyId
    title: Optional[str] = None
    creators: Optional[List[Creator]] = None
    description: Optional[str] = None
    publication_date: Optional[str] = None
    publisher: Optional[str] = None
    references: Optional[List[Reference]] = None
    related_identifiers: Optional[List[RelatedIdentifier]] = None
    subjects: Optional[List[Subject]] = None
    funding: Optional[List[Funding]] = None
    version: Optional[str] = None
    languages: Optional[List[VocabularyId]] = None
    copyright: Optional[str] = None
    rights: Optional[List[VocabularyId]] = None
    dates: Optional[List[Date]] = None


class Embargo(BaseModel):
    """
    Embargo of the record files.
    """

    active: bool
    until: str


class Access(BaseModel):
    """
    Access settings of the record and its files.

    Attributes:
        record (str): Visibility of the metadata; always public for articles.
        files (str): Visibility of the files.
        status (str): The access status shown on the record.
        embargo (Optional[Embargo]): Embargo of the files.
    """

    record: Literal["public", "restricted"] = "public"
    files: Literal["public", "restricted"] = "public"
    status: Literal["open", "embargoed", "restricted", "metadata-only"] = "open"
    embargo: Optional[Embargo] = None


class DoiPid(BaseModel):
    """
    A DOI registered outside of Zenodo.
    """

    identifier: str
    provider: str = "external"


class DraftRecord(BaseModel):
    """
    The payload sent to ``POST /records`` and ``PUT /records/{id}/draft``.
    """

    access: Access = Field(default_factory=Access)
    metadata: Metadata
    custom_fields: Optional[Dict[str, Any]] = None
    pids: Optional[Dict[str, DoiPid]] = None

    def to_dict(self) -> Dict[str, Any]:
        """
        Converts the model to a JSON-compatible dictionary.
        """
        return self.model_dump(exclude_none=True)

    def to_json(self) -> str:
        """
        Converts the model to a JSON string.
        """
        return self.model_dump_json(exclude_none=True)
