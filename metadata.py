"""Metadata builders: local records to InvenioRDM draft payloads."""

import logging
import re
from typing import Callable, Dict, List, Optional

import html2text

from models.invenio import (
    Access,
    Affiliation,
    Creator,
    Date,
    DateType,
    DoiPid,
    DraftRecord,
    Embargo,
    Funding,
    Identifier,
    Metadata,
    PersonOrganization,
    Reference,
    RelatedIdentifier,
    Subject,
    VocabularyId,
)
from models.records import Author, LocalRecord, TenantSettings

logger = logging.getLogger("zensync.metadata")

RESOURCE_TYPE = "publication-article"
ROR_PREFIX = "https://ror.org/"

AwardValidator = Callable[[str, str], bool]

_CC_LICENSE = re.compile(r"creativecommons\.org/licenses/(.*?)/([\d.]+)/?$", re.IGNORECASE)


def html_to_text(value: str) -> str:
    """Convert an HTML abstract to Markdown text."""
    converter = html2text.HTML2Text()
    converter.body_width = 0  # Don't wrap lines
    converter.unicode_snob = True

    text = converter.handle(value)
    text = "\n".join(line.rstrip() for line in text.splitlines())

    # Clean up excessive blank lines
    return re.sub(r"\n{3,}", "\n\n", text).strip()


def license_id(license_url: Optional[str]) -> Optional[str]:
    """Map a Creative Commons license URL to its Zenodo license ID.

    Args:
        license_url: e.g. ``https://creativecommons.org/licenses/by-nc/4.0/``.

    Returns:
        e.g. ``cc-by-nc-4.0``, or ``None`` for any other license.
    """
    match = _CC_LICENSE.search(license_url or "")
    if not match:
        return None
    return f"cc-{match.group(1)}-{match.group(2)}".lower()


def build_creator(author: Author) -> Creator:
    """Build a Creator model from a local author.

    Unverified ORCID iDs are left out.

    Args:
        author: The local author.

    Returns:
        Creator Pydantic model.
    """
    identifiers = None
    if author.orcid and author.orcid_verified:
        identifiers = [Identifier(scheme="orcid", identifier=author.orcid)]

    affiliations = []
    for affiliation in author.affiliations:
        if affiliation.ror:
            affiliations.append(
                Affiliation(
                    id=affiliation.ror.replace(ROR_PREFIX, ""), name=affiliation.name
                )
            )
        elif affiliation.name and affiliation.name.strip():
            affiliations.append(Affiliation(name=affiliation.name))

    return Creator(
        person_or_org=PersonOrganization(
            type="personal",
            given_name=author.given_name,
            family_name=author.family_name,
            identifiers=identifiers,
        ),
        affiliations=affiliations if affiliations else None,
    )


def build_fundings(
    record: LocalRecord, award_validator: Optional[AwardValidator] = None
) -> List[Funding]:
    """Build the funding entries, keeping only awards Zenodo knows about.

    Args:
        record: The local record.
        award_validator: Checks a ``(funder_ror, award_id)`` pair against the
            awards vocabulary. Without one, every award is kept.

    Returns:
        List of Funding models.
    """
    fundings = []
    for award in record.funding:
        if award_validator and not award_validator(award.funder_ror, award.award_id):
            logger.info(
                "Skipping unknown award %s::%s", award.funder_ror, award.award_id
            )
            continue
        fundings.append(
            Funding(
                funder=VocabularyId(id=award.funder_ror),
                award=VocabularyId(id=f"{award.funder_ror}::{award.award_id}"),
            )
        )
    return fundings


def build_journal_fields(record: LocalRecord) -> Dict[str, str]:
    """Build the ``journal:journal`` custom field."""
    journal = record.journal
    if journal is None:
        return {}

    fields = {}
    if journal.title:
        fields["title"] = journal.title
    if journal.issn:
        fields["issn"] = journal.issn
    if journal.volume:
        fields["volume"] = journal.volume
    if journal.issue:
        fields["issue"] = journal.issue
    if journal.start_page:
        fields["pages"] = f"{journal.start_page}-{journal.end_page or ''}"
    return fields


def build_draft_record(
    record: LocalRecord,
    settings: TenantSettings,
    award_validator: Optional[AwardValidator] = None,
) -> DraftRecord:
    """Build the complete Zenodo draft payload of a local record.

    Args:
        record: The record to describe.
        settings: The settings of the record's tenant.
        award_validator: Optional award check, see ``build_fundings``.

    Returns:
        DraftRecord model ready for the Zenodo API.
    """
    access = Access()
    if record.embargo_until:
        access = Access(
            files="restricted",
            status="embargoed",
            embargo=Embargo(active=True, until=record.embargo_until),
        )

    references = [Reference(reference=ref) for ref in record.references if ref]
    related_identifiers = None
    if record.url:
        related_identifiers = [
            RelatedIdentifier(
                identifier=record.url,
                scheme="url",
                relation_type=VocabularyId(id="isidenticalto"),
            )
        ]

    copyright_statement = None
    if record.copyright_holder and record.copyright_year:
        copyright_statement = (
            f"Copyright (c) {record.copyright_year} {record.copyright_holder}"
        )

    rights = None
    if license_id(record.license_url):
        rights = [VocabularyId(id=license_id(record.license_url))]

    dates = None
    if record.date_accepted:
        dates = [
            Date(
                date=record.date_accepted,
                type=DateType(id="accepted", title={"en": "Accepted"}),
                description="Acceptance date",
            )
        ]

    fundings = build_fundings(record, award_validator)
    creators = [build_creator(author) for author in record.authors]

    metadata = Metadata(
        resource_type=VocabularyId(id=RESOURCE_TYPE),
        title=record.title or None,
        creators=creators if creators else None,
        description=html_to_text(record.abstract) if record.abstract else None,
        publication_date=record.date_published,
        publisher=settings.publisher or None,
        references=references if references else None,
        related_identifiers=related_identifiers,
        subjects=[Subject(subject=k) for k in record.keywords] or None,
        funding=fundings if fundings else None,
        version=f"{record.version_major}.{record.version_minor}",
        languages=[VocabularyId(id=record.language)] if record.language else None,
        copyright=copyright_statement,
        rights=rights,
        dates=dates,
    )

    journal_fields = build_journal_fields(record)

    return DraftRecord(
        access=access,
        metadata=metadata,
        custom_fields={"journal:journal": journal_fields} if journal_fields else None,
        pids={"doi": DoiPid(identifier=record.doi)} if record.doi else None,
    )


def export_metadata_json(
    record: LocalRecord,
    settings: TenantSettings,
    award_validator: Optional[AwardValidator] = None,
) -> str:
    """Serialize the Zenodo payload of a local record.

    Args:
        record: The record to describe.
        settings: The settings of the record's tenant.
        award_validator: Optional award check, see ``build_fundings``.

    Returns:
        The payload as a JSON string.
    """
    return build_draft_record(record, settings, award_validator).to_json()
