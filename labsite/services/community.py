from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, Mapping, Sequence, TypeVar

from opentelemetry import trace

from labsite.core.drive import normalize_drive_image_url
from labsite.core.telemetry import set_span_attributes
from labsite.schemas.community import (
    AuthorRef,
    Award,
    AwardPublication,
    AwardRecipient,
    Certificate,
    CertificateHolder,
    CommunityTables,
    Member,
    MemberDetail,
    MemberGroups,
    OrderedAuthor,
    Presentation,
    PresentationAuthor,
    Publication,
    PublicationAuthor,
    PublicationDetail,
    PublicationFacets,
    PublicationLink,
    PublicationListItem,
    PublicationWithAuthors,
)
from labsite.services.rows import clean, get_field, is_approved, parse_date, parse_date_key, rows_to_objects, to_number
from labsite.services.sheets import DEFAULT_REVALIDATE_SECONDS, SheetsClient

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

MEMBER_TYPES = {"admin", "member", "alumni"}

COMMUNITY_TABS = (
    "members",
    "publications",
    "publication_links",
    "publication_authors",
    "presentations",
    "presentation_authors",
    "awards",
    "award_recipients",
    "award_publications",
    "certificates",
    "certificate_holders",
)

RawRecord = Mapping[str, Any]
_Identified = TypeVar("_Identified", Member, Publication)


async def fetch_tab_objects(
    client: SheetsClient,
    document_id: str,
    tab_name: str,
    revalidate_seconds: int,
) -> list[dict[str, str]]:
    rows = await client.fetch_rows(document_id, tab_name, revalidate_seconds)
    return rows_to_objects(rows)


# Mappers ---------------------------------------------------------------------
# Member headers drifted over time, so only members resolve columns through
# alias lists. Every other tab is read by its fixed column names.


def safe_member_type(value: Any) -> str:
    lowered = clean(value).lower()
    return lowered if lowered in MEMBER_TYPES else ""


def map_member(record: RawRecord) -> Member:
    return Member(
        id=get_field(record, ["id"]),
        last_name=get_field(record, ["last_name", "lastname", "last name", "surname"]),
        first_name=get_field(record, ["first_name", "firstname", "first name", "given name"]),
        image=normalize_drive_image_url(get_field(record, ["image", "photo", "avatar"])),
        specialization=get_field(record, ["specialization", "specialisation"]),
        course=get_field(record, ["course"]),
        graduation_ay=get_field(record, ["graduation_ay", "graduation ay", "graduation_year"]),
        educational_attainment=get_field(record, ["educational_attainment", "educational attainment", "education"]),
        member_since=get_field(record, ["member_since", "member since", "since"]),
        associated_institutes=get_field(record, ["associated_institutes", "associated institutes", "institutes"]),
        bionotes=get_field(record, ["bionotes", "bio", "biography"]),
        email=get_field(record, ["email", "e-mail"]),
        type=safe_member_type(get_field(record, ["type"])),
        status=get_field(record, ["status"]),
    )


def map_publication(record: RawRecord) -> Publication:
    return Publication(
        id=clean(record.get("id")),
        title=clean(record.get("title")),
        publishing_date=clean(record.get("publishing_date")),
        description=clean(record.get("description")),
        field_of_study=clean(record.get("field_of_study")),
        abstract=clean(record.get("abstract")),
        institute=clean(record.get("institute")),
        status=clean(record.get("status")),
    )


def map_publication_link(record: RawRecord) -> PublicationLink:
    return PublicationLink(
        id=clean(record.get("id")),
        publication_id=clean(record.get("publication_id")),
        label=clean(record.get("label")),
        url=clean(record.get("url")),
        sort=clean(record.get("sort")),
        status=clean(record.get("status")),
    )


def map_publication_author(record: RawRecord) -> PublicationAuthor:
    return PublicationAuthor(
        id=clean(record.get("id")),
        publication_id=clean(record.get("publication_id")),
        person_id=clean(record.get("person_id")),
        author_order=clean(record.get("author_order")),
    )


def map_presentation(record: RawRecord) -> Presentation:
    return Presentation(
        id=clean(record.get("id")),
        title=clean(record.get("title")),
        conference_name=clean(record.get("conference_name")),
        presentation_date=clean(record.get("presentation_date")),
        description=clean(record.get("description")),
        status=clean(record.get("status")),
    )


def map_presentation_author(record: RawRecord) -> PresentationAuthor:
    return PresentationAuthor(
        id=clean(record.get("id")),
        presentation_id=clean(record.get("presentation_id")),
        person_id=clean(record.get("person_id")),
    )


def map_award(record: RawRecord) -> Award:
    return Award(
        id=clean(record.get("id")),
        award=clean(record.get("award")),
        image=normalize_drive_image_url(record.get("image")),
        awarded_by=clean(record.get("awarded_by")),
        awarded_date=clean(record.get("awarded_date")),
        status=clean(record.get("status")),
    )


def map_award_recipient(record: RawRecord) -> AwardRecipient:
    return AwardRecipient(
        id=clean(record.get("id")),
        award_id=clean(record.get("award_id")),
        person_id=clean(record.get("person_id")),
    )


def map_award_publication(record: RawRecord) -> AwardPublication:
    return AwardPublication(
        id=clean(record.get("id")),
        award_id=clean(record.get("award_id")),
        publication_id=clean(record.get("publication_id")),
    )


def map_certificate(record: RawRecord) -> Certificate:
    return Certificate(
        id=clean(record.get("id")),
        certificate=clean(record.get("certificate")),
        image=normalize_drive_image_url(record.get("image")),
        certified_by=clean(record.get("certified_by")),
        certified_date=clean(record.get("certified_date")),
        status=clean(record.get("status")),
    )


def map_certificate_holder(record: RawRecord) -> CertificateHolder:
    return CertificateHolder(
        id=clean(record.get("id")),
        certificate_id=clean(record.get("certificate_id")),
        person_id=clean(record.get("person_id")),
    )


# Aggregate -------------------------------------------------------------------


def member_sort_key(member: Member) -> tuple[str, str]:
    return (member.last_name.lower(), member.first_name.lower())


async def get_community_tables(
    client: SheetsClient,
    *,
    document_id: str,
    revalidate_seconds: int = DEFAULT_REVALIDATE_SECONDS,
) -> CommunityTables:
    """Fetch every community tab concurrently and keep approved rows only.

    Tables carrying a ``status`` column are filtered to approved rows.
    Relation tables have no status and are returned as-is; an edge whose
    target was filtered out is dropped later, when its join misses.
    Any failed tab fails the whole call.
    """
    with tracer.start_as_current_span("community.load_tables") as span:
        set_span_attributes(span, "sheets", tab_count=len(COMMUNITY_TABS), document_id=document_id)
        results = await asyncio.gather(
            *(fetch_tab_objects(client, document_id, tab, revalidate_seconds) for tab in COMMUNITY_TABS)
        )
        by_tab = dict(zip(COMMUNITY_TABS, results))

        members = [m for m in map(map_member, by_tab["members"]) if is_approved(m.status)]
        members.sort(key=member_sort_key)

        tables = CommunityTables(
            members=members,
            publications=[p for p in map(map_publication, by_tab["publications"]) if is_approved(p.status)],
            publication_links=[
                link for link in map(map_publication_link, by_tab["publication_links"]) if is_approved(link.status)
            ],
            publication_authors=[map_publication_author(r) for r in by_tab["publication_authors"]],
            presentations=[p for p in map(map_presentation, by_tab["presentations"]) if is_approved(p.status)],
            presentation_authors=[map_presentation_author(r) for r in by_tab["presentation_authors"]],
            awards=[a for a in map(map_award, by_tab["awards"]) if is_approved(a.status)],
            award_recipients=[map_award_recipient(r) for r in by_tab["award_recipients"]],
            award_publications=[map_award_publication(r) for r in by_tab["award_publications"]],
            certificates=[c for c in map(map_certificate, by_tab["certificates"]) if is_approved(c.status)],
            certificate_holders=[map_certificate_holder(r) for r in by_tab["certificate_holders"]],
        )
        set_span_attributes(
            span,
            "community",
            member_count=len(tables.members),
            publication_count=len(tables.publications),
        )

    if not tables.members:
        logger.warning("no approved members in document=%s", document_id)
    logger.info(
        "loaded community tables members=%s publications=%s awards=%s certificates=%s",
        len(tables.members),
        len(tables.publications),
        len(tables.awards),
        len(tables.certificates),
    )
    return tables


def split_members_by_type(members: Iterable[Member]) -> MemberGroups:
    admins: list[Member] = []
    regular: list[Member] = []
    alumni: list[Member] = []
    for member in members:
        if member.type == "admin":
            admins.append(member)
        elif member.type == "alumni":
            alumni.append(member)
        else:
            regular.append(member)

    return MemberGroups(
        admins=sorted(admins, key=member_sort_key),
        members=sorted(regular, key=member_sort_key),
        alumni=sorted(alumni, key=member_sort_key),
    )


# Lookups and joins -----------------------------------------------------------
# Foreign keys are plain id strings. A key that does not resolve to a visible
# row (deleted or unapproved) is an expected case: the edge is skipped.


def _find_by_id(items: Sequence[_Identified], target_id: str) -> _Identified | None:
    target = clean(target_id)
    for item in items:
        if item.id == target:
            return item
    return None


def index_members(members: Iterable[Member]) -> dict[str, Member]:
    return {member.id: member for member in members}


def get_member_by_id(tables: CommunityTables, member_id: str) -> Member | None:
    return _find_by_id(tables.members, member_id)


def get_publication_by_id(tables: CommunityTables, publication_id: str) -> Publication | None:
    return _find_by_id(tables.publications, publication_id)


def get_publication_links(tables: CommunityTables, publication_id: str) -> list[PublicationLink]:
    pid = clean(publication_id)
    links = [link for link in tables.publication_links if link.publication_id == pid]
    return sorted(links, key=lambda link: to_number(link.sort))


def get_publication_authors_ordered(
    tables: CommunityTables,
    publication_id: str,
    *,
    member_index: Mapping[str, Member] | None = None,
) -> list[OrderedAuthor]:
    """Authors of one publication by ascending ``author_order``.

    Blank or non-numeric orders count as 0 and therefore lead.
    """
    pid = clean(publication_id)
    members_by_id = member_index if member_index is not None else index_members(tables.members)

    relations = sorted(
        (rel for rel in tables.publication_authors if rel.publication_id == pid),
        key=lambda rel: to_number(rel.author_order),
    )

    ordered: list[OrderedAuthor] = []
    for rel in relations:
        member = members_by_id.get(rel.person_id)
        if member is None:
            continue
        ordered.append(OrderedAuthor(member=member, author_order=to_number(rel.author_order)))
    return ordered


def get_member_publications(tables: CommunityTables, member_id: str) -> list[Publication]:
    mid = clean(member_id)
    publication_ids = {
        rel.publication_id for rel in tables.publication_authors if rel.person_id == mid and rel.publication_id
    }
    publications = [pub for pub in tables.publications if pub.id in publication_ids]
    return sorted(publications, key=lambda pub: parse_date_key(pub.publishing_date), reverse=True)


def get_member_awards(tables: CommunityTables, member_id: str) -> list[Award]:
    mid = clean(member_id)
    award_ids = {rel.award_id for rel in tables.award_recipients if rel.person_id == mid and rel.award_id}
    awards = [award for award in tables.awards if award.id in award_ids]
    return sorted(awards, key=lambda award: parse_date_key(award.awarded_date), reverse=True)


def get_member_certificates(tables: CommunityTables, member_id: str) -> list[Certificate]:
    mid = clean(member_id)
    certificate_ids = {
        rel.certificate_id for rel in tables.certificate_holders if rel.person_id == mid and rel.certificate_id
    }
    certificates = [cert for cert in tables.certificates if cert.id in certificate_ids]
    return sorted(certificates, key=lambda cert: parse_date_key(cert.certified_date), reverse=True)


def build_member_detail(tables: CommunityTables, member_id: str) -> MemberDetail | None:
    member = get_member_by_id(tables, member_id)
    if member is None:
        return None

    members_by_id = index_members(tables.members)
    publications = [
        PublicationWithAuthors(
            **publication.model_dump(),
            authors=[
                entry.member
                for entry in get_publication_authors_ordered(tables, publication.id, member_index=members_by_id)
            ],
        )
        for publication in get_member_publications(tables, member_id)
    ]
    return MemberDetail(
        member=member,
        publications=publications,
        awards=get_member_awards(tables, member_id),
        certificates=get_member_certificates(tables, member_id),
    )


def build_publication_detail(tables: CommunityTables, publication_id: str) -> PublicationDetail | None:
    publication = get_publication_by_id(tables, publication_id)
    if publication is None:
        return None
    return PublicationDetail(
        publication=publication,
        authors=get_publication_authors_ordered(tables, publication_id),
        links=get_publication_links(tables, publication_id),
    )


# Publication listing ---------------------------------------------------------


def full_name(first: str, last: str) -> str:
    return " ".join(part for part in (first, last) if part).strip()


def year_from_date(value: str) -> str:
    parsed = parse_date(value)
    return str(parsed.year) if parsed is not None else ""


def build_publication_list(tables: CommunityTables) -> list[PublicationListItem]:
    members_by_id = index_members(tables.members)
    items: list[PublicationListItem] = []
    for pub in tables.publications:
        authors = [
            AuthorRef(id=entry.member.id, name=full_name(entry.member.first_name, entry.member.last_name))
            for entry in get_publication_authors_ordered(tables, pub.id, member_index=members_by_id)
        ]
        items.append(
            PublicationListItem(
                id=pub.id,
                title=pub.title,
                publishing_date=pub.publishing_date,
                field_of_study=pub.field_of_study,
                institute=pub.institute,
                description=pub.description,
                abstract=pub.abstract,
                year=year_from_date(pub.publishing_date),
                authors=authors,
            )
        )
    return items


def filter_publications(
    items: Iterable[PublicationListItem],
    *,
    query: str = "",
    field: str = "",
    institute: str = "",
    year: str = "",
) -> list[PublicationListItem]:
    needle = query.strip().lower()
    matched: list[PublicationListItem] = []
    for item in items:
        if field and item.field_of_study != field:
            continue
        if institute and item.institute != institute:
            continue
        if year and item.year != year:
            continue
        if needle:
            haystack = " ".join(
                part
                for part in (
                    item.title,
                    item.description,
                    item.abstract,
                    item.field_of_study,
                    item.institute,
                    " ".join(author.name for author in item.authors),
                )
                if part
            ).lower()
            if needle not in haystack:
                continue
        matched.append(item)
    return sorted(matched, key=lambda item: parse_date_key(item.publishing_date), reverse=True)


def publication_facets(items: Sequence[PublicationListItem]) -> PublicationFacets:
    return PublicationFacets(
        fields=sorted({item.field_of_study for item in items if item.field_of_study}),
        institutes=sorted({item.institute for item in items if item.institute}),
        years=sorted({item.year for item in items if item.year}, reverse=True),
    )
