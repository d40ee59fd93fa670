from typing import Literal

from pydantic import BaseModel, Field

MemberType = Literal["admin", "member", "alumni"]


class Member(BaseModel):
    id: str = ""
    last_name: str = ""
    first_name: str = ""
    image: str = ""
    specialization: str = ""
    course: str = ""
    graduation_ay: str = ""
    educational_attainment: str = ""
    member_since: str = ""
    associated_institutes: str = ""
    bionotes: str = ""
    email: str = ""
    type: MemberType | Literal[""] = ""
    status: str = ""


class Publication(BaseModel):
    id: str = ""
    title: str = ""
    publishing_date: str = ""
    description: str = ""
    field_of_study: str = ""
    abstract: str = ""
    institute: str = ""
    status: str = ""


class PublicationLink(BaseModel):
    id: str = ""
    publication_id: str = ""
    label: str = ""
    url: str = ""
    sort: str = ""
    status: str = ""


class PublicationAuthor(BaseModel):
    id: str = ""
    publication_id: str = ""
    person_id: str = ""
    author_order: str = ""


class Presentation(BaseModel):
    id: str = ""
    title: str = ""
    conference_name: str = ""
    presentation_date: str = ""
    description: str = ""
    status: str = ""


class PresentationAuthor(BaseModel):
    id: str = ""
    presentation_id: str = ""
    person_id: str = ""


class Award(BaseModel):
    id: str = ""
    award: str = ""
    image: str = ""
    awarded_by: str = ""
    awarded_date: str = ""
    status: str = ""


class AwardRecipient(BaseModel):
    id: str = ""
    award_id: str = ""
    person_id: str = ""


class AwardPublication(BaseModel):
    id: str = ""
    award_id: str = ""
    publication_id: str = ""


class Certificate(BaseModel):
    id: str = ""
    certificate: str = ""
    image: str = ""
    certified_by: str = ""
    certified_date: str = ""
    status: str = ""


class CertificateHolder(BaseModel):
    id: str = ""
    certificate_id: str = ""
    person_id: str = ""


class CommunityTables(BaseModel):
    members: list[Member] = Field(default_factory=list)
    publications: list[Publication] = Field(default_factory=list)
    publication_links: list[PublicationLink] = Field(default_factory=list)
    publication_authors: list[PublicationAuthor] = Field(default_factory=list)
    presentations: list[Presentation] = Field(default_factory=list)
    presentation_authors: list[PresentationAuthor] = Field(default_factory=list)
    awards: list[Award] = Field(default_factory=list)
    award_recipients: list[AwardRecipient] = Field(default_factory=list)
    award_publications: list[AwardPublication] = Field(default_factory=list)
    certificates: list[Certificate] = Field(default_factory=list)
    certificate_holders: list[CertificateHolder] = Field(default_factory=list)


class OrderedAuthor(BaseModel):
    member: Member
    author_order: float = 0.0


class PublicationWithAuthors(Publication):
    authors: list[Member] = Field(default_factory=list)


class MemberDetail(BaseModel):
    member: Member
    publications: list[PublicationWithAuthors] = Field(default_factory=list)
    awards: list[Award] = Field(default_factory=list)
    certificates: list[Certificate] = Field(default_factory=list)


class PublicationDetail(BaseModel):
    publication: Publication
    authors: list[OrderedAuthor] = Field(default_factory=list)
    links: list[PublicationLink] = Field(default_factory=list)


class MemberGroups(BaseModel):
    admins: list[Member] = Field(default_factory=list)
    members: list[Member] = Field(default_factory=list)
    alumni: list[Member] = Field(default_factory=list)


class AuthorRef(BaseModel):
    id: str
    name: str


class PublicationListItem(BaseModel):
    id: str
    title: str
    publishing_date: str
    field_of_study: str
    institute: str
    description: str
    abstract: str
    year: str
    authors: list[AuthorRef] = Field(default_factory=list)


class PublicationFacets(BaseModel):
    fields: list[str] = Field(default_factory=list)
    institutes: list[str] = Field(default_factory=list)
    years: list[str] = Field(default_factory=list)
