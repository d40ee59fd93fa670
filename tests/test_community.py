from __future__ import annotations

import asyncio

import pytest

from labsite.services.community import (
    COMMUNITY_TABS,
    build_member_detail,
    build_publication_detail,
    build_publication_list,
    filter_publications,
    get_community_tables,
    get_member_awards,
    get_member_by_id,
    get_member_certificates,
    get_member_publications,
    get_publication_authors_ordered,
    get_publication_by_id,
    get_publication_links,
    map_member,
    map_publication,
    publication_facets,
    split_members_by_type,
)
from labsite.schemas.community import CommunityTables
from labsite.services.sheets import SheetsFetchError

TABS: dict[str, list[list[str]]] = {
    "members": [
        ["id", "First Name", "Surname", "Photo", "Type", "Status", "E-mail"],
        ["m1", "Ada", "Lovelace", "https://drive.google.com/file/d/ada123/view", "Admin", "approved", "ada@example.edu"],
        ["m2", "alan", "turing", "", "member", "Approved", ""],
        ["m3", "Grace", "Hopper", "", "alumni", "approved ", ""],
        ["m4", "Bob", "Adams", "", "member", "pending", ""],
        ["m5", "Zed", "adams", "", "guest", "approved", ""],
    ],
    "publications": [
        ["id", "title", "publishing_date", "description", "field_of_study", "abstract", "institute", "status"],
        ["p1", "Quantum Widgets", "2023-05-01", "Widgets", "Physics", "", "MIT", "approved"],
        ["p2", "Neural Gadgets", "2024-02-10", "Gadgets", "AI", "", "ETH", "approved"],
        ["p3", "Draft Paper", "2024-06-01", "", "AI", "", "MIT", "draft"],
        ["p4", "Undated Notes", "sometime", "", "AI", "", "MIT", "approved"],
    ],
    "publication_links": [
        ["id", "publication_id", "label", "url", "sort", "status"],
        ["l1", "p1", "PDF", "https://example.edu/p1.pdf", "2", "approved"],
        ["l2", "p1", "DOI", "https://doi.org/10/p1", "1", "approved"],
        ["l3", "p1", "Old", "https://example.edu/old", "0", "archived"],
        ["l4", "p1", "Site", "https://example.edu/p1", "", "approved"],
        ["l5", "p2", "PDF", "https://example.edu/p2.pdf", "1", "approved"],
    ],
    "publication_authors": [
        ["id", "publication_id", "person_id", "author_order"],
        ["pa1", "p1", "m1", "2"],
        ["pa2", "p1", "m2", ""],
        ["pa3", "p1", "m3", "1"],
        ["pa4", "p1", "m4", "3"],
        ["pa5", "p2", "m1", "1"],
        ["pa6", "p3", "m1", "1"],
        ["pa7", "p4", "m1", "x"],
        ["pa8", "p2", "ghost", "2"],
    ],
    "presentations": [
        ["id", "title", "conference_name", "presentation_date", "description", "status"],
        ["pr1", "Talk", "ConfX", "2024-01-01", "", "approved"],
        ["pr2", "Hidden talk", "ConfY", "2024-01-01", "", ""],
    ],
    "presentation_authors": [["id", "presentation_id", "person_id"], ["pra1", "pr1", "m1"]],
    "awards": [
        ["id", "award", "image", "awarded_by", "awarded_date", "status"],
        ["a1", "Best Paper", "", "IEEE", "2022-01-01", "approved"],
        ["a2", "Fellowship", "https://drive.google.com/open?id=xyz789", "NSF", "2024-03-03", "approved"],
        ["a3", "Hidden", "", "ACM", "2025-01-01", "pending"],
    ],
    "award_recipients": [
        ["id", "award_id", "person_id"],
        ["r1", "a1", "m1"],
        ["r2", "a2", "m1"],
        ["r3", "a3", "m1"],
        ["r4", "missing", "m1"],
    ],
    "award_publications": [["id", "award_id", "publication_id"], ["ap1", "a1", "p1"]],
    "certificates": [
        ["id", "certificate", "image", "certified_by", "certified_date", "status"],
        ["c1", "Cert A", "", "Org", "Date(2021,0,15)", "approved"],
        ["c2", "Cert B", "", "Org", "2023-07-07", "approved"],
    ],
    "certificate_holders": [
        ["id", "certificate_id", "person_id"],
        ["h1", "c1", "m1"],
        ["h2", "c2", "m1"],
        ["h3", "c2", "m2"],
    ],
}


class FakeSheetsClient:
    def __init__(self, tabs: dict[str, list[list[str]]], failing: set[str] | None = None) -> None:
        self.tabs = tabs
        self.failing = failing or set()
        self.calls: list[tuple[str, str, int]] = []

    async def fetch_rows(self, document_id: str, tab_name: str, revalidate_seconds: int = 300) -> list[list[str]]:
        self.calls.append((document_id, tab_name, revalidate_seconds))
        if tab_name in self.failing:
            raise SheetsFetchError(tab_name, 500)
        return self.tabs.get(tab_name, [[]])


@pytest.fixture
def tables() -> CommunityTables:
    return asyncio.run(get_community_tables(FakeSheetsClient(TABS), document_id="doc"))


def test_get_community_tables_fetches_every_tab() -> None:
    client = FakeSheetsClient(TABS)
    asyncio.run(get_community_tables(client, document_id="doc", revalidate_seconds=60))

    assert sorted(tab for _, tab, _ in client.calls) == sorted(COMMUNITY_TABS)
    assert {(doc, seconds) for doc, _, seconds in client.calls} == {("doc", 60)}


def test_get_community_tables_keeps_only_approved_rows(tables: CommunityTables) -> None:
    assert [m.id for m in tables.members] == ["m5", "m3", "m1", "m2"]
    assert [p.id for p in tables.publications] == ["p1", "p2", "p4"]
    assert [link.id for link in tables.publication_links] == ["l1", "l2", "l4", "l5"]
    assert [p.id for p in tables.presentations] == ["pr1"]
    assert [a.id for a in tables.awards] == ["a1", "a2"]
    assert [c.id for c in tables.certificates] == ["c1", "c2"]
    # Relation tables carry no status and are kept whole.
    assert len(tables.publication_authors) == 8
    assert len(tables.award_recipients) == 4


def test_members_sorted_by_last_then_first_name_case_insensitively(tables: CommunityTables) -> None:
    keys = [(m.last_name.lower(), m.first_name.lower()) for m in tables.members]
    assert keys == sorted(keys)


def test_get_community_tables_fails_when_any_tab_fails() -> None:
    client = FakeSheetsClient(TABS, failing={"awards"})

    with pytest.raises(SheetsFetchError) as excinfo:
        asyncio.run(get_community_tables(client, document_id="doc"))
    assert excinfo.value.tab_name == "awards"


def test_map_member_resolves_aliases_and_normalizes_fields() -> None:
    member = map_member(
        {
            "ID": " m9 ",
            "Last Name": " Curie ",
            "given name": "Marie",
            "Avatar": "https://drive.google.com/file/d/curie/view",
            "Bio": "Physicist",
            "Type": " ALUMNI ",
            "Status": "Approved",
        }
    )

    assert member.id == "m9"
    assert member.last_name == "Curie"
    assert member.first_name == "Marie"
    assert member.image == "https://lh3.googleusercontent.com/d/curie"
    assert member.bionotes == "Physicist"
    assert member.type == "alumni"
    assert member.status == "Approved"


def test_map_member_blanks_unknown_type() -> None:
    assert map_member({"id": "m1", "type": "visitor"}).type == ""
    assert map_member({}).type == ""


def test_map_publication_reads_fixed_columns_only() -> None:
    publication = map_publication({"id": " p1 ", "Title": "Ignored alias", "title": " Real ", "status": "approved"})

    assert publication.id == "p1"
    assert publication.title == "Real"
    assert publication.abstract == ""


def test_lookups_return_none_when_missing(tables: CommunityTables) -> None:
    assert get_member_by_id(tables, " m1 ").first_name == "Ada"
    assert get_member_by_id(tables, "m4") is None
    assert get_publication_by_id(tables, "p2").title == "Neural Gadgets"
    assert get_publication_by_id(tables, "p3") is None


def test_publication_authors_follow_author_order_and_drop_missing_members(tables: CommunityTables) -> None:
    authors = get_publication_authors_ordered(tables, "p1")

    assert [(a.member.id, a.author_order) for a in authors] == [("m2", 0.0), ("m3", 1.0), ("m1", 2.0)]
    assert [a.member.id for a in get_publication_authors_ordered(tables, "p2")] == ["m1"]


def test_publication_links_sorted_with_blank_sort_first(tables: CommunityTables) -> None:
    assert [link.id for link in get_publication_links(tables, "p1")] == ["l4", "l2", "l1"]


def test_member_joins_sort_newest_first(tables: CommunityTables) -> None:
    assert [p.id for p in get_member_publications(tables, "m1")] == ["p2", "p1", "p4"]
    assert [a.id for a in get_member_awards(tables, "m1")] == ["a2", "a1"]
    assert [c.id for c in get_member_certificates(tables, "m1")] == ["c2", "c1"]
    assert [c.id for c in get_member_certificates(tables, "m2")] == ["c2"]
    assert get_member_awards(tables, "nobody") == []


def test_build_member_detail_joins_everything(tables: CommunityTables) -> None:
    detail = build_member_detail(tables, "m1")

    assert detail is not None
    assert detail.member.image == "https://lh3.googleusercontent.com/d/ada123"
    assert [p.id for p in detail.publications] == ["p2", "p1", "p4"]
    assert [m.id for m in detail.publications[1].authors] == ["m2", "m3", "m1"]
    assert detail.awards[0].image == "https://lh3.googleusercontent.com/d/xyz789"
    assert [c.id for c in detail.certificates] == ["c2", "c1"]
    assert build_member_detail(tables, "m4") is None


def test_build_publication_detail(tables: CommunityTables) -> None:
    detail = build_publication_detail(tables, "p1")

    assert detail is not None
    assert detail.publication.title == "Quantum Widgets"
    assert [a.author_order for a in detail.authors] == [0.0, 1.0, 2.0]
    assert [link.label for link in detail.links] == ["Site", "DOI", "PDF"]
    assert build_publication_detail(tables, "p3") is None


def test_unapproved_members_never_surface(tables: CommunityTables) -> None:
    seen: set[str] = {m.id for m in tables.members}
    groups = split_members_by_type(tables.members)
    seen |= {m.id for m in groups.admins + groups.members + groups.alumni}
    for publication in tables.publications:
        seen |= {a.member.id for a in get_publication_authors_ordered(tables, publication.id)}
    for item in build_publication_list(tables):
        seen |= {author.id for author in item.authors}

    assert "m4" not in seen


def test_split_members_by_type(tables: CommunityTables) -> None:
    groups = split_members_by_type(tables.members)

    assert [m.id for m in groups.admins] == ["m1"]
    assert [m.id for m in groups.members] == ["m5", "m2"]
    assert [m.id for m in groups.alumni] == ["m3"]


def test_build_publication_list_includes_year_and_author_names(tables: CommunityTables) -> None:
    items = {item.id: item for item in build_publication_list(tables)}

    assert items["p1"].year == "2023"
    assert items["p4"].year == ""
    assert [a.name for a in items["p1"].authors] == ["alan turing", "Grace Hopper", "Ada Lovelace"]


def test_filter_publications_and_facets(tables: CommunityTables) -> None:
    items = build_publication_list(tables)

    assert [i.id for i in filter_publications(items, query="LOVELACE")] == ["p2", "p1", "p4"]
    assert [i.id for i in filter_publications(items, field="AI")] == ["p2", "p4"]
    assert [i.id for i in filter_publications(items, year="2023")] == ["p1"]
    assert [i.id for i in filter_publications(items, institute="MIT", query="widgets")] == ["p1"]
    assert filter_publications(items, query="no such text") == []

    facets = publication_facets(items)
    assert facets.fields == ["AI", "Physics"]
    assert facets.institutes == ["ETH", "MIT"]
    assert facets.years == ["2024", "2023"]
