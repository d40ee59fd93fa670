from __future__ import annotations

import asyncio
from typing import Any, Callable, Iterable, Mapping, TypeVar

from labsite.core.drive import normalize_drive_image_url
from labsite.schemas.home import (
    ContactContent,
    ContactLink,
    FocusBlock,
    HomeAboutContent,
    HomeGallery,
    HomeNewsContent,
    ImageRef,
    Stat,
)
from labsite.services.rows import clean, is_approved, rows_to_objects, to_number
from labsite.services.sheets import DEFAULT_REVALIDATE_SECONDS, SheetsClient

HOME_META_TAB = "home"
ABOUT_TABS = ("about_bullets", "about_stats", "about_images", "about_focus", "about_links")
HOME_GALLERY_TAB = "home_gallery"

_Item = TypeVar("_Item")


def meta_to_record(rows: Iterable[Mapping[str, Any]]) -> dict[str, str]:
    """Collapse a ``key, value`` meta table into a dict; blank keys are skipped."""
    out: dict[str, str] = {}
    for row in rows:
        key = clean(row.get("key"))
        if not key:
            continue
        value = row.get("value")
        out[key] = "" if value is None else str(value)
    return out


def approved_sorted(
    records: Iterable[Mapping[str, Any]],
    build: Callable[[Mapping[str, Any]], _Item],
) -> list[_Item]:
    visible = [record for record in records if is_approved(record.get("status"))]
    visible.sort(key=lambda record: to_number(record.get("sort")))
    return [build(record) for record in visible]


def _image(record: Mapping[str, Any]) -> ImageRef:
    return ImageRef(src=normalize_drive_image_url(record.get("src")), alt=clean(record.get("alt")))


async def _fetch_objects(
    client: SheetsClient,
    document_id: str,
    tabs: Iterable[str],
    revalidate_seconds: int,
) -> list[list[dict[str, str]]]:
    rows = await asyncio.gather(*(client.fetch_rows(document_id, tab, revalidate_seconds) for tab in tabs))
    return [rows_to_objects(tab_rows) for tab_rows in rows]


async def get_home_about_content(
    client: SheetsClient,
    *,
    document_id: str,
    revalidate_seconds: int = DEFAULT_REVALIDATE_SECONDS,
) -> HomeAboutContent:
    meta_rows, bullets, stats, images, focus, links = await _fetch_objects(
        client, document_id, (HOME_META_TAB, *ABOUT_TABS), revalidate_seconds
    )
    meta = meta_to_record(meta_rows)

    return HomeAboutContent(
        eyebrow=meta.get("about_eyebrow", "About the group"),
        title=meta.get("about_title", ""),
        subtitle=meta.get("about_subtitle", ""),
        bullets=approved_sorted(bullets, lambda r: clean(r.get("text"))),
        stats=approved_sorted(stats, lambda r: Stat(label=clean(r.get("label")), value=clean(r.get("value")))),
        images=approved_sorted(images, _image),
        focus_blocks=approved_sorted(
            focus, lambda r: FocusBlock(title=clean(r.get("title")), body=clean(r.get("body")))
        ),
        contact=ContactContent(
            eyebrow=meta.get("contact_eyebrow", "Contact"),
            email_label=meta.get("contact_emailLabel", "Email"),
            email=meta.get("contact_email", ""),
            location_label=meta.get("contact_locationLabel", "Location"),
            location=meta.get("contact_location", ""),
            address_label=meta.get("contact_addressLabel", "Address"),
            address=meta.get("contact_address", ""),
            links=approved_sorted(
                links, lambda r: ContactLink(label=clean(r.get("label")), href=clean(r.get("href")))
            ),
        ),
    )


async def get_home_news_content(
    client: SheetsClient,
    *,
    document_id: str,
    revalidate_seconds: int = DEFAULT_REVALIDATE_SECONDS,
) -> HomeNewsContent:
    meta_rows, gallery = await _fetch_objects(
        client, document_id, (HOME_META_TAB, HOME_GALLERY_TAB), revalidate_seconds
    )
    meta = meta_to_record(meta_rows)

    return HomeNewsContent(
        eyebrow=meta.get("news_eyebrow", "News"),
        title=meta.get("news_title", ""),
        subtitle=meta.get("news_subtitle", ""),
        view_all_label=meta.get("news_viewAllLabel", "View all"),
        gallery=HomeGallery(
            eyebrow=meta.get("gallery_eyebrow", "Gallery"),
            subtitle=meta.get("gallery_subtitle", ""),
            images=approved_sorted(gallery, _image),
        ),
    )
