"""Decoding of news content blocks and their embedded JSON columns.

Every ``*_json`` column written by editors is untrusted. The helpers here
never raise on bad input: they return ``(value, diagnostics)`` pairs where
malformed items are dropped from ``value`` and described in
``diagnostics``. Callers log diagnostics once per batch.
"""

from __future__ import annotations

import json
import logging
import math
import reprlib
from typing import Any, Mapping

from labsite.core.drive import normalize_drive_image_url
from labsite.schemas.news import (
    EmbedBlock,
    GalleryBlock,
    GalleryImage,
    ImageBlock,
    LinkItem,
    LinksBlock,
    ListBlock,
    NewsBlock,
    ParagraphBlock,
    PdfBlock,
    QuoteBlock,
    SubheadBlock,
)
from labsite.services.rows import clean
from labsite.services.sheets import cell_text

logger = logging.getLogger(__name__)

BLOCK_TYPES = {"paragraph", "subhead", "quote", "image", "gallery", "pdf", "embed", "list", "links"}

_LIST_TEXT_KEYS = ("text", "label", "value", "title")
_LINK_URL_KEYS = ("url", "href", "link")
_LINK_LABEL_KEYS = ("label", "text", "cite")
_GALLERY_SRC_KEYS = ("src", "url")

Diagnostics = list[str]


def parse_json_maybe(raw: Any, fallback: Any) -> Any:
    if not raw:
        return fallback
    try:
        return json.loads(raw)
    except (TypeError, ValueError, RecursionError):
        return fallback


def decode_json_array(raw: Any, field: str) -> tuple[list[Any], Diagnostics]:
    text = clean(raw)
    if not text:
        return [], []
    decoded = parse_json_maybe(text, None)
    if decoded is None and text != "null":
        return [], [f"{field}: invalid JSON"]
    if not isinstance(decoded, list):
        return [], [f"{field}: expected a JSON array, got {type(decoded).__name__}"]
    return decoded, []


def _item_text(value: Any) -> str:
    if isinstance(value, bool):
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and math.isfinite(value):
        return cell_text(value)
    return ""


def _first_text(item: Mapping[str, Any], keys: tuple[str, ...]) -> str:
    for key in keys:
        text = _item_text(item.get(key))
        if text:
            return text
    return ""


def normalize_list_items(values: list[Any], field: str = "items_json") -> tuple[list[str], Diagnostics]:
    items: list[str] = []
    diagnostics: Diagnostics = []
    for index, value in enumerate(values):
        text = _first_text(value, _LIST_TEXT_KEYS) if isinstance(value, dict) else _item_text(value)
        if text:
            items.append(text)
        else:
            diagnostics.append(f"{field}[{index}]: unsupported list item {reprlib.repr(value)}")
    return items, diagnostics


def normalize_link_items(values: list[Any], field: str = "items_json") -> tuple[list[LinkItem], Diagnostics]:
    items: list[LinkItem] = []
    diagnostics: Diagnostics = []
    for index, value in enumerate(values):
        if isinstance(value, dict):
            url = _first_text(value, _LINK_URL_KEYS)
            label = _first_text(value, _LINK_LABEL_KEYS) or url
        else:
            url = value.strip() if isinstance(value, str) else ""
            label = url
        if not url:
            diagnostics.append(f"{field}[{index}]: link without url {reprlib.repr(value)}")
            continue
        items.append(LinkItem(label=label, url=url))
    return items, diagnostics


def normalize_gallery_items(
    values: list[Any],
    field: str = "images_json",
) -> tuple[list[GalleryImage], Diagnostics]:
    images: list[GalleryImage] = []
    diagnostics: Diagnostics = []
    for index, value in enumerate(values):
        alt: str | None = None
        if isinstance(value, dict):
            src = _first_text(value, _GALLERY_SRC_KEYS)
            alt = _item_text(value.get("alt")) or None
        else:
            src = value.strip() if isinstance(value, str) else ""
        if not src:
            diagnostics.append(f"{field}[{index}]: gallery image without src {reprlib.repr(value)}")
            continue
        images.append(GalleryImage(src=normalize_drive_image_url(src), alt=alt))
    return images, diagnostics


def _optional(value: Any) -> str | None:
    return clean(value) or None


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def decode_block(row: Mapping[str, Any]) -> tuple[NewsBlock, Diagnostics]:
    """Decode one ``news_blocks`` row; unknown types become an empty paragraph."""
    block_type = clean(row.get("type")).lower()

    if block_type == "paragraph":
        return ParagraphBlock(text=_text(row.get("text"))), []
    if block_type == "subhead":
        return SubheadBlock(text=_text(row.get("text"))), []
    if block_type == "quote":
        return QuoteBlock(text=_text(row.get("text")), cite=_optional(row.get("cite"))), []
    if block_type == "image":
        return (
            ImageBlock(
                src=normalize_drive_image_url(row.get("src")),
                alt=_optional(row.get("alt")),
                caption=_optional(row.get("caption")),
                credit=_optional(row.get("credit")),
            ),
            [],
        )
    if block_type == "pdf":
        return PdfBlock(title=_optional(row.get("title")), src=clean(row.get("src"))), []
    if block_type == "embed":
        return (
            EmbedBlock(
                title=_optional(row.get("title")),
                provider=clean(row.get("provider")) or "iframe",
                url=clean(row.get("url")),
            ),
            [],
        )
    if block_type == "list":
        values, diagnostics = decode_json_array(row.get("items_json"), "items_json")
        items, item_diagnostics = normalize_list_items(values, "items_json")
        return ListBlock(items=items), diagnostics + item_diagnostics
    if block_type == "links":
        values, diagnostics = decode_json_array(row.get("items_json"), "items_json")
        links, item_diagnostics = normalize_link_items(values, "items_json")
        return LinksBlock(title=_optional(row.get("title")), items=links), diagnostics + item_diagnostics
    if block_type == "gallery":
        values, diagnostics = decode_json_array(row.get("images_json"), "images_json")
        images, item_diagnostics = normalize_gallery_items(values, "images_json")
        return GalleryBlock(title=_optional(row.get("title")), images=images), diagnostics + item_diagnostics

    logger.debug("unknown block type=%r; rendering empty paragraph", block_type)
    return ParagraphBlock(text=""), []


def decode_blocks(rows: list[Mapping[str, Any]], *, slug: str = "") -> list[NewsBlock]:
    blocks: list[NewsBlock] = []
    for row in rows:
        block, diagnostics = decode_block(row)
        if diagnostics:
            logger.warning(
                "malformed content in block slug=%s idx=%s type=%s: %s",
                slug,
                clean(row.get("idx")),
                block.type,
                "; ".join(diagnostics),
            )
        blocks.append(block)
    return blocks
