from __future__ import annotations

from datetime import datetime, timezone
import logging
import math
import re
from typing import Any, Iterable, Mapping, Sequence

from opentelemetry import trace

from labsite.core.drive import normalize_drive_image_url
from labsite.core.telemetry import set_span_attributes
from labsite.schemas.news import NewsArticle, NewsAuthor, NewsHero, NewsListItem, ParagraphBlock, QuoteBlock
from labsite.services.content_blocks import decode_blocks, decode_json_array, normalize_link_items
from labsite.services.rows import clean, is_approved, parse_date, rows_to_objects, to_number
from labsite.services.sheets import DEFAULT_REVALIDATE_SECONDS, SheetsClient

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

NEWS_ARTICLES_TAB = "news_articles"
NEWS_BLOCKS_TAB = "news_blocks"
WORDS_PER_MINUTE = 220
DEFAULT_SIMILAR_LIMIT = 4

_YMD_PREFIX_RE = re.compile(r"^\s*(\d+)-(\d+)-(\d+)")


def split_tags(raw: Any) -> list[str]:
    return [tag.strip() for tag in clean(raw).split(",") if tag.strip()]


def _optional(value: Any) -> str | None:
    return clean(value) or None


def map_author(record: Mapping[str, Any]) -> NewsAuthor | None:
    name = clean(record.get("author_name"))
    if not name:
        return None
    return NewsAuthor(name=name, role=_optional(record.get("author_role")))


def map_hero(record: Mapping[str, Any]) -> NewsHero:
    image = clean(record.get("hero_image"))
    return NewsHero(
        image=normalize_drive_image_url(image) if image else None,
        caption=_optional(record.get("hero_caption")),
        credit=_optional(record.get("hero_credit")),
    )


def map_news_list_item(record: Mapping[str, Any]) -> NewsListItem:
    return NewsListItem(
        slug=clean(record.get("slug")),
        title=clean(record.get("title")),
        dek=_optional(record.get("dek")),
        author=map_author(record),
        published_at=clean(record.get("publishedAt")),
        tags=split_tags(record.get("tags")),
        hero=map_hero(record),
    )


async def get_all_news(
    client: SheetsClient,
    *,
    document_id: str,
    revalidate_seconds: int = DEFAULT_REVALIDATE_SECONDS,
) -> list[NewsListItem]:
    """Approved articles, newest ``published_at`` first."""
    records = rows_to_objects(await client.fetch_rows(document_id, NEWS_ARTICLES_TAB, revalidate_seconds))
    items = [map_news_list_item(record) for record in records if is_approved(record.get("status"))]
    return sorted(items, key=lambda item: item.published_at, reverse=True)


async def get_news_by_slug(
    client: SheetsClient,
    slug: str,
    *,
    document_id: str,
    revalidate_seconds: int = DEFAULT_REVALIDATE_SECONDS,
) -> NewsArticle | None:
    target = clean(slug)
    with tracer.start_as_current_span("news.load_article") as span:
        set_span_attributes(span, "news", slug=target)
        records = rows_to_objects(await client.fetch_rows(document_id, NEWS_ARTICLES_TAB, revalidate_seconds))
        row = next(
            (r for r in records if clean(r.get("slug")) == target and is_approved(r.get("status"))),
            None,
        )
        if row is None:
            return None

        block_rows = [
            block
            for block in rows_to_objects(await client.fetch_rows(document_id, NEWS_BLOCKS_TAB, revalidate_seconds))
            if clean(block.get("slug")) == target and is_approved(block.get("status"))
        ]
        block_rows.sort(key=lambda block: to_number(block.get("idx")))
        content = decode_blocks(block_rows, slug=target)
        set_span_attributes(span, "news", block_count=len(content))

    values, diagnostics = decode_json_array(row.get("links_json"), "links_json")
    links, link_diagnostics = normalize_link_items(values, "links_json")
    if diagnostics or link_diagnostics:
        logger.warning("malformed article links slug=%s: %s", target, "; ".join(diagnostics + link_diagnostics))

    item = map_news_list_item(row)
    return NewsArticle(
        **item.model_dump(),
        updated_at=_optional(row.get("updatedAt")),
        links=links,
        content=content,
    )


def get_similar_articles(
    all_items: Sequence[NewsListItem],
    current: NewsListItem,
    limit: int = DEFAULT_SIMILAR_LIMIT,
) -> list[NewsListItem]:
    """Rank other articles by shared tag count, then by newest date."""
    current_tags = {tag.lower() for tag in current.tags}

    def shared(item: NewsListItem) -> int:
        return sum(1 for tag in item.tags if tag.lower() in current_tags)

    candidates = sorted(
        (item for item in all_items if item.slug != current.slug),
        key=lambda item: item.published_at,
        reverse=True,
    )
    return sorted(candidates, key=shared, reverse=True)[:limit]


def format_date(value: str) -> str:
    match = _YMD_PREFIX_RE.match(value or "")
    if match:
        year, month, day = (int(part) for part in match.groups())
        if year and month and day:
            try:
                rendered = datetime(year, month, day, tzinfo=timezone.utc)
            except ValueError:
                return value
            return f"{rendered:%B} {rendered.day}, {rendered.year}"
    return value


def estimate_reading_time(article: NewsArticle) -> str:
    words = sum(
        len(block.text.split()) for block in article.content if isinstance(block, (ParagraphBlock, QuoteBlock))
    )
    minutes = max(1, math.floor(words / WORDS_PER_MINUTE + 0.5))
    return f"{minutes} min read"


def _day_key(value: Any) -> float | None:
    parsed = parse_date(value)
    if parsed is None:
        return None
    day = datetime(parsed.year, parsed.month, parsed.day, tzinfo=timezone.utc)
    return day.timestamp() * 1000.0


def filter_news(
    items: Iterable[NewsListItem],
    *,
    query: str = "",
    tags: Sequence[str] = (),
    date_from: str = "",
    date_to: str = "",
) -> list[NewsListItem]:
    needle = query.strip().lower()
    wanted_tags = {tag.lower() for tag in tags if tag}
    lower_bound = _day_key(date_from)
    upper_bound = _day_key(date_to)

    matched: list[NewsListItem] = []
    for item in items:
        published = _day_key(item.published_at) or 0.0
        if lower_bound is not None and published < lower_bound:
            continue
        if upper_bound is not None and published > upper_bound:
            continue
        if wanted_tags and not any(tag.lower() in wanted_tags for tag in item.tags):
            continue
        if needle:
            haystack = " ".join(
                part
                for part in (item.title, item.dek, item.author.name if item.author else None, " ".join(item.tags))
                if part
            ).lower()
            if needle not in haystack:
                continue
        matched.append(item)
    return matched


def news_tag_options(items: Iterable[NewsListItem]) -> list[str]:
    return sorted({tag for item in items for tag in item.tags})
