from __future__ import annotations

from functools import lru_cache
import logging
from typing import Sequence

from labsite.core.config import Settings, get_settings
from labsite.schemas.community import (
    CommunityTables,
    MemberDetail,
    MemberGroups,
    PublicationDetail,
    PublicationFacets,
    PublicationListItem,
)
from labsite.schemas.home import HomeAboutContent, HomeNewsContent
from labsite.schemas.news import NewsArticle, NewsListItem
from labsite.services import community, home, news
from labsite.services.cache import ClientRowCache, JsonFileCacheStore
from labsite.services.sheets import SheetsClient

logger = logging.getLogger(__name__)


def build_sheets_client(settings: Settings) -> SheetsClient:
    cache: ClientRowCache | None = None
    if settings.client_cache_dir:
        cache = ClientRowCache(JsonFileCacheStore(settings.client_cache_dir), ttl_ms=settings.client_cache_ttl_ms)
    return SheetsClient(
        base_url=settings.sheets_base_url,
        timeout_seconds=settings.request_timeout_seconds,
        cache=cache,
    )


class ContentRepository:
    """Read API over the content spreadsheet.

    Every call refetches (subject to caching) and rebuilds its view. With
    no document id configured, reads return empty results without
    touching the network. ``SheetsError`` from any tab propagates.
    """

    def __init__(self, settings: Settings, sheets: SheetsClient | None = None) -> None:
        self.settings = settings
        self.sheets = sheets or build_sheets_client(settings)

    @property
    def document_id(self) -> str:
        return self.settings.sheets_id.strip()

    @property
    def configured(self) -> bool:
        if not self.document_id:
            logger.debug("sheets_id not configured; serving empty content")
            return False
        return True

    async def get_community_tables(self) -> CommunityTables:
        if not self.configured:
            return CommunityTables()
        return await community.get_community_tables(
            self.sheets,
            document_id=self.document_id,
            revalidate_seconds=self.settings.revalidate_seconds,
        )

    async def list_member_groups(self) -> MemberGroups:
        tables = await self.get_community_tables()
        return community.split_members_by_type(tables.members)

    async def get_member_detail(self, member_id: str) -> MemberDetail | None:
        tables = await self.get_community_tables()
        return community.build_member_detail(tables, member_id)

    async def list_publications(
        self,
        *,
        query: str = "",
        field: str = "",
        institute: str = "",
        year: str = "",
    ) -> list[PublicationListItem]:
        tables = await self.get_community_tables()
        return community.filter_publications(
            community.build_publication_list(tables),
            query=query,
            field=field,
            institute=institute,
            year=year,
        )

    async def get_publication_facets(self) -> PublicationFacets:
        tables = await self.get_community_tables()
        return community.publication_facets(community.build_publication_list(tables))

    async def get_publication_detail(self, publication_id: str) -> PublicationDetail | None:
        tables = await self.get_community_tables()
        return community.build_publication_detail(tables, publication_id)

    async def list_news(
        self,
        *,
        query: str = "",
        tags: Sequence[str] = (),
        date_from: str = "",
        date_to: str = "",
    ) -> list[NewsListItem]:
        items = await self._all_news()
        return news.filter_news(items, query=query, tags=tags, date_from=date_from, date_to=date_to)

    async def list_news_tags(self) -> list[str]:
        return news.news_tag_options(await self._all_news())

    async def get_news_article(self, slug: str) -> NewsArticle | None:
        if not self.configured:
            return None
        return await news.get_news_by_slug(
            self.sheets,
            slug,
            document_id=self.document_id,
            revalidate_seconds=self.settings.revalidate_seconds,
        )

    async def get_similar_news(self, slug: str, limit: int | None = None) -> list[NewsListItem] | None:
        article = await self.get_news_article(slug)
        if article is None:
            return None
        resolved_limit = self.settings.news_similar_limit if limit is None else limit
        return news.get_similar_articles(await self._all_news(), article, resolved_limit)

    async def get_home_about(self) -> HomeAboutContent | None:
        if not self.configured:
            return None
        return await home.get_home_about_content(
            self.sheets,
            document_id=self.document_id,
            revalidate_seconds=self.settings.revalidate_seconds,
        )

    async def get_home_news(self) -> HomeNewsContent | None:
        if not self.configured:
            return None
        return await home.get_home_news_content(
            self.sheets,
            document_id=self.document_id,
            revalidate_seconds=self.settings.revalidate_seconds,
        )

    async def _all_news(self) -> list[NewsListItem]:
        if not self.configured:
            return []
        return await news.get_all_news(
            self.sheets,
            document_id=self.document_id,
            revalidate_seconds=self.settings.revalidate_seconds,
        )


@lru_cache
def get_repository() -> ContentRepository:
    return ContentRepository(get_settings())
