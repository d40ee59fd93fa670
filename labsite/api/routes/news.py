from fastapi import APIRouter, Depends, HTTPException, Query, status

from labsite.schemas.news import NewsArticleView, NewsListItem
from labsite.services.news import estimate_reading_time, format_date
from labsite.services.repository import get_repository
from labsite.services.sheets import SheetsError

router = APIRouter()


@router.get("", response_model=list[NewsListItem])
async def list_news(
    q: str = Query(default=""),
    tag: list[str] = Query(default=[]),
    date_from: str = Query(default=""),
    date_to: str = Query(default=""),
    repository=Depends(get_repository),
) -> list[NewsListItem]:
    try:
        return await repository.list_news(query=q, tags=tag, date_from=date_from, date_to=date_to)
    except SheetsError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc


@router.get("/tags", response_model=list[str])
async def list_tags(repository=Depends(get_repository)) -> list[str]:
    try:
        return await repository.list_news_tags()
    except SheetsError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc


@router.get("/{slug}", response_model=NewsArticleView)
async def get_article(slug: str, repository=Depends(get_repository)) -> NewsArticleView:
    try:
        article = await repository.get_news_article(slug)
    except SheetsError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    if article is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="article not found")
    return NewsArticleView(
        article=article,
        formatted_date=format_date(article.published_at),
        reading_time=estimate_reading_time(article),
    )


@router.get("/{slug}/similar", response_model=list[NewsListItem])
async def get_similar(
    slug: str,
    limit: int | None = Query(default=None, ge=0, le=50),
    repository=Depends(get_repository),
) -> list[NewsListItem]:
    try:
        similar = await repository.get_similar_news(slug, limit)
    except SheetsError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    if similar is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="article not found")
    return similar
