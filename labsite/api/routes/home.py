from fastapi import APIRouter, Depends, HTTPException, status

from labsite.schemas.home import HomeAboutContent, HomeNewsContent
from labsite.services.repository import get_repository
from labsite.services.sheets import SheetsError

router = APIRouter()


@router.get("/about", response_model=HomeAboutContent)
async def get_about(repository=Depends(get_repository)) -> HomeAboutContent:
    try:
        content = await repository.get_home_about()
    except SheetsError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    if content is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="home content not configured")
    return content


@router.get("/news", response_model=HomeNewsContent)
async def get_news_section(repository=Depends(get_repository)) -> HomeNewsContent:
    try:
        content = await repository.get_home_news()
    except SheetsError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    if content is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="home content not configured")
    return content
