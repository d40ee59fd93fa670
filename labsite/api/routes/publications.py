from fastapi import APIRouter, Depends, HTTPException, Query, status

from labsite.schemas.community import PublicationDetail, PublicationFacets, PublicationListItem
from labsite.services.repository import get_repository
from labsite.services.sheets import SheetsError

router = APIRouter()


@router.get("", response_model=list[PublicationListItem])
async def list_publications(
    q: str = Query(default=""),
    field: str = Query(default=""),
    institute: str = Query(default=""),
    year: str = Query(default=""),
    repository=Depends(get_repository),
) -> list[PublicationListItem]:
    try:
        return await repository.list_publications(query=q, field=field, institute=institute, year=year)
    except SheetsError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc


@router.get("/facets", response_model=PublicationFacets)
async def get_facets(repository=Depends(get_repository)) -> PublicationFacets:
    try:
        return await repository.get_publication_facets()
    except SheetsError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc


@router.get("/{publication_id}", response_model=PublicationDetail)
async def get_publication(publication_id: str, repository=Depends(get_repository)) -> PublicationDetail:
    try:
        detail = await repository.get_publication_detail(publication_id)
    except SheetsError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    if detail is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="publication not found")
    return detail
