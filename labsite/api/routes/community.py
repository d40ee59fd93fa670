from fastapi import APIRouter, Depends, HTTPException, status

from labsite.schemas.community import CommunityTables, MemberDetail, MemberGroups
from labsite.services.repository import get_repository
from labsite.services.sheets import SheetsError

router = APIRouter()


@router.get("/tables", response_model=CommunityTables)
async def get_tables(repository=Depends(get_repository)) -> CommunityTables:
    try:
        return await repository.get_community_tables()
    except SheetsError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc


@router.get("/members", response_model=MemberGroups)
async def list_members(repository=Depends(get_repository)) -> MemberGroups:
    try:
        return await repository.list_member_groups()
    except SheetsError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc


@router.get("/members/{member_id}", response_model=MemberDetail)
async def get_member(member_id: str, repository=Depends(get_repository)) -> MemberDetail:
    try:
        detail = await repository.get_member_detail(member_id)
    except SheetsError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    if detail is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="member not found")
    return detail
