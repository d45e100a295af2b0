# routers/activities.py — Read-only activity feed
from typing import Optional

from fastapi import APIRouter, Depends, Query

from auth import get_current_user, CurrentUser
from storage import Storage, get_storage

router = APIRouter(prefix="/api/activities", tags=["Activities"])


@router.get("")
async def list_activities(
    limit: Optional[int] = Query(default=20, ge=1, le=500),
    user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.get_all_activities(limit)


@router.get("/me")
async def my_activities(
    user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.get_user_activities(user.id)
