# routers/users.py — User listing and lookup (passwords never leave the API)
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from auth import get_current_user, CurrentUser
from storage import Storage, get_storage

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("")
async def list_users(
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    users = await storage.get_all_users(limit)
    return [u.public() for u in users]


@router.get("/{user_id}")
async def get_user(
    user_id: int,
    user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    target = await storage.get_user(user_id)
    if not target:
        raise HTTPException(status_code=404, detail="User not found")
    return target.public()
