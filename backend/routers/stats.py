# routers/stats.py — Dashboard statistics
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from auth import get_current_user, require_role, CurrentUser
from models import UserRole
from storage import Storage, get_storage

router = APIRouter(prefix="/api/stats", tags=["Stats"])


class StatIn(BaseModel):
    value: float
    trend: Optional[str] = Field(default=None, pattern=r'^(up|down)$')
    trend_value: Optional[str] = Field(default=None, max_length=16)


@router.get("")
async def list_stats(
    user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.get_all_stats()


@router.get("/{key}")
async def get_stat(
    key: str,
    user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    stat = await storage.get_stat(key)
    if not stat:
        raise HTTPException(status_code=404, detail="Stat not found")
    return stat


@router.put("/{key}")
async def put_stat(
    key: str,
    data: StatIn,
    user: CurrentUser = Depends(require_role(UserRole.ADMIN)),
    storage: Storage = Depends(get_storage),
):
    """Create the stat or update it in place; omitted trend fields keep their value"""
    return await storage.create_or_update_stat(key, data.value, data.trend, data.trend_value)
