# routers/notifications.py — Notification centre for the current user
from fastapi import APIRouter, Depends, HTTPException, Query

from auth import get_current_user, CurrentUser
from storage import Storage, get_storage

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


async def _own_notification(notification_id: int, user: CurrentUser, storage: Storage):
    notif = await storage.get_notification(notification_id)
    if not notif or notif.user_id != user.id:
        raise HTTPException(404, "Notification not found")
    return notif


# ============================================================
# LIST
# ============================================================

@router.get("")
async def list_notifications(
    unread_only: bool = Query(default=False),
    user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    notifications = await storage.get_user_notifications(user.id)
    if unread_only:
        notifications = [n for n in notifications if not n.read]
    return notifications


@router.get("/count")
async def notification_count(
    user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return {"unread": await storage.count_unread_notifications(user.id)}


# ============================================================
# MARK READ / DELETE
# ============================================================

@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: int,
    user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    await _own_notification(notification_id, user, storage)
    return await storage.mark_notification_as_read(notification_id)


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: int,
    user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    await _own_notification(notification_id, user, storage)
    await storage.delete_notification(notification_id)
    return {"status": "deleted"}
