# routers/orders.py — Order CRUD
# Creating or updating an order also records an activity and notifies the
# owner; that happens inside the storage layer.
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from auth import get_current_user, CurrentUser
from schemas import OrderCreate, OrderUpdate
from storage import Storage, get_storage

router = APIRouter(prefix="/api/orders", tags=["Orders"])

STATUS_PATTERN = r'^(pending|processing|shipped|delivered|cancelled)$'


# --- Schemas ---

class OrderIn(BaseModel):
    order_id: str = Field(..., min_length=1, max_length=64)
    user_id: Optional[int] = None
    status: str = Field(default="pending", pattern=STATUS_PATTERN)
    amount: float = Field(..., ge=0)


class OrderPatch(BaseModel):
    order_id: Optional[str] = Field(default=None, min_length=1, max_length=64)
    status: Optional[str] = Field(default=None, pattern=STATUS_PATTERN)
    amount: Optional[float] = Field(default=None, ge=0)


# ============================================================
# LIST / GET
# ============================================================

@router.get("")
async def list_orders(
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.get_all_orders(limit)


@router.get("/mine")
async def my_orders(
    user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.get_user_orders(user.id)


@router.get("/{order_id}")
async def get_order(
    order_id: int,
    user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    order = await storage.get_order(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


# ============================================================
# CREATE / UPDATE / DELETE
# ============================================================

@router.post("", status_code=201)
async def create_order(
    data: OrderIn,
    user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    owner = data.user_id if data.user_id is not None else user.id
    return await storage.create_order(OrderCreate(
        order_id=data.order_id, user_id=owner, status=data.status, amount=data.amount,
    ))


@router.put("/{order_id}")
async def update_order(
    order_id: int,
    data: OrderPatch,
    user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    order = await storage.update_order(order_id, OrderUpdate(**data.model_dump(exclude_unset=True)))
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.delete("/{order_id}")
async def delete_order(
    order_id: int,
    user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    if not await storage.delete_order(order_id):
        raise HTTPException(status_code=404, detail="Order not found")
    return {"status": "deleted"}
