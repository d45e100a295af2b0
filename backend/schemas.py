# schemas.py — Plain records returned by the storage layer
# Both storage backends hand these out; ORM rows never leave storage.py.
from datetime import datetime
from typing import Optional, Dict, Any

from pydantic import BaseModel, ConfigDict, Field


class Record(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# --- Users ---

class UserCreate(BaseModel):
    username: str
    email: str
    password: str
    name: Optional[str] = None
    role: str = "user"


class UserUpdate(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None
    last_login: Optional[datetime] = None


class UserRecord(Record):
    id: int
    username: str
    email: str
    password: str
    name: Optional[str] = None
    role: str
    created_at: datetime
    last_login: Optional[datetime] = None

    def public(self) -> Dict[str, Any]:
        """Serialisable view without the password hash"""
        return self.model_dump(mode="json", exclude={"password"})


# --- Orders ---

class OrderCreate(BaseModel):
    order_id: str
    user_id: int
    status: str = "pending"
    amount: float


class OrderUpdate(BaseModel):
    order_id: Optional[str] = None
    user_id: Optional[int] = None
    status: Optional[str] = None
    amount: Optional[float] = None


class OrderRecord(Record):
    id: int
    order_id: str
    user_id: int
    status: str
    amount: float
    created_at: datetime


# --- Notifications ---

class NotificationCreate(BaseModel):
    user_id: int
    type: str
    message: str
    read: bool = False


class NotificationUpdate(BaseModel):
    type: Optional[str] = None
    message: Optional[str] = None
    read: Optional[bool] = None


class NotificationRecord(Record):
    id: int
    user_id: int
    type: str
    message: str
    read: bool
    created_at: datetime


# --- Activities ---

class ActivityCreate(BaseModel):
    user_id: int
    type: str
    details: Dict[str, Any] = Field(default_factory=dict)


class ActivityRecord(Record):
    id: int
    user_id: int
    type: str
    details: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


# --- Stats ---

class StatRecord(Record):
    id: int
    key: str
    value: float
    trend: Optional[str] = None
    trend_value: Optional[str] = None
    updated_at: datetime
