# storage.py — Repository layer for users, orders, notifications, activities and stats
# Features:
# - One async contract (Storage) with two backends selected at startup
# - MemStorage: in-process dicts, lock-guarded, per-entity id sequences
# - DatabaseStorage: SQLAlchemy async sessions, one transaction per call
# - Order and user writes append activities/notifications in the same step
# - Case-insensitive username/email uniqueness enforced on write

import os
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any, Tuple, Iterable

from sqlalchemy import select, delete, func

from models import (
    User, Order, Notification, Activity, Stat,
    ActivityType, NotificationType, utcnow,
)
from passwords import hash_password
from schemas import (
    UserCreate, UserUpdate, UserRecord,
    OrderCreate, OrderUpdate, OrderRecord,
    NotificationCreate, NotificationUpdate, NotificationRecord,
    ActivityCreate, ActivityRecord, StatRecord,
)

logger = logging.getLogger("storefront.storage")

STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "database").lower()

DEFAULT_STATS = [
    {"key": "total_users", "value": 2543, "trend": "up", "trend_value": "12%"},
    {"key": "new_orders", "value": 128, "trend": "up", "trend_value": "8%"},
    {"key": "revenue", "value": 24830, "trend": "up", "trend_value": "18%"},
    {"key": "active_users", "value": 1428, "trend": "down", "trend_value": "3%"},
]

# Columns that may be explicitly cleared through a partial update
NULLABLE_USER_FIELDS = ("name", "last_login")


# ============================================================
# ERRORS
# ============================================================

class StorageError(Exception):
    """Base class for errors raised by the storage layer itself"""


class DuplicateUserError(StorageError):
    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(f"A user with this {field} already exists: {value}")


# ============================================================
# SIDE EFFECTS
# ============================================================

def order_placed_events(order: OrderRecord) -> Tuple[ActivityCreate, NotificationCreate]:
    """Activity and notification that accompany every new order"""
    activity = ActivityCreate(
        user_id=order.user_id,
        type=ActivityType.ORDER_PLACED.value,
        details={"order_id": order.order_id, "amount": order.amount},
    )
    notification = NotificationCreate(
        user_id=order.user_id,
        type=NotificationType.NEW_ORDER.value,
        message=f"Your order #{order.order_id} has been placed successfully",
    )
    return activity, notification


def order_updated_events(
    previous: OrderRecord, changes: Dict[str, Any]
) -> Tuple[ActivityCreate, Optional[NotificationCreate]]:
    """Activity for every order update, plus a notification when the status moved"""
    new_status = changes.get("status")
    activity = ActivityCreate(
        user_id=previous.user_id,
        type=ActivityType.ORDER_UPDATED.value,
        details={"order_id": previous.order_id, "new_status": new_status},
    )
    notification = None
    if new_status and new_status != previous.status:
        notification = NotificationCreate(
            user_id=previous.user_id,
            type=NotificationType.ORDER_STATUS_CHANGE.value,
            message=f"Your order #{previous.order_id} status changed to {new_status}",
        )
    return activity, notification


def _changes(partial, nullable: Iterable[str] = ()) -> Dict[str, Any]:
    """Fields the caller actually set; None only counts for nullable columns"""
    return {
        k: v for k, v in partial.model_dump(exclude_unset=True).items()
        if v is not None or k in nullable
    }


def _user_changes(partial: UserUpdate) -> Dict[str, Any]:
    changes = _changes(partial, NULLABLE_USER_FIELDS)
    if "password" in changes:
        changes["password"] = hash_password(changes["password"])
    return changes


# ============================================================
# CONTRACT
# ============================================================

class Storage(ABC):
    """Uniform CRUD + query operations over the storefront entities.

    Lookups return None for unknown ids, deletes return whether a row was
    removed, and every list is newest-first with ``limit`` applied after
    sorting.
    """

    # --- Users ---

    @abstractmethod
    async def get_user(self, id: int) -> Optional[UserRecord]: ...

    @abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[UserRecord]: ...

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[UserRecord]: ...

    @abstractmethod
    async def create_user(self, data: UserCreate) -> UserRecord: ...

    @abstractmethod
    async def update_user(self, id: int, data: UserUpdate) -> Optional[UserRecord]: ...

    @abstractmethod
    async def delete_user(self, id: int) -> bool: ...

    @abstractmethod
    async def get_all_users(self, limit: Optional[int] = None) -> List[UserRecord]: ...

    # --- Orders ---

    @abstractmethod
    async def get_order(self, id: int) -> Optional[OrderRecord]: ...

    @abstractmethod
    async def get_order_by_order_id(self, order_id: str) -> Optional[OrderRecord]: ...

    @abstractmethod
    async def create_order(self, data: OrderCreate) -> OrderRecord: ...

    @abstractmethod
    async def update_order(self, id: int, data: OrderUpdate) -> Optional[OrderRecord]: ...

    @abstractmethod
    async def delete_order(self, id: int) -> bool: ...

    @abstractmethod
    async def get_all_orders(self, limit: Optional[int] = None) -> List[OrderRecord]: ...

    @abstractmethod
    async def get_user_orders(self, user_id: int) -> List[OrderRecord]: ...

    # --- Notifications ---

    @abstractmethod
    async def get_notification(self, id: int) -> Optional[NotificationRecord]: ...

    @abstractmethod
    async def create_notification(self, data: NotificationCreate) -> NotificationRecord: ...

    @abstractmethod
    async def update_notification(
        self, id: int, data: NotificationUpdate
    ) -> Optional[NotificationRecord]: ...

    @abstractmethod
    async def delete_notification(self, id: int) -> bool: ...

    @abstractmethod
    async def get_user_notifications(self, user_id: int) -> List[NotificationRecord]: ...

    @abstractmethod
    async def mark_notification_as_read(self, id: int) -> Optional[NotificationRecord]: ...

    @abstractmethod
    async def count_unread_notifications(self, user_id: int) -> int: ...

    # --- Activities ---

    @abstractmethod
    async def get_activity(self, id: int) -> Optional[ActivityRecord]: ...

    @abstractmethod
    async def create_activity(self, data: ActivityCreate) -> ActivityRecord: ...

    @abstractmethod
    async def get_all_activities(self, limit: Optional[int] = None) -> List[ActivityRecord]: ...

    @abstractmethod
    async def get_user_activities(self, user_id: int) -> List[ActivityRecord]: ...

    # --- Stats ---

    @abstractmethod
    async def get_stat(self, key: str) -> Optional[StatRecord]: ...

    @abstractmethod
    async def create_or_update_stat(
        self,
        key: str,
        value: float,
        trend: Optional[str] = None,
        trend_value: Optional[str] = None,
    ) -> StatRecord: ...

    @abstractmethod
    async def get_all_stats(self) -> List[StatRecord]: ...

    async def seed_default_stats(self) -> int:
        """Insert the default dashboard stats that are missing. Returns how many were added."""
        added = 0
        for stat in DEFAULT_STATS:
            if await self.get_stat(stat["key"]) is None:
                await self.create_or_update_stat(**stat)
                added += 1
        return added


# ============================================================
# IN-MEMORY BACKEND
# ============================================================

def _newest_first(records, limit: Optional[int] = None) -> list:
    ordered = sorted(records, key=lambda r: (r.created_at, r.id), reverse=True)
    if limit:
        ordered = ordered[:limit]
    return [r.model_copy(deep=True) for r in ordered]


def _copy(record):
    return record.model_copy(deep=True) if record is not None else None


class MemStorage(Storage):
    """Ephemeral backend. Nothing survives the process.

    Operation bodies never await between reading and writing the maps, and
    all mutations hold ``_lock``, so id allocation and stat upserts stay
    consistent when called from worker threads as well.
    """

    def __init__(self, seed_stats: bool = True):
        self._lock = threading.RLock()
        self._users: Dict[int, UserRecord] = {}
        self._orders: Dict[int, OrderRecord] = {}
        self._notifications: Dict[int, NotificationRecord] = {}
        self._activities: Dict[int, ActivityRecord] = {}
        self._stats: Dict[str, StatRecord] = {}

        self._user_ids = itertools.count(1)
        self._order_ids = itertools.count(1)
        self._notification_ids = itertools.count(1)
        self._activity_ids = itertools.count(1)
        self._stat_ids = itertools.count(1)

        if seed_stats:
            for stat in DEFAULT_STATS:
                self._upsert_stat(**stat)

    # --- Users ---

    def _find_user(self, column: str, value: str) -> Optional[UserRecord]:
        value = value.lower()
        for user in self._users.values():
            if getattr(user, column).lower() == value:
                return user
        return None

    def _check_unique(self, username: Optional[str], email: Optional[str], exclude_id: Optional[int] = None):
        for column, value in (("username", username), ("email", email)):
            if value is None:
                continue
            existing = self._find_user(column, value)
            if existing is not None and existing.id != exclude_id:
                raise DuplicateUserError(column, value)

    async def get_user(self, id: int) -> Optional[UserRecord]:
        return _copy(self._users.get(id))

    async def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        return _copy(self._find_user("username", username))

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        return _copy(self._find_user("email", email))

    async def create_user(self, data: UserCreate) -> UserRecord:
        password = hash_password(data.password)
        with self._lock:
            self._check_unique(data.username, data.email)
            user = UserRecord(
                **data.model_dump(exclude={"password"}),
                id=next(self._user_ids),
                password=password,
                created_at=utcnow(),
                last_login=None,
            )
            self._users[user.id] = user
            self._append_activity(ActivityCreate(
                user_id=user.id,
                type=ActivityType.USER_REGISTERED.value,
                details={"username": user.username},
            ))
        return _copy(user)

    async def update_user(self, id: int, data: UserUpdate) -> Optional[UserRecord]:
        changes = _user_changes(data)
        with self._lock:
            user = self._users.get(id)
            if user is None:
                return None
            self._check_unique(changes.get("username"), changes.get("email"), exclude_id=id)
            updated = user.model_copy(update=changes)
            self._users[id] = updated
        return _copy(updated)

    async def delete_user(self, id: int) -> bool:
        with self._lock:
            return self._users.pop(id, None) is not None

    async def get_all_users(self, limit: Optional[int] = None) -> List[UserRecord]:
        return _newest_first(list(self._users.values()), limit)

    # --- Orders ---

    async def get_order(self, id: int) -> Optional[OrderRecord]:
        return _copy(self._orders.get(id))

    async def get_order_by_order_id(self, order_id: str) -> Optional[OrderRecord]:
        for order in self._orders.values():
            if order.order_id == order_id:
                return _copy(order)
        return None

    async def create_order(self, data: OrderCreate) -> OrderRecord:
        with self._lock:
            order = OrderRecord(**data.model_dump(), id=next(self._order_ids), created_at=utcnow())
            self._orders[order.id] = order
            activity, notification = order_placed_events(order)
            self._append_activity(activity)
            self._append_notification(notification)
        logger.debug(f"Order {order.order_id} placed for user {order.user_id}")
        return _copy(order)

    async def update_order(self, id: int, data: OrderUpdate) -> Optional[OrderRecord]:
        changes = _changes(data)
        with self._lock:
            order = self._orders.get(id)
            if order is None:
                return None
            updated = order.model_copy(update=changes)
            self._orders[id] = updated
            activity, notification = order_updated_events(order, changes)
            self._append_activity(activity)
            if notification is not None:
                self._append_notification(notification)
        return _copy(updated)

    async def delete_order(self, id: int) -> bool:
        with self._lock:
            return self._orders.pop(id, None) is not None

    async def get_all_orders(self, limit: Optional[int] = None) -> List[OrderRecord]:
        return _newest_first(list(self._orders.values()), limit)

    async def get_user_orders(self, user_id: int) -> List[OrderRecord]:
        return _newest_first([o for o in list(self._orders.values()) if o.user_id == user_id])

    # --- Notifications ---

    def _append_notification(self, data: NotificationCreate) -> NotificationRecord:
        with self._lock:
            notification = NotificationRecord(
                **data.model_dump(), id=next(self._notification_ids), created_at=utcnow(),
            )
            self._notifications[notification.id] = notification
        return notification

    async def get_notification(self, id: int) -> Optional[NotificationRecord]:
        return _copy(self._notifications.get(id))

    async def create_notification(self, data: NotificationCreate) -> NotificationRecord:
        return _copy(self._append_notification(data))

    async def update_notification(self, id: int, data: NotificationUpdate) -> Optional[NotificationRecord]:
        with self._lock:
            notification = self._notifications.get(id)
            if notification is None:
                return None
            updated = notification.model_copy(update=_changes(data))
            self._notifications[id] = updated
        return _copy(updated)

    async def delete_notification(self, id: int) -> bool:
        with self._lock:
            return self._notifications.pop(id, None) is not None

    async def get_user_notifications(self, user_id: int) -> List[NotificationRecord]:
        return _newest_first([n for n in list(self._notifications.values()) if n.user_id == user_id])

    async def mark_notification_as_read(self, id: int) -> Optional[NotificationRecord]:
        return await self.update_notification(id, NotificationUpdate(read=True))

    async def count_unread_notifications(self, user_id: int) -> int:
        return sum(
            1 for n in list(self._notifications.values())
            if n.user_id == user_id and not n.read
        )

    # --- Activities ---

    def _append_activity(self, data: ActivityCreate) -> ActivityRecord:
        with self._lock:
            activity = ActivityRecord(
                **data.model_dump(), id=next(self._activity_ids), created_at=utcnow(),
            )
            self._activities[activity.id] = activity
        return activity

    async def get_activity(self, id: int) -> Optional[ActivityRecord]:
        return _copy(self._activities.get(id))

    async def create_activity(self, data: ActivityCreate) -> ActivityRecord:
        return _copy(self._append_activity(data))

    async def get_all_activities(self, limit: Optional[int] = None) -> List[ActivityRecord]:
        return _newest_first(list(self._activities.values()), limit)

    async def get_user_activities(self, user_id: int) -> List[ActivityRecord]:
        return _newest_first([a for a in list(self._activities.values()) if a.user_id == user_id])

    # --- Stats ---

    def _upsert_stat(
        self, key: str, value: float, trend: Optional[str] = None, trend_value: Optional[str] = None,
    ) -> StatRecord:
        with self._lock:
            existing = self._stats.get(key)
            if existing is not None:
                stat = existing.model_copy(update={
                    "value": value,
                    "trend": trend if trend is not None else existing.trend,
                    "trend_value": trend_value if trend_value is not None else existing.trend_value,
                    "updated_at": utcnow(),
                })
            else:
                stat = StatRecord(
                    id=next(self._stat_ids), key=key, value=value,
                    trend=trend, trend_value=trend_value, updated_at=utcnow(),
                )
            self._stats[key] = stat
        return stat

    async def get_stat(self, key: str) -> Optional[StatRecord]:
        return _copy(self._stats.get(key))

    async def create_or_update_stat(
        self,
        key: str,
        value: float,
        trend: Optional[str] = None,
        trend_value: Optional[str] = None,
    ) -> StatRecord:
        return _copy(self._upsert_stat(key, value, trend, trend_value))

    async def get_all_stats(self) -> List[StatRecord]:
        stats = sorted(self._stats.values(), key=lambda s: s.id, reverse=True)
        return [s.model_copy(deep=True) for s in stats]


# ============================================================
# DATABASE BACKEND
# ============================================================

class DatabaseStorage(Storage):
    """Persistent backend on SQLAlchemy async sessions.

    Every contract call runs in its own transaction, so an order and the
    activity/notification it triggers are committed (or rolled back)
    together. Database errors propagate to the caller unchanged.
    """

    def __init__(self, session_factory=None):
        if session_factory is None:
            from database import async_session_maker
            session_factory = async_session_maker
        self._session_factory = session_factory

    @staticmethod
    async def _insert(session, row, record_cls):
        session.add(row)
        await session.flush()
        await session.refresh(row)
        return record_cls.model_validate(row)

    async def _get(self, table, id: int, record_cls):
        async with self._session_factory() as session:
            row = await session.get(table, id)
            return record_cls.model_validate(row) if row is not None else None

    async def _first(self, stmt, record_cls):
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).scalars().first()
            return record_cls.model_validate(row) if row is not None else None

    async def _all(self, stmt, record_cls) -> list:
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [record_cls.model_validate(r) for r in rows]

    async def _delete(self, table, id: int) -> bool:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(delete(table).where(table.id == id))
            return result.rowcount > 0

    @staticmethod
    def _newest_first(table, limit: Optional[int] = None):
        stmt = select(table).order_by(table.created_at.desc(), table.id.desc())
        if limit:
            stmt = stmt.limit(limit)
        return stmt

    # --- Users ---

    @staticmethod
    async def _check_unique(session, username: Optional[str], email: Optional[str], exclude_id: Optional[int] = None):
        for field, column, value in (("username", User.username, username), ("email", User.email, email)):
            if value is None:
                continue
            stmt = select(User.id).where(func.lower(column) == value.lower())
            if exclude_id is not None:
                stmt = stmt.where(User.id != exclude_id)
            if (await session.execute(stmt)).first() is not None:
                raise DuplicateUserError(field, value)

    async def get_user(self, id: int) -> Optional[UserRecord]:
        return await self._get(User, id, UserRecord)

    async def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        stmt = select(User).where(func.lower(User.username) == username.lower())
        return await self._first(stmt, UserRecord)

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        stmt = select(User).where(func.lower(User.email) == email.lower())
        return await self._first(stmt, UserRecord)

    async def create_user(self, data: UserCreate) -> UserRecord:
        password = hash_password(data.password)
        async with self._session_factory() as session:
            async with session.begin():
                await self._check_unique(session, data.username, data.email)
                user = await self._insert(session, User(
                    **data.model_dump(exclude={"password"}),
                    password=password,
                    created_at=utcnow(),
                    last_login=None,
                ), UserRecord)
                session.add(Activity(
                    user_id=user.id,
                    type=ActivityType.USER_REGISTERED.value,
                    details={"username": user.username},
                    created_at=utcnow(),
                ))
        return user

    async def update_user(self, id: int, data: UserUpdate) -> Optional[UserRecord]:
        changes = _user_changes(data)
        async with self._session_factory() as session:
            async with session.begin():
                row = await session.get(User, id)
                if row is None:
                    return None
                await self._check_unique(session, changes.get("username"), changes.get("email"), exclude_id=id)
                for field, value in changes.items():
                    setattr(row, field, value)
                await session.flush()
                await session.refresh(row)
                return UserRecord.model_validate(row)

    async def delete_user(self, id: int) -> bool:
        return await self._delete(User, id)

    async def get_all_users(self, limit: Optional[int] = None) -> List[UserRecord]:
        return await self._all(self._newest_first(User, limit), UserRecord)

    # --- Orders ---

    async def get_order(self, id: int) -> Optional[OrderRecord]:
        return await self._get(Order, id, OrderRecord)

    async def get_order_by_order_id(self, order_id: str) -> Optional[OrderRecord]:
        return await self._first(select(Order).where(Order.order_id == order_id), OrderRecord)

    async def create_order(self, data: OrderCreate) -> OrderRecord:
        async with self._session_factory() as session:
            async with session.begin():
                order = await self._insert(
                    session, Order(**data.model_dump(), created_at=utcnow()), OrderRecord,
                )
                activity, notification = order_placed_events(order)
                session.add(Activity(**activity.model_dump(), created_at=utcnow()))
                session.add(Notification(**notification.model_dump(), created_at=utcnow()))
        logger.debug(f"Order {order.order_id} placed for user {order.user_id}")
        return order

    async def update_order(self, id: int, data: OrderUpdate) -> Optional[OrderRecord]:
        changes = _changes(data)
        async with self._session_factory() as session:
            async with session.begin():
                row = await session.get(Order, id)
                if row is None:
                    return None
                previous = OrderRecord.model_validate(row)
                for field, value in changes.items():
                    setattr(row, field, value)
                await session.flush()
                await session.refresh(row)
                order = OrderRecord.model_validate(row)

                activity, notification = order_updated_events(previous, changes)
                session.add(Activity(**activity.model_dump(), created_at=utcnow()))
                if notification is not None:
                    session.add(Notification(**notification.model_dump(), created_at=utcnow()))
        return order

    async def delete_order(self, id: int) -> bool:
        return await self._delete(Order, id)

    async def get_all_orders(self, limit: Optional[int] = None) -> List[OrderRecord]:
        return await self._all(self._newest_first(Order, limit), OrderRecord)

    async def get_user_orders(self, user_id: int) -> List[OrderRecord]:
        stmt = self._newest_first(Order).where(Order.user_id == user_id)
        return await self._all(stmt, OrderRecord)

    # --- Notifications ---

    async def get_notification(self, id: int) -> Optional[NotificationRecord]:
        return await self._get(Notification, id, NotificationRecord)

    async def create_notification(self, data: NotificationCreate) -> NotificationRecord:
        async with self._session_factory() as session:
            async with session.begin():
                return await self._insert(
                    session, Notification(**data.model_dump(), created_at=utcnow()), NotificationRecord,
                )

    async def update_notification(self, id: int, data: NotificationUpdate) -> Optional[NotificationRecord]:
        changes = _changes(data)
        async with self._session_factory() as session:
            async with session.begin():
                row = await session.get(Notification, id)
                if row is None:
                    return None
                for field, value in changes.items():
                    setattr(row, field, value)
                await session.flush()
                await session.refresh(row)
                return NotificationRecord.model_validate(row)

    async def delete_notification(self, id: int) -> bool:
        return await self._delete(Notification, id)

    async def get_user_notifications(self, user_id: int) -> List[NotificationRecord]:
        stmt = self._newest_first(Notification).where(Notification.user_id == user_id)
        return await self._all(stmt, NotificationRecord)

    async def mark_notification_as_read(self, id: int) -> Optional[NotificationRecord]:
        return await self.update_notification(id, NotificationUpdate(read=True))

    async def count_unread_notifications(self, user_id: int) -> int:
        async with self._session_factory() as session:
            stmt = select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.read == False,
            )
            return (await session.execute(stmt)).scalar() or 0

    # --- Activities ---

    async def get_activity(self, id: int) -> Optional[ActivityRecord]:
        return await self._get(Activity, id, ActivityRecord)

    async def create_activity(self, data: ActivityCreate) -> ActivityRecord:
        async with self._session_factory() as session:
            async with session.begin():
                return await self._insert(
                    session, Activity(**data.model_dump(), created_at=utcnow()), ActivityRecord,
                )

    async def get_all_activities(self, limit: Optional[int] = None) -> List[ActivityRecord]:
        return await self._all(self._newest_first(Activity, limit), ActivityRecord)

    async def get_user_activities(self, user_id: int) -> List[ActivityRecord]:
        stmt = self._newest_first(Activity).where(Activity.user_id == user_id)
        return await self._all(stmt, ActivityRecord)

    # --- Stats ---

    async def get_stat(self, key: str) -> Optional[StatRecord]:
        return await self._first(select(Stat).where(Stat.key == key), StatRecord)

    async def create_or_update_stat(
        self,
        key: str,
        value: float,
        trend: Optional[str] = None,
        trend_value: Optional[str] = None,
    ) -> StatRecord:
        async with self._session_factory() as session:
            async with session.begin():
                row = (await session.execute(select(Stat).where(Stat.key == key))).scalar_one_or_none()
                if row is None:
                    return await self._insert(session, Stat(
                        key=key, value=value, trend=trend, trend_value=trend_value, updated_at=utcnow(),
                    ), StatRecord)
                row.value = value
                if trend is not None:
                    row.trend = trend
                if trend_value is not None:
                    row.trend_value = trend_value
                row.updated_at = utcnow()
                await session.flush()
                await session.refresh(row)
                return StatRecord.model_validate(row)

    async def get_all_stats(self) -> List[StatRecord]:
        return await self._all(select(Stat).order_by(Stat.id.desc()), StatRecord)


# ============================================================
# BACKEND SELECTION
# ============================================================

_storage: Optional[Storage] = None


def create_storage(backend: str = STORAGE_BACKEND) -> Storage:
    if backend == "memory":
        return MemStorage()
    if backend == "database":
        return DatabaseStorage()
    raise ValueError(f"Unknown STORAGE_BACKEND: {backend!r} (expected 'memory' or 'database')")


def get_storage() -> Storage:
    """Process-wide storage instance (FastAPI Depends)"""
    global _storage
    if _storage is None:
        _storage = create_storage()
        logger.info(f"Storage backend: {type(_storage).__name__}")
    return _storage
