# tests/test_storage.py — Storage contract tests (run against both backends)
import asyncio

import pytest

from passwords import verify_password
from schemas import (
    UserCreate, UserUpdate, OrderCreate, OrderUpdate,
    NotificationCreate, NotificationUpdate, ActivityCreate,
)
from storage import DuplicateUserError, DEFAULT_STATS, create_storage, MemStorage


def _order(n: int, user_id: int = 42, status: str = "pending") -> OrderCreate:
    return OrderCreate(order_id=f"ORD-{n}", user_id=user_id, status=status, amount=10.0 * n)


@pytest.mark.asyncio
class TestUsers:
    async def test_create_then_get(self, storage):
        user = await storage.create_user(UserCreate(
            username="alice", email="alice@example.com", password="secret123",
        ))
        assert user.id is not None
        assert user.role == "user"
        assert user.created_at is not None
        assert user.last_login is None
        assert await storage.get_user(user.id) == user

    async def test_password_is_hashed(self, storage):
        user = await storage.create_user(UserCreate(
            username="alice", email="alice@example.com", password="secret123",
        ))
        assert user.password != "secret123"
        assert verify_password("secret123", user.password)

    async def test_update_rehashes_password(self, storage, test_user):
        updated = await storage.update_user(test_user.id, UserUpdate(password="NewPassword456"))
        assert updated.password != "NewPassword456"
        assert verify_password("NewPassword456", updated.password)
        assert not verify_password("TestPassword123!", updated.password)

    async def test_lookups_are_case_insensitive(self, storage):
        created = await storage.create_user(UserCreate(
            username="Alice", email="Alice@Example.com", password="secret123",
        ))
        assert (await storage.get_user_by_username("alice")).id == created.id
        assert (await storage.get_user_by_username("ALICE")).id == created.id
        assert (await storage.get_user_by_email("alice@example.com")).id == created.id
        assert await storage.get_user_by_username("bob") is None

    async def test_duplicate_username_rejected(self, storage, test_user):
        with pytest.raises(DuplicateUserError) as exc:
            await storage.create_user(UserCreate(
                username="TESTUSER", email="fresh@example.com", password="secret123",
            ))
        assert exc.value.field == "username"

    async def test_duplicate_email_rejected(self, storage, test_user):
        with pytest.raises(DuplicateUserError) as exc:
            await storage.create_user(UserCreate(
                username="fresh", email="TestUser@Example.com", password="secret123",
            ))
        assert exc.value.field == "email"

    async def test_update_cannot_take_another_username(self, storage, test_user, other_user):
        with pytest.raises(DuplicateUserError):
            await storage.update_user(other_user.id, UserUpdate(username="TestUser"))
        assert (await storage.get_user(other_user.id)).username == "otheruser"

    async def test_update_keeps_own_username(self, storage, test_user):
        updated = await storage.update_user(test_user.id, UserUpdate(username="TESTUSER"))
        assert updated.username == "TESTUSER"

    async def test_registration_records_activity(self, storage, test_user):
        activities = await storage.get_user_activities(test_user.id)
        assert len(activities) == 1
        assert activities[0].type == "user_registered"
        assert activities[0].details == {"username": "testuser"}

    async def test_empty_update_is_noop(self, storage, test_user):
        assert await storage.update_user(test_user.id, UserUpdate()) == test_user

    async def test_update_unknown_returns_none(self, storage):
        assert await storage.update_user(999, UserUpdate(name="Nobody")) is None
        assert await storage.get_all_users() == []

    async def test_delete(self, storage, test_user):
        assert await storage.delete_user(test_user.id) is True
        assert await storage.get_user(test_user.id) is None
        assert await storage.delete_user(test_user.id) is False

    async def test_delete_does_not_cascade(self, storage, test_user):
        await storage.create_order(_order(1, user_id=test_user.id))
        await storage.delete_user(test_user.id)
        assert len(await storage.get_user_orders(test_user.id)) == 1
        assert len(await storage.get_user_notifications(test_user.id)) == 1


@pytest.mark.asyncio
class TestOrders:
    async def test_create_then_get(self, storage):
        order = await storage.create_order(_order(1))
        assert order.status == "pending"
        assert order.amount == 10.0
        assert await storage.get_order(order.id) == order
        assert await storage.get_order_by_order_id("ORD-1") == order
        assert await storage.get_order_by_order_id("ORD-404") is None

    async def test_create_emits_one_activity_and_one_notification(self, storage):
        order = await storage.create_order(_order(7))

        activities = await storage.get_user_activities(42)
        assert [a.type for a in activities] == ["order_placed"]
        assert activities[0].details == {"order_id": "ORD-7", "amount": 70.0}

        notifications = await storage.get_user_notifications(42)
        assert len(notifications) == 1
        assert notifications[0].type == "new_order"
        assert notifications[0].read is False
        assert f"#{order.order_id}" in notifications[0].message

    async def test_status_change_notifies(self, storage):
        order = await storage.create_order(_order(1))
        updated = await storage.update_order(order.id, OrderUpdate(status="shipped"))
        assert updated.status == "shipped"

        notifications = await storage.get_user_notifications(42)
        changes = [n for n in notifications if n.type == "order_status_change"]
        assert len(changes) == 1
        assert "ORD-1" in changes[0].message
        assert "shipped" in changes[0].message

        updates = [a for a in await storage.get_user_activities(42) if a.type == "order_updated"]
        assert len(updates) == 1
        assert updates[0].details == {"order_id": "ORD-1", "new_status": "shipped"}

    async def test_same_status_does_not_notify(self, storage):
        order = await storage.create_order(_order(1))
        await storage.update_order(order.id, OrderUpdate(status="pending"))

        notifications = await storage.get_user_notifications(42)
        assert [n.type for n in notifications] == ["new_order"]
        activities = await storage.get_user_activities(42)
        assert sorted(a.type for a in activities) == ["order_placed", "order_updated"]

    async def test_update_without_status_records_activity_only(self, storage):
        order = await storage.create_order(_order(1))
        updated = await storage.update_order(order.id, OrderUpdate(amount=99.5))
        assert updated.amount == 99.5
        assert updated.status == "pending"

        updates = [a for a in await storage.get_user_activities(42) if a.type == "order_updated"]
        assert updates[0].details["new_status"] is None
        assert len(await storage.get_user_notifications(42)) == 1

    async def test_empty_update_returns_record_unchanged(self, storage):
        order = await storage.create_order(_order(1))
        assert await storage.update_order(order.id, OrderUpdate()) == order

    async def test_update_unknown_has_no_side_effects(self, storage):
        assert await storage.update_order(999, OrderUpdate(status="shipped")) is None
        assert await storage.get_all_activities() == []
        assert await storage.get_user_notifications(42) == []

    async def test_delete(self, storage):
        order = await storage.create_order(_order(1))
        assert await storage.delete_order(order.id) is True
        assert await storage.get_order(order.id) is None
        assert await storage.delete_order(order.id) is False

    async def test_list_is_newest_first_with_limit(self, storage):
        for n in range(1, 6):
            await storage.create_order(_order(n))
        orders = await storage.get_all_orders(limit=2)
        assert [o.order_id for o in orders] == ["ORD-5", "ORD-4"]
        assert len(await storage.get_all_orders()) == 5

    async def test_user_orders_newest_first(self, storage):
        await storage.create_order(_order(1, user_id=1))
        await storage.create_order(_order(2, user_id=2))
        await storage.create_order(_order(3, user_id=1))
        orders = await storage.get_user_orders(1)
        assert [o.order_id for o in orders] == ["ORD-3", "ORD-1"]

    async def test_concurrent_creates_keep_their_side_effects(self, storage):
        first, second = await asyncio.gather(
            storage.create_order(_order(1)),
            storage.create_order(_order(2)),
        )
        assert first.id != second.id

        activities = await storage.get_user_activities(42)
        notifications = await storage.get_user_notifications(42)
        assert sorted(a.details["order_id"] for a in activities) == ["ORD-1", "ORD-2"]
        assert len(notifications) == 2
        assert len({n.id for n in notifications}) == 2


@pytest.mark.asyncio
class TestNotifications:
    async def test_create_then_get(self, storage):
        notif = await storage.create_notification(NotificationCreate(
            user_id=5, type="promo", message="20% off this weekend",
        ))
        assert notif.read is False
        assert await storage.get_notification(notif.id) == notif

    async def test_mark_as_read(self, storage):
        notif = await storage.create_notification(NotificationCreate(
            user_id=5, type="promo", message="20% off this weekend",
        ))
        read = await storage.mark_notification_as_read(notif.id)
        assert read.read is True
        assert read.message == notif.message
        assert read.created_at == notif.created_at
        assert await storage.count_unread_notifications(5) == 0

    async def test_mark_unknown_returns_none(self, storage):
        assert await storage.mark_notification_as_read(999) is None

    async def test_update_and_delete(self, storage):
        notif = await storage.create_notification(NotificationCreate(
            user_id=5, type="promo", message="Old text",
        ))
        updated = await storage.update_notification(notif.id, NotificationUpdate(message="New text"))
        assert updated.message == "New text"
        assert updated.type == "promo"
        assert await storage.update_notification(999, NotificationUpdate(read=True)) is None

        assert await storage.delete_notification(notif.id) is True
        assert await storage.get_notification(notif.id) is None
        assert await storage.delete_notification(notif.id) is False

    async def test_user_notifications_scoped_and_counted(self, storage):
        for text in ("one", "two", "three"):
            await storage.create_notification(NotificationCreate(user_id=5, type="info", message=text))
        await storage.create_notification(NotificationCreate(user_id=6, type="info", message="other"))

        notifications = await storage.get_user_notifications(5)
        assert [n.message for n in notifications] == ["three", "two", "one"]
        await storage.mark_notification_as_read(notifications[0].id)
        assert await storage.count_unread_notifications(5) == 2
        assert await storage.count_unread_notifications(6) == 1


@pytest.mark.asyncio
class TestActivities:
    async def test_create_then_get(self, storage):
        activity = await storage.create_activity(ActivityCreate(
            user_id=3, type="profile_viewed", details={"page": "settings"},
        ))
        assert await storage.get_activity(activity.id) == activity
        assert await storage.get_activity(999) is None

    async def test_list_newest_first_with_limit(self, storage):
        for n in range(5):
            await storage.create_activity(ActivityCreate(user_id=3, type="ping", details={"n": n}))
        latest = await storage.get_all_activities(limit=2)
        assert [a.details["n"] for a in latest] == [4, 3]


@pytest.mark.asyncio
class TestStats:
    async def test_update_without_trend_keeps_previous(self, storage):
        first = await storage.create_or_update_stat("revenue", 100, "up", "18%")
        second = await storage.create_or_update_stat("revenue", 200)
        assert second.id == first.id
        assert second.value == 200
        assert second.trend == "up"
        assert second.trend_value == "18%"
        assert second.updated_at >= first.updated_at

    async def test_update_with_trend_replaces_it(self, storage):
        await storage.create_or_update_stat("revenue", 100, "up", "18%")
        stat = await storage.create_or_update_stat("revenue", 90, "down", "10%")
        assert stat.value == 90
        assert stat.trend == "down"
        assert stat.trend_value == "10%"
        assert (await storage.get_stat("revenue")) == stat

    async def test_new_key_gets_fresh_id(self, storage):
        a = await storage.create_or_update_stat("orders", 1)
        b = await storage.create_or_update_stat("visits", 2)
        assert a.id != b.id
        assert a.trend is None
        assert await storage.get_stat("missing") is None
        assert len(await storage.get_all_stats()) == 2

    async def test_seed_default_stats(self, storage):
        await storage.create_or_update_stat("revenue", 1, "down", "1%")
        assert await storage.seed_default_stats() == len(DEFAULT_STATS) - 1
        assert await storage.seed_default_stats() == 0
        assert (await storage.get_stat("revenue")).value == 1
        assert (await storage.get_stat("total_users")).value == 2543


def test_mem_storage_seeds_on_construction():
    storage = MemStorage()
    assert len(storage._stats) == len(DEFAULT_STATS)
    assert storage._stats["active_users"].trend == "down"


def test_create_storage_rejects_unknown_backend():
    assert isinstance(create_storage("memory"), MemStorage)
    with pytest.raises(ValueError):
        create_storage("redis")
