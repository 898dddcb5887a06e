import pytest

from minglr.core.errors import InvalidInput, NotFound
from minglr.core.session import SessionContext
from minglr.core.store import Query
from minglr.schemas.chat import GLOBAL_CHANNEL
from minglr.schemas.notification import NotificationType
from minglr.services.messaging_service import MESSAGES, MessagingService
from minglr.services.notification_service import NotificationService


@pytest.mark.asyncio
async def test_create_group_adds_creator_once(store, sign_in):
    alice = await sign_in("alice", "Alice")
    group = await MessagingService(store, alice).create_group("  Weekend Trip ", ["bob", "alice", "bob"])

    assert group.name == "Weekend Trip"
    assert group.members == ["bob", "alice"]


@pytest.mark.asyncio
async def test_signed_out_calls_are_no_ops(store):
    messaging = MessagingService(store, SessionContext())

    assert await messaging.create_group("Trip", []) is None
    assert await messaging.send_message("hello") is None
    assert await store.fetch(Query(MESSAGES)) == []


@pytest.mark.asyncio
async def test_empty_inputs_are_rejected(store, sign_in):
    alice = await sign_in("alice", "Alice")
    messaging = MessagingService(store, alice)

    with pytest.raises(InvalidInput):
        await messaging.create_group("   ", [])
    with pytest.raises(InvalidInput):
        await messaging.send_message("  ")


@pytest.mark.asyncio
async def test_messages_come_back_in_send_order(store, sign_in):
    alice = await sign_in("alice", "Alice")
    await store.insert(MESSAGES, {"id": "late", "user_id": "alice", "user_name": "Alice", "text": "third",
                                  "group_id": "g1", "created_at": "2024-05-01T10:02:00+00:00"})
    await store.insert(MESSAGES, {"id": "early", "user_id": "alice", "user_name": "Alice", "text": "first",
                                  "group_id": "g1", "created_at": "2024-05-01T10:00:00+00:00"})
    await store.insert(MESSAGES, {"id": "middle", "user_id": "alice", "user_name": "Alice", "text": "second",
                                  "group_id": "g1", "created_at": "2024-05-01T10:01:00+00:00"})

    messages = await MessagingService(store, alice).list_messages("g1")
    assert [m.text for m in messages] == ["first", "second", "third"]


@pytest.mark.asyncio
async def test_global_channel_is_the_default(store, sign_in):
    alice = await sign_in("alice", "Alice")
    messaging = MessagingService(store, alice)

    sent = await messaging.send_message("Servus!")

    assert sent.group_id == GLOBAL_CHANNEL
    assert [m.id for m in await messaging.list_messages()] == [sent.id]


@pytest.mark.asyncio
async def test_group_message_notifies_other_members(store, sign_in):
    alice = await sign_in("alice", "Alice")
    bob = await sign_in("bob", "Bob")
    carol = await sign_in("carol", "Carol")
    messaging = MessagingService(store, alice)
    group = await messaging.create_group("Trip", ["bob", "carol"])

    await messaging.send_message("Who brings the snacks?", group_id=group.id)

    for session in (bob, carol):
        notifications = await NotificationService(store, session).list_notifications()
        assert len(notifications) == 1
        assert notifications[0].type == NotificationType.MESSAGE
        assert notifications[0].related_id == group.id
        assert notifications[0].actor_name == "Alice"
    assert await NotificationService(store, alice).list_notifications() == []
    assert (await messaging.get_group(group.id)).last_message == "Who brings the snacks?"


@pytest.mark.asyncio
async def test_global_message_notifies_nobody(store, sign_in):
    alice = await sign_in("alice", "Alice")
    bob = await sign_in("bob", "Bob")

    await MessagingService(store, alice).send_message("hi all")

    assert await NotificationService(store, bob).unread_count() == 0


@pytest.mark.asyncio
async def test_leave_group_drops_it_from_the_stream(store, sign_in):
    alice = await sign_in("alice", "Alice")
    messaging = MessagingService(store, alice)
    trip = await messaging.create_group("Trip", ["bob"])
    dinner = await messaging.create_group("Dinner", ["bob"])

    async with messaging.watch_groups() as feed:
        assert [g.id for g in await feed.__anext__()] == [trip.id, dinner.id]
        await messaging.leave_group(trip.id)
        assert [g.id for g in await feed.__anext__()] == [dinner.id]

    assert (await messaging.get_group(trip.id)).members == ["bob"]


@pytest.mark.asyncio
async def test_leave_unknown_group(store, sign_in):
    alice = await sign_in("alice", "Alice")
    with pytest.raises(NotFound):
        await MessagingService(store, alice).leave_group("missing")


@pytest.mark.asyncio
async def test_watch_messages_sees_new_messages(store, sign_in):
    alice = await sign_in("alice", "Alice")
    messaging = MessagingService(store, alice)

    async with messaging.watch_messages() as feed:
        assert await feed.__anext__() == []
        await messaging.send_message("first")
        await messaging.send_message("second")
        assert [m.text for m in await feed.__anext__()] == ["first", "second"]
