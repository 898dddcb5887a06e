import pytest

from minglr.core.errors import InvalidInput, NotFound
from minglr.schemas.notification import NotificationType
from minglr.schemas.social import RelationKind
from minglr.services.notification_service import NotificationService
from minglr.services.social_service import SocialService
from minglr.services.user_service import UserService


@pytest.mark.asyncio
async def test_follow_updates_both_profiles_and_notifies(store, sign_in):
    alice = await sign_in("alice", "Alice")
    bob = await sign_in("bob", "Bob")

    profile = await SocialService(store, alice).follow("bob")

    assert profile.following == ["bob"]
    bob_profile = await UserService(store, bob).reload_current()
    assert bob_profile.followers == ["alice"]

    notifications = await NotificationService(store, bob).list_notifications()
    assert len(notifications) == 1
    assert notifications[0].type == NotificationType.FOLLOW
    assert notifications[0].related_id == "alice"
    assert notifications[0].read is False


@pytest.mark.asyncio
async def test_following_twice_notifies_once(store, sign_in):
    alice = await sign_in("alice", "Alice")
    bob = await sign_in("bob", "Bob")
    social = SocialService(store, alice)

    await social.follow("bob")
    await social.follow("bob")

    assert (await UserService(store, bob).reload_current()).followers == ["alice"]
    assert await NotificationService(store, bob).unread_count() == 1


@pytest.mark.asyncio
async def test_follow_rejects_self_and_unknown_users(store, sign_in):
    alice = await sign_in("alice", "Alice")
    social = SocialService(store, alice)

    with pytest.raises(InvalidInput):
        await social.follow("alice")
    with pytest.raises(NotFound):
        await social.follow("ghost")


@pytest.mark.asyncio
async def test_friend_request_accepted_by_following_back(store, sign_in):
    alice = await sign_in("alice", "Alice")
    bob = await sign_in("bob", "Bob")

    await SocialService(store, alice).send_friend_request("bob")
    await UserService(store, bob).reload_current()
    bob_social = SocialService(store, bob)

    assert [p.id for p in await bob_social.pending_requests()] == ["alice"]
    assert (await bob_social.relation("alice")).kind == RelationKind.FOLLOWED_BY
    notifications = await NotificationService(store, bob).list_notifications()
    assert notifications[0].type == NotificationType.FRIEND_REQUEST

    await bob_social.follow("alice")

    assert (await bob_social.relation("alice")).kind == RelationKind.FRIENDS
    assert await bob_social.pending_requests() == []
    assert [p.id for p in await bob_social.list_friends()] == ["alice"]
    await UserService(store, alice).reload_current()
    assert [p.id for p in await SocialService(store, alice).list_friends()] == ["bob"]


@pytest.mark.asyncio
async def test_remove_friend_keeps_the_other_side_following(store, sign_in):
    alice = await sign_in("alice", "Alice")
    bob = await sign_in("bob", "Bob")
    await SocialService(store, alice).follow("bob")
    await SocialService(store, bob).follow("alice")

    await SocialService(store, alice).remove_friend("bob")

    assert (await SocialService(store, alice).relation("bob")).kind == RelationKind.FOLLOWED_BY
    await UserService(store, bob).reload_current()
    assert (await SocialService(store, bob).relation("alice")).kind == RelationKind.FOLLOWING


@pytest.mark.asyncio
async def test_relation_to_self_and_strangers(store, sign_in):
    alice = await sign_in("alice", "Alice")
    social = SocialService(store, alice)

    assert (await social.relation("alice")).kind == RelationKind.SELF
    assert (await social.relation("bob")).kind == RelationKind.NONE


@pytest.mark.asyncio
async def test_lists_of_following_and_followers(store, sign_in):
    alice = await sign_in("alice", "Alice")
    await sign_in("bob", "Bob")
    carol = await sign_in("carol", "Carol")
    await SocialService(store, carol).follow("alice")
    await SocialService(store, alice).follow("bob")

    social = SocialService(store, alice)
    assert [p.name for p in await social.list_following()] == ["Bob"]
    assert [p.name for p in await social.list_followers()] == ["Carol"]


@pytest.mark.asyncio
async def test_follow_again_after_unfollow_notifies_again(store, sign_in):
    alice = await sign_in("alice", "Alice")
    bob = await sign_in("bob", "Bob")
    social = SocialService(store, alice)

    await social.follow("bob")
    await social.unfollow("bob")
    await social.follow("bob")

    notifications = await NotificationService(store, bob).list_notifications()
    assert [n.type for n in notifications] == [NotificationType.FOLLOW, NotificationType.FOLLOW]
    assert len({n.id for n in notifications}) == 2
