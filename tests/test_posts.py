import pytest

from minglr.core.errors import InvalidInput
from minglr.schemas.notification import NotificationType
from minglr.services.notification_service import NotificationService
from minglr.services.post_service import PostService
from minglr.services.storage_service import StorageService, sanitize_filename, validate_image


@pytest.mark.asyncio
async def test_like_toggles_and_notifies_author(store, sign_in):
    alice = await sign_in("alice", "Alice")
    bob = await sign_in("bob", "Bob")
    post = await PostService(store, alice).create_post("https://img/p.jpg", "Eisbach!", activity_id="1")

    liked = await PostService(store, bob).toggle_like(post.id)
    assert liked.likes == 1
    assert liked.liked_by == ["bob"]

    unliked = await PostService(store, bob).toggle_like(post.id)
    assert unliked.likes == 0
    assert unliked.liked_by == []

    notifications = await NotificationService(store, alice).list_notifications()
    assert [n.type for n in notifications] == [NotificationType.LIKE]
    assert notifications[0].related_id == post.id


@pytest.mark.asyncio
async def test_liking_own_post_does_not_notify(store, sign_in):
    alice = await sign_in("alice", "Alice")
    posts = PostService(store, alice)
    post = await posts.create_post("https://img/p.jpg")

    await posts.toggle_like(post.id)

    assert await NotificationService(store, alice).unread_count() == 0


@pytest.mark.asyncio
async def test_comments_are_appended_in_order(store, sign_in):
    alice = await sign_in("alice", "Alice")
    bob = await sign_in("bob", "Bob")
    post = await PostService(store, alice).create_post("https://img/p.jpg")

    await PostService(store, bob).add_comment(post.id, "Looks great")
    await PostService(store, alice).add_comment(post.id, "Thanks!")

    stored = await PostService(store, alice).get_post(post.id)
    assert [c.text for c in stored.comments] == ["Looks great", "Thanks!"]
    assert stored.comments[0].user_name == "Bob"

    notifications = await NotificationService(store, alice).list_notifications()
    assert [(n.type, n.text) for n in notifications] == [(NotificationType.COMMENT, "Looks great")]


@pytest.mark.asyncio
async def test_post_needs_an_image_and_comments_need_text(store, sign_in):
    alice = await sign_in("alice", "Alice")
    posts = PostService(store, alice)

    with pytest.raises(InvalidInput):
        await posts.create_post("")
    post = await posts.create_post("https://img/p.jpg")
    with pytest.raises(InvalidInput):
        await posts.add_comment(post.id, "   ")


@pytest.mark.asyncio
async def test_feed_is_newest_first(store, sign_in):
    alice = await sign_in("alice", "Alice")
    await store.insert("posts", {"id": "old", "user_id": "alice", "user_name": "Alice", "image_url": "a",
                                 "created_at": "2024-01-01T00:00:00+00:00"})
    await store.insert("posts", {"id": "new", "user_id": "alice", "user_name": "Alice", "image_url": "b",
                                 "created_at": "2024-06-01T00:00:00+00:00"})

    assert [p.id for p in await PostService(store, alice).list_posts()] == ["new", "old"]


def test_validate_image():
    validate_image("image/png", 1024)
    with pytest.raises(InvalidInput):
        validate_image("application/pdf", 1024)
    with pytest.raises(InvalidInput):
        validate_image("image/png", 0)
    with pytest.raises(InvalidInput, match="less than 5MB"):
        validate_image("image/jpeg", 5 * 1024 * 1024 + 1)


def test_sanitize_filename():
    assert sanitize_filename("my photo (1).jpg") == "my_photo__1_.jpg"


@pytest.mark.asyncio
async def test_upload_stores_under_user_folder(blobs, store, sign_in):
    alice = await sign_in("alice", "Alice")

    url = await StorageService(blobs, alice).upload_post_image(b"\x89PNG", "beach.png", "image/png")

    assert url.startswith("memory://post-images/alice/")
    assert url.endswith("_beach.png")
    assert len(blobs.objects) == 1


@pytest.mark.asyncio
async def test_overlapping_likes_count_once(store, sign_in, monkeypatch):
    alice = await sign_in("alice", "Alice")
    bob = await sign_in("bob", "Bob")
    post = await PostService(store, alice).create_post("https://img/p.jpg")

    # Both requests read the post before either like lands.
    posts = PostService(store, bob)
    stale = await posts.get_post(post.id)
    fresh = posts.get_post
    reads = []

    async def read_post(post_id):
        reads.append(post_id)
        return stale if len(reads) in (1, 3) else await fresh(post_id)

    monkeypatch.setattr(posts, "get_post", read_post)
    await posts.toggle_like(post.id)
    liked = await posts.toggle_like(post.id)

    assert liked.liked_by == ["bob"]
    assert liked.likes == 1
