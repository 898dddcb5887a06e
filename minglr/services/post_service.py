import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from minglr.core.errors import InvalidInput, NotFound
from minglr.core.session import SessionContext
from minglr.core.store import (ArrayRemove, ArrayUnion, DocumentStore, Query, Row,
                               SnapshotFeed)
from minglr.schemas.notification import NotificationType
from minglr.schemas.post import Comment, Post
from minglr.services.notification_service import build_notification

logger = logging.getLogger(__name__)

TABLE = "posts"


def _newest_first(rows: List[Row]) -> List[Post]:
    posts = [Post(**row) for row in rows]
    return sorted(posts, key=lambda p: p.created_at, reverse=True)


class PostService:
    def __init__(self, store: DocumentStore, session: SessionContext):
        self.store = store
        self.session = session

    async def create_post(self, image_url: str, caption: str = "", activity_id: Optional[str] = None) -> Post:
        user = self.session.require_user()
        if not image_url:
            raise InvalidInput("A post needs an image")
        post = Post(
            id=str(uuid.uuid4()),
            user_id=user.id,
            user_name=user.name,
            user_avatar=user.avatar,
            image_url=image_url,
            activity_id=activity_id,
            caption=caption
        )
        row = await self.store.insert(TABLE, post.model_dump(mode="json", exclude={"created_at"}))
        logger.info("User %s created post %s", user.id, post.id)
        return Post(**row)

    async def get_post(self, post_id: str) -> Post:
        row = await self.store.get(TABLE, post_id)
        if row is None:
            raise NotFound("Post not found")
        return Post(**row)

    async def list_posts(self) -> List[Post]:
        return _newest_first(await self.store.fetch(Query(TABLE).order("created_at", desc=True)))

    @asynccontextmanager
    async def watch_posts(self) -> AsyncIterator[SnapshotFeed]:
        async with self.store.watch(Query(TABLE), shape=_newest_first) as feed:
            yield feed

    async def toggle_like(self, post_id: str) -> Post:
        """
        Like a post, or take the like back if the current user already liked it.

        Args:
            post_id (str): The post to like or unlike.

        Returns:
            Post: The post after the change.
        """
        user = self.session.require_user()
        post = await self.get_post(post_id)

        if user.id in post.liked_by:
            writes = [
                ArrayRemove(TABLE, post_id, "liked_by", [user.id], count_column="likes"),
            ]
        else:
            writes = [
                ArrayUnion(TABLE, post_id, "liked_by", [user.id], count_column="likes"),
            ]
            if post.user_id != user.id:
                writes.append(build_notification(
                    post.user_id, user.name, NotificationType.LIKE, related_id=post_id
                ))
        await self.store.apply(writes)
        return await self.get_post(post_id)

    async def add_comment(self, post_id: str, text: str) -> Comment:
        user = self.session.require_user()
        if not text.strip():
            raise InvalidInput("Comment cannot be empty")
        post = await self.get_post(post_id)

        comment = Comment(
            id=uuid.uuid4().hex,
            user_id=user.id,
            user_name=user.name,
            user_avatar=user.avatar,
            text=text
        )
        writes: List = [ArrayUnion(TABLE, post_id, "comments", [comment.model_dump(mode="json")])]
        if post.user_id != user.id:
            writes.append(build_notification(
                post.user_id, user.name, NotificationType.COMMENT, text=text, related_id=post_id
            ))
        await self.store.apply(writes)
        return comment
