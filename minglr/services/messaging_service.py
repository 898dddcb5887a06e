import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from minglr.core.errors import InvalidInput, NotFound
from minglr.core.session import SessionContext
from minglr.core.store import ArrayRemove, DocumentStore, Insert, Query, Row, SnapshotFeed, Update
from minglr.schemas.chat import GLOBAL_CHANNEL, ChatGroup, Message, Poll, PollOption
from minglr.schemas.notification import NotificationType
from minglr.services.notification_service import fan_out
from minglr.services.poll_service import validate_poll

logger = logging.getLogger(__name__)

GROUPS = "chat_groups"
MESSAGES = "messages"

PREVIEW_LENGTH = 80


def by_send_time(rows: List[Row]) -> List[Message]:
    """Messages oldest first. The channel query itself makes no ordering promise."""
    messages = [Message(**row) for row in rows]
    return sorted(messages, key=lambda m: m.created_at)


def _groups(rows: List[Row]) -> List[ChatGroup]:
    groups = [ChatGroup(**row) for row in rows]
    return sorted(groups, key=lambda g: g.created_at)


class MessagingService:
    def __init__(self, store: DocumentStore, session: SessionContext):
        self.store = store
        self.session = session

    # --- groups ---

    async def create_group(self, name: str, member_ids: List[str]) -> Optional[ChatGroup]:
        """
        Create a chat group with the creator as a member.

        Args:
            name (str): The group name.
            member_ids (List[str]): The other users to add.

        Returns:
            Optional[ChatGroup]: The new group, or None when nobody is signed in.
        """
        user = self.session.user
        if user is None:
            logger.warning("create_group called without a signed-in user")
            return None
        if not name.strip():
            raise InvalidInput("Group name cannot be empty")

        members = list(dict.fromkeys([*member_ids, user.id]))
        group = ChatGroup(id=str(uuid.uuid4()), name=name.strip(), members=members)
        row = await self.store.insert(GROUPS, group.model_dump(mode="json", exclude={"created_at"}))
        logger.info("User %s created group %s with %d members", user.id, group.id, len(members))
        return ChatGroup(**row)

    async def get_group(self, group_id: str) -> ChatGroup:
        row = await self.store.get(GROUPS, group_id)
        if row is None:
            raise NotFound("Group not found")
        return ChatGroup(**row)

    async def leave_group(self, group_id: str) -> None:
        """Remove the current user from a group. The group may end up empty."""
        user = self.session.require_user()
        await self.get_group(group_id)
        await self.store.apply([ArrayRemove(GROUPS, group_id, "members", [user.id])])
        logger.info("User %s left group %s", user.id, group_id)

    def _my_groups(self) -> Query:
        return Query(GROUPS).contains("members", [self.session.require_user().id])

    async def list_groups(self) -> List[ChatGroup]:
        return _groups(await self.store.fetch(self._my_groups()))

    @asynccontextmanager
    async def watch_groups(self) -> AsyncIterator[SnapshotFeed]:
        async with self.store.watch(self._my_groups(), shape=_groups) as feed:
            yield feed

    # --- messages ---

    async def send_message(self, text: str, activity_id: Optional[str] = None, group_id: Optional[str] = None, poll: Optional[Poll] = None) -> Optional[Message]:
        """
        Post a message to a group channel or to the global channel.

        For group channels every other member gets a ``message`` notification,
        written in the same batch as the message itself.

        Args:
            text (str): The message text.
            activity_id (Optional[str]): An activity shared with the message.
            group_id (Optional[str]): Target group; the global channel when omitted.
            poll (Optional[Poll]): A poll to embed. Votes on it start empty.

        Returns:
            Optional[Message]: The stored message, or None when nobody is signed in.
        """
        user = self.session.user
        if user is None:
            logger.warning("send_message called without a signed-in user")
            return None
        if poll is not None:
            validate_poll(poll)
            poll = poll.model_copy(update={
                "options": [PollOption(text=option.text) for option in poll.options]
            })
        if not text.strip() and poll is None and activity_id is None:
            raise InvalidInput("Message cannot be empty")

        channel = group_id or GLOBAL_CHANNEL
        message = Message(
            id=str(uuid.uuid4()),
            user_id=user.id,
            user_name=user.name,
            text=text,
            activity_id=activity_id,
            group_id=channel,
            poll=poll
        )
        writes = [Insert(MESSAGES, message.model_dump(mode="json", exclude={"created_at"}))]

        if channel != GLOBAL_CHANNEL:
            group = await self.store.get(GROUPS, channel)
            if group is not None:
                writes.extend(fan_out(
                    group.get("members") or [],
                    actor_id=user.id,
                    actor_name=user.name,
                    notification_type=NotificationType.MESSAGE,
                    text=text,
                    related_id=channel,
                    key=f"message:{message.id}"
                ))
                preview = text[:PREVIEW_LENGTH] if text else (poll.question if poll else "")
                writes.append(Update(GROUPS, channel, {"last_message": preview}))

        await self.store.apply(writes)
        stored = await self.store.get(MESSAGES, message.id)
        return Message(**stored) if stored else message

    async def get_message(self, message_id: str) -> Message:
        row = await self.store.get(MESSAGES, message_id)
        if row is None:
            raise NotFound("Message not found")
        return Message(**row)

    def _channel(self, channel_id: str) -> Query:
        return Query(MESSAGES).eq("group_id", channel_id or GLOBAL_CHANNEL)

    async def list_messages(self, channel_id: str = GLOBAL_CHANNEL) -> List[Message]:
        return by_send_time(await self.store.fetch(self._channel(channel_id)))

    @asynccontextmanager
    async def watch_messages(self, channel_id: str = GLOBAL_CHANNEL) -> AsyncIterator[SnapshotFeed]:
        """Live messages of one channel, re-sorted by send time on every change."""
        async with self.store.watch(self._channel(channel_id), shape=by_send_time) as feed:
            yield feed
