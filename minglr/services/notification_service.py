import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, List, Optional

from minglr.core.errors import NotFound
from minglr.core.session import SessionContext
from minglr.core.store import DocumentStore, Insert, Query, Row, SnapshotFeed
from minglr.schemas.notification import Notification, NotificationType

logger = logging.getLogger(__name__)

TABLE = "notifications"


def notification_id(*parts: str) -> str:
    """Stable id for a notification, so writing the same fan-out twice stores it once."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, "minglr:" + ":".join(parts)))


def build_notification(recipient_id: str, actor_name: str, notification_type: NotificationType, text: Optional[str] = None, related_id: Optional[str] = None, key: Optional[str] = None) -> Insert:
    """
    Build the insert for one notification.

    Args:
        recipient_id (str): The user who will see the notification.
        actor_name (str): Display name of the user who triggered it.
        notification_type (NotificationType): What happened.
        text (Optional[str]): Free text shown with the notification, e.g. the comment.
        related_id (Optional[str]): The post, group or user the notification points at.
        key (Optional[str]): When given, the id is derived from it and the recipient instead of being random.

    Returns:
        Insert: The write to add to the triggering batch.
    """
    row_id = notification_id(key, recipient_id) if key else str(uuid.uuid4())
    notification = Notification(
        id=row_id,
        user_id=recipient_id,
        actor_name=actor_name,
        type=notification_type,
        text=text,
        related_id=related_id,
        read=False
    )
    return Insert(TABLE, notification.model_dump(mode="json", exclude={"created_at"}))


def fan_out(recipient_ids: Iterable[str], actor_id: str, actor_name: str, notification_type: NotificationType, text: Optional[str] = None, related_id: Optional[str] = None, key: Optional[str] = None) -> List[Insert]:
    """One notification per recipient, skipping the actor and duplicates."""
    inserts = []
    for recipient_id in dict.fromkeys(recipient_ids):
        if recipient_id == actor_id:
            continue
        inserts.append(build_notification(recipient_id, actor_name, notification_type, text, related_id, key))
    return inserts


def _newest_first(rows: List[Row]) -> List[Notification]:
    notifications = [Notification(**row) for row in rows]
    return sorted(notifications, key=lambda n: n.created_at, reverse=True)


class NotificationService:
    def __init__(self, store: DocumentStore, session: SessionContext):
        self.store = store
        self.session = session

    def _own(self) -> Query:
        return Query(TABLE).eq("user_id", self.session.require_user().id)

    async def list_notifications(self) -> List[Notification]:
        return _newest_first(await self.store.fetch(self._own()))

    @asynccontextmanager
    async def watch_notifications(self) -> AsyncIterator[SnapshotFeed]:
        """Live notifications of the current user, newest first."""
        async with self.store.watch(self._own(), shape=_newest_first) as feed:
            yield feed

    async def unread_count(self) -> int:
        rows = await self.store.fetch(self._own().eq("read", False))
        return len(rows)

    async def has_unread(self, notification_type: NotificationType) -> bool:
        rows = await self.store.fetch(self._own().eq("read", False).eq("type", notification_type.value))
        return bool(rows)

    async def mark_read(self, notification_id: str) -> Notification:
        user = self.session.require_user()
        row = await self.store.update(TABLE, notification_id, {"read": True}, expect={"user_id": user.id})
        if row is None:
            raise NotFound("Notification not found")
        return Notification(**row)

    async def mark_all_read(self) -> int:
        """
        Mark every notification that is unread right now as read.

        Runs as a single multi-row update, so notifications created while it
        runs keep their unread state.

        Returns:
            int: The number of notifications that changed.
        """
        changed = await self.store.update_where(self._own().eq("read", False), {"read": True})
        logger.info("Marked %d notifications read for %s", changed, self.session.user_id)
        return changed
