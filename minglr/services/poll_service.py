import logging
import math
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List

from minglr.core.errors import InvalidInput, NotFound, StoreError
from minglr.core.session import SessionContext
from minglr.core.store import DocumentStore, Query, Row, SnapshotFeed
from minglr.schemas.activity import Activity
from minglr.schemas.chat import ConfirmedEvent, Message, OptionTally, Poll, PollOption, PollTally
from minglr.services.activity_service import ActivityService

logger = logging.getLogger(__name__)

MESSAGES = "messages"

# Attempts at the compare-and-set vote before giving up
VOTE_ATTEMPTS = 3


def validate_poll(poll: Poll) -> None:
    """Reject malformed polls before anything is written."""
    if not poll.question.strip():
        raise InvalidInput("Poll question cannot be empty")
    if len(poll.options) < 2:
        raise InvalidInput("A poll needs at least two options")
    if any(not option.text.strip() for option in poll.options):
        raise InvalidInput("Poll options cannot be empty")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def tally(poll: Poll) -> PollTally:
    """
    Vote counts and percentages for every option.

    Args:
        poll (Poll): The poll to count.

    Returns:
        PollTally: Per option vote count and percentage of all votes, 0 when nobody voted.
    """
    total = poll.total_votes
    options = []
    for option in poll.options:
        votes = len(option.votes)
        percentage = round_half_up(votes / total * 100) if total else 0
        options.append(OptionTally(text=option.text, votes=votes, percentage=percentage))
    return PollTally(question=poll.question, kind=poll.kind, total_votes=total, options=options)


def cast_vote(poll: Poll, user_id: str, option_index: int) -> Poll:
    """Return the poll with ``user_id`` moved to ``option_index``. Last vote wins."""
    if not 0 <= option_index < len(poll.options):
        raise InvalidInput("Invalid poll option")
    options = [
        PollOption(text=option.text, votes=[voter for voter in option.votes if voter != user_id])
        for option in poll.options
    ]
    options[option_index].votes.append(user_id)
    return poll.model_copy(update={"options": options})


class PollService:
    def __init__(self, store: DocumentStore, session: SessionContext):
        self.store = store
        self.session = session

    async def _message(self, message_id: str) -> Message:
        row = await self.store.get(MESSAGES, message_id)
        if row is None:
            raise NotFound("Message not found")
        message = Message(**row)
        if message.poll is None:
            raise InvalidInput("Message has no poll")
        return message

    async def vote(self, message_id: str, option_index: int) -> Poll:
        """
        Vote on the poll embedded in a message.

        The read-modify-write is guarded by the message revision: the write
        only lands if nobody changed the poll since it was read, otherwise the
        vote is recomputed from the fresh poll.

        Args:
            message_id (str): The message carrying the poll.
            option_index (int): Index of the chosen option.

        Returns:
            Poll: The poll after the vote.
        """
        user = self.session.require_user()
        for attempt in range(VOTE_ATTEMPTS):
            message = await self._message(message_id)
            updated = cast_vote(message.poll, user.id, option_index)
            stored = await self.store.update(
                MESSAGES,
                message_id,
                {"poll": updated.model_dump(mode="json"), "revision": message.revision + 1},
                expect={"revision": message.revision}
            )
            if stored is not None:
                return Poll(**stored["poll"])
            logger.info("Vote on %s lost a race (attempt %d), retrying", message_id, attempt + 1)
        raise StoreError("The poll changed while voting. Please vote again.")

    async def get_tally(self, message_id: str) -> PollTally:
        message = await self._message(message_id)
        return tally(message.poll)

    def _confirmed(self, rows: List[Row], activities: Dict[str, Activity]) -> List[ConfirmedEvent]:
        user_id = self.session.require_user().id
        events = []
        for row in rows:
            message = Message(**row)
            if not message.activity_id or message.poll is None:
                continue
            if not message.poll.confirmed_by(user_id):
                continue
            activity = activities.get(message.activity_id)
            if activity is None:
                continue
            events.append(ConfirmedEvent(
                message_id=message.id,
                group_id=message.group_id,
                activity=activity,
                confirmed_at=message.created_at
            ))
        return sorted(events, key=lambda e: e.confirmed_at)

    async def _activities(self) -> Dict[str, Activity]:
        activities = await ActivityService(self.store).list_activities()
        return {activity.id: activity for activity in activities}

    async def confirmed_events(self) -> List[ConfirmedEvent]:
        """Shared activities whose attendance poll the current user answered YES."""
        activities = await self._activities()
        rows = await self.store.fetch(Query(MESSAGES).not_null("poll"))
        return self._confirmed(rows, activities)

    @asynccontextmanager
    async def watch_confirmed_events(self) -> AsyncIterator[SnapshotFeed]:
        activities = await self._activities()
        query = Query(MESSAGES).not_null("poll")
        async with self.store.watch(query, shape=lambda rows: self._confirmed(rows, activities)) as feed:
            yield feed
