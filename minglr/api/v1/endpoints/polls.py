from fastapi import APIRouter, Depends, Query, WebSocket
from typing import List
from minglr.api.deps import get_poll_service
from minglr.api.streaming import accept_with_token, stream_feed
from minglr.core.store import DocumentStore
from minglr.core.supabase import get_store
from minglr.schemas.chat import ConfirmedEvent, Poll, PollTally, VoteRequest
from minglr.services.poll_service import PollService

router = APIRouter()

@router.post("/{message_id}/vote", response_model=Poll)
async def vote(message_id: str, request: VoteRequest, polls: PollService = Depends(get_poll_service)) -> Poll:
    """
    Vote on the poll attached to a message

    Voting again moves the vote; each user holds at most one vote per poll.

    Args:
        message_id (str): The message carrying the poll.
        request (VoteRequest): Index of the chosen option.

    Returns:
        Poll: The poll after the vote.
    """
    return await polls.vote(message_id, request.option_index)

@router.get("/{message_id}/tally", response_model=PollTally)
async def get_tally(message_id: str, polls: PollService = Depends(get_poll_service)) -> PollTally:
    """Vote counts and percentages per option"""
    return await polls.get_tally(message_id)

@router.get("/confirmed", response_model=List[ConfirmedEvent])
async def get_confirmed_events(polls: PollService = Depends(get_poll_service)) -> List[ConfirmedEvent]:
    """
    Get the activities the current user confirmed attending

    Returns:
        List[ConfirmedEvent]: Shared activities whose attendance poll the user answered with the first option.
    """
    return await polls.confirmed_events()

@router.websocket("/confirmed/ws")
async def watch_confirmed_events(websocket: WebSocket, token: str = Query(...), store: DocumentStore = Depends(get_store)):
    session = await accept_with_token(websocket, token, store)
    if session is None:
        return
    async with PollService(store, session).watch_confirmed_events() as feed:
        await stream_feed(websocket, feed)
