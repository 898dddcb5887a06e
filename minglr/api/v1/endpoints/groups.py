from fastapi import APIRouter, Depends, Query, WebSocket, status
from typing import List
from minglr.api.deps import get_messaging_service
from minglr.api.streaming import accept_with_token, stream_feed
from minglr.core.errors import NotAuthenticated
from minglr.core.store import DocumentStore
from minglr.core.supabase import get_store
from minglr.schemas.chat import ChatGroup, GroupCreate, Message, MessageCreate
from minglr.services.messaging_service import MessagingService

router = APIRouter()

@router.post("/", response_model=ChatGroup, status_code=status.HTTP_201_CREATED)
async def create_group(group: GroupCreate, messaging: MessagingService = Depends(get_messaging_service)) -> ChatGroup:
    """
    Create a chat group

    Args:
        group (GroupCreate): Group name and the users to add. The creator is always a member.

    Returns:
        ChatGroup: The created group.
    """
    created = await messaging.create_group(group.name, group.member_ids)
    if created is None:
        raise NotAuthenticated()
    return created

@router.get("/", response_model=List[ChatGroup])
async def list_groups(messaging: MessagingService = Depends(get_messaging_service)) -> List[ChatGroup]:
    """Groups the current user is a member of"""
    return await messaging.list_groups()

@router.get("/{group_id}", response_model=ChatGroup)
async def get_group(group_id: str, messaging: MessagingService = Depends(get_messaging_service)) -> ChatGroup:
    return await messaging.get_group(group_id)

@router.post("/{group_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
async def leave_group(group_id: str, messaging: MessagingService = Depends(get_messaging_service)):
    """Leave a group"""
    await messaging.leave_group(group_id)

@router.get("/{channel_id}/messages", response_model=List[Message])
async def list_messages(channel_id: str, messaging: MessagingService = Depends(get_messaging_service)) -> List[Message]:
    """
    Messages of a channel, oldest first

    Args:
        channel_id (str): A group id, or 'global' for the public channel.

    Returns:
        List[Message]: The channel's messages in send order.
    """
    return await messaging.list_messages(channel_id)

@router.post("/{channel_id}/messages", response_model=Message, status_code=status.HTTP_201_CREATED)
async def send_message(channel_id: str, message: MessageCreate, messaging: MessagingService = Depends(get_messaging_service)) -> Message:
    """
    Send a message to a channel

    Group members other than the sender get a notification.

    Args:
        channel_id (str): A group id, or 'global' for the public channel.
        message (MessageCreate): Text, an optional shared activity and an optional poll.

    Returns:
        Message: The stored message.
    """
    sent = await messaging.send_message(message.text, activity_id=message.activity_id, group_id=channel_id, poll=message.poll)
    if sent is None:
        raise NotAuthenticated()
    return sent

@router.websocket("/ws")
async def watch_groups(websocket: WebSocket, token: str = Query(...), store: DocumentStore = Depends(get_store)):
    """Live list of the current user's groups"""
    session = await accept_with_token(websocket, token, store)
    if session is None:
        return
    async with MessagingService(store, session).watch_groups() as feed:
        await stream_feed(websocket, feed)

@router.websocket("/{channel_id}/messages/ws")
async def watch_messages(websocket: WebSocket, channel_id: str, token: str = Query(...), store: DocumentStore = Depends(get_store)):
    """Live messages of one channel"""
    session = await accept_with_token(websocket, token, store)
    if session is None:
        return
    async with MessagingService(store, session).watch_messages(channel_id) as feed:
        await stream_feed(websocket, feed)
