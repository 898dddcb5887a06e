from fastapi import APIRouter, Depends, Query, WebSocket
from typing import List
from minglr.api.deps import get_notification_service
from minglr.api.streaming import accept_with_token, stream_feed
from minglr.core.store import DocumentStore
from minglr.core.supabase import get_store
from minglr.schemas.notification import Notification, NotificationType, UnreadCount
from minglr.services.notification_service import NotificationService

router = APIRouter()

@router.get("/", response_model=List[Notification])
async def list_notifications(notifications: NotificationService = Depends(get_notification_service)) -> List[Notification]:
    """Get the current user's notifications, newest first"""
    return await notifications.list_notifications()

@router.get("/unread", response_model=UnreadCount)
async def get_unread_count(notifications: NotificationService = Depends(get_notification_service)) -> UnreadCount:
    """Number of unread notifications, for the badge"""
    return UnreadCount(unread=await notifications.unread_count())

@router.get("/unread/{notification_type}")
async def has_unread(notification_type: NotificationType, notifications: NotificationService = Depends(get_notification_service)) -> dict:
    """
    Check for unread notifications of one type

    Args:
        notification_type (NotificationType): e.g. 'message' for the chat tab badge.

    Returns:
        dict: ``{"unread": bool}``
    """
    return {"unread": await notifications.has_unread(notification_type)}

@router.post("/read-all")
async def mark_all_read(notifications: NotificationService = Depends(get_notification_service)) -> dict:
    """
    Mark every unread notification as read

    Returns:
        dict: How many notifications changed.
    """
    changed = await notifications.mark_all_read()
    return {"updated": changed}

@router.post("/{notification_id}/read", response_model=Notification)
async def mark_read(notification_id: str, notifications: NotificationService = Depends(get_notification_service)) -> Notification:
    return await notifications.mark_read(notification_id)

@router.websocket("/ws")
async def watch_notifications(websocket: WebSocket, token: str = Query(...), store: DocumentStore = Depends(get_store)):
    """Live notification list of the current user"""
    session = await accept_with_token(websocket, token, store)
    if session is None:
        return
    async with NotificationService(store, session).watch_notifications() as feed:
        await stream_feed(websocket, feed)
