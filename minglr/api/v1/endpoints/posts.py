from fastapi import APIRouter, Depends, File, Query, UploadFile, WebSocket, status
from typing import List
from minglr.api.deps import get_post_service, get_storage_service
from minglr.api.streaming import accept_with_token, stream_feed
from minglr.core.store import DocumentStore
from minglr.core.supabase import get_store
from minglr.schemas.post import Comment, CommentCreate, Post, PostCreate
from minglr.services.post_service import PostService
from minglr.services.storage_service import StorageService

router = APIRouter()

@router.get("/", response_model=List[Post])
async def list_posts(posts: PostService = Depends(get_post_service)) -> List[Post]:
    """Get the post feed, newest first"""
    return await posts.list_posts()

@router.post("/", response_model=Post, status_code=status.HTTP_201_CREATED)
async def create_post(post: PostCreate, posts: PostService = Depends(get_post_service)) -> Post:
    """
    Create a post

    Args:
        post (PostCreate): Image URL, caption and an optional activity.

    Returns:
        Post: The created post.
    """
    return await posts.create_post(post.image_url, post.caption, post.activity_id)

@router.post("/images")
async def upload_post_image(file: UploadFile = File(...), storage: StorageService = Depends(get_storage_service)) -> dict:
    """
    Upload an image for a new post

    Args:
        file (UploadFile): JPEG, PNG, GIF or WebP image of at most 5MB.

    Returns:
        dict: The public URL of the stored image.
    """
    data = await file.read()
    url = await storage.upload_post_image(data, file.filename or "image", file.content_type or "")
    return {"url": url}

@router.get("/{post_id}", response_model=Post)
async def get_post(post_id: str, posts: PostService = Depends(get_post_service)) -> Post:
    return await posts.get_post(post_id)

@router.post("/{post_id}/like", response_model=Post)
async def toggle_like(post_id: str, posts: PostService = Depends(get_post_service)) -> Post:
    """Like a post, or take the like back if already liked"""
    return await posts.toggle_like(post_id)

@router.post("/{post_id}/comments", response_model=Comment, status_code=status.HTTP_201_CREATED)
async def add_comment(post_id: str, comment: CommentCreate, posts: PostService = Depends(get_post_service)) -> Comment:
    """Comment on a post"""
    return await posts.add_comment(post_id, comment.text)

@router.websocket("/ws")
async def watch_posts(websocket: WebSocket, token: str = Query(...), store: DocumentStore = Depends(get_store)):
    session = await accept_with_token(websocket, token, store)
    if session is None:
        return
    async with PostService(store, session).watch_posts() as feed:
        await stream_feed(websocket, feed)
