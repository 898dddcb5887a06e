from fastapi import APIRouter, Depends, File, Query, UploadFile
from typing import List
from minglr.api.deps import get_session, get_storage_service, get_user_service
from minglr.core.session import SessionContext
from minglr.schemas.user import ProfileUpdate, UserProfile
from minglr.services.storage_service import StorageService
from minglr.services.user_service import UserService

router = APIRouter()

@router.get("/me", response_model=UserProfile)
async def get_current_user_profile(session: SessionContext = Depends(get_session)) -> UserProfile:
    """
    Get current user's profile information

    Args:
        session (SessionContext): The current authenticated user.

    Returns:
        UserProfile: The user profile information.
    """
    return session.user

@router.put("/profile", response_model=UserProfile)
async def update_user_profile(profile_data: ProfileUpdate, users: UserService = Depends(get_user_service)) -> UserProfile:
    """
    Update current user's profile

    Args:
        profile_data (ProfileUpdate): The profile data to update.

    Returns:
        UserProfile: The updated user profile.
    """
    return await users.update_profile(profile_data)

@router.post("/profile/avatar", response_model=UserProfile)
async def upload_avatar(file: UploadFile = File(...), storage: StorageService = Depends(get_storage_service), users: UserService = Depends(get_user_service)) -> UserProfile:
    """
    Upload a new profile picture and make it the avatar

    Args:
        file (UploadFile): JPEG, PNG, GIF or WebP image of at most 5MB.

    Returns:
        UserProfile: The profile with the new avatar URL.
    """
    data = await file.read()
    url = await storage.upload_profile_picture(data, file.filename or "avatar", file.content_type or "")
    return await users.update_profile(ProfileUpdate(avatar=url))

@router.get("/search", response_model=List[UserProfile])
async def search_users(q: str = Query(..., min_length=1), users: UserService = Depends(get_user_service)) -> List[UserProfile]:
    """Search other users by name prefix"""
    return await users.search_users(q)

@router.post("/wishlist/{activity_id}", response_model=UserProfile)
async def add_to_wishlist(activity_id: str, users: UserService = Depends(get_user_service)) -> UserProfile:
    """Save an activity to the current user's wishlist"""
    return await users.add_to_wishlist(activity_id)

@router.delete("/wishlist/{activity_id}", response_model=UserProfile)
async def remove_from_wishlist(activity_id: str, users: UserService = Depends(get_user_service)) -> UserProfile:
    """Remove an activity from the current user's wishlist"""
    return await users.remove_from_wishlist(activity_id)

@router.get("/{user_id}", response_model=UserProfile)
async def get_user_profile(user_id: str, users: UserService = Depends(get_user_service)) -> UserProfile:
    """
    Get specific user's profile information

    Args:
        user_id (str): The ID of the user whose profile to fetch.

    Returns:
        UserProfile: The user profile information.
    """
    return await users.get_profile(user_id)
