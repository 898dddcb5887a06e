from fastapi import APIRouter, Depends
from typing import List
from minglr.api.deps import get_social_service
from minglr.schemas.social import Relation
from minglr.schemas.user import UserProfile
from minglr.services.social_service import SocialService

router = APIRouter()

@router.post("/{user_id}", response_model=UserProfile)
async def follow_user(user_id: str, social: SocialService = Depends(get_social_service)) -> UserProfile:
    """
    Follow a user

    Args:
        user_id (str): The ID of the user to follow.

    Returns:
        UserProfile: The current user's profile after following.
    """
    return await social.follow(user_id)

@router.delete("/{user_id}", response_model=UserProfile)
async def unfollow_user(user_id: str, social: SocialService = Depends(get_social_service)) -> UserProfile:
    """Stop following a user"""
    return await social.unfollow(user_id)

@router.post("/request/{user_id}", response_model=UserProfile)
async def send_friend_request(user_id: str, social: SocialService = Depends(get_social_service)) -> UserProfile:
    """
    Send a friend request

    The request is a follow; the other user accepts it by following back.

    Args:
        user_id (str): The ID of the user to befriend.

    Returns:
        UserProfile: The current user's profile after the request.
    """
    return await social.send_friend_request(user_id)

@router.get("/requests", response_model=List[UserProfile])
async def get_friend_requests(social: SocialService = Depends(get_social_service)) -> List[UserProfile]:
    """Users who follow the current user without being followed back"""
    return await social.pending_requests()

@router.delete("/friends/{user_id}", response_model=UserProfile)
async def remove_friend(user_id: str, social: SocialService = Depends(get_social_service)) -> UserProfile:
    """Remove a friend"""
    return await social.remove_friend(user_id)

@router.get("/friends", response_model=List[UserProfile])
async def get_friends(social: SocialService = Depends(get_social_service)) -> List[UserProfile]:
    """Users the current user follows and who follow back"""
    return await social.list_friends()

@router.get("/following", response_model=List[UserProfile])
async def get_following(social: SocialService = Depends(get_social_service)) -> List[UserProfile]:
    return await social.list_following()

@router.get("/followers", response_model=List[UserProfile])
async def get_followers(social: SocialService = Depends(get_social_service)) -> List[UserProfile]:
    return await social.list_followers()

@router.get("/status/{user_id}", response_model=Relation)
async def get_follow_status(user_id: str, social: SocialService = Depends(get_social_service)) -> Relation:
    """
    Get the relation between the current user and another user

    Args:
        user_id (str): The ID of the user to check.

    Returns:
        Relation: 'none', 'following', 'followed_by', 'friends' or 'self'.
    """
    return await social.relation(user_id)
