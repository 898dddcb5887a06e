from fastapi import APIRouter, Depends
from typing import List
from minglr.api.deps import get_activity_service, get_ranking_service, get_session
from minglr.core.session import SessionContext
from minglr.schemas.activity import Activity
from minglr.services.activity_service import ActivityService
from minglr.services.ranking_service import RankingService

router = APIRouter()

@router.get("/", response_model=List[Activity])
async def list_activities(activities: ActivityService = Depends(get_activity_service)) -> List[Activity]:
    """
    Get the activity catalogue

    Falls back to the built-in catalogue when the store is empty or unreachable.

    Returns:
        List[Activity]: All activities.
    """
    return await activities.list_activities()

@router.get("/ranked", response_model=List[Activity])
async def get_ranked_activities(session: SessionContext = Depends(get_session), activities: ActivityService = Depends(get_activity_service), ranking: RankingService = Depends(get_ranking_service)) -> List[Activity]:
    """
    Get the activities picked for the current user

    Args:
        session (SessionContext): The current authenticated user.

    Returns:
        List[Activity]: The top activities for the user's preferences, best first.
    """
    catalogue = await activities.list_activities()
    return await ranking.rank_activities(session.require_user(), catalogue)

@router.get("/{activity_id}", response_model=Activity)
async def get_activity(activity_id: str, activities: ActivityService = Depends(get_activity_service)) -> Activity:
    return await activities.get_activity(activity_id)
