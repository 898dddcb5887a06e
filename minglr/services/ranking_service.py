import json
import logging
from collections import OrderedDict
from typing import List, Optional

from openai import AsyncOpenAI, OpenAIError, RateLimitError

from minglr.core.config import settings
from minglr.schemas.activity import Activity
from minglr.schemas.user import UserProfile

logger = logging.getLogger(__name__)

# Most recently used rankings, at most settings.ranking_cache_size of them
_ranking_cache: "OrderedDict[str, List[str]]" = OrderedDict()


def _cache_key(user: UserProfile, activities: List[Activity]) -> str:
    return f"minglr_ranking_{user.id}_{len(activities)}_{'_'.join(user.preferences)}"


def _cached(key: str) -> Optional[List[str]]:
    ids = _ranking_cache.get(key)
    if ids is None:
        return None
    _ranking_cache.move_to_end(key)
    return list(ids)


def _remember(key: str, ids: List[str]) -> None:
    _ranking_cache[key] = list(ids)
    _ranking_cache.move_to_end(key)
    while len(_ranking_cache) > settings.ranking_cache_size:
        _ranking_cache.popitem(last=False)


def _default_ranking(activities: List[Activity]) -> List[str]:
    return [activity.id for activity in activities[:settings.ranking_size]]


def _build_prompt(user: UserProfile, activities: List[Activity]) -> str:
    catalogue = [
        {"id": a.id, "name": a.name, "category": a.category.value, "description": a.description}
        for a in activities
    ]
    return (
        f"User Profile: Likes {', '.join(user.preferences)}, Wishlist: {', '.join(user.wishlist)}.\n"
        f"Task: Rank the following Munich activities by relevance to this user.\n"
        f"Return the IDs of the top {settings.ranking_size} most relevant activities from this list:\n"
        f"{json.dumps(catalogue)}\n\n"
        'Return ONLY a JSON object of the form {"ids": ["<id>", ...]}.'
    )


class RankingService:
    def __init__(self, client: Optional[AsyncOpenAI] = None):
        if client is None and settings.openai_api_key:
            client = AsyncOpenAI(api_key=settings.openai_api_key)
        self.client = client

    async def get_personalized_ranking(self, user: UserProfile, activities: List[Activity]) -> List[str]:
        """
        Rank activities for a user with the text-generation API.

        Args:
            user (UserProfile): Whose preferences and wishlist drive the ranking.
            activities (List[Activity]): The candidates.

        Returns:
            List[str]: Activity ids, most relevant first. Falls back to the first
            few activities when the API is unavailable or answers nonsense.
        """
        if not activities:
            return []

        key = _cache_key(user, activities)
        cached = _cached(key)
        if cached is not None:
            return cached

        if self.client is None:
            logger.warning("OpenAI API key is missing. Skipping personalized ranking.")
            return _default_ranking(activities)

        try:
            response = await self.client.chat.completions.create(
                model=settings.ranking_model,
                messages=[{"role": "user", "content": _build_prompt(user, activities)}],
                response_format={"type": "json_object"}
            )
            result = json.loads(response.choices[0].message.content or "{}")
        except RateLimitError:
            logger.warning("Ranking quota exceeded (429). Falling back to default ranking.")
            return _default_ranking(activities)
        except (OpenAIError, ValueError) as e:
            logger.error("Personalization error: %s", e)
            return _default_ranking(activities)

        known = {activity.id for activity in activities}
        ids = result.get("ids") if isinstance(result, dict) else None
        if not isinstance(ids, list):
            return _default_ranking(activities)
        ranked = [str(i) for i in ids if str(i) in known]
        if not ranked:
            return _default_ranking(activities)

        _remember(key, ranked)
        return list(ranked)

    async def rank_activities(self, user: UserProfile, activities: List[Activity]) -> List[Activity]:
        """The ranked activities themselves, in ranking order."""
        by_id = {activity.id: activity for activity in activities}
        ids = await self.get_personalized_ranking(user, activities)
        return [by_id[i] for i in ids if i in by_id]
