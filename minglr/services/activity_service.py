import logging
from typing import Any, List, Optional, Dict

from minglr.core.errors import MinglrError, NotFound
from minglr.core.store import DocumentStore, Query
from minglr.schemas.activity import Activity, Category

logger = logging.getLogger(__name__)

TABLE = "activities"

DEFAULT_LOCATION = "Munich, Germany"
FALLBACK_IMAGE = "https://images.unsplash.com/photo-1595113316349-9fa4ee24f884?q=80&w=800&auto=format&fit=crop"

INITIAL_ACTIVITIES: List[Activity] = [
    Activity(
        id="1",
        name="Eisbachwelle Surfing",
        description="Watch or join the surfers at the world-famous stationary wave in the English Garden.",
        category=Category.SPORTS,
        image_url="https://images.unsplash.com/photo-1610448721566-473ce9da81d3?q=80&w=800&auto=format&fit=crop",
        location="48.1432, 11.5878",
        rating=4.8
    ),
    Activity(
        id="2",
        name="Viktualienmarkt Breakfast",
        description="Traditional Bavarian breakfast with Weisswurst and pretzels at Munich's most famous market.",
        category=Category.FOOD,
        image_url=FALLBACK_IMAGE,
        location="48.1351, 11.5761",
        rating=4.7
    ),
    Activity(
        id="3",
        name="Deutsches Museum",
        description="Explore the world's largest museum of science and technology.",
        category=Category.CULTURE,
        image_url="https://images.unsplash.com/photo-1629124403306-69666012480a?q=80&w=800&auto=format&fit=crop",
        location="48.1301, 11.5833",
        rating=4.9
    ),
    Activity(
        id="4",
        name="Beer Garden at Hirschgarten",
        description="Enjoy a cold Radler at the world's largest beer garden.",
        category=Category.NIGHTLIFE,
        image_url="https://images.unsplash.com/photo-1571261314480-1a74d20473ce?q=80&w=800&auto=format&fit=crop",
        location="48.1478, 11.5126",
        rating=4.6
    ),
    Activity(
        id="5",
        name="Sunset at Olympiapark",
        description="Climb the Olympic Hill for a breathtaking view of the city and the Alps.",
        category=Category.NATURE,
        image_url="https://images.unsplash.com/photo-1571261313768-47209930f9bc?q=80&w=800&auto=format&fit=crop",
        location="48.1731, 11.5539",
        rating=4.8
    ),
]


def normalize_location(location: Any) -> str:
    """
    Turn a stored location into a display string.

    Args:
        location (Any): A string, or a mapping with ``lat`` and ``lng``.

    Returns:
        str: The string as-is, ``"lat, lng"`` rounded to two decimals, or the default city.
    """
    if isinstance(location, str):
        return location
    if isinstance(location, dict) and location.get("lat") is not None and location.get("lng") is not None:
        try:
            return f"{float(location['lat']):.2f}, {float(location['lng']):.2f}"
        except (TypeError, ValueError):
            return DEFAULT_LOCATION
    return DEFAULT_LOCATION


def to_activity(row: Dict[str, Any]) -> Activity:
    category = row.get("category") or row.get("type") or Category.CULTURE.value
    if category not in {c.value for c in Category}:
        category = Category.CULTURE.value
    return Activity(
        id=str(row["id"]),
        name=row.get("name", ""),
        description=row.get("description") or "",
        category=category,
        image_url=row.get("photo_url") or row.get("image_url") or FALLBACK_IMAGE,
        location=normalize_location(row.get("location")),
        rating=row.get("rating") or 0.0
    )


class ActivityService:
    """Read access to the activity catalogue. Activities are never edited by users."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def list_activities(self) -> List[Activity]:
        try:
            rows = await self.store.fetch(Query(TABLE))
        except MinglrError as e:
            logger.warning("Could not load activities, using built-in catalogue: %s", e)
            return list(INITIAL_ACTIVITIES)
        activities = [to_activity(row) for row in rows]
        return activities or list(INITIAL_ACTIVITIES)

    async def get_activity(self, activity_id: str) -> Activity:
        for activity in await self.list_activities():
            if activity.id == activity_id:
                return activity
        raise NotFound("Activity not found")

    async def seed_activities_if_needed(self) -> Optional[int]:
        """
        Insert the built-in catalogue when the activities table is empty.

        Returns:
            Optional[int]: Number of activities inserted, or None if seeding failed.
        """
        try:
            existing = await self.store.fetch(Query(TABLE).limit(1))
            if existing:
                return 0
            for activity in INITIAL_ACTIVITIES:
                await self.store.insert(TABLE, activity.model_dump(mode="json"))
        except MinglrError as e:
            logger.warning("Seeding activities failed: %s", e)
            return None
        logger.info("Seeded %d activities", len(INITIAL_ACTIVITIES))
        return len(INITIAL_ACTIVITIES)
