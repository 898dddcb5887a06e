from pydantic import BaseModel
from enum import Enum

class Category(str, Enum):
    CULTURE = "Culture"
    NATURE = "Nature"
    FOOD = "Food"
    NIGHTLIFE = "Nightlife"
    SPORTS = "Sports"

class Activity(BaseModel):
    id: str
    name: str
    description: str = ""
    category: Category = Category.CULTURE
    image_url: str
    location: str
    rating: float = 0.0
