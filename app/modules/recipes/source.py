"""
Recipe Source Adapter: pulls candidate meals from the Tasty catalog.

Group vote sessions and the browse feed draw from disjoint offset ranges so
the meals offered for voting rarely repeat what members just browsed.
"""
import logging
import random
from typing import List, Optional, Tuple

import requests

from app.config import settings
from app.modules.recipes.schemas import MealRecord

logger = logging.getLogger(__name__)

GROUP_OFFSET_RANGE: Tuple[int, int] = (2000, 4000)
BROWSE_OFFSET_RANGE: Tuple[int, int] = (0, 2000)
RETRY_OFFSET_RANGE: Tuple[int, int] = (0, 1000)

FALLBACK_MEALS = [
    {
        "id": "fallback-1",
        "name": "Simple Chicken Dinner",
        "image_url": "https://images.unsplash.com/photo-1598103442097-8b74394b95c6?w=400&h=300&fit=crop",
        "estimated_minutes": 30,
        "description": "A quick and delicious chicken dinner perfect for weeknights",
    },
    {
        "id": "fallback-2",
        "name": "Pasta Night",
        "image_url": "https://images.unsplash.com/photo-1621996346565-e3dbc353d2c5?w=400&h=300&fit=crop",
        "estimated_minutes": 25,
        "description": "Comforting pasta dish that's ready in no time",
    },
    {
        "id": "fallback-3",
        "name": "Group Taco Tuesday",
        "image_url": "https://images.unsplash.com/photo-1565299624946-b28f40a0ca4b?w=400&h=300&fit=crop",
        "estimated_minutes": 30,
        "description": "Easy taco bar perfect for group dining",
    },
]


class RecipeSourceError(Exception):
    pass


def fallback_meals(rng: Optional[random.Random] = None) -> List[MealRecord]:
    meals = [MealRecord(**m) for m in FALLBACK_MEALS]
    (rng or random).shuffle(meals)
    return meals


def _to_meal(item: dict) -> Optional[MealRecord]:
    if item.get("id") is None or not item.get("name"):
        return None
    return MealRecord(
        id=str(item["id"]),
        name=item["name"],
        image_url=item.get("thumbnail_url"),
        estimated_minutes=item.get("total_time_minutes"),
        description=item.get("description") or None,
    )


class RecipeSource:
    def __init__(self, session: Optional[requests.Session] = None, rng: Optional[random.Random] = None):
        self.session = session or requests.Session()
        self.rng = rng or random.Random()

    def _headers(self) -> dict:
        return {
            "x-rapidapi-key": settings.recipe_api_key or "",
            "x-rapidapi-host": settings.recipe_api_host,
        }

    def fetch_batch(self, offset: int, count: int) -> List[MealRecord]:
        """One catalog page. Raises RecipeSourceError on transport or HTTP failure."""
        try:
            resp = self.session.get(
                settings.recipe_api_url,
                params={"from": offset, "size": count},
                headers=self._headers(),
                timeout=settings.recipe_api_timeout_sec,
            )
        except requests.RequestException as e:
            raise RecipeSourceError(f"Recipe catalog unreachable: {e}") from e
        if resp.status_code != 200:
            raise RecipeSourceError(f"Recipe catalog returned HTTP {resp.status_code}")
        try:
            payload = resp.json()
        except ValueError as e:
            raise RecipeSourceError(f"Recipe catalog returned invalid JSON: {e}") from e
        meals = []
        for item in payload.get("results") or []:
            meal = _to_meal(item)
            if meal is not None:
                meals.append(meal)
        return meals

    def fetch_random(self, count: int, offset_range: Tuple[int, int] = GROUP_OFFSET_RANGE) -> List[MealRecord]:
        """Random page from offset_range; never returns an empty list."""
        offset = self.rng.randrange(*offset_range)
        logger.info(f"Fetching {count} meals at offset {offset}")
        try:
            meals = self.fetch_batch(offset, count)
            if not meals:
                retry_offset = self.rng.randrange(*RETRY_OFFSET_RANGE)
                logger.info(f"No meals at offset {offset}, retrying at offset {retry_offset}")
                try:
                    meals = self.fetch_batch(retry_offset, count)
                except RecipeSourceError as e:
                    logger.warning(f"Retry fetch failed: {e}")
                    meals = []
            if meals:
                return meals
            logger.warning("Recipe catalog returned no meals, using fallback set")
        except RecipeSourceError as e:
            logger.error(f"Error fetching meals: {e}")
        return fallback_meals(self.rng)

    def browse(self, count: int) -> List[MealRecord]:
        return self.fetch_random(count, offset_range=BROWSE_OFFSET_RANGE)


def get_recipe_source() -> RecipeSource:
    return RecipeSource()
