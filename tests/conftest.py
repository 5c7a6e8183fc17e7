import os
import sys

import pytest

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from app.modules.conflicts.service import ConflictResolver  # noqa: E402
from app.modules.dinner_requests.service import DinnerRequestCoordinator  # noqa: E402
from app.modules.groups.service import GroupService  # noqa: E402
from app.modules.meal_requests.service import MealVoteCoordinator  # noqa: E402
from app.modules.preload.service import MealPreloadCache  # noqa: E402
from app.modules.recipes.schemas import MealRecord  # noqa: E402
from app.modules.sessions.service import SessionArchiver  # noqa: E402
from tests.fake_supabase import FakeSupabase  # noqa: E402
from tests.factories import seed_group  # noqa: E402


class StubRecipeSource:
    """Deterministic catalog: meal-<offset>, meal-<offset+1>, ..."""

    def __init__(self):
        self.calls = []
        self.fail = False
        self._next = 0

    def _meals(self, count):
        meals = [
            MealRecord(id=f"meal-{self._next + i}", name=f"Meal {self._next + i}", estimated_minutes=20)
            for i in range(count)
        ]
        self._next += count
        return meals

    def fetch_random(self, count, offset_range=None):
        self.calls.append(("fetch_random", count))
        if self.fail:
            raise RuntimeError("catalog down")
        return self._meals(count)

    def browse(self, count):
        self.calls.append(("browse", count))
        if self.fail:
            raise RuntimeError("catalog down")
        return self._meals(count)


@pytest.fixture()
def db():
    return FakeSupabase()


@pytest.fixture()
def recipe_source():
    return StubRecipeSource()


@pytest.fixture()
def preload_cache(recipe_source):
    return MealPreloadCache(recipe_source, batch_size=25)


@pytest.fixture()
def meals(db, preload_cache, recipe_source):
    return MealVoteCoordinator(db, preload_cache, recipe_source)


@pytest.fixture()
def dinner(db, meals):
    return DinnerRequestCoordinator(db, meals)


@pytest.fixture()
def resolver(db):
    return ConflictResolver(db)


@pytest.fixture()
def archiver(db, meals):
    return SessionArchiver(db, meals)


@pytest.fixture()
def groups(db):
    return GroupService(db)


@pytest.fixture()
def group4(db):
    return seed_group(db, ["u1", "u2", "u3", "u4"])
