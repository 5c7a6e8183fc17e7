"""In-process cache of pre-fetched meal batches, keyed by group id.

Not authoritative: a missing entry only means the caller fetches directly.
Entries live for the process lifetime and are consumed once by take().
"""
import threading
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional

from supabase import Client

from app.config import settings
from app.core.access import user_group_ids
from app.modules.preload.schemas import PreloadGroup, WarmResult
from app.modules.recipes.schemas import MealRecord
from app.modules.recipes.source import RecipeSource

logger = logging.getLogger(__name__)


class MealPreloadCache:
    def __init__(self, recipe_source: RecipeSource, batch_size: Optional[int] = None):
        self.recipe_source = recipe_source
        self.batch_size = batch_size or settings.preload_batch_size
        self._lock = threading.Lock()
        self._groups: Dict[str, List[MealRecord]] = {}
        self._browse: List[MealRecord] = []

    def warm(self, groups: Iterable[PreloadGroup]) -> WarmResult:
        """Fetch one batch for the browse feed and for every group without an active vote session."""
        open_groups = [g for g in groups if not g.has_active_meal_request]
        logger.info(f"Preloading meals for browse feed and {len(open_groups)} open group(s)")
        failed: List[str] = []

        def _warm_browse():
            meals = self.recipe_source.browse(self.batch_size)
            with self._lock:
                self._browse = meals
            return len(meals)

        def _warm_group(group: PreloadGroup):
            meals = self.recipe_source.fetch_random(self.batch_size)
            self.put(group.group_id, meals)
            return len(meals)

        workers = max(1, min(settings.preload_max_workers, len(open_groups) + 1))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="meal-preload") as pool:
            browse_future = pool.submit(_warm_browse)
            group_futures = {pool.submit(_warm_group, g): g for g in open_groups}

            browse_count = 0
            try:
                browse_count = browse_future.result()
            except Exception as e:
                logger.error(f"Failed to preload browse meals: {e}")
                failed.append("browse")

            warmed = 0
            for future, group in group_futures.items():
                try:
                    count = future.result()
                    warmed += 1
                    logger.debug(f"Preloaded {count} meals for group {group.group_name or group.group_id}")
                except Exception as e:
                    logger.error(f"Failed to preload meals for group {group.group_id}: {e}")
                    failed.append(group.group_id)

        return WarmResult(
            groups_warmed=warmed,
            browse_meals=browse_count,
            failed=failed,
        )

    def put(self, group_id: str, meals: List[MealRecord]) -> None:
        with self._lock:
            self._groups[group_id] = list(meals)

    def peek(self, group_id: str) -> List[MealRecord]:
        with self._lock:
            return list(self._groups.get(group_id, []))

    def take(self, group_id: str) -> List[MealRecord]:
        """Return and forget the group's batch; empty list when none is cached."""
        with self._lock:
            meals = self._groups.pop(group_id, [])
        if meals:
            logger.debug(f"Consumed {len(meals)} preloaded meals for group {group_id}")
        return meals

    def browse_batch(self) -> List[MealRecord]:
        with self._lock:
            return list(self._browse)

    def clear(self, group_id: str) -> None:
        with self._lock:
            self._groups.pop(group_id, None)

    def clear_all(self) -> None:
        with self._lock:
            self._groups.clear()
            self._browse = []


_cache: Optional[MealPreloadCache] = None
_cache_lock = threading.Lock()


def get_preload_cache() -> MealPreloadCache:
    """Application-wide cache instance for route wiring; services receive it injected."""
    global _cache
    with _cache_lock:
        if _cache is None:
            from app.modules.recipes.source import get_recipe_source
            _cache = MealPreloadCache(get_recipe_source())
        return _cache


def preload_targets(supabase: Client, user_id: str) -> List[PreloadGroup]:
    """The user's active groups, flagged when a vote session is already open."""
    group_ids = user_group_ids(supabase, user_id)
    if not group_ids:
        return []
    groups = supabase.table("groups")\
        .select("id, name")\
        .in_("id", group_ids)\
        .eq("is_active", True)\
        .execute()
    active = supabase.table("meal_requests")\
        .select("group_id")\
        .in_("group_id", group_ids)\
        .eq("status", "active")\
        .execute()
    busy = {r["group_id"] for r in (active.data or [])}
    return [
        PreloadGroup(group_id=g["id"], group_name=g["name"], has_active_meal_request=g["id"] in busy)
        for g in (groups.data or [])
    ]
