from fastapi import APIRouter, Depends, Query
from supabase import Client
from app.database.supabase_client import get_supabase
from app.modules.preload.schemas import WarmResult
from app.modules.preload.service import MealPreloadCache, get_preload_cache, preload_targets
from app.modules.recipes.schemas import MealBatchResponse
from app.modules.recipes.source import RecipeSource, get_recipe_source
from app.core.dependencies import get_current_user_id

router = APIRouter(prefix="/meals", tags=["meals"])


@router.post("/preload", response_model=WarmResult)
def preload_meals(
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
    cache: MealPreloadCache = Depends(get_preload_cache)
):
    """Warm meal batches for your groups without an open vote session, plus the browse feed"""
    return cache.warm(preload_targets(supabase, user_id))


@router.get("/browse", response_model=MealBatchResponse)
def browse_meals(
    count: int = Query(default=25, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    cache: MealPreloadCache = Depends(get_preload_cache),
    recipe_source: RecipeSource = Depends(get_recipe_source)
):
    cached = cache.browse_batch()
    if len(cached) >= count:
        return MealBatchResponse(meals=cached[:count], count=count, from_cache=True)
    meals = recipe_source.browse(count)
    return MealBatchResponse(meals=meals, count=len(meals))
