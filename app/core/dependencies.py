"""
Core dependencies for route protection and service construction
"""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.core.access import get_active_membership
from app.database.supabase_client import get_supabase
from app.modules.auth.service import AuthService
from app.modules.conflicts.service import ConflictResolver
from app.modules.dinner_requests.service import DinnerRequestCoordinator
from app.modules.groups.service import GroupService
from app.modules.meal_requests.service import MealVoteCoordinator
from app.modules.preload.service import MealPreloadCache, get_preload_cache
from app.modules.recipes.source import RecipeSource, get_recipe_source
from app.modules.sessions.service import SessionArchiver
from supabase import Client
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    return auth_service.get_current_user(credentials.credentials)


def get_current_user_id(user_data: dict = Depends(get_current_user)) -> str:
    return user_data["id"]


def check_group_member(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase)
) -> str:
    """Path-level guard: caller must be an active member of {group_id}"""
    if not get_active_membership(supabase, group_id, user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You must be an active member of this group"
        )
    return user_id


def get_meal_coordinator(
    supabase: Client = Depends(get_supabase),
    preload_cache: MealPreloadCache = Depends(get_preload_cache),
    recipe_source: RecipeSource = Depends(get_recipe_source)
) -> MealVoteCoordinator:
    return MealVoteCoordinator(supabase, preload_cache, recipe_source)


def get_dinner_coordinator(
    supabase: Client = Depends(get_supabase),
    meal_coordinator: MealVoteCoordinator = Depends(get_meal_coordinator)
) -> DinnerRequestCoordinator:
    return DinnerRequestCoordinator(supabase, meal_coordinator)


def get_conflict_resolver(supabase: Client = Depends(get_supabase)) -> ConflictResolver:
    return ConflictResolver(supabase)


def get_session_archiver(
    supabase: Client = Depends(get_supabase),
    meal_coordinator: MealVoteCoordinator = Depends(get_meal_coordinator)
) -> SessionArchiver:
    return SessionArchiver(supabase, meal_coordinator)


def get_group_service(supabase: Client = Depends(get_supabase)) -> GroupService:
    return GroupService(supabase)
