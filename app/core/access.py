"""
Membership checks used inside services.

The store enforces row-level policies as well; these checks make the services
fail closed with a readable message before any write is attempted.
"""

from supabase import Client
from typing import List, Optional
import logging

from app.core.errors import AuthenticationRequired, PermissionDenied

logger = logging.getLogger(__name__)

FALLBACK_MEMBER_LABEL = "Group Member"


def require_user(user_id: Optional[str], action: str) -> str:
    if not user_id:
        raise AuthenticationRequired(f"You must be signed in to {action}")
    return user_id


def get_active_membership(supabase: Client, group_id: str, user_id: str) -> Optional[dict]:
    result = supabase.table("group_members")\
        .select("*")\
        .eq("group_id", group_id)\
        .eq("user_id", user_id)\
        .eq("is_active", True)\
        .execute()
    return result.data[0] if result.data else None


def require_active_member(supabase: Client, group_id: str, user_id: str) -> dict:
    membership = get_active_membership(supabase, group_id, user_id)
    if not membership:
        raise PermissionDenied(
            "You must be an active member of this group",
            context={"group_id": group_id}
        )
    return membership


def active_member_ids(supabase: Client, group_id: str) -> List[str]:
    result = supabase.table("group_members")\
        .select("user_id")\
        .eq("group_id", group_id)\
        .eq("is_active", True)\
        .execute()
    return [m["user_id"] for m in (result.data or [])]


def count_active_members(supabase: Client, group_id: str) -> int:
    return len(active_member_ids(supabase, group_id))


def user_group_ids(supabase: Client, user_id: str) -> List[str]:
    """Groups the user actively belongs to."""
    result = supabase.table("group_members")\
        .select("group_id")\
        .eq("user_id", user_id)\
        .eq("is_active", True)\
        .execute()
    return [m["group_id"] for m in (result.data or [])]


def member_label(supabase: Client, user_id: str, current_user_id: Optional[str] = None) -> str:
    """Presentable name for a member; never raises."""
    if current_user_id and user_id == current_user_id:
        return "You"
    try:
        result = supabase.table("profiles")\
            .select("full_name, display_name")\
            .eq("id", user_id)\
            .execute()
        if result.data:
            profile = result.data[0]
            return profile.get("display_name") or profile.get("full_name") or FALLBACK_MEMBER_LABEL
    except Exception as e:
        logger.warning(f"Could not load profile for {user_id}: {e}")
    return FALLBACK_MEMBER_LABEL
