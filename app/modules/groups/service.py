import logging
import secrets
import string
from supabase import Client
from postgrest.exceptions import APIError
from typing import List, Optional

from app.config import settings
from app.core.access import require_user, require_active_member, member_label
from app.core.errors import ConflictError, InvalidInput, NotFoundError, PermissionDenied, is_unique_violation
from app.core.results import ServiceResult
from app.core.timeouts import run_with_timeout
from app.modules.groups.schemas import (
    JOIN_CODE_LENGTH,
    GroupCreate, GroupResponse, GroupMemberResponse,
    GroupResult, GroupListResult, MembersResult
)

logger = logging.getLogger(__name__)

JOIN_CODE_ALPHABET = string.ascii_uppercase + string.digits
MAX_JOIN_CODE_ATTEMPTS = 3


def generate_join_code(length: int = JOIN_CODE_LENGTH) -> str:
    return "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(length))


class GroupService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _active_groups_created_by(self, user_id: str) -> List[dict]:
        result = self.supabase.table("groups")\
            .select("*")\
            .eq("created_by", user_id)\
            .eq("is_active", True)\
            .order("created_at")\
            .execute()
        return result.data or []

    def _get_active_group(self, group_id: str) -> dict:
        result = self.supabase.table("groups")\
            .select("*")\
            .eq("id", group_id)\
            .eq("is_active", True)\
            .execute()
        if not result.data:
            raise NotFoundError("Group not found or has already been deleted.", context={"group_id": group_id})
        return result.data[0]

    def _create(self, group_data: GroupCreate, user_id: str) -> GroupResult:
        existing = self._active_groups_created_by(user_id)
        if any(g["name"].lower() == group_data.name.lower() for g in existing):
            raise ConflictError("You already have a group with this name")

        group = None
        for attempt in range(1, MAX_JOIN_CODE_ATTEMPTS + 1):
            try:
                result = self.supabase.table("groups").insert({
                    "name": group_data.name,
                    "description": (group_data.description or "").strip(),
                    "join_code": generate_join_code(),
                    "created_by": user_id,
                    "is_main_group": not existing,
                }).execute()
                group = result.data[0] if result.data else None
                break
            except APIError as e:
                if is_unique_violation(e, "join_code"):
                    logger.info(f"Join code collision on attempt {attempt}/{MAX_JOIN_CODE_ATTEMPTS}")
                    continue
                if is_unique_violation(e, "unique_group_name_per_user"):
                    raise ConflictError("You already have a group with this name")
                raise
        if not group:
            raise InvalidInput("Failed to generate unique join code after maximum attempts")

        try:
            self.supabase.table("group_members").insert({
                "group_id": group["id"],
                "user_id": user_id,
                "role": "admin",
            }).execute()
        except Exception as e:
            logger.error(f"Failed to add creator as member of group {group['id']}: {e}")

        logger.info(f"Group {group['id']} created by {user_id}")
        return GroupResult(group=GroupResponse(**group), message=f"Group \"{group['name']}\" created successfully!")

    def create_group(self, group_data: GroupCreate, user_id: str) -> GroupResult:
        """Create a group with a fresh join code; the creator becomes its admin."""
        try:
            require_user(user_id, "create a group")
            return run_with_timeout(
                self._create, settings.group_operation_timeout_sec, "Group creation",
                group_data, user_id
            )
        except Exception as e:
            return GroupResult.from_exception(e, "group creation")

    def _join(self, join_code: str, user_id: str) -> GroupResult:
        result = self.supabase.table("groups")\
            .select("*")\
            .eq("join_code", join_code.upper())\
            .eq("is_active", True)\
            .execute()
        if not result.data:
            raise NotFoundError("Group not found. Please check the join code and try again.")
        group = result.data[0]

        existing = self.supabase.table("group_members")\
            .select("*")\
            .eq("group_id", group["id"])\
            .eq("user_id", user_id)\
            .execute()
        if existing.data:
            raise ConflictError("You are already a member of this group", context={"group_id": group["id"]})

        self.supabase.table("group_members").insert({
            "group_id": group["id"],
            "user_id": user_id,
            "role": "member",
        }).execute()
        logger.info(f"User {user_id} joined group {group['id']}")
        return GroupResult(group=GroupResponse(**group), message=f"Successfully joined \"{group['name']}\"!")

    def join_by_code(self, join_code: str, user_id: str) -> GroupResult:
        try:
            require_user(user_id, "join a group")
            return run_with_timeout(
                self._join, settings.group_operation_timeout_sec, "Joining",
                join_code, user_id
            )
        except Exception as e:
            return GroupResult.from_exception(e, "joining")

    def list_user_groups(self, user_id: str) -> GroupListResult:
        """Active groups the user belongs to, with active member counts."""
        try:
            require_user(user_id, "view groups")
            memberships = self.supabase.table("group_members")\
                .select("group_id")\
                .eq("user_id", user_id)\
                .eq("is_active", True)\
                .execute()
            group_ids = [m["group_id"] for m in (memberships.data or [])]
            if not group_ids:
                return GroupListResult()

            groups = self.supabase.table("groups")\
                .select("*")\
                .in_("id", group_ids)\
                .eq("is_active", True)\
                .order("created_at", desc=True)\
                .execute()
            members = self.supabase.table("group_members")\
                .select("group_id")\
                .in_("group_id", group_ids)\
                .eq("is_active", True)\
                .execute()
            counts = {}
            for m in (members.data or []):
                counts[m["group_id"]] = counts.get(m["group_id"], 0) + 1
            return GroupListResult(groups=[
                GroupResponse(**g, member_count=counts.get(g["id"], 0)) for g in (groups.data or [])
            ])
        except Exception as e:
            return GroupListResult.from_exception(e, "loading groups")

    def leave_group(self, group_id: str, user_id: str) -> ServiceResult:
        try:
            require_user(user_id, "leave a group")
            result = self.supabase.table("group_members")\
                .delete()\
                .eq("group_id", group_id)\
                .eq("user_id", user_id)\
                .execute()
            if not result.data:
                raise NotFoundError("You are not a member of this group", context={"group_id": group_id})
            return ServiceResult(message="Successfully left the group")
        except Exception as e:
            return ServiceResult.from_exception(e, "leaving group")

    def _reassign_primary(self, user_id: str) -> Optional[str]:
        """Make the creator's oldest remaining active group primary."""
        remaining = self._active_groups_created_by(user_id)
        if not remaining:
            return None
        oldest = remaining[0]
        self.supabase.table("groups")\
            .update({"is_main_group": True})\
            .eq("id", oldest["id"])\
            .execute()
        logger.info(f"Group {oldest['id']} is now the main group of {user_id}")
        return oldest["id"]

    def _delete(self, group_id: str, user_id: str) -> ServiceResult:
        group = self._get_active_group(group_id)
        if group["created_by"] != user_id:
            raise PermissionDenied("You can only delete groups you created.", context={"group_id": group_id})

        self.supabase.table("groups")\
            .update({"is_active": False, "is_main_group": False})\
            .eq("id", group_id)\
            .execute()
        if group.get("is_main_group"):
            self._reassign_primary(user_id)
        return ServiceResult(message="Group deleted successfully")

    def delete_group(self, group_id: str, user_id: str) -> ServiceResult:
        """Soft delete; only the creator may delete."""
        try:
            require_user(user_id, "delete a group")
            return run_with_timeout(
                self._delete, settings.group_operation_timeout_sec, "Deleting group",
                group_id, user_id
            )
        except Exception as e:
            return ServiceResult.from_exception(e, "deleting group")

    def list_members(self, group_id: str, user_id: str) -> MembersResult:
        try:
            require_user(user_id, "view group members")
            require_active_member(self.supabase, group_id, user_id)
            group = self._get_active_group(group_id)
            result = self.supabase.table("group_members")\
                .select("user_id, role, joined_at")\
                .eq("group_id", group_id)\
                .eq("is_active", True)\
                .order("joined_at")\
                .execute()
            return MembersResult(members=[
                GroupMemberResponse(
                    user_id=m["user_id"],
                    role=m.get("role") or "member",
                    joined_at=m.get("joined_at"),
                    name=member_label(self.supabase, m["user_id"]),
                    is_creator=m["user_id"] == group["created_by"],
                )
                for m in (result.data or [])
            ])
        except Exception as e:
            return MembersResult.from_exception(e, "loading group members")

    def set_main_group(self, group_id: str, user_id: str) -> ServiceResult:
        try:
            require_user(user_id, "set a main group")
            group = self._get_active_group(group_id)
            if group["created_by"] != user_id:
                raise PermissionDenied("Only groups you created can be your main group", context={"group_id": group_id})

            self.supabase.table("groups")\
                .update({"is_main_group": False})\
                .eq("created_by", user_id)\
                .eq("is_main_group", True)\
                .execute()
            self.supabase.table("groups")\
                .update({"is_main_group": True})\
                .eq("id", group_id)\
                .eq("created_by", user_id)\
                .execute()
            return ServiceResult(message="Successfully set as main group")
        except Exception as e:
            return ServiceResult.from_exception(e, "setting main group")
