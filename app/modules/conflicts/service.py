from supabase import Client
import logging

from app.core.cleanup import run_cleanup_steps, request_ids, delete_by_parent, delete_by_group
from app.core.results import CleanupReport
from app.modules.conflicts.schemas import (
    Conflict, ConflictReport,
    ACTIVE_MEAL_REQUEST, PENDING_DINNER_REQUEST, TERMINATED_RESULTS
)

logger = logging.getLogger(__name__)


class ConflictResolver:
    """Finds and removes leftovers of an improperly closed decision cycle."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def detect_conflicts(self, group_id: str) -> ConflictReport:
        """Report active meal requests, pending dinner requests and an archived session. Read only."""
        try:
            conflicts = []

            active = self.supabase.table("meal_requests")\
                .select("*")\
                .eq("group_id", group_id)\
                .eq("status", "active")\
                .execute()
            if active.data:
                conflicts.append(Conflict(type=ACTIVE_MEAL_REQUEST, count=len(active.data), rows=active.data))

            pending = self.supabase.table("dinner_requests")\
                .select("*")\
                .eq("group_id", group_id)\
                .eq("status", "pending")\
                .execute()
            if pending.data:
                conflicts.append(Conflict(type=PENDING_DINNER_REQUEST, count=len(pending.data), rows=pending.data))

            archived = self.supabase.table("terminated_sessions")\
                .select("*")\
                .eq("group_id", group_id)\
                .execute()
            if archived.data:
                conflicts.append(Conflict(type=TERMINATED_RESULTS, count=len(archived.data), rows=archived.data))

            logger.info(f"Found {len(conflicts)} conflict type(s) in group {group_id}")
            return ConflictReport(
                group_id=group_id,
                conflicts=conflicts,
                has_conflicts=bool(conflicts),
                requires_cleanup=any(c.type != TERMINATED_RESULTS for c in conflicts),
            )
        except Exception as e:
            return ConflictReport.from_exception(e, "checking group conflicts", group_id=group_id)

    def resolve(self, group_id: str) -> CleanupReport:
        """Delete all working and archived decision state for the group, children first."""
        supabase = self.supabase

        def meal_votes():
            return delete_by_parent(supabase, "meal_votes", "request_id",
                                    request_ids(supabase, "meal_requests", group_id))

        def meal_options():
            return delete_by_parent(supabase, "meal_request_options", "request_id",
                                    request_ids(supabase, "meal_requests", group_id))

        def dinner_responses():
            return delete_by_parent(supabase, "dinner_request_responses", "request_id",
                                    request_ids(supabase, "dinner_requests", group_id))

        try:
            return run_cleanup_steps(group_id, [
                ("meal_votes", meal_votes),
                ("meal_options", meal_options),
                ("dinner_responses", dinner_responses),
                ("meal_requests", lambda: delete_by_group(supabase, "meal_requests", group_id)),
                ("dinner_requests", lambda: delete_by_group(supabase, "dinner_requests", group_id)),
                ("terminated_session", lambda: delete_by_group(supabase, "terminated_sessions", group_id)),
            ], log_prefix="CONFLICT")
        except Exception as e:
            return CleanupReport.from_exception(e, "cleaning up group conflicts", group_id=group_id)
