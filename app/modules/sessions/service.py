from supabase import Client
from datetime import datetime, timezone
from typing import Any, Dict, List
import logging

from app.core.access import require_user, require_active_member, active_member_ids, member_label
from app.core.cleanup import run_cleanup_steps, request_ids, delete_by_parent, delete_by_group
from app.core.errors import NotFoundError
from app.core.results import CleanupReport
from app.modules.meal_requests.service import MealVoteCoordinator, SESSION_ENDED
from app.modules.sessions.schemas import (
    MemberRollup, TerminatedSessionRow,
    ArchiveResult, FetchSessionResult, ClearSessionResult, TerminateResult
)

logger = logging.getLogger(__name__)


class SessionArchiver:
    """Keeps the last concluded decision of each group and wipes working state."""

    def __init__(self, supabase: Client, meal_coordinator: MealVoteCoordinator):
        self.supabase = supabase
        self.meals = meal_coordinator

    def archive(self, group_id: str, group_name: str, top_results: List[Dict[str, Any]],
                member_responses: List[Dict[str, Any]]) -> ArchiveResult:
        """Write the group's snapshot, overwriting any previous one."""
        try:
            result = self.supabase.table("terminated_sessions").upsert({
                "group_id": group_id,
                "group_name": group_name,
                "top_results": top_results,
                "member_responses": member_responses,
                "terminated_at": datetime.now(timezone.utc).isoformat(),
            }, on_conflict="group_id").execute()
            row = result.data[0] if result.data else None
            logger.info(f"[TERMINATED] Saved terminated session for group {group_id}")
            return ArchiveResult(session=TerminatedSessionRow(**row) if row else None)
        except Exception as e:
            return ArchiveResult.from_exception(e, "saving terminated session")

    def fetch(self, group_id: str) -> FetchSessionResult:
        try:
            result = self.supabase.table("terminated_sessions")\
                .select("*")\
                .eq("group_id", group_id)\
                .execute()
            if not result.data:
                return FetchSessionResult(found=False)
            return FetchSessionResult(found=True, session=TerminatedSessionRow(**result.data[0]))
        except Exception as e:
            return FetchSessionResult.from_exception(e, "loading terminated session")

    def clear(self, group_id: str) -> ClearSessionResult:
        try:
            deleted = delete_by_group(self.supabase, "terminated_sessions", group_id)
            logger.info(f"[TERMINATED] Cleared terminated session for group {group_id}")
            return ClearSessionResult(deleted=deleted)
        except Exception as e:
            return ClearSessionResult.from_exception(e, "clearing terminated session")

    def purge_working_state(self, group_id: str) -> CleanupReport:
        """Delete every request, response, option and vote of the group; never aborts."""
        supabase = self.supabase

        def dinner_responses():
            return delete_by_parent(supabase, "dinner_request_responses", "request_id",
                                    request_ids(supabase, "dinner_requests", group_id))

        def meal_votes():
            return delete_by_parent(supabase, "meal_votes", "request_id",
                                    request_ids(supabase, "meal_requests", group_id))

        def meal_options():
            return delete_by_parent(supabase, "meal_request_options", "request_id",
                                    request_ids(supabase, "meal_requests", group_id))

        try:
            return run_cleanup_steps(group_id, [
                ("dinner_responses", dinner_responses),
                ("meal_votes", meal_votes),
                ("meal_options", meal_options),
                ("meal_requests", lambda: delete_by_group(supabase, "meal_requests", group_id)),
                ("dinner_requests", lambda: delete_by_group(supabase, "dinner_requests", group_id)),
            ], log_prefix="CLEANUP")
        except Exception as e:
            return CleanupReport.from_exception(e, "cleaning up session data", group_id=group_id)

    def _group_name(self, group_id: str) -> str:
        result = self.supabase.table("groups")\
            .select("name")\
            .eq("id", group_id)\
            .execute()
        return result.data[0]["name"] if result.data else "Unknown Group"

    def _member_rollup(self, group_id: str, request_id: str, current_user_id: str) -> List[MemberRollup]:
        latest = self.supabase.table("dinner_requests")\
            .select("id")\
            .eq("group_id", group_id)\
            .order("created_at", desc=True)\
            .limit(1)\
            .execute()
        responses = {}
        if latest.data:
            rows = self.supabase.table("dinner_request_responses")\
                .select("user_id, response")\
                .eq("request_id", latest.data[0]["id"])\
                .execute()
            responses = {r["user_id"]: r["response"] for r in (rows.data or [])}

        votes = self.supabase.table("meal_votes")\
            .select("user_id, vote")\
            .eq("request_id", request_id)\
            .execute()

        rollup = []
        for user_id in active_member_ids(self.supabase, group_id):
            cast = [v["vote"] for v in (votes.data or []) if v["user_id"] == user_id]
            rollup.append(MemberRollup(
                user_id=user_id,
                name=member_label(self.supabase, user_id, current_user_id),
                dinner_response=responses.get(user_id, "pending"),
                yes_votes=cast.count("yes"),
                no_votes=cast.count("no"),
            ))
        return rollup

    def terminate(self, request_id: str, user_id: str) -> TerminateResult:
        """Rank, close, archive, then wipe the group's working state.

        Ranking and the member roll-up are read before the close because
        closing purges the session's options.
        """
        try:
            require_user(user_id, "terminate voting sessions")
            request = self.supabase.table("meal_requests")\
                .select("*")\
                .eq("id", request_id)\
                .execute()
            if not request.data:
                raise NotFoundError(SESSION_ENDED, context={"request_id": request_id})
            group_id = request.data[0]["group_id"]
            require_active_member(self.supabase, group_id, user_id)

            ranked = self.meals.top_ranked(request_id, k=3)
            if not ranked.success:
                return TerminateResult(request_id=request_id, **ranked.model_dump(
                    include={"success", "error", "error_kind", "code", "message", "context"}))
            rollup = self._member_rollup(group_id, request_id, user_id)

            closed = self.meals.close(request_id, user_id)
            if not closed.success:
                return TerminateResult(request_id=request_id, **closed.model_dump(
                    include={"success", "error", "error_kind", "code", "message", "context"}))

            archived = self.archive(
                group_id,
                self._group_name(group_id),
                [r.model_dump(mode="json") for r in ranked.top],
                [m.model_dump(mode="json") for m in rollup],
            )
            if not archived.success:
                return TerminateResult(
                    request_id=request_id,
                    status=closed.status,
                    fallback_used=closed.fallback_used,
                    **archived.model_dump(include={"success", "error", "error_kind", "code", "message", "context"})
                )

            purge = self.purge_working_state(group_id)
            message = "Voting session terminated and results saved."
            if not purge.success:
                message = f"Voting session terminated and results saved, but {purge.error}"
            return TerminateResult(
                request_id=request_id,
                status=closed.status,
                fallback_used=closed.fallback_used,
                session=archived.session,
                purge=purge,
                message=message,
            )
        except Exception as e:
            return TerminateResult.from_exception(e, "terminating voting session", request_id=request_id)
