from supabase import Client
from datetime import datetime, timezone
from typing import Optional
import logging

from app.config import settings
from app.core.access import require_user, require_active_member, active_member_ids, user_group_ids, member_label
from app.core.errors import InvalidInput, NotFoundError
from app.core.timeouts import run_with_timeout
from app.modules.dinner_requests.schemas import (
    RECIPE_TYPES,
    DinnerRequestRow, DinnerResponseRow, Readiness, PendingDinnerRequest, MemberResponse, ResponseSummary,
    CreateDinnerRequestResult, RecordResponseResult, PendingRequestsResult, CompleteDinnerRequestResult,
    ResponsesResult, MemberResponsesResult, StartVotingResult
)
from app.modules.meal_requests.service import MealVoteCoordinator

logger = logging.getLogger(__name__)

MIN_ACCEPTED = 2


def compute_readiness(total_members: int, responses_count: int, accepted_count: int) -> bool:
    """Enough members answered (at least half, rounded down) and at least two said yes."""
    return responses_count >= total_members // 2 and accepted_count >= MIN_ACCEPTED


def _iso(value) -> str:
    return value.isoformat() if hasattr(value, "isoformat") else str(value)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class DinnerRequestCoordinator:
    def __init__(self, supabase: Client, meal_coordinator: MealVoteCoordinator):
        self.supabase = supabase
        self.meals = meal_coordinator

    def _get_request(self, request_id: str) -> dict:
        result = self.supabase.table("dinner_requests")\
            .select("*")\
            .eq("id", request_id)\
            .execute()
        if not result.data:
            raise NotFoundError("Dinner request not found", context={"request_id": request_id})
        return result.data[0]

    def _replace_pending(self, group_id: str, row: dict) -> dict:
        pending = self.supabase.table("dinner_requests")\
            .select("id")\
            .eq("group_id", group_id)\
            .eq("status", "pending")\
            .execute()
        pending_ids = [r["id"] for r in (pending.data or [])]
        if pending_ids:
            self.supabase.table("dinner_request_responses")\
                .delete()\
                .in_("request_id", pending_ids)\
                .execute()
            self.supabase.table("dinner_requests")\
                .delete()\
                .in_("id", pending_ids)\
                .execute()
            logger.info(f"Deleted {len(pending_ids)} superseded pending request(s) for group {group_id}")

        result = self.supabase.table("dinner_requests").insert(row).execute()
        if not result.data:
            raise InvalidInput("Failed to save dinner request")
        return result.data[0]

    def create_request(self, group_id: str, requester_id: str, request_date, request_time,
                       recipe_type: str, deadline) -> CreateDinnerRequestResult:
        """Replace the group's pending request and auto-open a vote session."""
        try:
            require_user(requester_id, "send dinner requests")
            if recipe_type not in RECIPE_TYPES:
                raise InvalidInput(f"recipe_type must be one of {', '.join(RECIPE_TYPES)}")
            require_active_member(self.supabase, group_id, requester_id)

            row = {
                "group_id": group_id,
                "requester_id": requester_id,
                "request_date": _iso(request_date),
                "request_time": _iso(request_time),
                "recipe_type": recipe_type,
                "deadline": _iso(deadline),
                "status": "pending",
            }
            created = run_with_timeout(
                self._replace_pending, settings.group_operation_timeout_sec, "Saving dinner request",
                group_id, row
            )
            logger.info(f"Dinner request {created['id']} saved for group {group_id}")
        except Exception as e:
            return CreateDinnerRequestResult.from_exception(e, "saving dinner request")

        # Secondary step: its failure is reported but never fails the request itself
        meal_result = self.meals.open(group_id, requester_id, settings.auto_meal_option_count)
        if meal_result.success:
            return CreateDinnerRequestResult(
                request=DinnerRequestRow(**created),
                meal_session_created=True,
                meal_request_id=meal_result.request.id,
                message=f"Dinner request sent and meal voting session created with {meal_result.request.total_options} options!",
            )
        logger.warning(f"Dinner request saved but meal session creation failed: {meal_result.error}")
        return CreateDinnerRequestResult(
            request=DinnerRequestRow(**created),
            meal_session_created=False,
            meal_session_error=meal_result.error,
            message="Dinner request sent.",
        )

    def readiness(self, request_id: str, group_id: Optional[str] = None) -> Readiness:
        if group_id is None:
            group_id = self._get_request(request_id)["group_id"]
        total_members = len(active_member_ids(self.supabase, group_id))
        responses = self.supabase.table("dinner_request_responses")\
            .select("response")\
            .eq("request_id", request_id)\
            .execute()
        rows = responses.data or []
        accepted = len([r for r in rows if r["response"] == "accepted"])
        return Readiness(
            is_ready=compute_readiness(total_members, len(rows), accepted),
            total_members=total_members,
            responses_count=len(rows),
            accepted_count=accepted,
            required_responses=total_members // 2,
            group_id=group_id,
        )

    def record_response(self, request_id: str, user_id: str, response: str) -> RecordResponseResult:
        """Upsert the member's accept/decline and report (advisory) readiness."""
        try:
            require_user(user_id, "respond to dinner requests")
            if response not in ("accepted", "declined"):
                raise InvalidInput(f"Response must be 'accepted' or 'declined', got {response!r}")
            request = self._get_request(request_id)
            require_active_member(self.supabase, request["group_id"], user_id)

            result = self.supabase.table("dinner_request_responses").upsert({
                "request_id": request_id,
                "user_id": user_id,
                "response": response,
                "responded_at": _now(),
            }, on_conflict="request_id,user_id").execute()
            row = result.data[0] if result.data else None
        except Exception as e:
            return RecordResponseResult.from_exception(e, "recording response")

        readiness = None
        try:
            readiness = self.readiness(request_id, request["group_id"])
        except Exception as e:
            logger.error(f"Error checking readiness for dinner request {request_id}: {e}")
        return RecordResponseResult(
            response=DinnerResponseRow(**row) if row else None,
            readiness=readiness,
            message="Response recorded successfully!",
        )

    def list_pending_for_user(self, user_id: str) -> PendingRequestsResult:
        """Pending requests across every group the user actively belongs to."""
        try:
            require_user(user_id, "view dinner requests")
            group_ids = user_group_ids(self.supabase, user_id)
            if not group_ids:
                return PendingRequestsResult(message="No pending dinner requests found")

            result = self.supabase.table("dinner_requests")\
                .select("*")\
                .in_("group_id", group_ids)\
                .eq("status", "pending")\
                .order("created_at", desc=True)\
                .execute()
            rows = result.data or []
            if not rows:
                return PendingRequestsResult(message="No pending dinner requests found")

            groups = self.supabase.table("groups")\
                .select("id, name")\
                .in_("id", list({r["group_id"] for r in rows}))\
                .execute()
            group_names = {g["id"]: g["name"] for g in (groups.data or [])}

            labels = {}
            requests = []
            for r in rows:
                if r["requester_id"] not in labels:
                    labels[r["requester_id"]] = member_label(self.supabase, r["requester_id"], user_id)
                requests.append(PendingDinnerRequest(
                    id=r["id"],
                    group_id=r["group_id"],
                    group_name=group_names.get(r["group_id"], "Unknown Group"),
                    requester_id=r["requester_id"],
                    requester_name=labels[r["requester_id"]],
                    request_date=r["request_date"],
                    request_time=r["request_time"],
                    recipe_type=r["recipe_type"],
                    deadline=r["deadline"],
                    status=r["status"],
                    created_at=r.get("created_at"),
                ))
            return PendingRequestsResult(requests=requests, total_count=len(requests))
        except Exception as e:
            return PendingRequestsResult.from_exception(e, "loading dinner requests")

    def complete(self, request_id: str, user_id: str) -> CompleteDinnerRequestResult:
        """pending -> completed, only if still pending; a lost race is a reported no-op."""
        try:
            require_user(user_id, "complete dinner requests")
            request = self._get_request(request_id)
            require_active_member(self.supabase, request["group_id"], user_id)

            result = self.supabase.table("dinner_requests")\
                .update({"status": "completed", "updated_at": _now()})\
                .eq("id", request_id)\
                .eq("status", "pending")\
                .execute()
            if not result.data:
                return CompleteDinnerRequestResult(
                    request=DinnerRequestRow(**request),
                    transitioned=False,
                    message="Dinner request was already completed or cancelled.",
                )
            return CompleteDinnerRequestResult(
                request=DinnerRequestRow(**result.data[0]),
                transitioned=True,
                message="Dinner request has been completed.",
            )
        except Exception as e:
            return CompleteDinnerRequestResult.from_exception(e, "completing dinner request")

    def list_responses(self, request_id: str, user_id: str) -> ResponsesResult:
        try:
            require_user(user_id, "view responses")
            request = self._get_request(request_id)
            require_active_member(self.supabase, request["group_id"], user_id)
            result = self.supabase.table("dinner_request_responses")\
                .select("*")\
                .eq("request_id", request_id)\
                .order("responded_at", desc=True)\
                .execute()
            responses = [DinnerResponseRow(**r) for r in (result.data or [])]
            return ResponsesResult(
                responses=responses,
                total_members=len(active_member_ids(self.supabase, request["group_id"])),
                responses_count=len(responses),
            )
        except Exception as e:
            return ResponsesResult.from_exception(e, "loading responses")

    def member_responses(self, group_id: str, user_id: str) -> MemberResponsesResult:
        """Every active member's answer to the group's latest pending request."""
        try:
            require_user(user_id, "view member responses")
            require_active_member(self.supabase, group_id, user_id)
            pending = self.supabase.table("dinner_requests")\
                .select("*")\
                .eq("group_id", group_id)\
                .eq("status", "pending")\
                .order("created_at", desc=True)\
                .limit(1)\
                .execute()
            if not pending.data:
                return MemberResponsesResult(has_active_request=False)
            active = pending.data[0]

            responses = self.supabase.table("dinner_request_responses")\
                .select("*")\
                .eq("request_id", active["id"])\
                .execute()
            by_user = {r["user_id"]: r for r in (responses.data or [])}

            members = []
            for member_id in active_member_ids(self.supabase, group_id):
                answered = by_user.get(member_id)
                members.append(MemberResponse(
                    user_id=member_id,
                    response=answered["response"] if answered else "pending",
                    responded_at=answered.get("responded_at") if answered else None,
                ))
            return MemberResponsesResult(
                has_active_request=True,
                active_request=DinnerRequestRow(**active),
                member_responses=members,
                summary=ResponseSummary(
                    total=len(members),
                    accepted=len([m for m in members if m.response == "accepted"]),
                    declined=len([m for m in members if m.response == "declined"]),
                    pending=len([m for m in members if m.response == "pending"]),
                ),
            )
        except Exception as e:
            return MemberResponsesResult.from_exception(e, "loading member responses")

    def start_voting(self, request_id: str, user_id: str, option_count: int = 20) -> StartVotingResult:
        """Open a vote session for the request's group, then mark the request completed."""
        try:
            require_user(user_id, "start voting")
            request = self._get_request(request_id)
        except Exception as e:
            return StartVotingResult.from_exception(e, "creating meal session")

        meal_result = self.meals.open(request["group_id"], user_id, option_count)
        if not meal_result.success:
            return StartVotingResult(
                success=False,
                error=meal_result.error,
                error_kind=meal_result.error_kind,
                code=meal_result.code,
                context=meal_result.context,
            )
        completed = self.complete(request_id, user_id)
        return StartVotingResult(
            meal_request_id=meal_result.request.id,
            dinner_request_completed=completed.success and completed.transitioned,
            message="Meal voting session created successfully!",
        )
