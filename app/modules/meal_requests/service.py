from supabase import Client
from postgrest.exceptions import APIError
from datetime import datetime, timezone
from typing import List, Optional, Tuple
import logging

from app.config import settings
from app.core.access import require_user, require_active_member, count_active_members, member_label, FALLBACK_MEMBER_LABEL
from app.core.errors import ConflictError, NotFoundError, PermissionDenied, InvalidInput, OperationTimeout, is_unique_violation
from app.core.timeouts import run_with_timeout
from app.modules.meal_requests.schemas import (
    MIN_OPTIONS, MAX_OPTIONS, DEFAULT_OPTIONS,
    MealRequestRow, MealOptionRow, MealVoteRow, ExistingRequestSummary, VotingProgress,
    OpenMealRequestResult, VoteResult, TallyResult, TopRankedResult, CloseResult,
    ActiveRequestResult, OptionsResult, UserVotesResult, ProgressResult
)
from app.modules.meal_requests.tally import compute_tally, rank_options
from app.modules.preload.service import MealPreloadCache
from app.modules.recipes.schemas import MealRecord
from app.modules.recipes.source import RecipeSource

logger = logging.getLogger(__name__)

EXISTING_REQUEST_FOUND = "EXISTING_REQUEST_FOUND"
SESSION_ENDED = "This voting session may have ended or been removed."


def clamp_option_count(option_count: Optional[int]) -> int:
    if option_count is None:
        return DEFAULT_OPTIONS
    return max(MIN_OPTIONS, min(MAX_OPTIONS, option_count))


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class MealVoteCoordinator:
    """Vote sessions: open, replace, vote, tally, rank and close.

    Status changes are always status-qualified updates (`... WHERE status =
    'active'`); the store's one-active-row-per-group index is the only hard
    guarantee against concurrent opens.
    """

    def __init__(self, supabase: Client, preload_cache: MealPreloadCache, recipe_source: RecipeSource):
        self.supabase = supabase
        self.preload_cache = preload_cache
        self.recipe_source = recipe_source

    # ---- reads -------------------------------------------------------------

    def _get_request(self, request_id: str) -> dict:
        result = self.supabase.table("meal_requests")\
            .select("*")\
            .eq("id", request_id)\
            .execute()
        if not result.data:
            raise NotFoundError(SESSION_ENDED, context={"request_id": request_id})
        return result.data[0]

    def _find_active(self, group_id: str) -> Optional[dict]:
        result = self.supabase.table("meal_requests")\
            .select("*")\
            .eq("group_id", group_id)\
            .eq("status", "active")\
            .order("created_at", desc=True)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def _options(self, request_id: str) -> List[dict]:
        result = self.supabase.table("meal_request_options")\
            .select("*")\
            .eq("request_id", request_id)\
            .order("option_order")\
            .execute()
        return result.data or []

    def _votes(self, request_id: str, user_id: Optional[str] = None) -> List[dict]:
        query = self.supabase.table("meal_votes")\
            .select("*")\
            .eq("request_id", request_id)
        if user_id:
            query = query.eq("user_id", user_id)
        return query.execute().data or []

    def _summarize(self, request: dict) -> ExistingRequestSummary:
        try:
            requester_name = run_with_timeout(
                member_label, settings.profile_lookup_timeout_sec, "Requester lookup",
                self.supabase, request["requested_by"]
            )
        except OperationTimeout:
            requester_name = FALLBACK_MEMBER_LABEL
        return ExistingRequestSummary(
            id=request["id"],
            requested_by=request["requested_by"],
            requester_name=requester_name,
            created_at=request.get("created_at"),
            total_options=request.get("total_options") or 0,
            options=[MealOptionRow(**o) for o in self._options(request["id"])],
        )

    def _existing_conflict(self, request: dict) -> ConflictError:
        summary = self._summarize(request)
        return ConflictError(
            "An active meal request already exists for this group",
            code=EXISTING_REQUEST_FOUND,
            context={"existing_request": summary.model_dump(mode="json")},
        )

    # ---- open / replace ----------------------------------------------------

    def _candidate_meals(self, group_id: str, count: int) -> Tuple[List[MealRecord], bool]:
        if len(self.preload_cache.peek(group_id)) >= count:
            meals = self.preload_cache.take(group_id)
            if len(meals) >= count:
                logger.info(f"Using preloaded meals for group {group_id}")
                return meals[:count], True
        logger.info(f"No preloaded meals for group {group_id}, fetching {count} meals")
        return self.recipe_source.fetch_random(count), False

    def _open(self, group_id: str, requester_id: str, option_count: Optional[int], replaced: bool = False) -> OpenMealRequestResult:
        require_active_member(self.supabase, group_id, requester_id)

        existing = self._find_active(group_id)
        if existing:
            raise self._existing_conflict(existing)

        count = clamp_option_count(option_count)
        meals, from_preload = self._candidate_meals(group_id, count)
        if not meals:
            raise InvalidInput("Failed to fetch meals. Please try again.")

        try:
            request_result = self.supabase.table("meal_requests").insert({
                "group_id": group_id,
                "requested_by": requester_id,
                "status": "active",
                "total_options": len(meals),
            }).execute()
        except APIError as e:
            if is_unique_violation(e):
                winner = self._find_active(group_id)
                if winner:
                    raise self._existing_conflict(winner)
            raise
        if not request_result.data:
            raise InvalidInput("Failed to create meal request")
        request = request_result.data[0]
        logger.info(f"Meal request {request['id']} created for group {group_id}")

        option_rows = [
            {
                "request_id": request["id"],
                "meal_id": meal.id,
                "meal_data": meal.to_payload(),
                "option_order": index + 1,
            }
            for index, meal in enumerate(meals)
        ]
        try:
            options_result = self.supabase.table("meal_request_options").insert(option_rows).execute()
        except Exception:
            logger.error(f"Saving options failed, removing meal request {request['id']}")
            try:
                self.supabase.table("meal_requests")\
                    .delete()\
                    .eq("id", request["id"])\
                    .execute()
            except Exception as cleanup_error:
                logger.error(f"Compensating delete of meal request {request['id']} failed: {cleanup_error}")
            raise

        options = sorted(options_result.data or [], key=lambda o: o["option_order"])
        verb = "replaced" if replaced else "created"
        return OpenMealRequestResult(
            request=MealRequestRow(**request),
            options=[MealOptionRow(**o) for o in options],
            from_preload=from_preload,
            replaced=replaced,
            message=f"Meal request {verb} with {len(meals)} options! Group members can now start voting.",
        )

    def open(self, group_id: str, requester_id: str, option_count: Optional[int] = DEFAULT_OPTIONS) -> OpenMealRequestResult:
        """Open a vote session for the group; fails with EXISTING_REQUEST_FOUND when one is active."""
        try:
            require_user(requester_id, "create a meal request")
            return run_with_timeout(
                self._open, settings.meal_request_timeout_sec, "Creating meal request",
                group_id, requester_id, option_count
            )
        except Exception as e:
            return OpenMealRequestResult.from_exception(e, "creating meal request")

    def _replace(self, group_id: str, requester_id: str, option_count: Optional[int], existing_request_id: str) -> OpenMealRequestResult:
        require_active_member(self.supabase, group_id, requester_id)
        cancelled = self.supabase.table("meal_requests")\
            .update({"status": "cancelled", "completed_at": _now()})\
            .eq("id", existing_request_id)\
            .eq("group_id", group_id)\
            .eq("status", "active")\
            .execute()
        if cancelled.data:
            self._purge_options(existing_request_id)
            logger.info(f"Meal request {existing_request_id} cancelled for replacement")
        else:
            logger.info(f"Meal request {existing_request_id} was no longer active; opening a new one")
        return self._open(group_id, requester_id, option_count, replaced=True)

    def replace(self, group_id: str, requester_id: str, option_count: Optional[int], existing_request_id: str) -> OpenMealRequestResult:
        """Cancel the group's active request (if still active) and open a new one."""
        try:
            require_user(requester_id, "replace a meal request")
            return run_with_timeout(
                self._replace, settings.meal_request_timeout_sec, "Replacing meal request",
                group_id, requester_id, option_count, existing_request_id
            )
        except Exception as e:
            return OpenMealRequestResult.from_exception(e, "replacing meal request")

    # ---- voting ------------------------------------------------------------

    def vote(self, request_id: str, option_id: str, user_id: str, vote: str) -> VoteResult:
        """Record or overwrite the user's yes/no vote on one option."""
        try:
            require_user(user_id, "vote")
            if vote not in ("yes", "no"):
                raise InvalidInput(f"Vote must be 'yes' or 'no', got {vote!r}")
            request = self._get_request(request_id)
            if request["status"] != "active":
                raise PermissionDenied(SESSION_ENDED, context={"request_id": request_id, "status": request["status"]})
            require_active_member(self.supabase, request["group_id"], user_id)

            option = self.supabase.table("meal_request_options")\
                .select("id")\
                .eq("id", option_id)\
                .eq("request_id", request_id)\
                .execute()
            if not option.data:
                raise NotFoundError("Meal option not found in this voting session")

            result = self.supabase.table("meal_votes").upsert({
                "request_id": request_id,
                "meal_option_id": option_id,
                "user_id": user_id,
                "vote": vote,
                "voted_at": _now(),
            }, on_conflict="request_id,meal_option_id,user_id").execute()

            row = result.data[0] if result.data else None
            return VoteResult(vote=MealVoteRow(**row) if row else None, message=f"Voted {vote}!")
        except Exception as e:
            return VoteResult.from_exception(e, "recording vote")

    # ---- aggregation -------------------------------------------------------

    def tally(self, request_id: str) -> TallyResult:
        """Per-option counts, percentages of votes cast."""
        try:
            results = compute_tally(self._options(request_id), self._votes(request_id))
            return TallyResult(request_id=request_id, results=results)
        except Exception as e:
            return TallyResult.from_exception(e, "fetching voting results", request_id=request_id)

    def top_ranked(self, request_id: str, k: int = 3) -> TopRankedResult:
        """Top k options; percentages of active group membership, including not-voted."""
        try:
            if k < 1 or k > MAX_OPTIONS:
                raise InvalidInput(f"k must be between 1 and {MAX_OPTIONS}, got {k}")
            request = self._get_request(request_id)
            total_members = count_active_members(self.supabase, request["group_id"])
            top = rank_options(self._options(request_id), self._votes(request_id), total_members, k=k)
            return TopRankedResult(request_id=request_id, total_members=total_members, top=top)
        except Exception as e:
            return TopRankedResult.from_exception(e, "fetching top voted meals", request_id=request_id)

    # ---- termination -------------------------------------------------------

    def _purge_options(self, request_id: str) -> int:
        result = self.supabase.table("meal_request_options")\
            .delete()\
            .eq("request_id", request_id)\
            .execute()
        return len(result.data or [])

    def _transition(self, request_id: str, status: str) -> List[dict]:
        result = self.supabase.table("meal_requests")\
            .update({"status": status, "completed_at": _now()})\
            .eq("id", request_id)\
            .eq("status", "active")\
            .execute()
        return result.data or []

    def close(self, request_id: str, user_id: str) -> CloseResult:
        """active -> completed; on a group/status unique clash, clear votes and go active -> cancelled."""
        try:
            require_user(user_id, "complete meal requests")
            request = self._get_request(request_id)
            require_active_member(self.supabase, request["group_id"], user_id)

            fallback_used = False
            try:
                rows = self._transition(request_id, "completed")
                status = "completed"
            except APIError as e:
                if not is_unique_violation(e):
                    raise
                logger.warning(f"Completing meal request {request_id} hit a unique constraint; cancelling instead")
                self.supabase.table("meal_votes")\
                    .delete()\
                    .eq("request_id", request_id)\
                    .execute()
                rows = self._transition(request_id, "cancelled")
                status = "cancelled"
                fallback_used = True

            if not rows:
                raise NotFoundError(
                    "This meal request may have already been completed or removed.",
                    context={"request_id": request_id, "status": request["status"]},
                )

            options_purged = 0
            try:
                options_purged = self._purge_options(request_id)
            except Exception as cleanup_error:
                logger.warning(f"Failed to clean up options for meal request {request_id}: {cleanup_error}")

            message = "Meal request has been completed."
            if fallback_used:
                message = "Voting session has been terminated and all votes cleared."
            return CloseResult(
                request=MealRequestRow(**rows[0]),
                status=status,
                fallback_used=fallback_used,
                options_purged=options_purged,
                message=message,
            )
        except Exception as e:
            return CloseResult.from_exception(e, "completing meal request")

    # ---- session views -----------------------------------------------------

    def get_active(self, group_id: str) -> ActiveRequestResult:
        try:
            request = self._find_active(group_id)
            return ActiveRequestResult(
                has_active_request=request is not None,
                request=MealRequestRow(**request) if request else None,
            )
        except Exception as e:
            return ActiveRequestResult.from_exception(e, "checking meal request status")

    def get_options(self, request_id: str) -> OptionsResult:
        try:
            return OptionsResult(options=[MealOptionRow(**o) for o in self._options(request_id)])
        except Exception as e:
            return OptionsResult.from_exception(e, "fetching meal options")

    def get_user_votes(self, request_id: str, user_id: str) -> UserVotesResult:
        try:
            require_user(user_id, "view votes")
            votes = self._votes(request_id, user_id)
            return UserVotesResult(
                votes=[MealVoteRow(**v) for v in votes],
                voted_option_ids=[v["meal_option_id"] for v in votes],
            )
        except Exception as e:
            return UserVotesResult.from_exception(e, "fetching user votes")

    def voting_progress(self, request_id: str, user_id: str) -> ProgressResult:
        try:
            require_user(user_id, "check progress")
            options = self._options(request_id)
            voted = {v["meal_option_id"] for v in self._votes(request_id, user_id)}
            next_option = next((o for o in options if o["id"] not in voted), None)
            voted_count = len([o for o in options if o["id"] in voted])
            total = len(options)
            return ProgressResult(progress=VotingProgress(
                total_meals=total,
                voted_count=voted_count,
                remaining_count=total - voted_count,
                next_option=MealOptionRow(**next_option) if next_option else None,
                is_complete=next_option is None,
                completion_percentage=round(voted_count * 100 / total) if total else 0,
            ))
        except Exception as e:
            return ProgressResult.from_exception(e, "getting voting progress")
