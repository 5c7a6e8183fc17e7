from fastapi import APIRouter, Depends, Query
from app.modules.meal_requests.schemas import (
    MAX_OPTIONS, OpenMealRequest, ReplaceMealRequest, VoteCreate,
    OpenMealRequestResult, VoteResult, TallyResult, TopRankedResult, CloseResult,
    ActiveRequestResult, OptionsResult, UserVotesResult, ProgressResult
)
from app.modules.meal_requests.service import MealVoteCoordinator
from app.core.dependencies import get_current_user_id, get_meal_coordinator, check_group_member
from app.core.results import raise_for_result

router = APIRouter(prefix="/meal-requests", tags=["meal-requests"])


@router.post("", response_model=OpenMealRequestResult, status_code=201)
def open_meal_request(
    request_data: OpenMealRequest,
    user_id: str = Depends(get_current_user_id),
    coordinator: MealVoteCoordinator = Depends(get_meal_coordinator)
):
    """Open a voting session; 409 with the existing session when one is active"""
    return raise_for_result(coordinator.open(request_data.group_id, user_id, request_data.option_count))


@router.post("/replace", response_model=OpenMealRequestResult, status_code=201)
def replace_meal_request(
    request_data: ReplaceMealRequest,
    user_id: str = Depends(get_current_user_id),
    coordinator: MealVoteCoordinator = Depends(get_meal_coordinator)
):
    """Cancel the group's active session and open a new one"""
    return raise_for_result(coordinator.replace(
        request_data.group_id, user_id, request_data.option_count, request_data.existing_request_id
    ))


@router.get("/groups/{group_id}/active", response_model=ActiveRequestResult)
def get_active_request(
    group_id: str,
    user_id: str = Depends(check_group_member),
    coordinator: MealVoteCoordinator = Depends(get_meal_coordinator)
):
    return raise_for_result(coordinator.get_active(group_id))


@router.get("/{request_id}/options", response_model=OptionsResult)
def get_options(
    request_id: str,
    user_id: str = Depends(get_current_user_id),
    coordinator: MealVoteCoordinator = Depends(get_meal_coordinator)
):
    return raise_for_result(coordinator.get_options(request_id))


@router.put("/{request_id}/votes", response_model=VoteResult)
def vote(
    request_id: str,
    vote_data: VoteCreate,
    user_id: str = Depends(get_current_user_id),
    coordinator: MealVoteCoordinator = Depends(get_meal_coordinator)
):
    """Vote yes or no on one option; voting again overwrites"""
    return raise_for_result(coordinator.vote(request_id, vote_data.meal_option_id, user_id, vote_data.vote))


@router.get("/{request_id}/votes/me", response_model=UserVotesResult)
def get_my_votes(
    request_id: str,
    user_id: str = Depends(get_current_user_id),
    coordinator: MealVoteCoordinator = Depends(get_meal_coordinator)
):
    return raise_for_result(coordinator.get_user_votes(request_id, user_id))


@router.get("/{request_id}/progress", response_model=ProgressResult)
def get_progress(
    request_id: str,
    user_id: str = Depends(get_current_user_id),
    coordinator: MealVoteCoordinator = Depends(get_meal_coordinator)
):
    return raise_for_result(coordinator.voting_progress(request_id, user_id))


@router.get("/{request_id}/results", response_model=TallyResult)
def get_results(
    request_id: str,
    user_id: str = Depends(get_current_user_id),
    coordinator: MealVoteCoordinator = Depends(get_meal_coordinator)
):
    """Per-option tallies, percentages of votes cast"""
    return raise_for_result(coordinator.tally(request_id))


@router.get("/{request_id}/top", response_model=TopRankedResult)
def get_top(
    request_id: str,
    k: int = Query(default=3, ge=1, le=MAX_OPTIONS),
    user_id: str = Depends(get_current_user_id),
    coordinator: MealVoteCoordinator = Depends(get_meal_coordinator)
):
    """Top options, percentages of active group membership"""
    return raise_for_result(coordinator.top_ranked(request_id, k=k))


@router.post("/{request_id}/close", response_model=CloseResult)
def close_meal_request(
    request_id: str,
    user_id: str = Depends(get_current_user_id),
    coordinator: MealVoteCoordinator = Depends(get_meal_coordinator)
):
    return raise_for_result(coordinator.close(request_id, user_id))
