from fastapi import APIRouter, Depends
from app.modules.dinner_requests.schemas import (
    DinnerRequestCreate, DinnerResponseCreate, StartVotingRequest,
    CreateDinnerRequestResult, RecordResponseResult, PendingRequestsResult, CompleteDinnerRequestResult,
    ResponsesResult, MemberResponsesResult, StartVotingResult
)
from app.modules.dinner_requests.service import DinnerRequestCoordinator
from app.core.dependencies import get_current_user_id, get_dinner_coordinator, check_group_member
from app.core.results import raise_for_result

router = APIRouter(prefix="/dinner-requests", tags=["dinner-requests"])


@router.post("", response_model=CreateDinnerRequestResult, status_code=201)
def create_dinner_request(
    request_data: DinnerRequestCreate,
    user_id: str = Depends(get_current_user_id),
    coordinator: DinnerRequestCoordinator = Depends(get_dinner_coordinator)
):
    """Send a dinner request to a group; replaces its pending request and opens meal voting"""
    return raise_for_result(coordinator.create_request(
        request_data.group_id,
        user_id,
        request_data.request_date,
        request_data.request_time,
        request_data.recipe_type,
        request_data.resolved_deadline(),
    ))


@router.get("/pending", response_model=PendingRequestsResult)
def list_pending(
    user_id: str = Depends(get_current_user_id),
    coordinator: DinnerRequestCoordinator = Depends(get_dinner_coordinator)
):
    """Pending dinner requests across all your groups"""
    return raise_for_result(coordinator.list_pending_for_user(user_id))


@router.get("/groups/{group_id}/member-responses", response_model=MemberResponsesResult)
def member_responses(
    group_id: str,
    user_id: str = Depends(check_group_member),
    coordinator: DinnerRequestCoordinator = Depends(get_dinner_coordinator)
):
    return raise_for_result(coordinator.member_responses(group_id, user_id))


@router.put("/{request_id}/response", response_model=RecordResponseResult)
def record_response(
    request_id: str,
    response_data: DinnerResponseCreate,
    user_id: str = Depends(get_current_user_id),
    coordinator: DinnerRequestCoordinator = Depends(get_dinner_coordinator)
):
    """Accept or decline; answering again overwrites your previous answer"""
    return raise_for_result(coordinator.record_response(request_id, user_id, response_data.response))


@router.get("/{request_id}/responses", response_model=ResponsesResult)
def list_responses(
    request_id: str,
    user_id: str = Depends(get_current_user_id),
    coordinator: DinnerRequestCoordinator = Depends(get_dinner_coordinator)
):
    return raise_for_result(coordinator.list_responses(request_id, user_id))


@router.post("/{request_id}/complete", response_model=CompleteDinnerRequestResult)
def complete_dinner_request(
    request_id: str,
    user_id: str = Depends(get_current_user_id),
    coordinator: DinnerRequestCoordinator = Depends(get_dinner_coordinator)
):
    return raise_for_result(coordinator.complete(request_id, user_id))


@router.post("/{request_id}/start-voting", response_model=StartVotingResult)
def start_voting(
    request_id: str,
    voting_data: StartVotingRequest = StartVotingRequest(),
    user_id: str = Depends(get_current_user_id),
    coordinator: DinnerRequestCoordinator = Depends(get_dinner_coordinator)
):
    """Open meal voting for the request's group and complete the request"""
    return raise_for_result(coordinator.start_voting(request_id, user_id, voting_data.option_count))
