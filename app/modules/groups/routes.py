from fastapi import APIRouter, Depends
from app.modules.groups.schemas import (
    GroupCreate, GroupJoin, GroupResult, GroupListResult, MembersResult
)
from app.modules.groups.service import GroupService
from app.core.dependencies import get_current_user_id, get_group_service
from app.core.results import ServiceResult, raise_for_result

router = APIRouter(prefix="/groups", tags=["groups"])


@router.post("", response_model=GroupResult, status_code=201)
def create_group(
    group_data: GroupCreate,
    user_id: str = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Create a new group; the first group you create becomes your main group"""
    return raise_for_result(service.create_group(group_data, user_id))


@router.get("", response_model=GroupListResult)
def list_groups(
    user_id: str = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """List the active groups you belong to"""
    return raise_for_result(service.list_user_groups(user_id))


@router.post("/join", response_model=GroupResult)
def join_group(
    join_data: GroupJoin,
    user_id: str = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    return raise_for_result(service.join_by_code(join_data.join_code, user_id))


@router.delete("/{group_id}", response_model=ServiceResult)
def delete_group(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Soft delete a group you created"""
    return raise_for_result(service.delete_group(group_id, user_id))


@router.post("/{group_id}/leave", response_model=ServiceResult)
def leave_group(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    return raise_for_result(service.leave_group(group_id, user_id))


@router.get("/{group_id}/members", response_model=MembersResult)
def list_members(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """List active members of a group you belong to"""
    return raise_for_result(service.list_members(group_id, user_id))


@router.put("/{group_id}/main", response_model=ServiceResult)
def set_main_group(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    return raise_for_result(service.set_main_group(group_id, user_id))
