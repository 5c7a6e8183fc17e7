from fastapi import APIRouter, Depends
from app.modules.sessions.schemas import FetchSessionResult, ClearSessionResult, TerminateResult
from app.modules.sessions.service import SessionArchiver
from app.core.dependencies import get_current_user_id, check_group_member, get_session_archiver
from app.core.results import raise_for_result

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("/meal-requests/{request_id}/terminate", response_model=TerminateResult)
def terminate_session(
    request_id: str,
    user_id: str = Depends(get_current_user_id),
    archiver: SessionArchiver = Depends(get_session_archiver)
):
    """End voting: archive the top results and member roll-up, then wipe working state"""
    return raise_for_result(archiver.terminate(request_id, user_id))


@router.get("/groups/{group_id}", response_model=FetchSessionResult)
def get_terminated_session(
    group_id: str,
    user_id: str = Depends(check_group_member),
    archiver: SessionArchiver = Depends(get_session_archiver)
):
    """The group's last concluded decision; found=false when there is none"""
    return raise_for_result(archiver.fetch(group_id))


@router.delete("/groups/{group_id}", response_model=ClearSessionResult)
def clear_terminated_session(
    group_id: str,
    user_id: str = Depends(check_group_member),
    archiver: SessionArchiver = Depends(get_session_archiver)
):
    return raise_for_result(archiver.clear(group_id))
