from fastapi import APIRouter, Depends
from app.modules.conflicts.schemas import ConflictReport
from app.modules.conflicts.service import ConflictResolver
from app.core.dependencies import check_group_member, get_conflict_resolver
from app.core.results import CleanupReport, raise_for_result

router = APIRouter(prefix="/groups/{group_id}/conflicts", tags=["conflicts"])


@router.get("", response_model=ConflictReport)
def detect_conflicts(
    group_id: str,
    user_id: str = Depends(check_group_member),
    resolver: ConflictResolver = Depends(get_conflict_resolver)
):
    """Leftover sessions and requests that block a new decision cycle"""
    return raise_for_result(resolver.detect_conflicts(group_id))


@router.post("/resolve", response_model=CleanupReport)
def resolve_conflicts(
    group_id: str,
    user_id: str = Depends(check_group_member),
    resolver: ConflictResolver = Depends(get_conflict_resolver)
):
    """Delete all decision state of the group; a partial cleanup returns its per-step report"""
    report = resolver.resolve(group_id)
    if report.partial:
        return report
    return raise_for_result(report)
