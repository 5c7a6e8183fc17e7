"""
Best-effort multi-step deletion shared by conflict resolution and archiving.

Each step runs regardless of earlier failures; its outcome is recorded on the
report instead of aborting the sequence.
"""
import logging
import time
from typing import Callable, List, Sequence, Tuple

from supabase import Client

from app.core.results import CleanupReport, StepOutcome

logger = logging.getLogger(__name__)

CleanupStep = Tuple[str, Callable[[], int]]


def run_cleanup_steps(group_id: str, steps: Sequence[CleanupStep], log_prefix: str) -> CleanupReport:
    report = CleanupReport(group_id=group_id)
    started = time.monotonic()
    for name, step in steps:
        try:
            count = step()
            report.record(StepOutcome(step=name, count=count))
            logger.info(f"[{log_prefix}] {name}: removed {count} row(s) for group {group_id}")
        except Exception as e:
            message = getattr(e, "message", None) or str(e)
            report.record(StepOutcome(step=name, success=False, error=message))
            logger.error(f"[{log_prefix}] {name} failed for group {group_id}: {message}")
    report.duration_ms = int((time.monotonic() - started) * 1000)
    return report.finalize()


def request_ids(supabase: Client, table: str, group_id: str) -> List[str]:
    result = supabase.table(table)\
        .select("id")\
        .eq("group_id", group_id)\
        .execute()
    return [r["id"] for r in (result.data or [])]


def delete_by_parent(supabase: Client, table: str, parent_column: str, parent_ids: List[str]) -> int:
    if not parent_ids:
        return 0
    result = supabase.table(table)\
        .delete()\
        .in_(parent_column, parent_ids)\
        .execute()
    return len(result.data or [])


def delete_by_group(supabase: Client, table: str, group_id: str) -> int:
    result = supabase.table(table)\
        .delete()\
        .eq("group_id", group_id)\
        .execute()
    return len(result.data or [])
