"""
Group Session Cleanup Script
Clears leftover vote sessions, pending dinner requests and archived results
for groups that are stuck mid-cycle. Uses the service-role client so row
policies do not hide other members' rows.

Usage:
    python -m app.scripts.cleanup_group_sessions                 # every active group with conflicts
    python -m app.scripts.cleanup_group_sessions <group_id> ...  # only these groups
    python -m app.scripts.cleanup_group_sessions --dry-run       # report only
"""

import argparse
import sys
import logging
from typing import List

from app.database.supabase_client import SupabaseClient
from app.modules.conflicts.service import ConflictResolver
from supabase import Client

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def active_group_ids(supabase: Client) -> List[str]:
    result = supabase.table("groups")\
        .select("id")\
        .eq("is_active", True)\
        .execute()
    return [g["id"] for g in (result.data or [])]


def cleanup_groups(resolver: ConflictResolver, group_ids: List[str], dry_run: bool = False) -> int:
    """Resolve every group that reports conflicts; returns the number of groups that failed."""
    failed = 0
    for group_id in group_ids:
        report = resolver.detect_conflicts(group_id)
        if not report.success:
            logger.error(f"Could not check group {group_id}: {report.error}")
            failed += 1
            continue
        if not report.has_conflicts:
            logger.debug(f"Group {group_id} is clean")
            continue

        logger.info(f"Group {group_id} has conflicts: {', '.join(report.categories())}")
        if dry_run:
            continue
        cleanup = resolver.resolve(group_id)
        if cleanup.success:
            logger.info(f"Group {group_id}: {cleanup.message}")
        else:
            logger.error(f"Group {group_id}: {cleanup.error}")
            failed += 1
    return failed


def main(argv=None):
    parser = argparse.ArgumentParser(description="Clear stuck decision cycles")
    parser.add_argument("group_ids", nargs="*", help="Groups to clean (default: all active groups)")
    parser.add_argument("--dry-run", action="store_true", help="Only report conflicts")
    args = parser.parse_args(argv)

    try:
        supabase = SupabaseClient.get_service_client()
        group_ids = args.group_ids or active_group_ids(supabase)
        logger.info(f"Checking {len(group_ids)} group(s)...")
        failed = cleanup_groups(ConflictResolver(supabase), group_ids, dry_run=args.dry_run)
        if failed:
            logger.error(f"{failed} group(s) could not be cleaned")
            sys.exit(1)
        logger.info("Cleanup completed successfully!")
    except Exception as e:
        logger.error(f"Error during cleanup: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
