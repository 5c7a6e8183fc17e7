from pydantic import BaseModel
from typing import Any, Dict, List, Optional
from datetime import datetime

from app.core.results import ServiceResult, CleanupReport


class MemberRollup(BaseModel):
    user_id: str
    name: str
    dinner_response: str = "pending"  # accepted | declined | pending
    yes_votes: int = 0
    no_votes: int = 0


class TerminatedSessionRow(BaseModel):
    id: Optional[str] = None
    group_id: str
    group_name: str
    top_results: List[Dict[str, Any]] = []
    member_responses: List[Dict[str, Any]] = []
    terminated_at: Optional[datetime] = None


class ArchiveResult(ServiceResult):
    session: Optional[TerminatedSessionRow] = None


class FetchSessionResult(ServiceResult):
    found: bool = False
    session: Optional[TerminatedSessionRow] = None


class ClearSessionResult(ServiceResult):
    deleted: int = 0


class TerminateResult(ServiceResult):
    request_id: str
    status: Optional[str] = None
    fallback_used: bool = False
    session: Optional[TerminatedSessionRow] = None
    purge: Optional[CleanupReport] = None
