from pydantic import BaseModel
from typing import Any, Dict, List, Optional

from app.core.results import ServiceResult

ACTIVE_MEAL_REQUEST = "active_meal_request"
PENDING_DINNER_REQUEST = "pending_dinner_request"
TERMINATED_RESULTS = "terminated_results"


class Conflict(BaseModel):
    type: str
    count: int
    rows: List[Dict[str, Any]] = []


class ConflictReport(ServiceResult):
    group_id: str
    conflicts: List[Conflict] = []
    has_conflicts: bool = False
    requires_cleanup: bool = False

    def categories(self) -> List[str]:
        return [c.type for c in self.conflicts]

    def get(self, conflict_type: str) -> Optional[Conflict]:
        for conflict in self.conflicts:
            if conflict.type == conflict_type:
                return conflict
        return None
