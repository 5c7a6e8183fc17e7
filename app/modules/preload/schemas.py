from pydantic import BaseModel
from typing import List, Optional


class PreloadGroup(BaseModel):
    group_id: str
    group_name: Optional[str] = None
    has_active_meal_request: bool = False


class WarmRequest(BaseModel):
    groups: List[PreloadGroup] = []


class WarmResult(BaseModel):
    groups_warmed: int
    browse_meals: int
    failed: List[str] = []
