from pydantic import BaseModel
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime

from app.core.results import ServiceResult

MIN_OPTIONS = 3
MAX_OPTIONS = 20
DEFAULT_OPTIONS = 12

MealRequestStatus = Literal["active", "completed", "cancelled"]
VoteValue = Literal["yes", "no"]


class OpenMealRequest(BaseModel):
    group_id: str
    option_count: int = DEFAULT_OPTIONS


class ReplaceMealRequest(BaseModel):
    group_id: str
    existing_request_id: str
    option_count: int = DEFAULT_OPTIONS


class VoteCreate(BaseModel):
    meal_option_id: str
    vote: VoteValue


class MealRequestRow(BaseModel):
    id: str
    group_id: str
    requested_by: str
    status: str
    total_options: int
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class MealOptionRow(BaseModel):
    id: str
    request_id: str
    meal_id: str
    meal_data: Dict[str, Any]
    option_order: int


class MealVoteRow(BaseModel):
    id: Optional[str] = None
    request_id: str
    meal_option_id: str
    user_id: str
    vote: str
    voted_at: Optional[datetime] = None


class ExistingRequestSummary(BaseModel):
    id: str
    requested_by: str
    requester_name: str
    created_at: Optional[datetime] = None
    total_options: int
    options: List[MealOptionRow] = []


class OptionTally(BaseModel):
    meal_option_id: str
    option_order: int
    meal_data: Dict[str, Any]
    yes_votes: int
    no_votes: int
    total_votes: int
    yes_percentage: float
    no_percentage: float


class RankedOption(OptionTally):
    not_voted_percentage: float


class VotingProgress(BaseModel):
    total_meals: int
    voted_count: int
    remaining_count: int
    next_option: Optional[MealOptionRow] = None
    is_complete: bool
    completion_percentage: int


class OpenMealRequestResult(ServiceResult):
    request: Optional[MealRequestRow] = None
    options: List[MealOptionRow] = []
    from_preload: bool = False
    replaced: bool = False


class VoteResult(ServiceResult):
    vote: Optional[MealVoteRow] = None


class TallyResult(ServiceResult):
    request_id: str
    results: List[OptionTally] = []


class TopRankedResult(ServiceResult):
    request_id: str
    total_members: int = 0
    top: List[RankedOption] = []


class CloseResult(ServiceResult):
    request: Optional[MealRequestRow] = None
    status: Optional[MealRequestStatus] = None
    fallback_used: bool = False
    options_purged: int = 0


class ActiveRequestResult(ServiceResult):
    has_active_request: bool = False
    request: Optional[MealRequestRow] = None


class OptionsResult(ServiceResult):
    options: List[MealOptionRow] = []


class UserVotesResult(ServiceResult):
    votes: List[MealVoteRow] = []
    voted_option_ids: List[str] = []


class ProgressResult(ServiceResult):
    progress: Optional[VotingProgress] = None
