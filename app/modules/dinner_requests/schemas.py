from pydantic import BaseModel, model_validator
from typing import List, Literal, Optional
from datetime import date, datetime, time

from app.core.results import ServiceResult

RECIPE_TYPES = ("random", "wishlist", "swipe")
RecipeType = Literal["random", "wishlist", "swipe"]
ResponseValue = Literal["accepted", "declined"]


class DinnerRequestCreate(BaseModel):
    group_id: str
    request_date: date
    request_time: time
    recipe_type: RecipeType = "random"
    deadline: Optional[datetime] = None
    deadline_time: Optional[time] = None  # combined with request_date when deadline is not given

    @model_validator(mode="after")
    def require_deadline(self):
        if self.deadline is None and self.deadline_time is None:
            raise ValueError("Either deadline or deadline_time must be set")
        return self

    def resolved_deadline(self) -> datetime:
        if self.deadline is not None:
            return self.deadline
        return datetime.combine(self.request_date, self.deadline_time)


class DinnerResponseCreate(BaseModel):
    response: ResponseValue


class StartVotingRequest(BaseModel):
    option_count: int = 20


class DinnerRequestRow(BaseModel):
    id: str
    group_id: str
    requester_id: str
    request_date: date
    request_time: time
    recipe_type: str
    deadline: datetime
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DinnerResponseRow(BaseModel):
    request_id: str
    user_id: str
    response: str
    responded_at: Optional[datetime] = None


class Readiness(BaseModel):
    is_ready: bool
    total_members: int
    responses_count: int
    accepted_count: int
    required_responses: int
    group_id: str


class PendingDinnerRequest(BaseModel):
    id: str
    group_id: str
    group_name: str
    requester_id: str
    requester_name: str
    request_date: date
    request_time: time
    recipe_type: str
    deadline: datetime
    status: str
    created_at: Optional[datetime] = None


class MemberResponse(BaseModel):
    user_id: str
    response: str  # accepted | declined | pending
    responded_at: Optional[datetime] = None


class ResponseSummary(BaseModel):
    total: int
    accepted: int
    declined: int
    pending: int


class CreateDinnerRequestResult(ServiceResult):
    request: Optional[DinnerRequestRow] = None
    meal_session_created: bool = False
    meal_request_id: Optional[str] = None
    meal_session_error: Optional[str] = None


class RecordResponseResult(ServiceResult):
    response: Optional[DinnerResponseRow] = None
    readiness: Optional[Readiness] = None


class PendingRequestsResult(ServiceResult):
    requests: List[PendingDinnerRequest] = []
    total_count: int = 0


class CompleteDinnerRequestResult(ServiceResult):
    request: Optional[DinnerRequestRow] = None
    transitioned: bool = False


class ResponsesResult(ServiceResult):
    responses: List[DinnerResponseRow] = []
    total_members: int = 0
    responses_count: int = 0


class MemberResponsesResult(ServiceResult):
    has_active_request: bool = False
    active_request: Optional[DinnerRequestRow] = None
    member_responses: List[MemberResponse] = []
    summary: Optional[ResponseSummary] = None


class StartVotingResult(ServiceResult):
    meal_request_id: Optional[str] = None
    dinner_request_completed: bool = False
