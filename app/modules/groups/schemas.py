from pydantic import BaseModel, field_validator
from typing import Optional, List
from datetime import datetime

from app.core.results import ServiceResult

JOIN_CODE_LENGTH = 8


class GroupCreate(BaseModel):
    name: str
    description: Optional[str] = ""

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Group name is required")
        return value.strip()


class GroupJoin(BaseModel):
    join_code: str

    @field_validator("join_code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return value.strip().upper()


class GroupResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    join_code: str
    created_by: str
    is_active: bool = True
    is_main_group: bool = False
    created_at: Optional[datetime] = None
    member_count: Optional[int] = None


class GroupMemberResponse(BaseModel):
    user_id: str
    role: str
    joined_at: Optional[datetime] = None
    name: str
    is_creator: bool = False


class GroupResult(ServiceResult):
    group: Optional[GroupResponse] = None


class GroupListResult(ServiceResult):
    groups: List[GroupResponse] = []


class MembersResult(ServiceResult):
    members: List[GroupMemberResponse] = []
