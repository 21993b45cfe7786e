from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from aclrehab.helpers.enums import InjuryType, KneeSide


class UserProfileBase(BaseModel):
    name: str = ''
    surgery_date: Optional[date] = None
    injured_knee: Optional[KneeSide] = None
    injury_type: Optional[InjuryType] = None


class UserProfileSaveRequest(UserProfileBase):
    pass


class UserProfileResponse(UserProfileBase):
    model_config = ConfigDict(from_attributes=True)

    profile_id: UUID
    user_id: UUID
    created_at: Optional[datetime] = None
    week_post_op: int = 0
    days_until_surgery: Optional[int] = None
