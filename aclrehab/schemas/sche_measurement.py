from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from aclrehab.helpers.enums import MeasurementType


class MeasurementCreateRequest(BaseModel):
    type: MeasurementType
    angle: int = Field(..., ge=0, le=180)
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    timestamp: Optional[datetime] = None


class MeasurementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    measurement_id: UUID
    type: MeasurementType
    angle: int
    confidence: Optional[float] = None
    timestamp: datetime
    week_post_op: int
    photo_url: Optional[str] = None


class ProgressItem(BaseModel):
    type: MeasurementType
    goal_angle: int
    latest_angle: Optional[int] = None
    best_angle: Optional[int] = None
    measurement_count: int = 0
    goal_reached: bool = False


class ProgressResponse(BaseModel):
    week_post_op: int
    extension: ProgressItem
    flexion: ProgressItem
