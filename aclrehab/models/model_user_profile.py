from sqlalchemy import Column, String, Date, DateTime, ForeignKey, Uuid, func
import uuid

from aclrehab.models.model_base import Base


class UserProfile(Base):
    __tablename__ = "user_profile"

    profile_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.user_id", ondelete="CASCADE"), unique=True, nullable=False)
    name = Column(String(255), nullable=False, default='')
    surgery_date = Column(Date)
    injured_knee = Column(String(10))
    injury_type = Column(String(50))
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
