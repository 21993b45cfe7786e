from sqlalchemy import Column, DateTime, Boolean, Uuid, func
import uuid

from aclrehab.models.model_base import Base


class User(Base):
    __tablename__ = "users"

    user_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    is_anonymous = Column(Boolean, default=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=func.now())
