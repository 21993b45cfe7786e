from sqlalchemy import Column, String, Integer, Float, DateTime, ForeignKey, Uuid, func
import uuid

from aclrehab.models.model_base import Base


class Measurement(Base):
    __tablename__ = "measurements"

    measurement_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(20), nullable=False)
    angle = Column(Integer, nullable=False)
    confidence = Column(Float)
    timestamp = Column(DateTime, nullable=False, default=func.now())
    week_post_op = Column(Integer, nullable=False, default=0)
    photo_url = Column(String(500))
