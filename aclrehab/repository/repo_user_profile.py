from typing import Optional
import uuid

from fastapi import Depends
from sqlalchemy.orm import Session

from aclrehab.db.base import get_db
from aclrehab.models.model_user_profile import UserProfile


class UserProfileRepository:
    def __init__(self, db_session: Session = Depends(get_db)):
        self.db = db_session

    def get_by_user_id(self, user_id: uuid.UUID) -> Optional[UserProfile]:
        return self.db.query(UserProfile).filter(UserProfile.user_id == user_id).first()

    def create(self, profile: UserProfile) -> UserProfile:
        self.db.add(profile)
        self.db.commit()
        self.db.refresh(profile)
        return profile

    def update(self, profile: UserProfile) -> UserProfile:
        self.db.commit()
        self.db.refresh(profile)
        return profile

    def delete_by_user_id(self, user_id: uuid.UUID) -> int:
        deleted = self.db.query(UserProfile).filter(UserProfile.user_id == user_id).delete()
        self.db.commit()
        return deleted
