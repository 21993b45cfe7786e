from typing import Optional
import uuid

from fastapi import Depends
from sqlalchemy.orm import Session

from aclrehab.db.base import get_db
from aclrehab.models.model_user import User


class UserRepository:
    def __init__(self, db_session: Session = Depends(get_db)):
        self.db = db_session

    def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        return self.db.query(User).filter(User.user_id == user_id).first()

    def create(self, user_data: User) -> User:
        self.db.add(user_data)
        self.db.commit()
        self.db.refresh(user_data)
        return user_data
