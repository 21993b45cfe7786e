import logging
import uuid
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError

from aclrehab.core.config import settings
from aclrehab.core.security import create_access_token
from aclrehab.helpers.exception_handler import UnauthenticatedError
from aclrehab.models.model_user import User
from aclrehab.repository.repo_user import UserRepository
from aclrehab.schemas.sche_token import Token, TokenPayload

logger = logging.getLogger(__name__)

reusable_oauth2 = HTTPBearer(
    scheme_name='Authorization',
    auto_error=False
)


class AuthService:
    def __init__(self, user_repo: UserRepository = Depends()):
        self.user_repo = user_repo

    def sign_in_anonymously(self) -> Token:
        user = self.user_repo.create(User(is_anonymous=True, is_active=True))
        logger.info(f"Anonymous user created: {user.user_id}")
        return Token(access_token=create_access_token(user_id=user.user_id), user_id=str(user.user_id))

    @staticmethod
    def get_current_user(
        http_authorization_credentials: Optional[HTTPAuthorizationCredentials] = Depends(reusable_oauth2),
        user_repo: UserRepository = Depends()
    ) -> User:
        if http_authorization_credentials is None:
            raise UnauthenticatedError("Missing bearer token")
        try:
            payload = jwt.decode(
                http_authorization_credentials.credentials, settings.SECRET_KEY,
                algorithms=[settings.SECURITY_ALGORITHM]
            )
            token_data = TokenPayload(**payload)
            user_id = uuid.UUID(token_data.user_id or '')
        except (jwt.PyJWTError, ValidationError, ValueError) as e:
            logger.error(f"Credential validation failed: {e}")
            raise UnauthenticatedError("Could not validate credentials")

        user = user_repo.get_by_id(user_id)
        if not user or not user.is_active:
            logger.error(f"User not found: {user_id}")
            raise UnauthenticatedError("User not found")
        return user
