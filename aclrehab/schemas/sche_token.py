from typing import Optional

from pydantic import BaseModel


class Token(BaseModel):
    access_token: str
    token_type: str = 'bearer'
    user_id: str


class TokenPayload(BaseModel):
    user_id: Optional[str] = None
