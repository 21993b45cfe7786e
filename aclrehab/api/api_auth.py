from typing import Any

from fastapi import APIRouter, Depends

from aclrehab.schemas.sche_base import DataResponse
from aclrehab.schemas.sche_token import Token
from aclrehab.services.srv_auth import AuthService

router = APIRouter()


@router.post('/anonymous', response_model=DataResponse[Token])
def sign_in_anonymously(auth_service: AuthService = Depends()) -> Any:
    return DataResponse().success_response(data=auth_service.sign_in_anonymously())
