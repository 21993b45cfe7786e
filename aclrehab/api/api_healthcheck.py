from fastapi import APIRouter, Request

from aclrehab.schemas.sche_base import ResponseSchemaBase

router = APIRouter()


@router.get("", response_model=ResponseSchemaBase)
async def get(request: Request):
    estimation = 'enabled' if getattr(request.app.state, 'knee_angle_agent', None) else 'disabled'
    return ResponseSchemaBase().custom_response(True, f"Healthy (knee angle estimation {estimation})")
