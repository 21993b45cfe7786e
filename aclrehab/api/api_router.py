from fastapi import APIRouter

from aclrehab.api import api_auth, api_healthcheck, api_knee_angle, api_measurement, api_user_profile

router = APIRouter()

router.include_router(api_healthcheck.router, tags=["health-check"], prefix="/healthcheck")
router.include_router(api_auth.router, tags=["authentication"], prefix="/auth")
router.include_router(api_knee_angle.router, tags=["knee-angle"], prefix="/knee-angle")
router.include_router(api_user_profile.router, tags=["profile"], prefix="/profile")
router.include_router(api_measurement.router, tags=["measurement"], prefix="/measurements")
