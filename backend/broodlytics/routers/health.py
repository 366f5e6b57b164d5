from fastapi import APIRouter
from broodlytics import __version__
from broodlytics.config import get_settings
from broodlytics.schemas.common import ok, meta_now

router = APIRouter(prefix="/api/health", tags=["health"])

@router.get("")
def healthcheck():
    return ok(
        data={"status": "ok", "env": get_settings().ENV, "version": __version__},
        meta=meta_now()
    )
