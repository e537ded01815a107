from fastapi import APIRouter
from sqlstream.core.config import get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    s = get_settings()
    return {
        "status": "ok",
        "app": s.APP_NAME,
        "env": s.ENV,
    }
