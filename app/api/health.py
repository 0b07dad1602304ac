from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy", "service": "baydisplay"}


@router.get("/")
async def root() -> dict[str, str | dict[str, str]]:
    return {
        "service": "BayDisplay - MATCHi bay message service",
        "version": "0.1.0",
        "endpoints": {
            "health": "/health",
            "webhooks": "/hook",
            "messages": "/courts/{court}/message",
        },
    }
