from fastapi import APIRouter

from backoffice import __version__

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    return {"status": "healthy", "version": __version__}
