from fastapi import APIRouter
from engagement.api.endpoints import session, progress

api_router = APIRouter()
api_router.include_router(session.router, prefix="/session", tags=["session"])
api_router.include_router(progress.router, tags=["progress"])
