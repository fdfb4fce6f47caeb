from fastapi import APIRouter

from routes import goals, libraries, users

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(users.router)
api_router.include_router(goals.router)
api_router.include_router(libraries.router)
