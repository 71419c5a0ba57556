"""
API v1 router aggregation.
"""
from fastapi import APIRouter
from app.api.v1.endpoints import auth, sync

api_router = APIRouter()

# Each router already defines its own prefix
api_router.include_router(auth.router)
api_router.include_router(sync.router)
