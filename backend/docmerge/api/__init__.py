from __future__ import annotations

from fastapi import APIRouter

from .merge import router as merge_router

api_router = APIRouter()
api_router.include_router(merge_router)
