"""API Routes module"""
from fastapi import APIRouter

from .locks import router as locks_router
from .memos import router as memos_router
from .rbac import router as rbac_router
from .users import router as users_router
from .activity import router as activity_router

# Main API router
api_router = APIRouter()

api_router.include_router(locks_router, prefix="/locks", tags=["Locks"])
api_router.include_router(memos_router, prefix="/memos", tags=["Memos"])
api_router.include_router(rbac_router, prefix="/rbac", tags=["RBAC"])
api_router.include_router(users_router, prefix="/users", tags=["Users"])
api_router.include_router(activity_router, prefix="/activity", tags=["Activity"])

__all__ = ["api_router"]
