"""API module - Routes and dependencies"""
from .deps import get_current_user_dep, get_db_dep, get_clock_dep, require_permission

__all__ = ["get_current_user_dep", "get_db_dep", "get_clock_dep", "require_permission"]
