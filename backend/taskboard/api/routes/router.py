"""API router aggregator.

All endpoint routers are included here and mounted under /api by the
application factory.
"""

from fastapi import APIRouter

from taskboard.api.routes import auth, tasks

router = APIRouter()

# =============================================================================
# Authentication
# =============================================================================

router.include_router(auth.router, prefix="/auth", tags=["auth"])

# =============================================================================
# Resources
# =============================================================================

router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
