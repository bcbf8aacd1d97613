from __future__ import annotations

from fastapi import APIRouter

from congregate.web.routes.attendance import router as attendance_router
from congregate.web.routes.communities import router as communities_router
from congregate.web.routes.meetings import router as meetings_router
from congregate.web.routes.members import router as members_router

router = APIRouter()
router.include_router(communities_router)
router.include_router(meetings_router)
router.include_router(attendance_router)
router.include_router(members_router)
