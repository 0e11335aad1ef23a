"""API v1 router aggregation."""

from fastapi import APIRouter

from linkguard.api.v1.pages import router as pages_router
from linkguard.api.v1.audits import router as audits_router
from linkguard.api.v1.links import router as links_router

router = APIRouter(prefix="/api/v1")

router.include_router(pages_router)
router.include_router(audits_router)
router.include_router(links_router)
