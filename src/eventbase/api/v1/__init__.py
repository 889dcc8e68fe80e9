"""API v1 module."""

from fastapi import APIRouter

from eventbase.api.v1.endpoints import (
    health,
    marketplace,
    refunds,
    resale,
    uploads,
    verification,
)

api_router = APIRouter()

api_router.include_router(marketplace.router)
api_router.include_router(resale.router)
api_router.include_router(verification.router)
api_router.include_router(refunds.router)
api_router.include_router(uploads.router)
api_router.include_router(health.router)
