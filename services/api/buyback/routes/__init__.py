"""API routes."""

from fastapi import APIRouter

from buyback.routes import admin, buyback

api_router = APIRouter()

# Public buyback endpoints (storefront)
api_router.include_router(buyback.router, prefix="/v1/buyback", tags=["buyback"])

# Admin endpoints (pricing sync, margins, inventory)
api_router.include_router(admin.router, prefix="/v1/admin", tags=["admin"])
