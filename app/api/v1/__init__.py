"""API v1 routes."""

from fastapi import APIRouter

from app.api.v1 import admin, auth, health, realtime, transactions

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])

# Mounted at the application root, outside the REST prefix.
socket_router = APIRouter()
socket_router.include_router(realtime.router, prefix="/ws", tags=["realtime"])
