"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter

from pondside.api.routes import bookings, checkins, leaderboard, qr, rods, users, webhooks, weighing
from pondside.core.config import get_settings

api_router = APIRouter(prefix=get_settings().API_PREFIX)
api_router.include_router(bookings.router)
api_router.include_router(checkins.router)
api_router.include_router(qr.router)
api_router.include_router(rods.router)
api_router.include_router(weighing.router)
api_router.include_router(leaderboard.router)
api_router.include_router(users.router)
api_router.include_router(webhooks.router)
