"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from event_management.api.routes import auth, events, subscriptions, comments, users, roles

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(events.router)
api_router.include_router(subscriptions.router)
api_router.include_router(comments.router)
api_router.include_router(users.router)
api_router.include_router(roles.router)
