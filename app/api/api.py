"""
API router configuration.
"""
from fastapi import APIRouter

# Import endpoint routers
from .endpoints import auth, templates, campaigns, statistics, webhooks

api_router = APIRouter()

# Include endpoint routers
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(templates.router, prefix="/templates", tags=["templates"])
api_router.include_router(campaigns.router, prefix="/campaigns", tags=["campaigns"])
api_router.include_router(statistics.router, prefix="/statistics", tags=["statistics"])
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])


@api_router.get("")
async def api_info():
    """API information endpoint."""
    return {
        "message": "MailPilot API",
        "version": "1.0.0",
        "endpoints": {
            "auth": "/api/auth",
            "templates": "/api/templates",
            "campaigns": "/api/campaigns",
            "statistics": "/api/statistics",
            "webhooks": "/api/webhooks",
        }
    }
