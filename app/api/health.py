"""
Health check endpoints.
"""
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Request

from app.core.config import settings
from app.schemas.common import HealthCheck, DetailedHealthCheck, ApiResponse
from app.services.email_service import EmailGateway, get_email_gateway
from app.core.logging import get_logger

logger = get_logger(__name__)
health_router = APIRouter()

VERSION = "1.0.0"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def check_database(request: Request) -> dict:
    try:
        await request.app.state.database.ping()
        logger.info("Database health check passed")
        return {"status": "healthy", "message": "Database connection successful"}
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        return {"status": "unhealthy", "message": f"Database connection failed: {str(e)}"}


@health_router.get("", response_model=ApiResponse[HealthCheck])
async def health_check():
    """Basic health check endpoint."""
    return ApiResponse(
        success=True,
        data=HealthCheck(
            status="healthy",
            timestamp=_now(),
            version=VERSION,
            environment=settings.environment,
        )
    )


@health_router.get("/detailed", response_model=ApiResponse[DetailedHealthCheck])
async def detailed_health_check(
    request: Request,
    gateway: EmailGateway = Depends(get_email_gateway),
):
    """Detailed health check with service statuses."""
    services = {"database": await check_database(request)}

    services["email_provider"] = {
        "status": "healthy" if gateway.is_configured else "not_configured",
        "message": "SendGrid API key configured" if gateway.is_configured else "SendGrid API key missing",
    }

    overall_status = services["database"]["status"]
    if overall_status == "unhealthy":
        raise HTTPException(status_code=503, detail="Service unhealthy")

    return ApiResponse(
        success=True,
        data=DetailedHealthCheck(
            status=overall_status,
            timestamp=_now(),
            version=VERSION,
            environment=settings.environment,
            services=services,
        )
    )


@health_router.get("/readiness")
async def readiness_check(request: Request):
    """Kubernetes readiness probe endpoint."""
    database = await check_database(request)
    if database["status"] != "healthy":
        raise HTTPException(
            status_code=503,
            detail="Critical services are not available",
        )

    return {
        "status": "ready",
        "message": "Application is ready to serve requests"
    }


@health_router.get("/liveness")
async def liveness_check():
    """Kubernetes liveness probe endpoint."""
    return {
        "status": "alive",
        "message": "Application process is alive"
    }
