"""
API Router v1

This module aggregates all API routes and provides the main API router
that gets mounted to the FastAPI application in main.py.
"""

from fastapi import APIRouter, Request

from app.api.v1.activities import router as activities_router
from app.api.v1.emergency_requests import router as emergency_requests_router
from app.api.v1.medical_services import router as medical_services_router
from app.api.v1.notifications import router as notifications_router
from app.api.v1.response_teams import router as response_teams_router
from app.api.v1.settings import router as settings_router
from app.api.v1.stats import router as stats_router
from app.api.v1.system_status import router as system_status_router
from app.api.v1.users import router as users_router
from app.core.security import get_app_settings

# =============================================================================
# Main API Router
# =============================================================================

api_router = APIRouter()

COMMON_RESPONSES = {
    400: {"description": "Validation error"},
    401: {"description": "Authentication required"},
    403: {"description": "Unauthorized access"},
    500: {"description": "Internal server error"},
}

# =============================================================================
# Include Sub-Routers
# =============================================================================

api_router.include_router(
    users_router,
    prefix="/users",
    tags=["users"],
    responses={**COMMON_RESPONSES, 409: {"description": "Username already exists"}},
)

api_router.include_router(
    emergency_requests_router,
    prefix="/emergency-requests",
    tags=["emergency requests"],
    responses={**COMMON_RESPONSES, 404: {"description": "Emergency request not found"}},
)

api_router.include_router(
    response_teams_router,
    prefix="/response-teams",
    tags=["response teams"],
    responses={**COMMON_RESPONSES, 404: {"description": "Response team not found"}},
)

api_router.include_router(
    medical_services_router,
    prefix="/medical-services",
    tags=["medical services"],
    responses={**COMMON_RESPONSES, 404: {"description": "Medical service not found"}},
)

api_router.include_router(
    system_status_router,
    prefix="/system-status",
    tags=["system status"],
    responses={**COMMON_RESPONSES, 404: {"description": "System status not found"}},
)

api_router.include_router(activities_router, prefix="/activities", tags=["activities"])

api_router.include_router(
    notifications_router,
    prefix="/notifications",
    tags=["notifications"],
    responses={**COMMON_RESPONSES, 404: {"description": "Notification not found"}},
)

api_router.include_router(
    settings_router,
    prefix="/settings",
    tags=["settings"],
    responses={**COMMON_RESPONSES, 404: {"description": "Settings not found"}},
)

api_router.include_router(stats_router, prefix="/stats", tags=["stats"])


# API Info endpoint
@api_router.get("/info", tags=["system"])
async def api_info(request: Request):
    """API information endpoint."""
    config = get_app_settings(request)
    return {
        "name": config.APP_NAME,
        "version": config.APP_VERSION,
        "description": config.APP_DESCRIPTION,
        "environment": config.ENVIRONMENT,
        "storage_backend": request.app.state.store.backend,
        "docs_url": "/docs" if config.SHOW_DOCS else None,
    }
