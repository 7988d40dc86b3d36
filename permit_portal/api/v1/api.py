"""
Main API Router for the Water Permit Portal v1
Includes all endpoint routers
"""

from fastapi import APIRouter

from permit_portal.api.v1.endpoints import auth
from permit_portal.api.v1.endpoints import applications
from permit_portal.api.v1.endpoints import permits
from permit_portal.api.v1.endpoints import inspections
from permit_portal.api.v1.endpoints import dashboard
from permit_portal.api.v1.endpoints import lookups
from permit_portal.api.v1.endpoints import users

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(applications.router, prefix="/applications", tags=["Applications"])
api_router.include_router(permits.router, prefix="/permits", tags=["Permits"])
api_router.include_router(inspections.router, prefix="/inspections", tags=["Inspections"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
api_router.include_router(lookups.router, prefix="/lookups", tags=["Lookups"])
