"""API router aggregation"""
from fastapi import APIRouter
from app.api.v1.endpoints import auth_endpoints, admin_endpoints

api_router = APIRouter()

api_router.include_router(auth_endpoints.router,  prefix="/auth",  tags=["Authentication"])
api_router.include_router(admin_endpoints.router, prefix="/admin", tags=["Admin"])
