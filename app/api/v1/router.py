# app/api/v1/router.py
# Master router -- registers all endpoint routers under /api/v1
# Each endpoint module registers its own router with its own prefix and tags

from fastapi import APIRouter

from app.api.v1.endpoints import (
    admin,
    applications,
    auth,
    connections,
    documents,
    requests,
    stats,
    students,
    tutors,
)

api_router = APIRouter()

# Auth
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])

# Profiles
api_router.include_router(students.router, prefix="/students", tags=["Students"])
api_router.include_router(tutors.router, prefix="/tutors", tags=["Tutors"])

# Matching
api_router.include_router(requests.router, prefix="/requests", tags=["Tutoring Requests"])
api_router.include_router(applications.router, prefix="/applications", tags=["Applications"])
api_router.include_router(connections.router, prefix="/connections", tags=["Connections"])

# Verification documents
api_router.include_router(documents.router, prefix="/documents", tags=["Documents"])

# Admin
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])

# Stats
api_router.include_router(stats.router, prefix="/stats", tags=["Stats"])
