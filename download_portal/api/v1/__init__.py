"""API v1 routes."""

from fastapi import APIRouter

from download_portal.api.v1.endpoints import auth, contact, downloads, files

# JSON API, mounted under API_PREFIX
api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(files.router, prefix="/files", tags=["Files"])

# Mounted at the application root
download_router = APIRouter()

download_router.include_router(downloads.router, prefix="/downloads", tags=["Downloads"])
download_router.include_router(contact.router, tags=["Contact"])
