from fastapi import APIRouter

from cloudbox.api.v1.endpoints import files, folders, shares, users

api_router = APIRouter()

# Include routers
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(folders.router, prefix="/folders", tags=["folders"])
api_router.include_router(files.router, prefix="/files", tags=["files"])
api_router.include_router(shares.router, tags=["shares"])
