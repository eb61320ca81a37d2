from fastapi import APIRouter

from zipfinder.routers.catalog import router as catalog_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(catalog_router)
