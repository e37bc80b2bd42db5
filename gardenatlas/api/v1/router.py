from fastapi import APIRouter

from gardenatlas.api.v1.endpoints import plants, sync, zones

api_router = APIRouter()

api_router.include_router(zones.router)
api_router.include_router(plants.router)
api_router.include_router(sync.router)
