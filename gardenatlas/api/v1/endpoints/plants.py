from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from gardenatlas.db.session import get_db
from gardenatlas.schemas.plant import CatalogPlantListResponse, CatalogPlantRead, CatalogPlantSummary
from gardenatlas.services.catalog import browse_catalog, get_catalog_record, search_catalog

router = APIRouter(prefix="/plants", tags=["plants"])


@router.get("", response_model=CatalogPlantListResponse)
async def list_plants(
    db: AsyncSession = Depends(get_db),
    q: str | None = Query(None, min_length=1, description="Name or scientific name search"),
    zone: str | None = Query(None, description="Only plants hardy in this zone (e.g. '7b')"),
    edible: bool | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
):
    if q:
        # Search tops up from Trefle when the local catalog has too few hits
        plants = await search_catalog(db, q.strip(), limit=per_page, edible=edible)
        items = [CatalogPlantSummary.model_validate(p) for p in plants]
        return CatalogPlantListResponse(items=items, total=len(items), page=1, per_page=per_page)

    plants, total = await browse_catalog(db, zone=zone, edible=edible, page=page, per_page=per_page)
    items = [CatalogPlantSummary.model_validate(p) for p in plants]
    return CatalogPlantListResponse(items=items, total=total, page=page, per_page=per_page)


@router.get("/{plant_id}", response_model=CatalogPlantRead)
async def get_plant(plant_id: int, db: AsyncSession = Depends(get_db)):
    plant = await get_catalog_record(db, plant_id)
    if not plant:
        raise HTTPException(status_code=404, detail="Plant not found")
    return CatalogPlantRead.model_validate(plant)
