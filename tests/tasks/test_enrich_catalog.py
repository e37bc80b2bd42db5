from unittest.mock import AsyncMock, patch

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gardenatlas.models.catalog import CatalogPlant
from gardenatlas.models.sync import SyncLog
from gardenatlas.services import openfarm, trefle
from gardenatlas.services.catalog import merge_records, upsert_catalog_record
from gardenatlas.services.extraction import NormalizedRecord
from gardenatlas.tasks.enrich_catalog import run_enrichment

DETAILS = {
    1: {
        "id": 1,
        "common_name": "Tomato",
        "scientific_name": "Solanum lycopersicum",
        "main_species": {
            "growth": {"hardiness_zones": {"min": "5a", "max": "9b"}, "light": 8, "soil_ph_minimum": 6.0},
        },
    },
    2: {"id": 2, "common_name": "Foxglove", "scientific_name": "Digitalis purpurea"},
    3: {"id": 3, "common_name": "Basil", "scientific_name": "Ocimum basilicum"},
}

CROPS = {
    "Tomato": {
        "attributes": {
            "slug": "tomato",
            "description": "Red fruit.",
            "companions": ["basil"],
            "growing_degree_days": 70,
        }
    },
}


async def _seed(db: AsyncSession, provider_id: int, name: str, views: int = 0) -> None:
    record = NormalizedRecord(provider_id=provider_id, name=name)
    await upsert_catalog_record(db, merge_records(record))
    await db.commit()
    if views:
        plant = (
            await db.execute(select(CatalogPlant).where(CatalogPlant.provider_id == provider_id))
        ).scalar_one()
        plant.view_count = views
        await db.commit()


async def _fake_detail(plant_id: int):
    return DETAILS.get(plant_id)


async def _fake_find_crop(name: str):
    if name == "Basil":
        raise openfarm.OpenFarmAPIError("HTTP 503 from /crops")
    return CROPS.get(name)


async def _plants(db: AsyncSession) -> dict[int, CatalogPlant]:
    result = await db.execute(select(CatalogPlant).execution_options(populate_existing=True))
    return {p.provider_id: p for p in result.scalars().all()}


def _providers(find_crop=_fake_find_crop):
    return (
        patch("gardenatlas.services.trefle.fetch_plant_detail", AsyncMock(side_effect=_fake_detail)),
        patch("gardenatlas.services.openfarm.find_crop", AsyncMock(side_effect=find_crop)),
    )


async def test_enrichment_merges_secondary_data(db: AsyncSession, session_factory):
    await _seed(db, 1, "Tomato", views=5)
    await _seed(db, 2, "Foxglove")
    await _seed(db, 3, "Basil")

    detail_patch, crop_patch = _providers()
    with detail_patch, crop_patch:
        result = await run_enrichment(session_factory=session_factory, request_delay=0)

    assert result.attempted == 3
    assert result.matched == 1
    assert result.unmatched == 1
    assert result.errors == 1

    plants = await _plants(db)
    tomato = plants[1]
    assert tomato.enriched is True
    assert tomato.secondary_slug == "tomato"
    assert tomato.description == "Red fruit."
    assert tomato.companion_plants == ["basil"]
    assert tomato.is_edible is True
    assert tomato.data_sources == ["trefle", "openfarm"]
    assert tomato.min_zone == "5a"
    assert tomato.min_zone_rank == 10
    assert tomato.sun_requirement == ["8"]
    assert tomato.soil_ph_min == 6.0
    assert tomato.days_to_maturity == 70
    assert tomato.view_count == 5

    # Attempted without a match still counts as enriched
    assert plants[2].enriched is True
    assert plants[2].secondary_slug is None

    # Provider error leaves the record for the next pass
    assert plants[3].enriched is False

    statuses = (await db.execute(select(SyncLog.source, SyncLog.status).order_by(SyncLog.id))).all()
    assert [tuple(row) for row in statuses] == [("openfarm", "started"), ("openfarm", "completed")]


async def test_most_viewed_records_go_first(db: AsyncSession, session_factory):
    await _seed(db, 2, "Foxglove", views=1)
    await _seed(db, 1, "Tomato", views=10)
    await _seed(db, 3, "Basil")

    detail_patch, crop_patch = _providers()
    with detail_patch, crop_patch as mock_find:
        result = await run_enrichment(batch_size=2, session_factory=session_factory, request_delay=0)

    assert result.attempted == 2
    assert [call.args[0] for call in mock_find.call_args_list] == ["Tomato", "Foxglove"]


async def test_enriched_records_are_not_revisited(db: AsyncSession, session_factory):
    await _seed(db, 1, "Tomato")

    detail_patch, crop_patch = _providers()
    with detail_patch, crop_patch:
        await run_enrichment(session_factory=session_factory, request_delay=0)
        second = await run_enrichment(session_factory=session_factory, request_delay=0)

    assert second.attempted == 0


async def test_missing_detail_counts_as_error(db: AsyncSession, session_factory):
    await _seed(db, 42, "Unknown")

    detail_patch, crop_patch = _providers()
    with detail_patch, crop_patch as mock_find:
        result = await run_enrichment(session_factory=session_factory, request_delay=0)

    assert result.errors == 1
    mock_find.assert_not_called()
    assert (await _plants(db))[42].enriched is False


async def test_rate_limited_detail_is_retried_later(db: AsyncSession, session_factory):
    await _seed(db, 1, "Tomato")

    with patch(
        "gardenatlas.services.trefle.fetch_plant_detail",
        AsyncMock(side_effect=trefle.RateLimitError("HTTP 429")),
    ):
        result = await run_enrichment(session_factory=session_factory, request_delay=0)

    assert result.errors == 1
    assert (await _plants(db))[1].enriched is False
