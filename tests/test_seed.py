"""Tests for loading config files and seeding the territory."""
import os

import pytest

from syndicate.config import (
    CitySeed,
    DistrictSeed,
    HotspotSeed,
    RegionSeed,
    TerritorySeed,
    load_game_config,
    load_operations_pool,
    load_territory_seed,
)
from syndicate.crud import ReadData
from syndicate.seed import seed_territory

CONFIG_DIR = os.path.join(os.path.dirname(__file__), os.pardir, "config")


class TestConfigFiles:
    def test_shipped_config_loads(self):
        config = load_game_config(CONFIG_DIR)
        pool = load_operations_pool(CONFIG_DIR)
        assert config.daily_operations_count > 0
        assert pool.basic_operations
        assert all(t.is_special for t in pool.special_operations)

    def test_missing_directory_falls_back_to_defaults(self, tmp_path):
        config = load_game_config(str(tmp_path))
        assert config.daily_operations_count == 5
        assert config.mechanics.market.price_fluctuation_range == 5
        assert load_territory_seed(str(tmp_path)).regions == []


class TestSeedTerritory:
    @pytest.mark.asyncio
    async def test_seed_is_idempotent(self, Session):
        seed = load_territory_seed(CONFIG_DIR)

        assert await seed_territory(seed, Session) == 11
        assert await seed_territory(seed, Session) == 0

        async with Session() as session:
            regions = await ReadData.read_regions(session)
            hotspots = await ReadData.read_hotspots(session)
        assert [r.name for r in regions] == ["Harbor", "Uptown"]
        assert len(hotspots) == 11
        assert all(h.controller_id is None for h in hotspots)
        assert all(h.income == 0 for h in hotspots if not h.is_legal)

    @pytest.mark.asyncio
    async def test_illegal_hotspots_never_carry_income(self, Session):
        seed = TerritorySeed(
            regions=[
                RegionSeed(
                    name="Eastside",
                    districts=[
                        DistrictSeed(
                            name="Rail Yards",
                            cities=[
                                CitySeed(
                                    name="Cinder",
                                    hotspots=[
                                        HotspotSeed(
                                            name="Boxcar Casino",
                                            type="gambling",
                                            business_type="gambling",
                                            is_legal=False,
                                            income=900,
                                        )
                                    ],
                                )
                            ],
                        )
                    ],
                )
            ]
        )

        await seed_territory(seed, Session)

        async with Session() as session:
            (hotspot,) = await ReadData.read_hotspots(session)
        assert hotspot.income == 0
        assert hotspot.city_id is not None
