import argparse
import asyncio
import logging
import os

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from syndicate.config import TerritorySeed, load_territory_seed
from syndicate.create_postgres_engine import engine
from syndicate.crud import CreateData, ReadData
from syndicate.db import Session
from syndicate.errors import StorageError
from syndicate.load_secrets import game_config_dir
from syndicate.models.schemas import City, District, Hotspot, Region

logging.basicConfig(level=logging.INFO)


async def seed_territory(seed: TerritorySeed, Session: async_sessionmaker) -> int:
    """Load the region -> district -> city -> hotspot hierarchy

    Regions that already exist by name are skipped, so seeding twice is harmless.
    Illegal hotspots start uncontrolled with nothing allocated.

    Returns:
        int: number of hotspots created
    """
    created = 0
    try:
        async with Session() as session:
            async with session.begin():
                existing = {r.name for r in await ReadData.read_regions(session)}
                for region_seed in seed.regions:
                    if region_seed.name in existing:
                        logging.info(f"Region {region_seed.name} already seeded, skipping")
                        continue
                    region = Region(name=region_seed.name)
                    for district_seed in region_seed.districts:
                        district = District(name=district_seed.name)
                        region.districts.append(district)
                        for city_seed in district_seed.cities:
                            city = City(name=city_seed.name)
                            district.cities.append(city)
                            for hotspot_seed in city_seed.hotspots:
                                city.hotspots.append(
                                    Hotspot(
                                        name=hotspot_seed.name,
                                        type=hotspot_seed.type,
                                        business_type=hotspot_seed.business_type,
                                        is_legal=hotspot_seed.is_legal,
                                        income=hotspot_seed.income if hotspot_seed.is_legal else 0,
                                    )
                                )
                                created += 1
                    await CreateData.add_region(region, session)
    except SQLAlchemyError as e:
        logging.error(f"Failed to seed territory: {e}")
        raise StorageError("failed to seed territory") from e
    logging.info(f"Seeded {created} hotspots")
    return created


def get_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create tables and seed the territory")
    parser.add_argument(
        "--config-dir", type=str, help="Directory holding territory.yaml", default=game_config_dir
    )
    return parser


async def main(config_dir: str):
    await CreateData.create_table(engine)
    seed = load_territory_seed(config_dir)
    if not seed.regions:
        logging.warning(f"No regions found in {os.path.join(config_dir, 'territory.yaml')}")
        return
    await seed_territory(seed, Session)


if __name__ == "__main__":
    parser = get_parser()
    args = parser.parse_args()
    asyncio.run(main(args.config_dir))
