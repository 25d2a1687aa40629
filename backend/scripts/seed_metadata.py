"""Seed phone brands, models, colors and locations. Safe to run repeatedly."""

import asyncio
import os
import sys
from uuid import uuid4

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from lostphones.domain.metadata.models import District, PhoneBrand, PhoneColor, PhoneModel, Town
from lostphones.infra import postgres
from lostphones.infra.metadata_repo import PostgresMetadataRepository

BRANDS = {
    "Samsung": ["Galaxy S21", "Galaxy S22", "Galaxy S23", "Galaxy Note 20", "Galaxy A53"],
    "Apple": ["iPhone 12", "iPhone 13", "iPhone 14", "iPhone 15", "iPhone SE"],
    "Google": ["Pixel 6", "Pixel 7", "Pixel 8"],
    "Xiaomi": ["Redmi Note 12", "Mi 13", "Poco F5"],
    "OnePlus": [],
    "Huawei": [],
    "Oppo": [],
    "Vivo": [],
    "Motorola": [],
    "Nokia": [],
}

COLORS = {
    "Black": "#000000",
    "White": "#FFFFFF",
    "Silver": "#C0C0C0",
    "Gold": "#D4AF37",
    "Blue": "#1E4FD8",
}

LOCATIONS = {
    "Colombo": ["Colombo", "Dehiwala", "Maharagama", "Nugegoda", "Kottawa"],
    "Gampaha": ["Gampaha", "Negombo", "Kadawatha", "Wattala"],
    "Kandy": ["Kandy", "Peradeniya", "Katugastota"],
    "Galle": ["Galle", "Hikkaduwa", "Ambalangoda"],
}


async def seed(repo: PostgresMetadataRepository) -> None:
    if await repo.list_brands():
        print("Brands already exist, skipping phone metadata")
    else:
        for brand_name, model_names in BRANDS.items():
            brand = await repo.save_brand(PhoneBrand(id=str(uuid4()), name=brand_name))
            for model_name in model_names:
                model = await repo.save_model(PhoneModel(id=str(uuid4()), name=model_name, brand_id=brand.id))
                for color_name, hex_code in COLORS.items():
                    await repo.save_color(
                        PhoneColor(id=str(uuid4()), name=color_name, model_id=model.id, hex_code=hex_code)
                    )
        print(f"Seeded {len(BRANDS)} brands")

    if await repo.list_districts(active_only=False):
        print("Districts already exist, skipping locations")
        return
    for district_name, town_names in LOCATIONS.items():
        district = await repo.save_district(District(id=str(uuid4()), name=district_name))
        for town_name in town_names:
            await repo.save_town(Town(id=str(uuid4()), name=town_name, district_id=district.id))
    print(f"Seeded {len(LOCATIONS)} districts")


async def main() -> None:
    pool = await postgres.init_pool()
    try:
        await seed(PostgresMetadataRepository(pool))
    finally:
        await postgres.close_pool()


if __name__ == "__main__":
    asyncio.run(main())
