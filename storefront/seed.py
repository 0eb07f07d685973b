# storefront/seed.py
import asyncio
from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import func, select

from .database import Database, create_database
from .models import Product

logger = structlog.get_logger(__name__)

SOLAR_LAMP_DESCRIPTION = """Illuminate Your Outdoors with the <strong>Bright LED Solar Wall Light</strong> for Enhanced Security

Introducing our powerful and efficient <strong>Bright LED Solar Wall Light</strong>, designed to bring superior illumination and peace of mind to your outdoor spaces. This sleek, black wall lamp and sconce is the perfect solution for enhancing security and visibility around your home, garden, or pathways.

<strong>Key Features:</strong>

<strong>Brilliant LED Illumination:</strong> Equipped with bright, energy-efficient LEDs, this wall light provides powerful illumination, ensuring clear visibility and deterring unwanted visitors.

<strong>Solar-Powered Efficiency:</strong> Harnessing the sun's energy, this light charges during the day and automatically illuminates your surroundings at night. Say goodbye to electricity bills and complicated wiring!

<strong>Durable & Weatherproof Design:</strong> Built to withstand the elements, this outdoor light is fully waterproof, ensuring reliable performance rain or shine.

<strong>Easy Installation:</strong> With no wiring required, simply mount it on any wall and let the sun do the rest.
<strong>Sleek Black Finish:</strong> Its modern black design seamlessly blends with any exterior decor.
<strong>Bulb Included:</strong> Ready to use right out of the box, with bulbs pre-installed for your convenience.
Add a layer of safety and style to your outdoor areas with this high-quality, eco-friendly solar wall light.

<strong>Country of Origin:</strong> India
<strong>Net Quantity (N):</strong> 1
"""

SEED_PRODUCTS: List[Dict[str, Any]] = [
    {
        "name": "Bright LED Solar Wall Lights for Outdoor",
        "description": SOLAR_LAMP_DESCRIPTION,
        "price": Decimal("359"),
        "original_price": Decimal("999"),
        "category": "Men",
        "image": "solar-lamp-1.png,solar-lamp-2.png,solar-lamp-3.png,solar-lamp-4.png",
        "stock": 50,
    },
    {
        "name": "Silk Saree",
        "description": "<strong>Banarasi silk saree</strong> with <strong>zari border</strong>",
        "price": Decimal("4999"),
        "original_price": Decimal("6999"),
        "category": "Women",
        "image": "saree1.jpg",
        "stock": 20,
    },
    {
        "name": "Casual Shirt",
        "description": "<strong>Slim-fit cotton shirt</strong> for daily wear",
        "price": Decimal("899"),
        "original_price": Decimal("1299"),
        "category": "Men",
        "image": "shirt1.jpg",
        "stock": 100,
    },
]


async def seed_catalog(db: Database, products: Optional[List[Dict[str, Any]]] = None) -> int:
    """Insert the seed catalog if the products table is empty.

    Returns the number of products inserted (0 when the catalog already has rows).
    """
    products = SEED_PRODUCTS if products is None else products
    async with db.session() as session:
        async with session.begin():
            count = await session.scalar(select(func.count()).select_from(Product))
            if count:
                logger.info("Catalog already seeded", products=count)
                return 0
            session.add_all([Product(**p) for p in products])
    logger.info("Catalog seeded", products=len(products))
    return len(products)


async def _main() -> None:
    from .config import Settings
    from .log import configure_logging

    settings = Settings()
    configure_logging(settings.ENVIRONMENT, settings.LOG_LEVEL)
    db = create_database(settings.database_url())
    try:
        await db.create_all()
        await seed_catalog(db)
    finally:
        await db.dispose()


if __name__ == "__main__":
    asyncio.run(_main())
