"""Wipe the products collection and reseed it with the fixed menu.

Run manually: ``python seed_menu.py``. Product ids are slugs of the names.
"""
from __future__ import annotations
import asyncio
import logging
import re
import sys

import database
from config import configure_logging

logger = logging.getLogger("seed_menu")

MENU_DATA: list[dict] = [
    # Cupcakes
    {"name": "Oreo Cupcake", "price": 250, "category": "Cupcakes", "description": "Soft chocolate cupcake with creamy Oreo frosting.", "image": "https://placehold.co/400x400/3E2723/FFF?text=Oreo+Cupcake"},
    {"name": "Red Velvet Cupcake", "price": 250, "category": "Cupcakes", "description": "Velvety cupcake with cream cheese frosting.", "image": "https://placehold.co/400x400/800020/FFF?text=Red+Velvet"},
    {"name": "Fudge Cupcake", "price": 250, "category": "Cupcakes", "description": "Filled with soft fudge and rich chocolate frosting.", "image": "https://placehold.co/400x400/3E2723/FFF?text=Fudge+Cupcake"},
    # Pastries & brownies
    {"name": "Molten Lava", "price": 350, "category": "Cakes & Pastries", "description": "Warm chocolate cake with a flowing center.", "image": "https://placehold.co/400x400/3E2723/FFF?text=Molten+Lava"},
    {"name": "Hazel Brownie", "price": 300, "category": "Cakes & Pastries", "description": "Fudgy brownie blended with roasted hazelnuts.", "image": "https://placehold.co/400x400/3E2723/FFF?text=Hazel+Brownie"},
    {"name": "Fudge Pastry", "price": 350, "category": "Cakes & Pastries", "description": "Layered with rich fudge and smooth frosting.", "image": "https://placehold.co/400x400/3E2723/FFF?text=Fudge+Pastry"},
    {"name": "Caramel Pastry", "price": 350, "category": "Cakes & Pastries", "description": "Layered with smooth caramel cream.", "image": "https://placehold.co/400x400/D2691E/FFF?text=Caramel+Pastry"},
    {"name": "Mini Puffs", "price": 100, "category": "Cakes & Pastries", "description": "Light airy pastry bites with cream.", "image": "https://placehold.co/400x400/FFF/000?text=Mini+Puffs"},
    # Breads & tarts
    {"name": "Chocolate Bread", "price": 300, "category": "Breads", "description": "Fluffy bread infused with rich chocolate.", "image": "https://placehold.co/400x400/3E2723/FFF?text=Choco+Bread"},
    {"name": "Banana Bread", "price": 300, "category": "Breads", "description": "Moist bread made with ripe bananas.", "image": "https://placehold.co/400x400/FFD700/000?text=Banana+Bread"},
    {"name": "Chocolate Tart", "price": 300, "category": "Cakes & Pastries", "description": "Crisp buttery crust filled with smooth ganache.", "image": "https://placehold.co/400x400/3E2723/FFF?text=Choco+Tart"},
    {"name": "Lemon Tart", "price": 300, "category": "Cakes & Pastries", "description": "Zesty tangy lemon curd filling.", "image": "https://placehold.co/400x400/FFFACD/000?text=Lemon+Tart"},
    # Sundaes
    {"name": "Nutella Sundae", "price": 350, "category": "Sundaes", "description": "Layers of ice cream, Nutella and crunchy toppings.", "image": "https://placehold.co/400x400/3E2723/FFF?text=Nutella+Sundae"},
    {"name": "Red Velvet Sundae", "price": 350, "category": "Sundaes", "description": "Layers of red velvet cake and ice cream.", "image": "https://placehold.co/400x400/800020/FFF?text=Red+Velvet+Sundae"},
    {"name": "Tres Leches", "price": 380, "category": "Sundaes", "description": "Sponge cake soaked in three types of milk.", "image": "https://placehold.co/400x400/FFF/000?text=Tres+Leches"},
]

def slugify(name: str) -> str:
    slug = re.sub(r"\s+", "-", name.lower())
    return re.sub(r"[^a-z0-9\-]", "", slug)

async def reset_products(menu: list[dict] | None = None) -> int:
    menu = MENU_DATA if menu is None else menu
    db = await database.get_db()
    products = db[database.PRODUCTS]

    logger.info("Clearing existing products...")
    deleted = await products.delete_many({})
    logger.info("Deleted %d existing products.", deleted.deleted_count)

    logger.info("Uploading new products...")
    for item in menu:
        product_id = slugify(item["name"])
        await products.replace_one(
            {"_id": product_id},
            {**item, "_id": product_id, "is_best_seller": False},
            upsert=True,
        )
        logger.info("  Added: %s (ID: %s)", item["name"], product_id)
    return len(menu)

async def _main() -> int:
    try:
        count = await reset_products()
    except Exception:
        logger.exception("Error during database reset")
        return 1
    finally:
        database.close_db()
    logger.info("Success! All %d products uploaded.", count)
    return 0

if __name__ == "__main__":
    configure_logging()
    sys.exit(asyncio.run(_main()))
