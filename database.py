from __future__ import annotations
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Iterable, Optional
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pydantic import ValidationError
from pymongo import DeleteOne, ReplaceOne
from pymongo.errors import PyMongoError

from config import settings
from errors import StoreWriteError
from schemas import AppSettings, Coupon, Product, Stats, default_settings, initial_products, merge_settings

logger = logging.getLogger(__name__)

PRODUCTS = "products"
COUPONS = "coupons"
CONFIG = "config"
STATS = "stats"
SETTINGS_DOC_ID = "main_settings"
STATS_DOC_ID = "general"

_client: Optional[AsyncIOMotorClient] = None
_db: Optional[AsyncIOMotorDatabase] = None

async def get_db() -> AsyncIOMotorDatabase:
    global _client, _db
    if _db is None:
        _client = AsyncIOMotorClient(settings.DATABASE_URL)
        _db = _client[settings.DATABASE_NAME]
    return _db

def close_db() -> None:
    global _client, _db
    if _client is not None:
        _client.close()
    _client = None
    _db = None

def _with_meta(data: dict[str, Any]) -> dict[str, Any]:
    return {**data, "updated_at": datetime.now(timezone.utc)}

def _to_document(item_id: str, data: dict[str, Any]) -> dict[str, Any]:
    doc = {k: v for k, v in data.items() if k != "id"}
    doc["_id"] = item_id
    return _with_meta(doc)

async def get_documents(collection_name: str, filter_dict: dict[str, Any] | None = None, limit: int = 0) -> list[dict[str, Any]]:
    db = await get_db()
    cursor = db[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    docs = []
    async for d in cursor:
        d["id"] = str(d.pop("_id"))
        docs.append(d)
    return docs

async def replace_collection(collection_name: str, records: Iterable[tuple[str, dict[str, Any]]]) -> None:
    """Make a collection hold exactly ``records`` (replace-by-diff).

    Remote documents whose id is not among the records are deleted and every
    record is upserted, all in one batched write.
    """
    db = await get_db()
    collection = db[collection_name]
    records = list(records)
    keep = {item_id for item_id, _ in records}
    ops: list[Any] = []
    async for doc in collection.find({}, {"_id": 1}):
        if doc["_id"] not in keep:
            ops.append(DeleteOne({"_id": doc["_id"]}))
    for item_id, data in records:
        ops.append(ReplaceOne({"_id": item_id}, _to_document(item_id, data), upsert=True))
    if ops:
        await collection.bulk_write(ops, ordered=False)

# Products

def _display_key(product: Product) -> int:
    return product.display_order if product.display_order is not None else sys.maxsize

async def get_products() -> list[Product]:
    try:
        docs = await get_documents(PRODUCTS)
    except PyMongoError:
        logger.warning("Error fetching products, using built-in menu", exc_info=True)
        return initial_products()
    if not docs:
        return initial_products()
    products = []
    for d in docs:
        try:
            products.append(Product(**d))
        except ValidationError:
            logger.warning("Skipping malformed product %s", d.get("id"))
    return sorted(products, key=_display_key)

async def save_products(products: list[Product]) -> None:
    try:
        await replace_collection(PRODUCTS, ((p.id, p.model_dump()) for p in products))
    except PyMongoError as exc:
        logger.exception("Error saving products")
        raise StoreWriteError("Error saving products") from exc

# Settings

async def get_settings() -> AppSettings:
    try:
        db = await get_db()
        doc = await db[CONFIG].find_one({"_id": SETTINGS_DOC_ID})
    except PyMongoError:
        logger.warning("Error fetching settings, using defaults", exc_info=True)
        return default_settings()
    if not doc:
        return default_settings()
    try:
        return merge_settings(doc)
    except ValidationError:
        logger.warning("Stored settings are malformed, using defaults")
        return default_settings()

async def save_settings(app_settings: AppSettings) -> None:
    try:
        db = await get_db()
        await db[CONFIG].replace_one(
            {"_id": SETTINGS_DOC_ID},
            _to_document(SETTINGS_DOC_ID, app_settings.model_dump()),
            upsert=True,
        )
    except PyMongoError as exc:
        logger.exception("Error saving settings")
        raise StoreWriteError("Error saving settings") from exc

# Stats & analytics

async def _increment(field: str) -> None:
    try:
        db = await get_db()
        await db[STATS].update_one({"_id": STATS_DOC_ID}, {"$inc": {field: 1}}, upsert=True)
    except PyMongoError:
        logger.warning("Error incrementing %s", field, exc_info=True)

async def increment_visits() -> None:
    await _increment("total_visits")

async def increment_leads() -> None:
    await _increment("leads_generated")

async def get_stats() -> Stats:
    try:
        db = await get_db()
        doc = await db[STATS].find_one({"_id": STATS_DOC_ID}) or {}
        product_count = await db[PRODUCTS].count_documents({})
    except PyMongoError:
        logger.warning("Error fetching stats", exc_info=True)
        return Stats()
    return Stats(
        total_visits=doc.get("total_visits") or 0,
        leads_generated=doc.get("leads_generated") or 0,
        active_products=product_count,
    )

# Coupons

async def get_coupons() -> list[Coupon]:
    try:
        docs = await get_documents(COUPONS)
    except PyMongoError:
        logger.warning("Error fetching coupons", exc_info=True)
        return []
    coupons = []
    for d in docs:
        try:
            coupons.append(Coupon(**d))
        except ValidationError:
            logger.warning("Skipping malformed coupon %s", d.get("id"))
    return coupons

async def save_coupons(coupons: list[Coupon]) -> None:
    try:
        await replace_collection(COUPONS, ((c.id, c.model_dump()) for c in coupons))
    except PyMongoError as exc:
        logger.exception("Error saving coupons")
        raise StoreWriteError("Error saving coupons") from exc
