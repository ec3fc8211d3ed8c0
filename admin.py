from __future__ import annotations
import asyncio
import logging
import re
import time
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

import database
from config import settings
from errors import AdminSaveError, DraftError, NotFoundError, StoreWriteError
from schemas import Announcement, AppSettings, Coupon, HeroConfig, Product
from store import AppState

logger = logging.getLogger(__name__)

DRIVE_HOST = "drive.google.com"
DRIVE_DIRECT_URL = "https://lh3.googleusercontent.com/d/{file_id}"
_DRIVE_FILE_PATH = re.compile(r"/file/d/([a-zA-Z0-9_-]+)")
_DRIVE_ID_PARAM = re.compile(r"[?&]id=([a-zA-Z0-9_-]+)")

def convert_drive_link(url: str) -> str:
    """Rewrite a Google Drive sharing link to a direct image link.

    Handles ``/file/d/<id>/...`` paths and ``?id=<id>`` / ``&id=<id>``
    query parameters. Anything else, drive or not, is returned unchanged.
    """
    if not url or DRIVE_HOST not in url:
        return url
    match = _DRIVE_FILE_PATH.search(url) or _DRIVE_ID_PARAM.search(url)
    if match is None:
        return url
    return DRIVE_DIRECT_URL.format(file_id=match.group(1))

def _new_id(taken: set[str]) -> str:
    stamp = int(time.time() * 1000)
    while str(stamp) in taken:
        stamp += 1
    return str(stamp)

def _edit(model: BaseModel, field: str, value: Any, *, readonly: frozenset[str] = frozenset()) -> Any:
    if field not in type(model).model_fields or field in readonly:
        raise DraftError(f"Unknown field '{field}'")
    try:
        return type(model).model_validate({**model.model_dump(), field: value})
    except ValidationError as exc:
        raise DraftError(f"Invalid value for '{field}'") from exc

class AdminPanel:
    """Local drafts of the catalog, settings and coupons.

    Edits stay in the drafts until ``save`` writes all three collections.
    Drafts are re-seeded from the state after every successful refresh.
    """

    def __init__(self, state: AppState) -> None:
        self.state = state
        self.products: list[Product] = []
        self.settings: AppSettings = state.settings
        self.coupons: list[Coupon] = []
        self.editing_id: Optional[str] = None
        self.is_saving = False
        self.saving_success = False
        self._success_timer: Optional[asyncio.TimerHandle] = None
        self.sync(state)
        self._unsubscribe = state.subscribe(self.sync)

    def sync(self, state: AppState) -> None:
        self.products = [p.model_copy() for p in state.products]
        self.settings = state.settings.model_copy(deep=True)
        self.coupons = [c.model_copy() for c in state.coupons]

    def close(self) -> None:
        self._unsubscribe()
        if self._success_timer is not None:
            self._success_timer.cancel()
            self._success_timer = None

    # Products

    def _product_index(self, product_id: str) -> int:
        for index, product in enumerate(self.products):
            if product.id == product_id:
                return index
        raise NotFoundError(f"Product '{product_id}' not found")

    def update_product(self, product_id: str, field: str, value: Any) -> Product:
        if field == "image" and isinstance(value, str):
            value = convert_drive_link(value)
        if field == "sale_price" and value == "":
            value = None
        index = self._product_index(product_id)
        updated = _edit(self.products[index], field, value, readonly=frozenset({"id"}))
        self.products[index] = updated
        return updated

    def add_product(self) -> Product:
        max_order = max((p.display_order or 0 for p in self.products), default=0)
        product = Product(
            id=_new_id({p.id for p in self.products}),
            name="New Product",
            description="",
            price=0,
            category="Cupcakes",
            image="",
            is_best_seller=False,
            display_order=max_order + 1,
        )
        self.products.append(product)
        self.editing_id = product.id
        return product

    def delete_product(self, product_id: str, confirmed: bool = False) -> bool:
        if not confirmed:
            return False
        index = self._product_index(product_id)
        del self.products[index]
        if self.editing_id == product_id:
            self.editing_id = None
        return True

    def set_editing(self, product_id: Optional[str]) -> None:
        if product_id is not None:
            self._product_index(product_id)
        self.editing_id = product_id

    def reorder_products(self, from_index: int, to_index: int) -> list[Product]:
        size = len(self.products)
        if not (0 <= from_index < size and 0 <= to_index < size):
            raise DraftError("Reorder index out of range")
        reordered = list(self.products)
        moved = reordered.pop(from_index)
        reordered.insert(to_index, moved)
        self.products = [p.model_copy(update={"display_order": i}) for i, p in enumerate(reordered)]
        return self.products

    # Settings

    def update_hero(self, field: str, value: Any) -> HeroConfig:
        if field == "image" and isinstance(value, str):
            value = convert_drive_link(value)
        hero = _edit(self.settings.hero, field, value)
        self.settings = self.settings.model_copy(update={"hero": hero})
        return hero

    def update_announcement(self, field: str, value: Any) -> Announcement:
        announcement = _edit(self.settings.announcement, field, value)
        self.settings = self.settings.model_copy(update={"announcement": announcement})
        return announcement

    # Coupons

    def _coupon_index(self, coupon_id: str) -> int:
        for index, coupon in enumerate(self.coupons):
            if coupon.id == coupon_id:
                return index
        raise NotFoundError(f"Coupon '{coupon_id}' not found")

    def add_coupon(self) -> Coupon:
        coupon = Coupon(id=_new_id({c.id for c in self.coupons}), code="NEW20", discount_percent=20, active=True)
        self.coupons.append(coupon)
        return coupon

    def update_coupon(self, coupon_id: str, field: str, value: Any) -> Coupon:
        index = self._coupon_index(coupon_id)
        updated = _edit(self.coupons[index], field, value, readonly=frozenset({"id"}))
        self.coupons[index] = updated
        return updated

    def delete_coupon(self, coupon_id: str) -> None:
        del self.coupons[self._coupon_index(coupon_id)]

    # Save

    async def save(self) -> None:
        self.is_saving = True
        try:
            results = await asyncio.gather(
                database.save_products(self.products),
                database.save_settings(self.settings),
                database.save_coupons(self.coupons),
                return_exceptions=True,
            )
        finally:
            self.is_saving = False
        for result in results:
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                if not isinstance(result, StoreWriteError):
                    logger.error("Unexpected error saving admin drafts", exc_info=result)
                raise AdminSaveError("Error saving data.") from result
        logger.info("Saved %d products and %d coupons", len(self.products), len(self.coupons))
        await self.state.refresh_data()
        self._flag_success()

    def _flag_success(self) -> None:
        if self._success_timer is not None:
            self._success_timer.cancel()
        self.saving_success = True
        self._success_timer = asyncio.get_running_loop().call_later(
            settings.SAVE_INDICATOR_SECONDS, self._clear_success
        )

    def _clear_success(self) -> None:
        self.saving_success = False
        self._success_timer = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "products": [p.model_dump() for p in self.products],
            "settings": self.settings.model_dump(),
            "coupons": [c.model_dump() for c in self.coupons],
            "editing_id": self.editing_id,
            "is_saving": self.is_saving,
            "saving_success": self.saving_success,
        }
