import logging
from contextlib import asynccontextmanager
from typing import Any, Optional
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

import auth
import catalog
import database
from admin import AdminPanel
from config import configure_logging, settings
from errors import StorefrontError
from sessions import SessionRegistry, StorefrontSession

logger = logging.getLogger(__name__)

registry = SessionRegistry()

@asynccontextmanager
async def lifespan(_: FastAPI):
    try:
        yield
    finally:
        await registry.close()
        database.close_db()

app = FastAPI(title="Mousse & Melts API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# issued here so error responses carry the cookie too
@app.middleware("http")
async def issue_session_cookie(request: Request, call_next):
    response = await call_next(request)
    new_session_id = getattr(request.state, "new_session_id", None)
    if new_session_id:
        response.set_cookie(settings.SESSION_COOKIE, new_session_id, httponly=True, samesite="lax")
    return response

@app.exception_handler(StorefrontError)
async def storefront_error_handler(_: Request, exc: StorefrontError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

# Session dependencies

async def get_session(request: Request) -> StorefrontSession:
    session_id = request.cookies.get(settings.SESSION_COOKIE)
    session = await registry.get_or_create(session_id)
    if session.id != session_id:
        request.state.new_session_id = session.id
    return session

async def require_admin(session: StorefrontSession = Depends(get_session)) -> AdminPanel:
    if not session.state.is_admin:
        session.state.navigate("/login")
        raise HTTPException(status_code=401, detail="Admin login required")
    return session.admin_panel()

def cart_view(session: StorefrontSession) -> dict[str, Any]:
    state = session.state
    snapshot = state.snapshot()
    return {
        "items": snapshot["cart"],
        "totals": snapshot["totals"],
        "applied_coupon": snapshot["applied_coupon"],
        "is_cart_open": state.is_cart_open,
        "recommended": [catalog.product_card(p) for p in catalog.recommended_products(state.products, state.cart)],
    }

# Health

@app.get("/")
async def root():
    return {"message": "Mousse & Melts Backend Running"}

@app.get("/test")
async def test():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if settings.DATABASE_URL else "❌ Not Set",
        "database_name": settings.DATABASE_NAME,
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        db = await database.get_db()
        response["collections"] = (await db.list_collection_names())[:10]
        response["database"] = "✅ Available"
        response["connection_status"] = "Connected"
    except Exception as e:
        response["database"] = f"⚠️  Error: {str(e)[:80]}"
    return response

# Session state & router

class NavigateIn(BaseModel):
    path: str

@app.get("/api/state")
async def get_state(session: StorefrontSession = Depends(get_session)):
    return session.state.snapshot()

@app.post("/api/navigate")
async def navigate(payload: NavigateIn, session: StorefrontSession = Depends(get_session)):
    session.state.navigate(payload.path)
    return session.state.snapshot()

@app.post("/api/history/back")
async def history_back(session: StorefrontSession = Depends(get_session)):
    session.state.back()
    return session.state.snapshot()

@app.post("/api/history/forward")
async def history_forward(session: StorefrontSession = Depends(get_session)):
    session.state.forward()
    return session.state.snapshot()

@app.post("/api/refresh")
async def refresh(session: StorefrontSession = Depends(get_session)):
    return {"refreshed": await session.state.refresh_data()}

# Catalog & hero

@app.get("/api/catalog")
async def get_catalog(category: Optional[str] = Query(None), session: StorefrontSession = Depends(get_session)):
    return catalog.catalog_view(session.state.products, category)

@app.get("/api/hero")
async def get_hero(session: StorefrontSession = Depends(get_session)):
    return catalog.resolve_hero(session.state.settings, session.state.products)

@app.post("/api/hero/action")
async def hero_action(session: StorefrontSession = Depends(get_session)):
    result = catalog.hero_action(session.state)
    product = result["product"]
    if product is not None:
        session.state.notification.show(product)
        product = product.model_dump()
    return {"action": result["action"], "product": product}

@app.get("/api/announcement")
async def get_announcement(session: StorefrontSession = Depends(get_session)):
    return {"announcement": catalog.announcement_banner(session.state.settings)}

# Cart

class CartItemIn(BaseModel):
    product_id: str

class QuantityIn(BaseModel):
    delta: int

class ToggleIn(BaseModel):
    open: Optional[bool] = None

@app.get("/api/cart")
async def get_cart(session: StorefrontSession = Depends(get_session)):
    return cart_view(session)

@app.post("/api/cart/items")
async def add_cart_item(payload: CartItemIn, session: StorefrontSession = Depends(get_session)):
    product = session.state.find_product(payload.product_id)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Product not found: {payload.product_id}")
    session.state.add_to_cart(product)
    session.state.notification.show(product)
    return cart_view(session)

@app.patch("/api/cart/items/{product_id}")
async def update_cart_item(product_id: str, payload: QuantityIn, session: StorefrontSession = Depends(get_session)):
    if session.state.update_quantity(product_id, payload.delta) is None:
        raise HTTPException(status_code=404, detail=f"Not in cart: {product_id}")
    return cart_view(session)

@app.delete("/api/cart/items/{product_id}")
async def remove_cart_item(product_id: str, session: StorefrontSession = Depends(get_session)):
    session.state.remove_from_cart(product_id)
    return cart_view(session)

@app.delete("/api/cart")
async def clear_cart(session: StorefrontSession = Depends(get_session)):
    session.state.clear_cart()
    return cart_view(session)

@app.post("/api/cart/toggle")
async def toggle_cart(payload: ToggleIn, session: StorefrontSession = Depends(get_session)):
    return {"is_cart_open": session.state.toggle_cart(payload.open)}

@app.post("/api/cart/checkout")
async def quick_checkout(session: StorefrontSession = Depends(get_session)):
    handoff = await session.state.quick_checkout()
    return {"url": handoff.url, "message": handoff.message, "current_path": session.state.current_path}

@app.delete("/api/cart/notification")
async def dismiss_notification(session: StorefrontSession = Depends(get_session)):
    session.state.notification.close()
    return session.state.notification.to_dict()

# Coupon & checkout

class CouponIn(BaseModel):
    code: str

class CheckoutIn(BaseModel):
    name: str
    address: str

@app.post("/api/coupon")
async def apply_coupon(payload: CouponIn, session: StorefrontSession = Depends(get_session)):
    session.state.apply_coupon(payload.code)
    return cart_view(session)

@app.delete("/api/coupon")
async def remove_coupon(session: StorefrontSession = Depends(get_session)):
    session.state.remove_coupon()
    return cart_view(session)

@app.post("/api/checkout")
async def checkout(payload: CheckoutIn, session: StorefrontSession = Depends(get_session)):
    handoff = await session.state.checkout(payload.name, payload.address)
    return {"url": handoff.url, "message": handoff.message, "current_path": session.state.current_path}

# Login gate

class LoginIn(BaseModel):
    username: str
    password: str

@app.post("/api/login")
async def login(payload: LoginIn, session: StorefrontSession = Depends(get_session)):
    await auth.login(session.state, payload.username, payload.password)
    return {"is_admin": True, "current_path": session.state.current_path}

@app.post("/api/logout")
async def logout(session: StorefrontSession = Depends(get_session)):
    auth.logout(session.state)
    session.drop_admin_panel()
    return {"is_admin": False, "current_path": session.state.current_path}

# Admin

class FieldUpdate(BaseModel):
    field: str
    value: Any = None

class ReorderIn(BaseModel):
    from_index: int
    to_index: int

class EditingIn(BaseModel):
    product_id: Optional[str] = None

@app.get("/api/admin/dashboard")
async def admin_dashboard(panel: AdminPanel = Depends(require_admin)):
    return catalog.dashboard(panel.state.stats)

@app.get("/api/admin/draft")
async def admin_draft(panel: AdminPanel = Depends(require_admin)):
    return panel.to_dict()

@app.post("/api/admin/products")
async def admin_add_product(panel: AdminPanel = Depends(require_admin)):
    return panel.add_product().model_dump()

@app.patch("/api/admin/products/{product_id}")
async def admin_update_product(product_id: str, payload: FieldUpdate, panel: AdminPanel = Depends(require_admin)):
    return panel.update_product(product_id, payload.field, payload.value).model_dump()

@app.delete("/api/admin/products/{product_id}")
async def admin_delete_product(product_id: str, confirm: bool = Query(False), panel: AdminPanel = Depends(require_admin)):
    return {"deleted": panel.delete_product(product_id, confirmed=confirm)}

@app.post("/api/admin/products/reorder")
async def admin_reorder_products(payload: ReorderIn, panel: AdminPanel = Depends(require_admin)):
    return [p.model_dump() for p in panel.reorder_products(payload.from_index, payload.to_index)]

@app.put("/api/admin/editing")
async def admin_set_editing(payload: EditingIn, panel: AdminPanel = Depends(require_admin)):
    panel.set_editing(payload.product_id)
    return {"editing_id": panel.editing_id}

@app.patch("/api/admin/hero")
async def admin_update_hero(payload: FieldUpdate, panel: AdminPanel = Depends(require_admin)):
    return panel.update_hero(payload.field, payload.value).model_dump()

@app.patch("/api/admin/announcement")
async def admin_update_announcement(payload: FieldUpdate, panel: AdminPanel = Depends(require_admin)):
    return panel.update_announcement(payload.field, payload.value).model_dump()

@app.post("/api/admin/coupons")
async def admin_add_coupon(panel: AdminPanel = Depends(require_admin)):
    return panel.add_coupon().model_dump()

@app.patch("/api/admin/coupons/{coupon_id}")
async def admin_update_coupon(coupon_id: str, payload: FieldUpdate, panel: AdminPanel = Depends(require_admin)):
    return panel.update_coupon(coupon_id, payload.field, payload.value).model_dump()

@app.delete("/api/admin/coupons/{coupon_id}")
async def admin_delete_coupon(coupon_id: str, panel: AdminPanel = Depends(require_admin)):
    panel.delete_coupon(coupon_id)
    return {"deleted": True}

@app.post("/api/admin/save")
async def admin_save(panel: AdminPanel = Depends(require_admin)):
    await panel.save()
    return panel.to_dict()

if __name__ == "__main__":
    import uvicorn
    configure_logging()
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
