import time
import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import Body, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cart_store import CartStore
from config import Settings, get_settings
from database import JsonCollection
from errors import StoreError, field_errors
from logger import build_logger, configure_logging
from product_store import ProductStore
from schemas import (
    Cart,
    DeleteConfirmation,
    Product,
    ProductIn,
    ProductPage,
    ProductUpdate,
    QuantityIn,
    QuantityUpdate,
)

logger = build_logger(__name__)

STATUS_BY_KIND = {
    "validation": 400,
    "not_found": 404,
    "conflict": 409,
    "io": 500,
    "parse": 500,
    "internal": 500,
}


def error_body(message: str, status: int, details=None) -> dict:
    return {
        "error": message,
        "status": status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "details": details or [],
    }


# Dependencies
def get_product_store(request: Request) -> ProductStore:
    return request.app.state.product_store


def get_cart_store(request: Request) -> CartStore:
    return request.app.state.cart_store


def create_app(settings: Settings) -> FastAPI:
    settings.validate_limits()

    app = FastAPI(title=settings.app_name)
    app.state.settings = settings
    app.state.product_store = ProductStore(JsonCollection(settings.products_path))
    app.state.cart_store = CartStore(JsonCollection(settings.carts_path))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        message = f"HTTP {response.status_code} - {request.method} {request.url.path} ({duration_ms:.1f}ms)"
        if response.status_code >= 400:
            logger.error(message)
        else:
            logger.info(message)
        return response

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        status = STATUS_BY_KIND.get(exc.kind, 500)
        if status >= 500:
            logger.error(f"{exc.kind} failure on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=status, content=error_body(exc.message, status, exc.details))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        details = field_errors(exc)
        logger.warning(f"Validation error for request {request.url.path}: {details}")
        fields = ", ".join(dict.fromkeys(d["field"] for d in details))
        return JSONResponse(status_code=400, content=error_body(f"Invalid request: {fields}", 400, details))

    # ---------- Basic Routes ----------

    @app.get("/")
    def read_root():
        return {"message": f"{settings.app_name} running"}

    @app.get("/test")
    def test_storage():
        response = {"backend": "✅ Running"}
        for name, store in (("products", app.state.product_store), ("carts", app.state.cart_store)):
            collection = store.collection
            if not collection.exists():
                response[name] = "⚠️ Not created yet"
                continue
            try:
                response[name] = f"✅ {len(collection.read())} records"
            except StoreError as e:
                response[name] = f"❌ {str(e)[:80]}"
        return response

    # ---------- Product Routes ----------

    @app.get("/api/products", response_model=ProductPage)
    def list_products(
        category: Optional[str] = None,
        min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
        max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
        sort: Optional[str] = Query(None, pattern="^(asc|desc)$"),
        page: int = Query(settings.default_page, ge=1),
        limit: Optional[int] = Query(None, ge=1, le=settings.max_limit),
        store: ProductStore = Depends(get_product_store),
    ):
        filters = {
            "category": category,
            "minPrice": min_price,
            "maxPrice": max_price,
            "sort": sort,
            "page": page,
            "limit": limit,
        }
        return store.list({k: v for k, v in filters.items() if v is not None})

    @app.get("/api/products/{pid}", response_model=Product)
    def get_product(pid: uuid.UUID, store: ProductStore = Depends(get_product_store)):
        return store.get_by_id(str(pid))

    @app.post("/api/products", response_model=Product, status_code=201)
    def create_product(p: ProductIn, store: ProductStore = Depends(get_product_store)):
        return store.add(p)

    @app.put("/api/products/{pid}", response_model=Product)
    def update_product(pid: uuid.UUID, payload: ProductUpdate, store: ProductStore = Depends(get_product_store)):
        return store.update(str(pid), payload)

    @app.delete("/api/products/{pid}", response_model=DeleteConfirmation)
    def delete_product(pid: uuid.UUID, store: ProductStore = Depends(get_product_store)):
        return store.delete(str(pid))

    # ---------- Cart Routes ----------

    @app.post("/api/carts", response_model=Cart, status_code=201)
    def create_cart(store: CartStore = Depends(get_cart_store)):
        return store.create()

    @app.get("/api/carts/{cid}", response_model=Cart)
    def get_cart(cid: str, store: CartStore = Depends(get_cart_store)):
        return store.get_by_id(cid)

    @app.post("/api/carts/{cid}/product/{pid}", response_model=Cart)
    def add_to_cart(
        cid: str,
        pid: uuid.UUID,
        payload: Optional[QuantityIn] = Body(None),
        store: CartStore = Depends(get_cart_store),
    ):
        quantity = payload.quantity if payload else 1
        return store.add_product(cid, str(pid), quantity)

    @app.put("/api/carts/{cid}/product/{pid}", response_model=Cart)
    def update_cart_item(
        cid: str,
        pid: uuid.UUID,
        payload: QuantityUpdate,
        store: CartStore = Depends(get_cart_store),
    ):
        return store.update_quantity(cid, str(pid), payload.quantity)

    @app.delete("/api/carts/{cid}/product/{pid}", response_model=Cart)
    def remove_from_cart(cid: str, pid: uuid.UUID, store: CartStore = Depends(get_cart_store)):
        return store.remove_product(cid, str(pid))

    @app.delete("/api/carts/{cid}", response_model=Cart)
    def clear_cart(cid: str, store: CartStore = Depends(get_cart_store)):
        return store.clear(cid)

    return app


settings = get_settings()
configure_logging(settings.effective_log_level, settings.log_file)
app = create_app(settings)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
