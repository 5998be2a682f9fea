# catalog/main.py
from contextlib import asynccontextmanager
from typing import List

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Path, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from .config import get_settings
from .core import ProductIn, StockAdjustmentOut, _make_product
from .database import InMemoryProductStore
from .errors import ConflictError, NotFoundError, StorageError, ValidationError
from .logging_config import configure_logging
from .models import MAX_STOCK, Product
from .sql import SqlProductStore
from .storage import ProductStore


async def build_store() -> ProductStore:
    settings = get_settings()
    if settings.CATALOG_STORAGE_BACKEND == "memory":
        return InMemoryProductStore()
    store = SqlProductStore.from_url(settings.CATALOG_DATABASE_URL, echo=settings.CATALOG_ECHO_SQL)
    await store.create_schema()
    return store


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    store = await build_store()
    app.state.store = store
    logger.info("product store ready ({})", store.name)
    try:
        yield
    finally:
        await store.close()


app = FastAPI(title="product-catalog", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_store(request: Request) -> ProductStore:
    return request.app.state.store


# ---------------------------
# Error mapping
# ---------------------------
@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    logger.warning("id conflict on {} {}: {}", request.method, request.url.path, exc)
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.opt(exception=exc).error("storage failure on {} {}", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error."})


def _not_found(product_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Product with ID '{product_id}' not found.")


# ---------------------------
# Product endpoints
# ---------------------------
@app.get("/products", response_model=List[Product])
async def list_products(store: ProductStore = Depends(get_store)):
    return await store.list_all()


@app.get("/products/{product_id}", response_model=Product)
async def get_product(product_id: str, store: ProductStore = Depends(get_store)):
    product = await store.get_by_id(product_id)
    if product is None:
        raise _not_found(product_id)
    return product


@app.post("/products", status_code=201, response_model=Product)
async def create_product(
    payload: ProductIn, request: Request, response: Response, store: ProductStore = Depends(get_store)
):
    product = _make_product(await store.generate_unique_id(), payload)
    await store.insert(product)
    response.headers["Location"] = str(request.url_for("get_product", product_id=product.id))
    logger.info("created product {}", product.id)
    return product


@app.put("/products/{product_id}", status_code=204)
async def update_product(product_id: str, payload: ProductIn, store: ProductStore = Depends(get_store)):
    if await store.get_by_id(product_id) is None:
        raise _not_found(product_id)
    await store.update(_make_product(product_id, payload))
    return Response(status_code=204)


@app.delete("/products/{product_id}", status_code=204)
async def delete_product(product_id: str, store: ProductStore = Depends(get_store)):
    if not await store.exists(product_id):
        raise _not_found(product_id)
    await store.delete(product_id)
    logger.info("deleted product {}", product_id)
    return Response(status_code=204)


# ---------------------------
# Stock endpoints
# ---------------------------
@app.put("/products/decrement-stock/{product_id}/{quantity}", response_model=StockAdjustmentOut)
async def decrement_stock(
    product_id: str, quantity: int = Path(..., le=MAX_STOCK), store: ProductStore = Depends(get_store)
):
    if quantity <= 0:
        raise HTTPException(status_code=400, detail="quantity must be > 0")
    product = await store.get_by_id(product_id)
    if product is None:
        raise _not_found(product_id)
    if quantity > product.stock_available:
        raise HTTPException(
            status_code=400,
            detail=f"insufficient stock: requested {quantity}, available {product.stock_available}",
        )
    stock = await store.decrement_stock_level(product_id, quantity)
    if stock is None:
        raise HTTPException(status_code=400, detail="insufficient stock")
    return _stock_message(product_id, "Stock decremented successfully.", stock)


@app.put("/products/add-to-stock/{product_id}/{quantity}", response_model=StockAdjustmentOut)
async def add_to_stock(
    product_id: str, quantity: int = Path(..., le=MAX_STOCK), store: ProductStore = Depends(get_store)
):
    if quantity <= 0:
        raise HTTPException(status_code=400, detail="quantity must be > 0")
    product = await store.get_by_id(product_id)
    if product is None:
        raise _not_found(product_id)
    if quantity > MAX_STOCK - product.stock_available:
        raise HTTPException(status_code=400, detail=f"stock cannot exceed {MAX_STOCK}")
    stock = await store.add_stock_level(product_id, quantity)
    if stock is None:
        # deleted or refilled between the lookup and the write
        if not await store.exists(product_id):
            raise _not_found(product_id)
        raise HTTPException(status_code=400, detail=f"stock cannot exceed {MAX_STOCK}")
    return _stock_message(product_id, "Stock added successfully.", stock)


def _stock_message(product_id: str, text: str, stock: int) -> StockAdjustmentOut:
    return StockAdjustmentOut(
        message=f"{text} New stock: {stock}",
        product_id=product_id,
        stock_available=stock,
    )


def serve() -> None:
    settings = get_settings()
    uvicorn.run("catalog.main:app", host=settings.API_HOST, port=settings.API_PORT)


if __name__ == "__main__":
    serve()
