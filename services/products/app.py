from __future__ import annotations

import copy
import logging
from threading import Lock
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from apigw.api_models import utc_now


logger = logging.getLogger("services.products")

SEED_PRODUCTS: list[dict[str, Any]] = [
    {"id": 1, "name": "Laptop", "price": 999.99, "category": "Electronics", "stock": 50, "ownerId": 1},
    {"id": 2, "name": "Smartphone", "price": 699.99, "category": "Electronics", "stock": 100, "ownerId": 2},
    {"id": 3, "name": "Coffee Maker", "price": 89.99, "category": "Home", "stock": 30, "ownerId": 1},
    {"id": 4, "name": "Desk Chair", "price": 249.99, "category": "Furniture", "stock": 20, "ownerId": 3},
]

APP_STATE: dict[str, Any] = {"products": [], "next_id": 1}
_lock = Lock()


def reset_store() -> None:
    with _lock:
        APP_STATE["products"] = copy.deepcopy(SEED_PRODUCTS)
        APP_STATE["next_id"] = max(p["id"] for p in SEED_PRODUCTS) + 1


reset_store()

app = FastAPI(title="Product Service")


class _Invalid(ValueError):
    pass


def _fail(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


def _find(raw_id: str) -> int | None:
    try:
        pid = int(raw_id)
    except ValueError:
        return None
    for idx, p in enumerate(APP_STATE["products"]):
        if p["id"] == pid:
            return idx
    return None


def _number(value: Any, field: str, cast=float):
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise _Invalid(f"{field.capitalize()} must be a number") from None


async def _payload(request: Request) -> dict[str, Any]:
    try:
        data = await request.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


@app.exception_handler(StarletteHTTPException)
async def not_found(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code in (404, 405):
        return _fail(404, "Endpoint not found")
    return _fail(exc.status_code, str(exc.detail))


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "UP", "service": "Product Service", "timestamp": utc_now()}


@app.get("/api/products")
def list_products(category: str | None = None) -> dict[str, Any]:
    with _lock:
        products = list(APP_STATE["products"])
    if category:
        products = [p for p in products if str(p.get("category", "")).lower() == category.lower()]
    return {"success": True, "count": len(products), "data": products}


@app.get("/api/products/{product_id}")
def get_product(product_id: str):
    with _lock:
        idx = _find(product_id)
        if idx is None:
            return _fail(404, f"Product with ID {product_id} not found")
        return {"success": True, "data": APP_STATE["products"][idx]}


@app.post("/api/products")
async def create_product(request: Request):
    body = await _payload(request)
    if not body.get("name") or not body.get("price"):
        return _fail(400, "Name and price are required")
    try:
        price = _number(body["price"], "price")
        stock = _number(body.get("stock") or 0, "stock", int)
    except _Invalid as e:
        return _fail(400, str(e))
    if price < 0:
        return _fail(400, "Price cannot be negative")

    with _lock:
        product = {
            "id": APP_STATE["next_id"],
            "name": body["name"],
            "price": price,
            "category": body.get("category") or "General",
            "stock": stock,
            "ownerId": body.get("ownerId") or 1,
        }
        APP_STATE["next_id"] += 1
        APP_STATE["products"].append(product)

    logger.info("Created product %s", product["id"])
    return JSONResponse(
        status_code=201, content={"success": True, "message": "Product created successfully", "data": product}
    )


@app.put("/api/products/{product_id}")
async def update_product(product_id: str, request: Request):
    body = await _payload(request)
    with _lock:
        idx = _find(product_id)
        if idx is None:
            return _fail(404, f"Product with ID {product_id} not found")
        current = APP_STATE["products"][idx]

        try:
            price = _number(body["price"], "price") if body.get("price") is not None else current["price"]
            stock = _number(body["stock"], "stock", int) if body.get("stock") is not None else current["stock"]
        except _Invalid as e:
            return _fail(400, str(e))
        if price < 0:
            return _fail(400, "Price cannot be negative")
        if stock < 0:
            return _fail(400, "Stock cannot be negative")

        updated = {
            **current,
            "name": body.get("name") or current["name"],
            "price": price,
            "category": body.get("category") or current["category"],
            "stock": stock,
            "ownerId": body.get("ownerId") or current["ownerId"],
        }
        APP_STATE["products"][idx] = updated
    return {"success": True, "message": "Product updated successfully", "data": updated}


@app.delete("/api/products/{product_id}")
def delete_product(product_id: str):
    with _lock:
        idx = _find(product_id)
        if idx is None:
            return _fail(404, f"Product with ID {product_id} not found")
        deleted = APP_STATE["products"].pop(idx)
    return {"success": True, "message": "Product deleted successfully", "data": deleted}


if __name__ == "__main__":
    import os

    import uvicorn

    from apigw.logging_utils import setup_logging

    setup_logging()
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "3002")))
