from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from apigw import health, joins, proxy
from apigw.api_models import utc_now
from apigw.backends import BackendClient, BackendDescriptor, BackendRegistry, build_registry
from apigw.logging_utils import setup_logging
from apigw.proxy import GatewayReply
from apigw.settings import settings


setup_logging()
logger = logging.getLogger("apigw.main")

# Built once; handlers receive them through dependencies so tests can swap them.
BACKENDS = build_registry(settings)
CLIENT = BackendClient(timeout_s=settings.request_timeout_s)

AVAILABLE_ENDPOINTS = [
    "GET /",
    "GET /health",
    "GET /api/services/health",
    "GET /api/dashboard",
    "GET /api/users",
    "GET /api/users/:id",
    "GET /api/users/:id/products",
    "POST /api/users",
    "PUT /api/users/:id",
    "DELETE /api/users/:id",
    "GET /api/products",
    "GET /api/products/:id",
    "GET /api/products/:id/with-owner",
    "POST /api/products",
    "PUT /api/products/:id",
    "DELETE /api/products/:id",
]


def get_backends() -> BackendRegistry:
    return BACKENDS


def get_client() -> BackendClient:
    return CLIENT


app = FastAPI(title="API Gateway", version="1.0.0")
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info("%s %s", request.method, request.url.path)
    return await call_next(request)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Unknown paths and unsupported methods on known paths look the same to callers.
    if exc.status_code in (404, 405):
        return JSONResponse(
            status_code=404,
            content={"success": False, "message": "Endpoint not found", "availableEndpoints": AVAILABLE_ENDPOINTS},
        )
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": str(exc.detail)})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    content: dict[str, object] = {"success": False, "message": "Internal server error"}
    if settings.debug:
        content["error"] = f"{type(exc).__name__}: {exc}"
    return JSONResponse(status_code=500, content=content)


def _respond(reply: GatewayReply) -> JSONResponse:
    return JSONResponse(status_code=reply.status_code, content=reply.content)


async def _body(request: Request) -> tuple[bytes, str | None]:
    return await request.body(), request.headers.get("content-type")


# --- gateway metadata ---


@app.get("/health")
def gateway_health(backends: BackendRegistry = Depends(get_backends)) -> dict:
    return {
        "status": "UP",
        "service": "API Gateway",
        "timestamp": utc_now(),
        "services": {b.name: b.base_url for b in backends.all()},
    }


@app.get("/")
def welcome() -> dict:
    return {
        "message": "Welcome to Microservice API Gateway",
        "version": app.version,
        "endpoints": {
            "users": "/api/users",
            "products": "/api/products",
            "dashboard": "/api/dashboard",
            "health": "/api/services/health",
        },
        "documentation": "See /docs for the OpenAPI description",
    }


# --- aggregation ---


@app.get("/api/services/health")
async def services_health(
    client: BackendClient = Depends(get_client), backends: BackendRegistry = Depends(get_backends)
) -> JSONResponse:
    return _respond(await health.services_health(client, backends))


@app.get("/api/dashboard")
async def dashboard(
    client: BackendClient = Depends(get_client), backends: BackendRegistry = Depends(get_backends)
) -> JSONResponse:
    return _respond(await joins.dashboard(client, backends))


@app.get("/api/products/{product_id}/with-owner")
async def product_with_owner(
    product_id: str,
    client: BackendClient = Depends(get_client),
    backends: BackendRegistry = Depends(get_backends),
) -> JSONResponse:
    return _respond(await joins.product_with_owner(client, backends, product_id))


@app.get("/api/users/{user_id}/products")
async def user_with_products(
    user_id: str,
    client: BackendClient = Depends(get_client),
    backends: BackendRegistry = Depends(get_backends),
) -> JSONResponse:
    return _respond(await joins.user_with_products(client, backends, user_id))


# --- single-resource proxy ---


@app.get("/api/{resource}")
async def list_records(
    resource: str,
    request: Request,
    client: BackendClient = Depends(get_client),
    backends: BackendRegistry = Depends(get_backends),
) -> JSONResponse:
    backend = _backend_for(backends, resource)
    return _respond(await proxy.list_records(client, backend, list(request.query_params.multi_items())))


@app.get("/api/{resource}/{record_id}")
async def get_record(
    resource: str,
    record_id: str,
    client: BackendClient = Depends(get_client),
    backends: BackendRegistry = Depends(get_backends),
) -> JSONResponse:
    return _respond(await proxy.get_record(client, _backend_for(backends, resource), record_id))


@app.post("/api/{resource}")
async def create_record(
    resource: str,
    request: Request,
    client: BackendClient = Depends(get_client),
    backends: BackendRegistry = Depends(get_backends),
) -> JSONResponse:
    backend = _backend_for(backends, resource)
    body, content_type = await _body(request)
    return _respond(await proxy.create_record(client, backend, body, content_type))


@app.put("/api/{resource}/{record_id}")
async def update_record(
    resource: str,
    record_id: str,
    request: Request,
    client: BackendClient = Depends(get_client),
    backends: BackendRegistry = Depends(get_backends),
) -> JSONResponse:
    backend = _backend_for(backends, resource)
    body, content_type = await _body(request)
    return _respond(await proxy.update_record(client, backend, record_id, body, content_type))


@app.delete("/api/{resource}/{record_id}")
async def delete_record(
    resource: str,
    record_id: str,
    client: BackendClient = Depends(get_client),
    backends: BackendRegistry = Depends(get_backends),
) -> JSONResponse:
    return _respond(await proxy.delete_record(client, _backend_for(backends, resource), record_id))


def _backend_for(backends: BackendRegistry, resource: str) -> BackendDescriptor:
    try:
        return backends.for_resource(resource)
    except KeyError:
        raise StarletteHTTPException(status_code=404) from None


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=settings.port, log_level=settings.log_level.lower())
