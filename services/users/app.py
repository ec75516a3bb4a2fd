from __future__ import annotations

import copy
import logging
from threading import Lock
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from apigw.api_models import utc_now


logger = logging.getLogger("services.users")

SEED_USERS: list[dict[str, Any]] = [
    {"id": 1, "name": "Alice Johnson", "email": "alice@example.com", "role": "Admin"},
    {"id": 2, "name": "Bob Smith", "email": "bob@example.com", "role": "User"},
    {"id": 3, "name": "Charlie Brown", "email": "charlie@example.com", "role": "User"},
]

APP_STATE: dict[str, Any] = {"users": [], "next_id": 1}
_lock = Lock()


def reset_store() -> None:
    with _lock:
        APP_STATE["users"] = copy.deepcopy(SEED_USERS)
        APP_STATE["next_id"] = max(u["id"] for u in SEED_USERS) + 1


reset_store()

app = FastAPI(title="User Service")


def _fail(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


def _find(raw_id: str) -> int | None:
    try:
        uid = int(raw_id)
    except ValueError:
        return None
    for idx, u in enumerate(APP_STATE["users"]):
        if u["id"] == uid:
            return idx
    return None


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
    return {"status": "UP", "service": "User Service", "timestamp": utc_now()}


@app.get("/api/users")
def list_users() -> dict[str, Any]:
    with _lock:
        users = list(APP_STATE["users"])
    return {"success": True, "count": len(users), "data": users}


@app.get("/api/users/{user_id}")
def get_user(user_id: str):
    with _lock:
        idx = _find(user_id)
        if idx is None:
            return _fail(404, f"User with ID {user_id} not found")
        return {"success": True, "data": APP_STATE["users"][idx]}


@app.post("/api/users")
async def create_user(request: Request):
    body = await _payload(request)
    name, email, role = body.get("name"), body.get("email"), body.get("role")
    if not name or not email:
        return _fail(400, "Name and email are required")

    with _lock:
        if any(u["email"] == email for u in APP_STATE["users"]):
            return _fail(409, "User with this email already exists")
        user = {"id": APP_STATE["next_id"], "name": name, "email": email, "role": role or "User"}
        APP_STATE["next_id"] += 1
        APP_STATE["users"].append(user)

    logger.info("Created user %s", user["id"])
    return JSONResponse(
        status_code=201, content={"success": True, "message": "User created successfully", "data": user}
    )


@app.put("/api/users/{user_id}")
async def update_user(user_id: str, request: Request):
    body = await _payload(request)
    with _lock:
        idx = _find(user_id)
        if idx is None:
            return _fail(404, f"User with ID {user_id} not found")
        current = APP_STATE["users"][idx]

        email = body.get("email")
        if email and email != current["email"] and any(u["email"] == email for u in APP_STATE["users"]):
            return _fail(409, "Email already in use")

        updated = {
            **current,
            "name": body.get("name") or current["name"],
            "email": email or current["email"],
            "role": body.get("role") or current["role"],
        }
        APP_STATE["users"][idx] = updated
    return {"success": True, "message": "User updated successfully", "data": updated}


@app.delete("/api/users/{user_id}")
def delete_user(user_id: str):
    with _lock:
        idx = _find(user_id)
        if idx is None:
            return _fail(404, f"User with ID {user_id} not found")
        deleted = APP_STATE["users"].pop(idx)
    return {"success": True, "message": "User deleted successfully", "data": deleted}


if __name__ == "__main__":
    import os

    import uvicorn

    from apigw.logging_utils import setup_logging

    setup_logging()
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "3001")))
