from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence
from urllib.parse import quote

from .backends import BackendClient, BackendDescriptor, ProxyResult


@dataclass(frozen=True)
class GatewayReply:
    """Status code and JSON content handed back to the inbound caller."""

    status_code: int
    content: Any


def reply_from(result: ProxyResult) -> GatewayReply:
    """Mirror a backend outcome; an unreachable backend becomes a 500."""
    if result.ok:
        return GatewayReply(result.status_or(200), result.body)
    return GatewayReply(result.status_or(500), result.error_body())


def record_path(backend: BackendDescriptor, record_id: str | int | None = None) -> str:
    base = f"/api/{backend.resource}"
    if record_id is None:
        return base
    return f"{base}/{quote(str(record_id), safe='')}"


def _json_headers(body: bytes | None, content_type: str | None) -> dict[str, str] | None:
    if not body:
        return None
    return {"Content-Type": content_type or "application/json"}


async def relay(
    client: BackendClient,
    backend: BackendDescriptor,
    method: str,
    path: str,
    query: Sequence[tuple[str, str]] | None = None,
    body: bytes | None = None,
    content_type: str | None = None,
) -> GatewayReply:
    result = await client.call(
        backend,
        method,
        path,
        query=query,
        body=body or None,
        headers=_json_headers(body, content_type),
    )
    return reply_from(result)


async def list_records(
    client: BackendClient, backend: BackendDescriptor, query: Sequence[tuple[str, str]] | None = None
) -> GatewayReply:
    return await relay(client, backend, "GET", record_path(backend), query=query)


async def get_record(client: BackendClient, backend: BackendDescriptor, record_id: str) -> GatewayReply:
    return await relay(client, backend, "GET", record_path(backend, record_id))


async def create_record(
    client: BackendClient, backend: BackendDescriptor, body: bytes | None, content_type: str | None = None
) -> GatewayReply:
    return await relay(client, backend, "POST", record_path(backend), body=body, content_type=content_type)


async def update_record(
    client: BackendClient,
    backend: BackendDescriptor,
    record_id: str,
    body: bytes | None,
    content_type: str | None = None,
) -> GatewayReply:
    return await relay(client, backend, "PUT", record_path(backend, record_id), body=body, content_type=content_type)


async def delete_record(client: BackendClient, backend: BackendDescriptor, record_id: str) -> GatewayReply:
    return await relay(client, backend, "DELETE", record_path(backend, record_id))
