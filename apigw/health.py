from __future__ import annotations

import asyncio
import logging

from .api_models import HealthEntry, ServicesHealthResponse
from .backends import BackendClient, BackendDescriptor, BackendRegistry
from .proxy import GatewayReply
from .settings import settings


logger = logging.getLogger(__name__)

HEALTHY = "HEALTHY"
DEGRADED = "DEGRADED"


async def probe(client: BackendClient, backend: BackendDescriptor, timeout_s: float | None = None) -> HealthEntry:
    """Call a backend health endpoint.

    Expected JSON: {"status": ..., "service": ..., "timestamp": ...}.
    Any failure (timeout, non-2xx, transport error) becomes a DOWN entry.
    """
    result = await client.call(
        backend,
        "GET",
        "/health",
        timeout_s=settings.health_timeout_s if timeout_s is None else timeout_s,
    )
    if not result.ok:
        logger.warning("%s is DOWN: %s", backend.display_name, result.error)
        return HealthEntry(status="DOWN", error=result.error)

    payload = result.body if isinstance(result.body, dict) else {}
    extra = {k: v for k, v in payload.items() if k not in {"status", "error"}}
    return HealthEntry(status="UP", **extra)


async def check_all(
    client: BackendClient, backends: BackendRegistry, timeout_s: float | None = None
) -> tuple[dict[str, HealthEntry], str]:
    """Probe every backend concurrently; one outage never hides the others."""
    targets = backends.all()
    entries = await asyncio.gather(*(probe(client, b, timeout_s) for b in targets))
    health_map = {b.name: e for b, e in zip(targets, entries)}
    overall = HEALTHY if all(e.status == "UP" for e in entries) else DEGRADED
    return health_map, overall


async def services_health(client: BackendClient, backends: BackendRegistry) -> GatewayReply:
    health_map, overall = await check_all(client, backends)
    body = ServicesHealthResponse(
        services={name: entry.as_dict() for name, entry in health_map.items()},
        overallStatus=overall,
    )
    return GatewayReply(200 if overall == HEALTHY else 503, body.model_dump())
