from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

import httpx

from .settings import Settings, settings


logger = logging.getLogger(__name__)

TRANSPORT_FAILURE = "transport"
BACKEND_ERROR = "backend"


@dataclass(frozen=True)
class BackendDescriptor:
    name: str  # key used in the health map, e.g. "userService"
    base_url: str
    resource: str  # collection served under /api/<resource>
    display_name: str

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"


@dataclass(frozen=True)
class BackendRegistry:
    """Read-only set of backends, built once at startup."""

    users: BackendDescriptor
    products: BackendDescriptor

    def all(self) -> tuple[BackendDescriptor, ...]:
        # declaration order drives the health map order
        return (self.users, self.products)

    def for_resource(self, resource: str) -> BackendDescriptor:
        for b in self.all():
            if b.resource == resource:
                return b
        raise KeyError(resource)


def build_registry(cfg: Settings = settings) -> BackendRegistry:
    return BackendRegistry(
        users=BackendDescriptor(
            name="userService",
            base_url=cfg.user_service_url,
            resource="users",
            display_name="User Service",
        ),
        products=BackendDescriptor(
            name="productService",
            base_url=cfg.product_service_url,
            resource="products",
            display_name="Product Service",
        ),
    )


@dataclass(frozen=True)
class ProxyResult:
    """Outcome of one backend call.

    Exactly one of ``body`` (success) or ``error`` (failure) is meaningful.
    ``status_code`` is None when the backend was never reached.
    """

    status_code: int | None
    body: Any = None
    error: str | None = None

    def __post_init__(self) -> None:
        if self.error is not None and self.body is not None:
            raise ValueError("ProxyResult carries either a body or an error, not both")

    @classmethod
    def success(cls, status_code: int, body: Any) -> "ProxyResult":
        return cls(status_code=status_code, body=body)

    @classmethod
    def failure(cls, message: str, status_code: int | None = None) -> "ProxyResult":
        return cls(status_code=status_code, error=message)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> str | None:
        if self.ok:
            return None
        return TRANSPORT_FAILURE if self.status_code is None else BACKEND_ERROR

    def status_or(self, default: int = 500) -> int:
        return self.status_code if self.status_code is not None else default

    def error_body(self) -> dict[str, Any]:
        return {"success": False, "message": self.error}

    def data(self) -> Any:
        """The ``data`` member of a successful backend envelope, if any."""
        if isinstance(self.body, dict):
            return self.body.get("data")
        return None


def _error_message(resp: httpx.Response) -> str:
    try:
        payload = resp.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return f"Request failed with status code {resp.status_code}"


def _elapsed_ms(start: float) -> float:
    return round((time.time() - start) * 1000.0, 2)


def _transport_message(exc: Exception) -> str:
    text = str(exc)
    if isinstance(exc, httpx.TimeoutException):
        return f"Timeout: {text}" if text else "Timeout"
    return text or type(exc).__name__


class BackendClient:
    """Issues single outbound calls and never raises across its boundary.

    ``mounts`` is handed to ``httpx.AsyncClient`` and lets callers route
    specific base URLs to an alternative transport (e.g. an in-process app).
    """

    def __init__(
        self,
        timeout_s: float = settings.request_timeout_s,
        mounts: Mapping[str, httpx.AsyncBaseTransport] | None = None,
    ) -> None:
        self.timeout_s = timeout_s
        self._mounts = dict(mounts) if mounts else None

    async def call(
        self,
        backend: BackendDescriptor,
        method: str,
        path: str,
        query: Sequence[tuple[str, str]] | Mapping[str, str] | None = None,
        body: bytes | None = None,
        headers: Mapping[str, str] | None = None,
        timeout_s: float | None = None,
    ) -> ProxyResult:
        url = backend.url(path)
        timeout = self.timeout_s if timeout_s is None else timeout_s
        start = time.time()
        try:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=False, mounts=self._mounts) as client:
                resp = await client.request(
                    method,
                    url,
                    params=list(query.items()) if isinstance(query, Mapping) else query,
                    content=body,
                    headers=dict(headers) if headers else None,
                )
        except httpx.HTTPError as e:
            msg = _transport_message(e)
            logger.warning(
                "%s unreachable after %sms: %s %s (%s)", backend.display_name, _elapsed_ms(start), method, path, msg
            )
            return ProxyResult.failure(msg)
        except Exception as e:
            msg = f"{type(e).__name__}: {e}"
            logger.warning(
                "%s call failed after %sms: %s %s (%s)", backend.display_name, _elapsed_ms(start), method, path, msg
            )
            return ProxyResult.failure(msg)

        logger.debug(
            "%s %s %s -> %s in %sms", backend.display_name, method, path, resp.status_code, _elapsed_ms(start)
        )

        if not resp.is_success:
            msg = _error_message(resp)
            logger.warning("%s returned %s for %s %s: %s", backend.display_name, resp.status_code, method, path, msg)
            return ProxyResult.failure(msg, status_code=resp.status_code)

        if not resp.content:
            return ProxyResult.success(resp.status_code, None)
        try:
            payload = resp.json()
        except ValueError:
            logger.warning("%s returned a non-JSON body for %s %s", backend.display_name, method, path)
            return ProxyResult.failure(f"Invalid JSON from {backend.display_name}")
        return ProxyResult.success(resp.status_code, payload)
