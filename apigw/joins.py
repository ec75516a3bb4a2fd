"""Cross-service joins.

Independent calls are fanned out with ``asyncio.gather``; since
``BackendClient.call`` never raises, every sibling runs to completion and
each outcome is inspected on its own. Dependent calls run one after
another and stop at the first failed prerequisite.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .api_models import DashboardData, DashboardResponse, DashboardSummary, RecordSet, UserProducts, UserProductsResponse
from .backends import BackendClient, BackendRegistry, ProxyResult
from .proxy import GatewayReply, record_path, reply_from


logger = logging.getLogger(__name__)

DASHBOARD_FAILED = "Error aggregating data from services"


class CompositionError(Exception):
    """A prerequisite returned something a join cannot build on."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def reply(self) -> GatewayReply:
        return GatewayReply(self.status_code, {"success": False, "message": self.message})


def _expect_record(result: ProxyResult, what: str) -> dict[str, Any]:
    record = result.data()
    if not isinstance(record, dict):
        raise CompositionError(f"{what} response did not contain a record")
    return record


def _expect_records(result: ProxyResult, what: str) -> list[dict[str, Any]]:
    records = result.data()
    if not isinstance(records, list):
        raise CompositionError(f"{what} response did not contain a record list")
    return [r for r in records if isinstance(r, dict)]


def _record_set(result: ProxyResult, what: str) -> RecordSet:
    records = _expect_records(result, what)
    count = result.body.get("count") if isinstance(result.body, dict) else None
    return RecordSet(total=count if isinstance(count, int) else len(records), data=records)


def _same_id(a: Any, b: Any) -> bool:
    if a is None or b is None or isinstance(a, bool) or isinstance(b, bool):
        return False
    return a == b or str(a) == str(b)


def owned_by(products: list[dict[str, Any]], owner_id: Any) -> list[dict[str, Any]]:
    """Products whose ``ownerId`` matches; a missing ``ownerId`` never matches."""
    return [p for p in products if _same_id(p.get("ownerId"), owner_id)]


async def dashboard(client: BackendClient, backends: BackendRegistry) -> GatewayReply:
    users_res, products_res = await asyncio.gather(
        client.call(backends.users, "GET", record_path(backends.users)),
        client.call(backends.products, "GET", record_path(backends.products)),
    )

    failures = [
        f"{b.display_name}: {r.error}"
        for b, r in ((backends.users, users_res), (backends.products, products_res))
        if not r.ok
    ]
    if failures:
        detail = "; ".join(failures)
        logger.error("Dashboard aggregation failed: %s", detail)
        return GatewayReply(500, {"success": False, "message": DASHBOARD_FAILED, "error": detail})

    try:
        users = _record_set(users_res, backends.users.display_name)
        products = _record_set(products_res, backends.products.display_name)
    except CompositionError as e:
        logger.error("Dashboard aggregation failed: %s", e.message)
        return GatewayReply(500, {"success": False, "message": DASHBOARD_FAILED, "error": e.message})

    body = DashboardResponse(
        data=DashboardData(
            users=users,
            products=products,
            summary=DashboardSummary(totalUsers=users.total, totalProducts=products.total),
        )
    )
    return GatewayReply(200, body.model_dump())


async def product_with_owner(client: BackendClient, backends: BackendRegistry, product_id: str) -> GatewayReply:
    product_res = await client.call(backends.products, "GET", record_path(backends.products, product_id))
    if not product_res.ok:
        return reply_from(product_res)

    try:
        product = _expect_record(product_res, backends.products.display_name)
        owner_id = product.get("ownerId")
        if owner_id is None:
            raise CompositionError(f"Product with ID {product_id} has no ownerId")
    except CompositionError as e:
        logger.error("Cannot resolve owner for product %s: %s", product_id, e.message)
        return e.reply()

    owner_res = await client.call(backends.users, "GET", record_path(backends.users, owner_id))
    if not owner_res.ok:
        return reply_from(owner_res)

    try:
        owner = _expect_record(owner_res, backends.users.display_name)
    except CompositionError as e:
        logger.error("Cannot resolve owner for product %s: %s", product_id, e.message)
        return e.reply()

    return GatewayReply(
        200,
        {
            "success": True,
            "message": "Product with owner information aggregated at gateway",
            "data": {**product, "owner": owner},
        },
    )


async def user_with_products(client: BackendClient, backends: BackendRegistry, user_id: str) -> GatewayReply:
    user_res = await client.call(backends.users, "GET", record_path(backends.users, user_id))
    if not user_res.ok:
        return reply_from(user_res)
    try:
        user = _expect_record(user_res, backends.users.display_name)
    except CompositionError as e:
        logger.error("Cannot list products for user %s: %s", user_id, e.message)
        return e.reply()

    # Full collection on purpose: the product backend has no owner filter.
    products_res = await client.call(backends.products, "GET", record_path(backends.products))
    if not products_res.ok:
        return reply_from(products_res)
    try:
        products = _expect_records(products_res, backends.products.display_name)
    except CompositionError as e:
        logger.error("Cannot list products for user %s: %s", user_id, e.message)
        return e.reply()

    mine = owned_by(products, user.get("id", user_id))
    body = UserProductsResponse(data=UserProducts.build(user, mine))
    return GatewayReply(200, body.model_dump())
