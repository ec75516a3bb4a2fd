import asyncio
import time

import httpx
import pytest

from apigw.joins import dashboard, owned_by, user_with_products

USERS = [
    {"id": 1, "name": "Alice Johnson", "email": "alice@example.com", "role": "Admin"},
    {"id": 2, "name": "Bob Smith", "email": "bob@example.com", "role": "User"},
]
PRODUCTS = [
    {"id": 1, "name": "Laptop", "price": 999.99, "category": "Electronics", "stock": 50, "ownerId": 1},
    {"id": 2, "name": "Smartphone", "price": 699.99, "category": "Electronics", "stock": 100, "ownerId": 2},
    {"id": 3, "name": "Coffee Maker", "price": 89.99, "category": "Home", "stock": 30, "ownerId": 1},
]


def _list(records):
    return httpx.Response(200, json={"success": True, "count": len(records), "data": records})


def _one(record):
    return httpx.Response(200, json={"success": True, "data": record})


def _missing(message):
    return httpx.Response(404, json={"success": False, "message": message})


# --- dashboard ---


def test_dashboard_combines_both_backends(gateway, users_url, products_url, respx_mock):
    respx_mock.get(users_url("/api/users")).mock(return_value=_list(USERS))
    respx_mock.get(products_url("/api/products")).mock(return_value=_list(PRODUCTS))

    r = gateway.get("/api/dashboard")

    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    data = body["data"]
    assert data["users"] == {"total": 2, "data": USERS}
    assert data["products"] == {"total": 3, "data": PRODUCTS}
    assert data["summary"]["totalUsers"] == 2
    assert data["summary"]["totalProducts"] == 3
    assert data["summary"]["timestamp"].endswith("Z")


def test_dashboard_fails_when_user_backend_unreachable(gateway, users_url, products_url, respx_mock):
    users = respx_mock.get(users_url("/api/users")).mock(side_effect=httpx.ConnectError("Connection refused"))
    products = respx_mock.get(products_url("/api/products")).mock(return_value=_list(PRODUCTS))

    r = gateway.get("/api/dashboard")

    assert r.status_code == 500
    body = r.json()
    assert body["success"] is False
    assert body["message"] == "Error aggregating data from services"
    assert "User Service" in body["error"]
    assert "data" not in body
    # the sibling call still ran to completion
    assert users.called and products.called


def test_dashboard_reports_every_failing_backend(gateway, users_url, products_url, respx_mock):
    respx_mock.get(users_url("/api/users")).mock(return_value=httpx.Response(503, json={"message": "users busy"}))
    respx_mock.get(products_url("/api/products")).mock(side_effect=httpx.ConnectError("refused"))

    r = gateway.get("/api/dashboard")

    assert r.status_code == 500
    assert r.json()["error"] == "User Service: users busy; Product Service: refused"


@pytest.mark.asyncio
async def test_dashboard_calls_both_backends_concurrently(backend_client, registry, respx_mock):
    async def slow_users(request):
        await asyncio.sleep(0.5)
        return _list(USERS)

    async def slow_products(request):
        await asyncio.sleep(0.5)
        return _list(PRODUCTS)

    respx_mock.get("http://users.test/api/users").mock(side_effect=slow_users)
    respx_mock.get("http://products.test/api/products").mock(side_effect=slow_products)

    start = time.perf_counter()
    reply = await dashboard(backend_client, registry)
    elapsed = time.perf_counter() - start

    assert reply.status_code == 200
    assert elapsed < 0.9


# --- product with owner ---


@pytest.mark.parametrize("product", PRODUCTS)
def test_product_with_owner_merges_owner(gateway, users_url, products_url, respx_mock, product):
    owner = next(u for u in USERS if u["id"] == product["ownerId"])
    respx_mock.get(products_url(f"/api/products/{product['id']}")).mock(return_value=_one(product))
    respx_mock.get(users_url(f"/api/users/{owner['id']}")).mock(return_value=_one(owner))

    r = gateway.get(f"/api/products/{product['id']}/with-owner")

    assert r.status_code == 200
    data = r.json()["data"]
    assert data["owner"]["id"] == data["ownerId"] == product["ownerId"]
    assert data["name"] == product["name"]


@pytest.mark.respx(assert_all_called=False)
def test_missing_product_propagates_404_and_skips_owner_call(gateway, users_url, products_url, respx_mock):
    respx_mock.get(products_url("/api/products/999")).mock(return_value=_missing("Product with ID 999 not found"))
    owner = respx_mock.get(url__startswith=users_url("/api/users")).mock(return_value=_one(USERS[0]))

    r = gateway.get("/api/products/999/with-owner")

    assert r.status_code == 404
    assert r.json() == {"success": False, "message": "Product with ID 999 not found"}
    assert not owner.called


def test_owner_failure_is_propagated(gateway, users_url, products_url, respx_mock):
    orphan = {**PRODUCTS[0], "ownerId": 40}
    respx_mock.get(products_url("/api/products/1")).mock(return_value=_one(orphan))
    respx_mock.get(users_url("/api/users/40")).mock(return_value=_missing("User with ID 40 not found"))

    r = gateway.get("/api/products/1/with-owner")

    assert r.status_code == 404
    assert r.json()["message"] == "User with ID 40 not found"


def test_owner_backend_down_defaults_to_500(gateway, users_url, products_url, respx_mock):
    respx_mock.get(products_url("/api/products/1")).mock(return_value=_one(PRODUCTS[0]))
    respx_mock.get(users_url("/api/users/1")).mock(side_effect=httpx.ConnectError("Connection refused"))

    r = gateway.get("/api/products/1/with-owner")

    assert r.status_code == 500
    assert r.json()["success"] is False


def test_product_without_owner_id_is_bad_gateway(gateway, products_url, respx_mock):
    record = {k: v for k, v in PRODUCTS[0].items() if k != "ownerId"}
    respx_mock.get(products_url("/api/products/1")).mock(return_value=_one(record))

    r = gateway.get("/api/products/1/with-owner")

    assert r.status_code == 502
    assert r.json() == {"success": False, "message": "Product with ID 1 has no ownerId"}


def test_owner_response_without_a_record_is_bad_gateway(gateway, users_url, products_url, respx_mock):
    respx_mock.get(products_url("/api/products/1")).mock(return_value=_one({**PRODUCTS[0], "ownerId": 7}))
    respx_mock.get(users_url("/api/users/7")).mock(return_value=httpx.Response(200, json={"success": True}))

    r = gateway.get("/api/products/1/with-owner")

    assert r.status_code == 502
    assert r.json() == {"success": False, "message": "User Service response did not contain a record"}


# --- user with products ---


def test_user_with_products_filters_by_owner(gateway, users_url, products_url, respx_mock):
    respx_mock.get(users_url("/api/users/1")).mock(return_value=_one(USERS[0]))
    products = respx_mock.get(products_url("/api/products")).mock(return_value=_list(PRODUCTS))

    r = gateway.get("/api/users/1/products")

    assert r.status_code == 200
    data = r.json()["data"]
    assert data["user"] == USERS[0]
    assert [p["id"] for p in data["products"]] == [1, 3]
    assert data["productCount"] == len(data["products"])
    # the product backend is asked for the full, unfiltered collection
    assert not products.calls.last.request.url.query


def test_user_with_no_products_has_zero_count(gateway, users_url, products_url, respx_mock):
    lonely = {"id": 9, "name": "Dana", "email": "dana@example.com", "role": "User"}
    respx_mock.get(users_url("/api/users/9")).mock(return_value=_one(lonely))
    respx_mock.get(products_url("/api/products")).mock(return_value=_list(PRODUCTS))

    r = gateway.get("/api/users/9/products")

    assert r.status_code == 200
    assert r.json()["data"]["products"] == []
    assert r.json()["data"]["productCount"] == 0


@pytest.mark.respx(assert_all_called=False)
def test_missing_user_skips_products_call(gateway, users_url, products_url, respx_mock):
    respx_mock.get(users_url("/api/users/5")).mock(return_value=_missing("User with ID 5 not found"))
    products = respx_mock.get(products_url("/api/products")).mock(return_value=_list(PRODUCTS))

    r = gateway.get("/api/users/5/products")

    assert r.status_code == 404
    assert r.json()["message"] == "User with ID 5 not found"
    assert not products.called


@pytest.mark.respx(assert_all_called=False)
def test_user_response_without_a_record_skips_products_call(gateway, users_url, products_url, respx_mock):
    respx_mock.get(users_url("/api/users/1")).mock(return_value=httpx.Response(200, json={"success": True}))
    products = respx_mock.get(products_url("/api/products")).mock(return_value=_list(PRODUCTS))

    r = gateway.get("/api/users/1/products")

    assert r.status_code == 502
    assert r.json()["message"] == "User Service response did not contain a record"
    assert not products.called


def test_products_failure_after_user_found_is_propagated(gateway, users_url, products_url, respx_mock):
    respx_mock.get(users_url("/api/users/1")).mock(return_value=_one(USERS[0]))
    respx_mock.get(products_url("/api/products")).mock(side_effect=httpx.ReadTimeout("slow"))

    r = gateway.get("/api/users/1/products")

    assert r.status_code == 500
    assert r.json()["message"].startswith("Timeout")


@pytest.mark.asyncio
async def test_user_with_products_unit(backend_client, registry, respx_mock):
    respx_mock.get("http://users.test/api/users/2").mock(return_value=_one(USERS[1]))
    respx_mock.get("http://products.test/api/products").mock(return_value=_list(PRODUCTS))

    reply = await user_with_products(backend_client, registry, "2")

    assert reply.status_code == 200
    assert reply.content["data"]["products"] == [PRODUCTS[1]]
    assert reply.content["data"]["productCount"] == 1


def test_owned_by_matches_exactly_the_owner():
    products = [{"id": 1, "ownerId": 1}, {"id": 2, "ownerId": 2}, {"id": 3}]

    assert owned_by(products, 1) == [{"id": 1, "ownerId": 1}]
    assert owned_by(products, "2") == [{"id": 2, "ownerId": 2}]
    assert owned_by(products, None) == []


def test_owned_by_does_not_treat_booleans_as_ids():
    products = [{"id": 1, "ownerId": True}, {"id": 2, "ownerId": 1}]

    assert owned_by(products, 1) == [{"id": 2, "ownerId": 1}]
    assert owned_by(products, True) == []
