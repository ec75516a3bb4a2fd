import sys

import pytest

# Ensure project root is importable (so `import main` and `import services...` work without installing)
import os as _os
_project_root = _os.path.dirname(_os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from fastapi.testclient import TestClient  # noqa: E402

import main  # noqa: E402
from apigw.backends import BackendClient, BackendDescriptor, BackendRegistry  # noqa: E402


@pytest.fixture
def backends() -> BackendRegistry:
    return main.BACKENDS


@pytest.fixture
def users_url(backends):
    return lambda path="": f"{backends.users.base_url}{path}"


@pytest.fixture
def products_url(backends):
    return lambda path="": f"{backends.products.base_url}{path}"


@pytest.fixture
def gateway():
    """Gateway app with its configured backends; outbound calls are mocked per test with respx."""
    with TestClient(main.app, raise_server_exceptions=False) as client:
        yield client


@pytest.fixture
def registry() -> BackendRegistry:
    return BackendRegistry(
        users=BackendDescriptor(name="userService", base_url="http://users.test", resource="users", display_name="User Service"),
        products=BackendDescriptor(
            name="productService", base_url="http://products.test", resource="products", display_name="Product Service"
        ),
    )


@pytest.fixture
def backend_client() -> BackendClient:
    return BackendClient(timeout_s=2.0)
