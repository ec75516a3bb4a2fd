import json

import pytest
import requests

import cli


class _Resp:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload if payload is not None else {}
        self.text = json.dumps(self._payload)

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        return self._payload


@pytest.mark.parametrize(
    "argv,path",
    [
        (["services"], "/api/services/health"),
        (["dashboard"], "/api/dashboard"),
        (["product-owner", "--id", "3"], "/api/products/3/with-owner"),
        (["user-products", "--id", "1"], "/api/users/1/products"),
    ],
)
def test_commands_hit_gateway_paths(monkeypatch, capsys, argv, path):
    seen = {}

    def fake_get(url, params=None, timeout=None):
        seen["url"], seen["params"] = url, params
        return _Resp(200, {"success": True})

    monkeypatch.setattr(cli.requests, "get", fake_get)

    assert cli.main(["--api", "http://gw:3000/", *argv]) == 0
    assert seen["url"] == f"http://gw:3000{path}"
    assert json.loads(capsys.readouterr().out) == {"success": True}


def test_products_category_and_error_exit_code(monkeypatch):
    seen = {}

    def fake_get(url, params=None, timeout=None):
        seen["params"] = params
        return _Resp(503, {"overallStatus": "DEGRADED"})

    monkeypatch.setattr(cli.requests, "get", fake_get)

    assert cli.main(["products", "--category", "Home"]) == 1
    assert seen["params"] == {"category": "Home"}


def test_unreachable_gateway(monkeypatch, capsys):
    def fake_get(url, params=None, timeout=None):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(cli.requests, "get", fake_get)

    assert cli.main(["health"]) == 1
    assert "Gateway unreachable" in capsys.readouterr().err
