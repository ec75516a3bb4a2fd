from __future__ import annotations

import argparse
import json
import sys
from typing import Any

import requests


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _show(resp: requests.Response) -> int:
    try:
        _print(resp.json())
    except ValueError:
        print(resp.text)
    return 0 if resp.ok else 1


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="API Gateway CLI")
    p.add_argument("--api", default="http://localhost:3000", help="Gateway base URL")
    p.add_argument("--timeout", type=float, default=15.0, help="Request timeout in seconds")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("health", help="Gateway metadata and configured backends")
    sub.add_parser("services", help="Aggregated health of all backends")
    sub.add_parser("dashboard", help="Users and products summary")
    sub.add_parser("users", help="List users")

    s_prod = sub.add_parser("products", help="List products")
    s_prod.add_argument("--category", default=None)

    s_owner = sub.add_parser("product-owner", help="Product merged with its owner")
    s_owner.add_argument("--id", required=True)

    s_up = sub.add_parser("user-products", help="User with the products they own")
    s_up.add_argument("--id", required=True)
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    base = args.api.rstrip("/")

    routes: dict[str, tuple[str, dict[str, Any] | None]] = {
        "health": ("/health", None),
        "services": ("/api/services/health", None),
        "dashboard": ("/api/dashboard", None),
        "users": ("/api/users", None),
        "products": ("/api/products", {"category": args.category} if getattr(args, "category", None) else None),
        "product-owner": (f"/api/products/{getattr(args, 'id', '')}/with-owner", None),
        "user-products": (f"/api/users/{getattr(args, 'id', '')}/products", None),
    }
    if args.cmd not in routes:
        return 2

    path, params = routes[args.cmd]
    try:
        resp = requests.get(f"{base}{path}", params=params, timeout=args.timeout)
    except requests.RequestException as e:
        print(f"Gateway unreachable at {base}: {e}", file=sys.stderr)
        return 1
    return _show(resp)


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
