from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class RecordSet(BaseModel):
    total: int = Field(..., ge=0, description="Count reported by the backend")
    data: list[dict[str, Any]]


class DashboardSummary(BaseModel):
    totalUsers: int
    totalProducts: int
    timestamp: str = Field(default_factory=utc_now)


class DashboardData(BaseModel):
    users: RecordSet
    products: RecordSet
    summary: DashboardSummary


class DashboardResponse(BaseModel):
    success: bool = True
    message: str = "Dashboard data aggregated from User and Product services"
    data: DashboardData


class UserProducts(BaseModel):
    user: dict[str, Any]
    products: list[dict[str, Any]]
    productCount: int

    @classmethod
    def build(cls, user: dict[str, Any], products: list[dict[str, Any]]) -> "UserProducts":
        return cls(user=user, products=products, productCount=len(products))


class UserProductsResponse(BaseModel):
    success: bool = True
    message: str = "User data aggregated with their products"
    data: UserProducts


class HealthEntry(BaseModel):
    """One backend's probe outcome.

    UP entries carry the backend's own health payload as extra fields;
    DOWN entries carry ``error``.
    """

    model_config = ConfigDict(extra="allow")

    status: Literal["UP", "DOWN"]
    error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ServicesHealthResponse(BaseModel):
    gateway: Literal["UP"] = "UP"
    services: dict[str, dict[str, Any]]
    overallStatus: Literal["HEALTHY", "DEGRADED"]
    timestamp: str = Field(default_factory=utc_now)
