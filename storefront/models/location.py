"""Store location (branch) schemas for map sections."""

from __future__ import annotations

from pydantic import BaseModel, Field


class Address(BaseModel):
    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None

    def one_line(self) -> str:
        parts = [self.street, self.city, self.state, self.zip_code]
        return ", ".join(part for part in parts if part)


class GeoPoint(BaseModel):
    lat: float = 0.0
    lng: float = 0.0


class Branch(BaseModel):
    id: str = Field(..., min_length=1)
    organization_id: str = Field(..., min_length=1)
    name: str
    address: Address = Field(default_factory=Address)
    phone_number: str | None = None
    location: GeoPoint = Field(default_factory=GeoPoint)
    is_main_branch: bool = False
    is_active: bool = True
    is_deleted: bool = False


class LocationCard(BaseModel):
    """Marker data for the storefront map widget."""

    id: str
    name: str
    is_main: bool
    phone: str | None = None
    address: str
    location: GeoPoint
