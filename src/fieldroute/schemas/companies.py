"""Company directory schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel

from ..models.domain import Company
from ..services.geospatial import build_address_string


class CompanyModel(BaseModel):
    id: str
    name: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    address: str = ""
    distance_mi: Optional[float] = None

    @classmethod
    def from_company(cls, company: Company, distance_mi: Optional[float] = None) -> "CompanyModel":
        return cls(
            id=company.id,
            name=company.name,
            lat=company.lat,
            lng=company.lng,
            street=company.street,
            city=company.city,
            state=company.state,
            postal_code=company.postal_code,
            country=company.country,
            address=build_address_string(
                company.street, company.city, company.state, company.postal_code, company.country
            ),
            distance_mi=distance_mi,
        )


class CompanyListResponse(BaseModel):
    companies: List[CompanyModel]
    count: int
