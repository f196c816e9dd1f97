"""Company directory endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from ...config import settings
from ...data.companies_repository import get_company, list_companies
from ...models.domain import Coordinate
from ...schemas.companies import CompanyListResponse, CompanyModel
from ...services.geospatial import filter_by_radius
from ..dependencies import translate_errors

router = APIRouter(prefix="/companies", tags=["companies"])


@router.get("", response_model=CompanyListResponse)
def get_companies(
    lat: Optional[float] = Query(default=None, ge=-90, le=90),
    lng: Optional[float] = Query(default=None, ge=-180, le=180),
    radius_mi: Optional[float] = Query(default=None, gt=0, le=500),
    search: Optional[str] = Query(default=None, description="Case-insensitive name filter."),
    owner_id: Optional[str] = Query(default=None),
) -> CompanyListResponse:
    """List companies, nearest first when a center point is given."""
    if (lat is None) != (lng is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Both lat and lng are required for a radius search.",
        )

    with translate_errors("list companies"):
        companies = list_companies(owner_id=owner_id, search=search)

    if lat is None:
        models = [CompanyModel.from_company(company) for company in companies]
    else:
        radius = radius_mi if radius_mi is not None else settings.default_radius_miles
        models = [
            CompanyModel.from_company(company, round(distance_mi, 2))
            for company, distance_mi in filter_by_radius(companies, Coordinate(lat, lng), radius)
        ]
    return CompanyListResponse(companies=models, count=len(models))


@router.get("/{company_id}", response_model=CompanyModel)
def get_company_by_id(company_id: str) -> CompanyModel:
    with translate_errors("load company"):
        return CompanyModel.from_company(get_company(company_id))
