"""Check-in and daily summary schemas."""

from __future__ import annotations

from datetime import date as Date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.domain import CheckIn
from .routing import RouteModel


class CheckInRequest(BaseModel):
    company_id: str
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    note: Optional[str] = Field(default=None, max_length=5000)


class CheckInUpdate(BaseModel):
    note: Optional[str] = Field(default=None, max_length=5000)


class CheckInModel(BaseModel):
    id: str
    user_id: str
    company_id: str
    company_name: Optional[str] = None
    lat: float
    lng: float
    note: Optional[str] = None
    timestamp: datetime
    crm_record_id: Optional[str] = None

    @classmethod
    def from_check_in(cls, check_in: CheckIn, company_name: Optional[str] = None) -> "CheckInModel":
        return cls(
            id=check_in.id,
            user_id=check_in.user_id,
            company_id=check_in.company_id,
            company_name=company_name,
            lat=check_in.lat,
            lng=check_in.lng,
            note=check_in.note,
            timestamp=check_in.timestamp,
            crm_record_id=check_in.crm_record_id,
        )


class CheckInResponse(BaseModel):
    check_in: CheckInModel
    route: Optional[RouteModel] = Field(
        default=None, description="Updated active route when the visit completed one of its stops."
    )
    stop_completed: bool = False
    rebuild_failed: bool = False
    notice: Optional[str] = None


class SummaryResponse(BaseModel):
    date: Date
    total_visits: int
    total_miles: float
    check_ins: List[CheckInModel]
