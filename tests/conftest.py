import csv
from pathlib import Path

import pytest

from fieldroute.config import settings
from fieldroute.data.companies_repository import load_companies
from fieldroute.models.domain import Company
from fieldroute.persistence.filesystem import FileRouteStore
from fieldroute.services.geospatial import distance_meters
from fieldroute.services.routing import optimizer
from fieldroute.services.routing.models import DirectionsResult, Leg

COMPANY_FIELDS = ["id", "name", "lat", "lng", "street", "city", "state", "postal_code", "country", "owner_id"]

COMPANIES = [
    Company(id="A", name="Acme Supply", lat=0.0, lng=0.0, street="1 Main St", city="Springfield", state="IL", postal_code="62701", owner_id="rep-1"),
    Company(id="B", name="Bolt Hardware", lat=0.0, lng=1.0, street="2 Oak Ave", city="Springfield", state="IL", owner_id="rep-1"),
    Company(id="C", name="Cobalt Foods", lat=0.0, lng=2.0, city="Decatur", state="IL", owner_id="rep-2"),
    Company(id="D", name="Delta Tools", lat=0.0, lng=3.0, city="Champaign", state="IL", owner_id="rep-1"),
    Company(id="N", name="No Geo Inc", city="Nowhere", state="IL", owner_id="rep-1"),
]


class FakeDirections:
    """Directions client that routes in straight lines at 15 m/s."""

    def __init__(self) -> None:
        self.calls: list[list] = []

    def route(self, coordinates):
        self.calls.append(list(coordinates))
        legs = []
        for start, end in zip(coordinates, coordinates[1:]):
            meters = distance_meters(start, end)
            legs.append(Leg(distance_m=meters, duration_s=meters / 15))
        return DirectionsResult(
            geometry=list(coordinates),
            legs=legs,
            distance_m=sum(leg.distance_m for leg in legs),
            duration_s=sum(leg.duration_s for leg in legs),
        )


class FailingDirections:
    def __init__(self) -> None:
        self.calls = 0

    def route(self, coordinates):
        from fieldroute.errors import ProviderUnavailable

        self.calls += 1
        raise ProviderUnavailable("directions service down")


def directory(company_ids):
    by_id = {company.id: company for company in COMPANIES}
    return [by_id[company_id] for company_id in company_ids if company_id in by_id]


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    company_file = tmp_path / "companies.csv"
    with company_file.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=COMPANY_FIELDS)
        writer.writeheader()
        for company in COMPANIES:
            writer.writerow({field: getattr(company, field) for field in COMPANY_FIELDS})

    monkeypatch.setattr(settings, "company_file", company_file)
    monkeypatch.setattr(settings, "data_root", tmp_path / "data")
    monkeypatch.setattr(settings, "hubspot_api_key", None)
    monkeypatch.setattr(settings, "supabase_url", None)
    monkeypatch.setattr(settings, "supabase_key", None)
    # Never reach a real directions service from tests
    monkeypatch.setattr(optimizer, "get_directions_client", lambda: None)

    load_companies.cache_clear()
    yield
    load_companies.cache_clear()


@pytest.fixture
def store(tmp_path: Path) -> FileRouteStore:
    return FileRouteStore(root=tmp_path / "store")


@pytest.fixture
def directions(monkeypatch: pytest.MonkeyPatch) -> FakeDirections:
    fake = FakeDirections()
    monkeypatch.setattr(optimizer, "get_directions_client", lambda: fake)
    return fake
