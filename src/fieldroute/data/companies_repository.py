"""Data access helpers for the company directory."""

from __future__ import annotations

import csv
import functools
import logging
from pathlib import Path
from typing import Any, Optional, Sequence

from ..config import settings
from ..db.supabase import get_supabase_client
from ..errors import NotFound
from ..models.domain import Company

COMPANIES_TABLE = "companies"

logger = logging.getLogger(__name__)


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).replace(",", ""))
    except ValueError as exc:
        raise ValueError(f"Unable to parse float from value '{value}'") from exc


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _company_from_row(row: dict[str, Any]) -> Company:
    return Company(
        id=(_clean(row.get("id") or row.get("company_id") or row.get("hs_object_id")) or ""),
        name=_clean(row.get("name") or row.get("company_name")) or "",
        lat=_coerce_float(row.get("lat") if row.get("lat") not in (None, "") else row.get("latitude")),
        lng=_coerce_float(row.get("lng") if row.get("lng") not in (None, "") else row.get("longitude")),
        street=_clean(row.get("street") or row.get("address")),
        city=_clean(row.get("city")),
        state=_clean(row.get("state")),
        postal_code=_clean(row.get("postal_code") or row.get("zip")),
        country=_clean(row.get("country")),
        owner_id=_clean(row.get("owner_id") or row.get("hubspot_owner_id")),
    )


@functools.lru_cache(maxsize=1)
def load_companies(source: Optional[Path] = None) -> tuple[Company, ...]:
    """Load companies from the configured CSV file.

    Companies without coordinates are kept; they are listed but cannot be
    routed.
    """

    csv_path = source or settings.company_file
    if not csv_path.exists():
        logger.warning(f"Company file not found: {csv_path}")
        return ()

    companies: list[Company] = []
    with csv_path.open(mode="r", encoding="utf-8-sig", newline="") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            raise ValueError(f"Company file '{csv_path}' is missing a header row.")
        for line_number, row in enumerate(reader, start=2):
            try:
                company = _company_from_row(row)
            except ValueError as exc:
                logger.warning(f"Skipping company on line {line_number} of {csv_path}: {exc}")
                continue
            if not company.id:
                continue
            companies.append(company)
    logger.info(f"Loaded {len(companies)} companies from {csv_path}")
    return tuple(companies)


def _load_from_database(company_ids: Sequence[str] | None = None) -> tuple[Company, ...] | None:
    supabase = get_supabase_client()
    if supabase is None:
        return None
    query = supabase.table(COMPANIES_TABLE).select("*")
    if company_ids is not None:
        query = query.in_("id", list(company_ids))
    response = query.execute()
    return tuple(_company_from_row(row) for row in (response.data or []))


def _all_companies() -> tuple[Company, ...]:
    from_database = _load_from_database()
    if from_database is not None:
        return from_database
    return load_companies()


def resolve_companies(company_ids: Sequence[str]) -> list[Company]:
    """Look up ``company_ids``, preserving request order and skipping unknown ids."""
    if not company_ids:
        return []
    companies = _load_from_database(company_ids)
    if companies is None:
        companies = load_companies()
    by_id = {company.id: company for company in companies}
    return [by_id[company_id] for company_id in company_ids if company_id in by_id]


def get_company(company_id: str) -> Company:
    matches = resolve_companies([company_id])
    if not matches:
        raise NotFound(f"Company '{company_id}' not found.")
    return matches[0]


def list_companies(owner_id: Optional[str] = None, search: Optional[str] = None) -> list[Company]:
    """Companies for the planning view, optionally filtered by owner and name."""
    needle = search.strip().lower() if search else None
    result: list[Company] = []
    for company in _all_companies():
        if owner_id and company.owner_id != owner_id:
            continue
        if needle and needle not in company.name.lower():
            continue
        result.append(company)
    return result
