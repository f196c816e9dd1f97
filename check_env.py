#!/usr/bin/env python3
"""Report which integrations are configured, creating a template .env if none exists."""

import os
import sys
from pathlib import Path

SECRET_VARIABLES = (
    "FIELDROUTE_SUPABASE_KEY",
    "FIELDROUTE_DIRECTIONS_ACCESS_TOKEN",
    "FIELDROUTE_HUBSPOT_API_KEY",
)

TEMPLATE = """# Driving directions (Mapbox by default; any OSRM-compatible base URL works)
FIELDROUTE_DIRECTIONS_BASE_URL=https://api.mapbox.com/directions/v5/mapbox
FIELDROUTE_DIRECTIONS_ACCESS_TOKEN=your-mapbox-token-here

# HubSpot visit logging (optional - visits are only stored locally without it)
# FIELDROUTE_HUBSPOT_API_KEY=
# FIELDROUTE_HUBSPOT_ASSOCIATION_TYPE_ID=

# Supabase storage (optional - JSON files under FIELDROUTE_DATA_ROOT otherwise)
# FIELDROUTE_SUPABASE_URL=https://your-project-id.supabase.co
# FIELDROUTE_SUPABASE_KEY=your-service-role-key-here

FIELDROUTE_DATA_ROOT=./data
FIELDROUTE_COMPANY_FILE=./data/companies.csv
# Comma-separated or JSON array: http://localhost:5173,http://127.0.0.1:5173
# FIELDROUTE_FRONTEND_ALLOWED_ORIGINS=
"""


def _mask(value: str) -> str:
    if len(value) > 12:
        return value[:6] + "..." + value[-4:]
    return "***"


def _print_env_file(env_file: Path) -> None:
    print("Current contents:")
    print("-" * 60)
    for line in env_file.read_text(encoding="utf-8").splitlines():
        name, sep, value = line.partition("=")
        if sep and name.strip() in SECRET_VARIABLES and value.strip():
            print(f"{name}={_mask(value.strip())}")
        else:
            print(line)
    print("-" * 60)
    print()


def main():
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    print("=" * 60)
    print("Field Route Planner configuration check")
    print("=" * 60)
    print()

    if not env_file.exists():
        env_file.write_text(TEMPLATE, encoding="utf-8")
        print(f"✅ Created template .env at: {env_file}")
        print("⚠️  Add your directions token (and optional HubSpot/Supabase keys), then re-run.")
        return

    print(f"✅ Found .env file at: {env_file}")
    print()
    _print_env_file(env_file)

    try:
        sys.path.insert(0, str(project_root / "src"))
        from fieldroute.config import settings
    except Exception as e:
        print(f"❌ Error loading config: {e}")
        print("Make sure you're running this from the project root directory")
        return

    checks = [
        ("Directions service", bool(settings.directions_base_url), settings.directions_base_url or "not set"),
        ("Directions token", bool(settings.directions_access_token), "set" if settings.directions_access_token else "not set (fine for OSRM)"),
        ("HubSpot logging", bool(settings.hubspot_api_key), "enabled" if settings.hubspot_api_key else "disabled"),
        ("Supabase storage", bool(settings.supabase_url and settings.supabase_key), "enabled" if settings.supabase_url and settings.supabase_key else f"files under {settings.data_root}"),
        ("Company file", settings.company_file.exists(), str(settings.company_file)),
    ]
    for label, ok, detail in checks:
        print(f"{'✅' if ok else '⚠️ '} {label}: {detail}")

    unset = [name for name in SECRET_VARIABLES if not os.getenv(name)]
    if unset:
        print()
        print(f"Not set in the process environment (may still come from .env): {', '.join(unset)}")


if __name__ == "__main__":
    main()
