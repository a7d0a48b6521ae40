#!/usr/bin/env python3
"""
Connection Check Script

Run this to verify the ledger database, MongoDB and Gemini are reachable.
Usage: python scripts/check_connections.py
"""
import sys
sys.path.insert(0, '.')

from app.db.postgres import test_postgres_connection, init_postgres_schema
from app.db.mongodb import test_mongo_connection, init_mongo_indexes
from app.services.gemini_client import get_gemini_client
from app.core.config import get_settings


def main():
    settings = get_settings()
    print("=" * 50)
    print("CONNECTX - CONNECTION CHECK")
    print("=" * 50)

    print("\n[1] Ledger database...")
    if test_postgres_connection():
        init_postgres_schema()
        print("    OK: connected, schema ready")
    else:
        print("    FAILED")

    print("\n[2] MongoDB...")
    print(f"    URI: {settings.mongodb_uri}")
    print(f"    Database: {settings.mongodb_db}")
    if test_mongo_connection():
        init_mongo_indexes()
        print("    OK: connected, indexes ready")
    else:
        print("    FAILED")

    print("\n[3] Gemini API...")
    if settings.gemini_api_key:
        print(f"    Base URL: {settings.gemini_base_url}")
        print(f"    Model: {settings.gemini_model}")
        if get_gemini_client().test_connection():
            print("    OK: connected")
        else:
            print("    FAILED")
    else:
        print("    SKIPPED: GEMINI_API_KEY not configured")

    print("\n" + "=" * 50)


if __name__ == "__main__":
    main()
